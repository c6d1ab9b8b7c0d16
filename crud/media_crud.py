from typing import Optional, Sequence
from sqlmodel import Session, select
import logging

import models
from core import storage
from crud import storage_crud
from schemas import media_schemas

logger = logging.getLogger(__name__)


def get_media(db: Session, demo_id: int, media_id: int) -> Optional[models.DemoMedia]:
    statement = select(models.DemoMedia).where(
        models.DemoMedia.id == media_id, models.DemoMedia.demo_id == demo_id
    )
    return db.exec(statement).first()

def list_media(db: Session, demo_id: int) -> Sequence[models.DemoMedia]:
    statement = (
        select(models.DemoMedia)
        .where(models.DemoMedia.demo_id == demo_id)
        .order_by(models.DemoMedia.created_at, models.DemoMedia.id)
    )
    return db.exec(statement).all()

def get_media_by_storage_key(db: Session, storage_key: str) -> Optional[models.DemoMedia]:
    return db.exec(select(models.DemoMedia).where(models.DemoMedia.storage_key == storage_key)).first()

def create_media(
    db: Session,
    demo_id: int,
    media_in: media_schemas.MediaCreate,
    uploaded_by_user_id: Optional[int],
    stored_file: Optional[models.StoredFile] = None,
) -> models.DemoMedia:
    """
    Adds a media item. With `stored_file`, its url, size and owner come from the
    upload record; the request only names the key.
    """
    fields = media_in.model_dump()
    file_size = None
    if stored_file is not None:
        fields.update(url=stored_file.url, storage_key=stored_file.storage_key)
        file_size = stored_file.file_size
        uploaded_by_user_id = stored_file.owner_user_id
    db_media = models.DemoMedia(
        demo_id=demo_id,
        uploaded_by_user_id=uploaded_by_user_id,
        file_size=file_size,
        **fields,
    )
    db.add(db_media)
    db.commit()
    db.refresh(db_media)
    return db_media

def update_media(
    db: Session, media: models.DemoMedia, media_in: media_schemas.MediaUpdate
) -> models.DemoMedia:
    for field, value in media_in.model_dump(exclude_unset=True).items():
        setattr(media, field, value)
    db.add(media)
    db.commit()
    db.refresh(media)
    return media

def release_media(db: Session, media: models.DemoMedia) -> None:
    """
    Returns the backing upload's bytes to its owner's quota, then drops the
    upload record and its file. Does not delete the media row or commit.
    """
    if not media.storage_key:
        return
    stored = storage_crud.get_stored_file(db, media.storage_key)
    if stored is None:
        logger.warning(f"Media {media.id} references unknown stored file {media.storage_key}")
        return
    if stored.owner_user_id:
        storage_crud.release_usage(db, stored.owner_user_id, stored.file_size, commit=False)
    db.delete(stored)
    storage.delete_file(media.storage_key)

def delete_media(db: Session, media: models.DemoMedia) -> None:
    media_id, demo_id = media.id, media.demo_id
    release_media(db, media)
    db.delete(media)
    db.commit()
    logger.info(f"Deleted media {media_id} of demo {demo_id}")
