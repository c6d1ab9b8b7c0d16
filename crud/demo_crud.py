from typing import Iterable, List, Optional, Sequence, Tuple
from sqlmodel import Session, select
import logging

import models
from models import DemoStatus, UserRole, utc_now
from core.encryption import decrypt_credentials, encrypt_credentials
from core.sanitize import sanitize_html
from crud import media_crud
from schemas import demo_schemas, product_schemas

logger = logging.getLogger(__name__)


def get_demo(db: Session, demo_id: int) -> Optional[models.Demo]:
    return db.get(models.Demo, demo_id)

def get_demos_by_ids(db: Session, demo_ids: Iterable[int]) -> Sequence[models.Demo]:
    ids = list(demo_ids)
    if not ids:
        return []
    return db.exec(select(models.Demo).where(models.Demo.id.in_(ids))).all()

def is_assigned(db: Session, demo_id: int, user_id: int) -> bool:
    statement = select(models.DemoAssignment).where(
        models.DemoAssignment.demo_id == demo_id, models.DemoAssignment.user_id == user_id
    )
    return db.exec(statement).first() is not None

def is_visible_to(db: Session, demo: models.Demo, user: models.User) -> bool:
    """Staff see every demo; a buyer only active demos assigned to them."""
    if UserRole(user.role) != UserRole.buyer:
        return True
    return DemoStatus(demo.status) == DemoStatus.active and is_assigned(db, demo.id, user.id)

def list_demos(db: Session, viewer: models.User) -> Sequence[models.Demo]:
    statement = select(models.Demo)
    if UserRole(viewer.role) == UserRole.buyer:
        statement = (
            statement
            .join(models.DemoAssignment, models.DemoAssignment.demo_id == models.Demo.id)
            .where(models.DemoAssignment.user_id == viewer.id, models.Demo.status == DemoStatus.active)
        )
    statement = statement.order_by(models.Demo.created_at.desc(), models.Demo.id.desc())
    return db.exec(statement).all()

def _encrypted(credentials: Optional[demo_schemas.Credentials]) -> Optional[str]:
    if credentials is None:
        return None
    return encrypt_credentials(credentials.model_dump()) or None

def create_demo(db: Session, demo_in: demo_schemas.DemoCreate) -> models.Demo:
    data = demo_in.model_dump(exclude={"credentials"})
    if data.get("html_content"):
        data["html_content"] = sanitize_html(data["html_content"])
    db_demo = models.Demo(**data, credentials_encrypted=_encrypted(demo_in.credentials))
    db.add(db_demo)
    db.commit()
    db.refresh(db_demo)
    logger.info(f"Created demo {db_demo.id} '{db_demo.title}'")
    return db_demo

def update_demo(
    db: Session, demo: models.Demo, demo_in: demo_schemas.DemoUpdate
) -> Tuple[models.Demo, DemoStatus]:
    """
    Applies the fields the client sent. Returns the demo and its status before
    the update.
    """
    previous_status = DemoStatus(demo.status)
    changes = demo_in.model_dump(exclude_unset=True, exclude={"credentials"})

    for field in ("title", "product_id", "status", "has_responsive", "requires_credentials"):
        # Non-nullable columns; an explicit null means "leave as is".
        if field in changes and changes[field] is None:
            del changes[field]
    if changes.get("html_content"):
        changes["html_content"] = sanitize_html(changes["html_content"])

    for field, value in changes.items():
        setattr(demo, field, value)
    if "credentials" in demo_in.model_fields_set:
        demo.credentials_encrypted = _encrypted(demo_in.credentials)

    demo.updated_at = utc_now()
    db.add(demo)
    db.commit()
    db.refresh(demo)
    return demo, previous_status

def delete_demo(db: Session, demo: models.Demo) -> None:
    """Deletes the demo with its assignments, feedback and media."""
    demo_id = demo.id
    for assignment in db.exec(select(models.DemoAssignment).where(models.DemoAssignment.demo_id == demo_id)).all():
        db.delete(assignment)
    for fb in db.exec(select(models.Feedback).where(models.Feedback.demo_id == demo_id)).all():
        db.delete(fb)
    for media in db.exec(select(models.DemoMedia).where(models.DemoMedia.demo_id == demo_id)).all():
        media_crud.release_media(db, media)
        db.delete(media)
    db.delete(demo)
    db.commit()
    logger.info(f"Deleted demo {demo_id}")

def to_read(db: Session, demo: models.Demo) -> demo_schemas.DemoRead:
    """Response shape: product embedded, credentials decrypted."""
    product = db.get(models.Product, demo.product_id)
    credentials = decrypt_credentials(demo.credentials_encrypted)
    return demo_schemas.DemoRead(
        **demo.model_dump(exclude={"credentials_encrypted"}),
        product=product_schemas.ProductRead.model_validate(product) if product else None,
        credentials=demo_schemas.Credentials(**credentials) if credentials else None,
    )

def to_read_many(db: Session, demos: Sequence[models.Demo]) -> List[demo_schemas.DemoRead]:
    return [to_read(db, d) for d in demos]
