from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response, status
from sqlmodel import Session
from typing import List
import logging

import models
from database import get_session
from core import dependencies, rate_limit, webhooks
from crud import demo_crud, media_crud, product_crud, storage_crud
from models import DemoStatus, MediaType
from schemas import demo_schemas, media_schemas

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/demos",
    tags=["Demos"],
)


def _get_or_404(db: Session, demo_id: int) -> models.Demo:
    demo = demo_crud.get_demo(db, demo_id)
    if demo is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Demo not found")
    return demo

def _get_visible_or_403(db: Session, demo_id: int, user: models.User) -> models.Demo:
    demo = _get_or_404(db, demo_id)
    if not demo_crud.is_visible_to(db, demo, user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not have access to this demo")
    return demo

def _webhook_data(read: demo_schemas.DemoRead) -> dict:
    # Never ship decrypted credentials to third parties.
    return read.model_dump(exclude={"credentials"})


# --- Demos ---

@router.get("", response_model=List[demo_schemas.DemoRead])
async def list_demos(
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.get_current_active_user),
):
    """Buyers get the active demos assigned to them; staff get every demo, newest first."""
    return demo_crud.to_read_many(db, demo_crud.list_demos(db, viewer=current_user))


@router.get("/{demo_id}", response_model=demo_schemas.DemoRead)
async def get_demo(
    demo_id: int,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.get_current_active_user),
):
    return demo_crud.to_read(db, _get_visible_or_403(db, demo_id, current_user))


@router.post("", response_model=demo_schemas.DemoRead, status_code=status.HTTP_201_CREATED)
@rate_limit.demos_write_limit
async def create_demo(
    request: Request,
    response: Response,
    demo_in: demo_schemas.DemoCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_staff),
):
    if product_crud.get_product(db, demo_in.product_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")

    demo = demo_crud.create_demo(db, demo_in)
    read = demo_crud.to_read(db, demo)
    webhooks.queue_webhook(background_tasks, webhooks.DEMO_CREATED, _webhook_data(read), user=current_user)
    return read


@router.put("/{demo_id}", response_model=demo_schemas.DemoRead)
@rate_limit.demos_write_limit
async def update_demo(
    request: Request,
    response: Response,
    demo_id: int,
    demo_in: demo_schemas.DemoUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_staff),
):
    demo = _get_or_404(db, demo_id)
    if demo_in.product_id is not None and product_crud.get_product(db, demo_in.product_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")

    demo, previous_status = demo_crud.update_demo(db, demo, demo_in)
    read = demo_crud.to_read(db, demo)

    webhooks.queue_webhook(background_tasks, webhooks.DEMO_UPDATED, _webhook_data(read), user=current_user)
    if DemoStatus(demo.status) != previous_status:
        webhooks.queue_webhook(
            background_tasks,
            webhooks.DEMO_STATUS_CHANGED,
            {"demo_id": demo.id, "title": demo.title,
             "old_status": previous_status.value, "new_status": DemoStatus(demo.status).value},
            user=current_user,
        )
    return read


@router.delete("/{demo_id}")
async def delete_demo(
    demo_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_admin),
):
    demo = _get_or_404(db, demo_id)
    payload = {"id": demo.id, "title": demo.title, "product_id": demo.product_id}
    demo_crud.delete_demo(db, demo)
    webhooks.queue_webhook(background_tasks, webhooks.DEMO_DELETED, payload, user=current_user)
    return {"message": "Demo deleted"}


@router.get("/{demo_id}/public", response_model=demo_schemas.DemoRead)
async def get_public_demo(
    demo_id: int,
    db: Session = Depends(get_session),
):
    """Shared-link view. No login; only active demos."""
    demo = _get_or_404(db, demo_id)
    if DemoStatus(demo.status) != DemoStatus.active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This demo is not available")
    return demo_crud.to_read(db, demo)


# --- Media ---

@router.get("/{demo_id}/media", response_model=List[media_schemas.MediaRead])
async def list_demo_media(
    demo_id: int,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.get_current_active_user),
):
    _get_visible_or_403(db, demo_id, current_user)
    return media_crud.list_media(db, demo_id)


@router.post("/{demo_id}/media", response_model=media_schemas.MediaRead, status_code=status.HTTP_201_CREATED)
async def add_demo_media(
    demo_id: int,
    media_in: media_schemas.MediaCreate,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_staff),
):
    """Attaches externally hosted media by url, or a file the caller uploaded by its storage key."""
    _get_or_404(db, demo_id)

    stored = None
    if media_in.storage_key:
        stored = storage_crud.get_stored_file(db, media_in.storage_key)
        if stored is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown storage key")
        if stored.owner_user_id != current_user.id:
            logger.warning(f"User {current_user.email} tried to attach stored file {stored.storage_key} they do not own")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="The stored file belongs to another user")
        if MediaType(stored.type) != media_in.type:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=f"The stored file is not a {media_in.type.value}"
            )
        if media_crud.get_media_by_storage_key(db, stored.storage_key) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="The stored file is already attached")

    return media_crud.create_media(
        db, demo_id, media_in, uploaded_by_user_id=current_user.id, stored_file=stored
    )


@router.put("/{demo_id}/media/{media_id}", response_model=media_schemas.MediaRead)
async def update_demo_media(
    demo_id: int,
    media_id: int,
    media_in: media_schemas.MediaUpdate,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_staff),
):
    media = media_crud.get_media(db, demo_id, media_id)
    if media is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Media not found")
    return media_crud.update_media(db, media, media_in)


@router.delete("/{demo_id}/media/{media_id}")
async def delete_demo_media(
    demo_id: int,
    media_id: int,
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_staff),
):
    media = media_crud.get_media(db, demo_id, media_id)
    if media is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Media not found")
    media_crud.delete_media(db, media)
    return {"message": "Media deleted"}
