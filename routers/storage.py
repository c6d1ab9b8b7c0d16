from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlmodel import Session
import logging

import models
from database import get_session
from core import dependencies, storage
from core.config import MAX_FILE_SIZE_IMAGE, MAX_FILE_SIZE_VIDEO, MB
from core.file_helpers import get_mime_type, get_resource_type, is_supported_file_type
from crud import storage_crud
from models import MediaType
from schemas import storage_schemas

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["Storage"],
)


@router.get("/storage/usage", response_model=storage_schemas.StorageUsageRead)
async def get_storage_usage(
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.get_current_active_user),
):
    return storage_crud.usage_summary(db, current_user.id)


@router.get("/storage/admin", response_model=storage_schemas.AdminStorageRead)
async def get_admin_storage(
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.require_admin),
):
    return storage_crud.admin_summary(db)


@router.post("/upload", response_model=storage_schemas.UploadRead)
async def upload_file(
    file: UploadFile = File(...),
    type: str = Form(...),
    db: Session = Depends(get_session),
    current_user: models.User = Depends(dependencies.get_current_active_user),
):
    """
    Stores an image or video and charges its size to the caller's quota.
    The returned key can be passed as `storage_key` when attaching media.
    """
    if type not in (MediaType.image.value, MediaType.video.value):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="type must be 'image' or 'video'")

    filename = file.filename or ""
    if not is_supported_file_type(filename):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unsupported file type")
    if get_resource_type(filename) != type:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"File is not a valid {type}")

    max_size = MAX_FILE_SIZE_VIDEO if type == MediaType.video.value else MAX_FILE_SIZE_IMAGE
    data = await file.read(max_size + 1)
    if len(data) > max_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File exceeds the {max_size // MB}MB limit",
        )

    usage = storage_crud.get_or_create_usage(db, current_user.id)
    if usage.total_bytes + len(data) > usage.limit_bytes:
        available_mb = max(0, usage.limit_bytes - usage.total_bytes) / MB
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Not enough storage space. Available: {available_mb:.2f}MB",
        )

    key, url = storage.save_file(data, filename)
    try:
        storage_crud.record_upload(db, current_user.id, key, url, len(data), MediaType(type))
    except Exception:
        logger.error(f"Could not record upload {key}; removing the stored file", exc_info=True)
        storage.delete_file(key)
        raise
    return {"url": url, "key": key, "size": len(data), "type": type, "mime_type": get_mime_type(filename)}
