"""
Per-user storage quota bookkeeping.
"""
from typing import Dict, Optional, Union
from sqlalchemy import func
from sqlmodel import Session, select
import logging

import models
from models import MediaType, utc_now
from core.config import DEFAULT_STORAGE_LIMIT_BYTES
from core.storage import format_size

logger = logging.getLogger(__name__)


def get_or_create_usage(db: Session, user_id: int) -> models.StorageUsage:
    usage = db.exec(select(models.StorageUsage).where(models.StorageUsage.user_id == user_id)).first()
    if usage is None:
        usage = models.StorageUsage(user_id=user_id, total_bytes=0, limit_bytes=DEFAULT_STORAGE_LIMIT_BYTES)
        db.add(usage)
        db.commit()
        db.refresh(usage)
    return usage

def record_upload(
    db: Session, owner_user_id: int, storage_key: str, url: str, file_size: int, media_type: MediaType
) -> models.StoredFile:
    """Registers a stored file and charges it to the owner's quota in one commit."""
    stored = models.StoredFile(
        storage_key=storage_key, owner_user_id=owner_user_id, type=media_type, url=url, file_size=file_size
    )
    usage = get_or_create_usage(db, owner_user_id)
    usage.total_bytes += file_size
    usage.updated_at = utc_now()
    db.add(stored)
    db.add(usage)
    db.commit()
    db.refresh(stored)
    return stored

def get_stored_file(db: Session, storage_key: str) -> Optional[models.StoredFile]:
    return db.exec(select(models.StoredFile).where(models.StoredFile.storage_key == storage_key)).first()

def release_usage(db: Session, user_id: int, num_bytes: int, commit: bool = True) -> None:
    """Subtracts `num_bytes`, clamping at zero. Users without a usage row are left alone."""
    usage = db.exec(select(models.StorageUsage).where(models.StorageUsage.user_id == user_id)).first()
    if usage is None:
        return
    usage.total_bytes = max(0, usage.total_bytes - num_bytes)
    usage.updated_at = utc_now()
    db.add(usage)
    logger.debug(f"Released {num_bytes} bytes for user {user_id}; now {usage.total_bytes}")
    if commit:
        db.commit()

def _summary(used: int, limit: int) -> Dict[str, Union[dict, str]]:
    percentage = (used / limit * 100) if limit > 0 else 0.0
    return {
        "used": format_size(used),
        "limit": format_size(limit),
        "available": format_size(max(0, limit - used)),
        "percentage": f"{percentage:.1f}",
    }

def usage_summary(db: Session, user_id: int) -> dict:
    usage = db.exec(select(models.StorageUsage).where(models.StorageUsage.user_id == user_id)).first()
    if usage is None:
        return _summary(0, DEFAULT_STORAGE_LIMIT_BYTES)
    return _summary(usage.total_bytes, usage.limit_bytes)

def admin_summary(db: Session) -> dict:
    """Totals over every usage row; an empty table reports one default quota."""
    used, limit, users = db.exec(
        select(
            func.coalesce(func.sum(models.StorageUsage.total_bytes), 0),
            func.coalesce(func.sum(models.StorageUsage.limit_bytes), 0),
            func.count(models.StorageUsage.id),
        )
    ).one()
    if users == 0:
        limit = DEFAULT_STORAGE_LIMIT_BYTES
    summary = _summary(int(used), int(limit))
    summary["users"] = users
    return summary
