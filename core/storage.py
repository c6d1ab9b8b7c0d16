"""
Local file store for uploaded demo media.

Files are written under UPLOAD_DIR as ``<resource_type>/<uuid>.<ext>`` and
served by the StaticFiles mount at UPLOAD_URL_PREFIX.
"""
import logging
import uuid
from pathlib import Path
from typing import Dict, Tuple, Union

from core import config
from core.file_helpers import get_extension, get_resource_type

logger = logging.getLogger(__name__)


def _path_for(key: str) -> Path:
    root = Path(config.UPLOAD_DIR).resolve()
    path = (root / key).resolve()
    # Keys come back from the database; never follow one outside the store.
    if root not in path.parents:
        raise ValueError(f"Storage key escapes upload directory: {key!r}")
    return path


def public_url(key: str) -> str:
    return f"{config.PUBLIC_BASE_URL.rstrip('/')}{config.UPLOAD_URL_PREFIX}/{key}"


def save_file(data: bytes, filename: str) -> Tuple[str, str]:
    """
    Stores `data` under a fresh key derived from `filename`'s extension.

    Returns:
        (key, url)
    """
    ext = get_extension(filename)
    key = f"{get_resource_type(filename)}/{uuid.uuid4().hex}"
    if ext:
        key = f"{key}.{ext}"

    path = _path_for(key)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    logger.info(f"Stored upload '{filename}' as {key} ({len(data)} bytes)")
    return key, public_url(key)


def delete_file(key: str) -> bool:
    """Removes a stored file. Returns False when it was already gone or could not be removed."""
    try:
        path = _path_for(key)
        path.unlink()
    except FileNotFoundError:
        logger.warning(f"Stored file {key} was already missing")
        return False
    except (OSError, ValueError) as e:
        logger.error(f"Could not delete stored file {key}: {e}")
        return False
    logger.info(f"Deleted stored file {key}")
    return True


def format_size(num_bytes: int) -> Dict[str, Union[int, float, str]]:
    mb = num_bytes / config.MB
    return {"bytes": num_bytes, "mb": round(mb, 2), "formatted": f"{mb:.2f} MB"}
