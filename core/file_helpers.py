"""
File type detection by extension.
"""
from pathlib import PurePath

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp", "svg", "bmp", "ico"}
VIDEO_EXTENSIONS = {"mp4", "webm", "mov", "avi", "mkv", "flv"}
DOCUMENT_EXTENSIONS = {"pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "txt"}

MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "bmp": "image/bmp",
    "ico": "image/x-icon",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mov": "video/quicktime",
    "avi": "video/x-msvideo",
    "mkv": "video/x-matroska",
    "flv": "video/x-flv",
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "txt": "text/plain",
}


def get_extension(file_name: str) -> str:
    """Lower-cased extension without the dot, '' when there is none."""
    return PurePath(file_name or "").suffix.lower().lstrip(".")


def get_resource_type(file_name: str) -> str:
    """'image', 'video', 'raw' (documents) or 'auto'."""
    ext = get_extension(file_name)
    if ext in IMAGE_EXTENSIONS:
        return "image"
    if ext in VIDEO_EXTENSIONS:
        return "video"
    if ext in DOCUMENT_EXTENSIONS:
        return "raw"
    return "auto"


def get_media_type(file_name: str) -> str:
    """'image', 'video', 'pdf' or 'document'."""
    ext = get_extension(file_name)
    if ext in IMAGE_EXTENSIONS:
        return "image"
    if ext in VIDEO_EXTENSIONS:
        return "video"
    if ext == "pdf":
        return "pdf"
    return "document"


def is_supported_file_type(file_name: str) -> bool:
    return get_extension(file_name) in MIME_TYPES


def get_mime_type(file_name: str) -> str:
    return MIME_TYPES.get(get_extension(file_name), "application/octet-stream")
