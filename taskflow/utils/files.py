"""Attachment file helpers: validation, naming and display."""
import os
import uuid
from typing import Optional

from taskflow.config import settings
from taskflow.utils.timeutils import utcnow

ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "text/csv",
    "application/zip",
    "application/x-zip-compressed",
}

DANGEROUS_EXTENSIONS = {".exe", ".bat", ".cmd", ".com", ".scr", ".vbs", ".js", ".jar", ".sh", ".ps1", ".msi"}


def validate_file_type(file_name: str, mime_type: Optional[str]) -> Optional[str]:
    """Return an error message if the file type is not accepted."""
    ext = os.path.splitext(file_name or "")[1].lower()
    if ext in DANGEROUS_EXTENSIONS:
        return f"File type {ext} is not allowed"
    if mime_type not in ALLOWED_MIME_TYPES:
        return f"File type {mime_type} is not allowed"
    return None


def validate_file_size(size: int, max_size: Optional[int] = None) -> Optional[str]:
    max_size = max_size or settings.MAX_FILE_SIZE
    if size > max_size:
        return f"File size exceeds {format_file_size(max_size)} limit"
    return None


def generate_file_name(original_name: str) -> str:
    """Unique storage name that keeps the original extension."""
    ext = os.path.splitext(original_name or "")[1].lower()
    stamp = int(utcnow().timestamp() * 1000)
    return f"{stamp}-{uuid.uuid4().hex}{ext}"


def format_file_size(size: int) -> str:
    """Human readable size, e.g. ``1.5 MB``."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {units[index]}"


def get_file_icon(mime_type: Optional[str]) -> str:
    mime_type = mime_type or ""
    if mime_type.startswith("image/"):
        return "image"
    if mime_type == "application/pdf":
        return "pdf"
    if "word" in mime_type:
        return "document"
    if "excel" in mime_type or "spreadsheet" in mime_type or mime_type == "text/csv":
        return "spreadsheet"
    if "powerpoint" in mime_type or "presentation" in mime_type:
        return "presentation"
    if "zip" in mime_type:
        return "archive"
    if mime_type.startswith("text/"):
        return "text"
    return "file"
