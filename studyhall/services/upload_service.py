"""
studyhall.services.upload_service — Upload destinations
========================================================

Issues a unique object-storage destination for a study file, profile
photo or post image.  The client uploads the bytes directly to
``upload_url``; this service only validates the request and names the
object, so file content never passes through the API.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from pathlib import PurePosixPath

from studyhall.errors import ValidationError

MAX_FILE_SIZE = 25 * 1024 * 1024  # 25 MB
ALLOWED_EXTENSIONS = {
    ".pdf", ".doc", ".docx", ".ppt", ".pptx", ".txt",
    ".png", ".jpg", ".jpeg", ".gif", ".webp",
}
ALLOWED_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "image/png",
    "image/jpeg",
    "image/gif",
    "image/webp",
}


@dataclass(frozen=True, slots=True)
class UploadTarget:
    upload_url: str
    object_path: str


def request_upload_url(
    filename: str,
    size: int,
    content_type: str | None = None,
    *,
    base_url: str,
    max_bytes: int = MAX_FILE_SIZE,
    folder: str = "uploads",
) -> UploadTarget:
    """Validate an upload request and return where to put the bytes.

    Raises
    ------
    ValidationError
        If the file is empty, too large, or of a type not on the allow-list.
    """
    if size <= 0:
        raise ValidationError("File is empty", field="size")
    if size > max_bytes:
        raise ValidationError(
            f"File too large: {size} bytes (max {max_bytes // 1024 // 1024}MB)", field="size",
        )

    ext = PurePosixPath(filename or "").suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError(
            f"File type not allowed: {ext!r}. "
            f"Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
            field="filename",
        )

    if content_type and content_type not in ALLOWED_MIME_TYPES:
        raise ValidationError(
            f"MIME type not allowed: {content_type!r}. "
            f"Allowed: {', '.join(sorted(ALLOWED_MIME_TYPES))}",
            field="content_type",
        )

    # Unique name so two uploads of "notes.pdf" never collide
    object_path = f"{folder.strip('/')}/{uuid.uuid4().hex}{ext}"
    return UploadTarget(
        upload_url=f"{base_url.rstrip('/')}/{object_path}",
        object_path=object_path,
    )
