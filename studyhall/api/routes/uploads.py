"""
studyhall.api.routes.uploads — Upload destinations
===================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from studyhall.api.deps import get_config, get_current_user
from studyhall.config import StudyHallConfig
from studyhall.services.upload_service import request_upload_url

router = APIRouter(prefix="/uploads", tags=["uploads"])


class UploadRequest(BaseModel):
    filename: str
    size: int
    content_type: str | None = None


@router.post("/request-url")
def request_url(
    body: UploadRequest,
    user: dict = Depends(get_current_user),
    cfg: StudyHallConfig = Depends(get_config),
):
    """Hand the client a fresh object URL to upload its file to."""
    target = request_upload_url(
        body.filename,
        body.size,
        body.content_type,
        base_url=cfg.upload_base_url,
        max_bytes=cfg.max_upload_mb * 1024 * 1024,
    )
    return {"upload_url": target.upload_url, "object_path": target.object_path}
