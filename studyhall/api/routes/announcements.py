"""
studyhall.api.routes.announcements — Platform announcements
============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from studyhall.api.deps import get_actor, get_engine
from studyhall.database.models import Announcement, Profile
from studyhall.services import announcement_service

router = APIRouter(prefix="/announcements", tags=["announcements"])


class AnnouncementCreate(BaseModel):
    title: str
    content: str


def _announcement_dict(a: Announcement) -> dict:
    return {
        "id": a.id,
        "title": a.title,
        "content": a.content,
        "created_by": a.created_by,
        "created_at": a.created_at.isoformat() if a.created_at else None,
    }


@router.get("")
def list_announcements(actor: Profile = Depends(get_actor), engine=Depends(get_engine)):
    return [_announcement_dict(a) for a in announcement_service.list_announcements(engine)]


@router.post("", status_code=201)
def create_announcement(
    body: AnnouncementCreate,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    row = announcement_service.create_announcement(
        engine, actor_id=actor.user_id, title=body.title, content=body.content,
    )
    return _announcement_dict(row)


@router.delete("/{announcement_id}", status_code=204)
def delete_announcement(
    announcement_id: int,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    announcement_service.delete_announcement(
        engine, announcement_id=announcement_id, actor_id=actor.user_id,
    )
    return Response(status_code=204)
