"""
studyhall.api.routes.library — Shared study library
====================================================
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, ConfigDict

from studyhall.api.deps import get_actor, get_engine
from studyhall.database.models import LibraryComment, Profile
from studyhall.services import library_service

router = APIRouter(prefix="/library", tags=["library"])


class LibraryItemCreate(BaseModel):
    title: str
    category: str
    description: str | None = None
    file_url: str | None = None
    link_url: str | None = None


class LibraryItemUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    category: str | None = None
    description: str | None = None
    file_url: str | None = None
    link_url: str | None = None


class RatingBody(BaseModel):
    rating: int


class CommentBody(BaseModel):
    content: str


def _comment_dict(c: LibraryComment) -> dict:
    return {
        "id": c.id,
        "library_item_id": c.library_item_id,
        "user_id": c.user_id,
        "content": c.content,
        "is_pinned": c.is_pinned,
        "created_at": c.created_at.isoformat() if c.created_at else None,
    }


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------
@router.get("")
def list_library(
    category: str | None = Query(None),
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    return [asdict(i) for i in library_service.list_items(engine, category)]


@router.post("", status_code=201)
def create_library_item(
    body: LibraryItemCreate,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    item = library_service.create_item(
        engine,
        actor_id=actor.user_id,
        title=body.title,
        category=body.category,
        description=body.description,
        file_url=body.file_url,
        link_url=body.link_url,
    )
    return asdict(item)


@router.put("/{item_id}")
def update_library_item(
    item_id: int,
    body: LibraryItemUpdate,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    item = library_service.update_item(
        engine,
        item_id=item_id,
        actor_id=actor.user_id,
        updates=body.model_dump(exclude_unset=True),
    )
    return asdict(item)


@router.delete("/{item_id}", status_code=204)
def delete_library_item(
    item_id: int,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    library_service.delete_item(engine, item_id=item_id, actor_id=actor.user_id)
    return Response(status_code=204)


@router.post("/{item_id}/rate")
def rate_library_item(
    item_id: int,
    body: RatingBody,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    item = library_service.rate_item(
        engine, item_id=item_id, actor_id=actor.user_id, rating=body.rating,
    )
    return asdict(item)


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------
@router.get("/{item_id}/comments")
def list_comments(
    item_id: int,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    return [asdict(c) for c in library_service.list_comments(engine, item_id)]


@router.post("/{item_id}/comments", status_code=201)
def add_comment(
    item_id: int,
    body: CommentBody,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    row = library_service.add_comment(
        engine, item_id=item_id, actor_id=actor.user_id, content=body.content,
    )
    return _comment_dict(row)


@router.delete("/{item_id}/comments/{comment_id}", status_code=204)
def delete_comment(
    item_id: int,
    comment_id: int,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    library_service.delete_comment(
        engine, item_id=item_id, comment_id=comment_id, actor_id=actor.user_id,
    )
    return Response(status_code=204)


@router.post("/{item_id}/comments/{comment_id}/pin")
def pin_comment(
    item_id: int,
    comment_id: int,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    library_service.pin_comment(
        engine, item_id=item_id, comment_id=comment_id, actor_id=actor.user_id,
    )
    return {"success": True}


@router.post("/{item_id}/comments/{comment_id}/unpin")
def unpin_comment(
    item_id: int,
    comment_id: int,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    library_service.unpin_comment(
        engine, item_id=item_id, comment_id=comment_id, actor_id=actor.user_id,
    )
    return {"success": True}
