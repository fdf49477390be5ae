"""
studyhall.api.routes.community — Community feed
================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from studyhall.api.deps import get_actor, get_engine
from studyhall.database.models import CommunityPost, CommunityReply, PostReaction, Profile, Report
from studyhall.services import community_service, report_service

router = APIRouter(prefix="/community", tags=["community"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class PostCreate(BaseModel):
    content: str
    media_url: str | None = None
    link_url: str | None = None


class ReplyCreate(BaseModel):
    content: str


class ReactionCreate(BaseModel):
    emoji: str


class ReportCreate(BaseModel):
    target_id: int
    target_type: str
    reason: str
    target_user_id: str | None = None


# ---------------------------------------------------------------------------
# Serializers
# ---------------------------------------------------------------------------
def _post_dict(p: CommunityPost) -> dict:
    return {
        "id": p.id,
        "user_id": p.user_id,
        "content": p.content,
        "type": p.type,
        "media_url": p.media_url,
        "link_url": p.link_url,
        "is_pinned": p.is_pinned,
        "created_at": p.created_at.isoformat() if p.created_at else None,
    }


def _reply_dict(r: CommunityReply) -> dict:
    return {
        "id": r.id,
        "post_id": r.post_id,
        "user_id": r.user_id,
        "content": r.content,
        "created_at": r.created_at.isoformat() if r.created_at else None,
    }


def _reaction_dict(r: PostReaction) -> dict:
    return {"id": r.id, "post_id": r.post_id, "user_id": r.user_id, "emoji": r.emoji}


def _report_dict(r: Report) -> dict:
    return {
        "id": r.id,
        "target_id": r.target_id,
        "target_type": r.target_type,
        "target_user_id": r.target_user_id,
        "reason": r.reason,
        "reported_by": r.reported_by,
        "status": r.status,
        "created_at": r.created_at.isoformat() if r.created_at else None,
    }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.get("")
def list_posts(actor: Profile = Depends(get_actor), engine=Depends(get_engine)):
    return [p.to_dict() for p in community_service.list_posts(engine)]


@router.post("", status_code=201)
def create_post(
    body: PostCreate,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    post = community_service.create_post(
        engine,
        actor_id=actor.user_id,
        content=body.content,
        media_url=body.media_url,
        link_url=body.link_url,
    )
    return _post_dict(post)


@router.post("/report", status_code=201)
def report_content(
    body: ReportCreate,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    report = report_service.create_report(
        engine,
        actor_id=actor.user_id,
        target_id=body.target_id,
        target_type=body.target_type,
        reason=body.reason,
        target_user_id=body.target_user_id,
    )
    return _report_dict(report)


@router.post("/{post_id}/replies", status_code=201)
def reply_to_post(
    post_id: int,
    body: ReplyCreate,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    row = community_service.reply(
        engine, post_id=post_id, actor_id=actor.user_id, content=body.content,
    )
    return _reply_dict(row)


@router.post("/{post_id}/react", status_code=201)
def react_to_post(
    post_id: int,
    body: ReactionCreate,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    row = community_service.react(
        engine, post_id=post_id, actor_id=actor.user_id, emoji=body.emoji,
    )
    return _reaction_dict(row)


@router.delete("/replies/{reply_id}", status_code=204)
def delete_reply(
    reply_id: int,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    community_service.delete_reply(engine, reply_id=reply_id, actor_id=actor.user_id)
    return Response(status_code=204)


@router.delete("/{post_id}", status_code=204)
def delete_post(
    post_id: int,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    community_service.delete_post(engine, post_id=post_id, actor_id=actor.user_id)
    return Response(status_code=204)
