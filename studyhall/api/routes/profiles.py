"""
studyhall.api.routes.profiles — The caller's own profile
=========================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from studyhall.api.deps import get_actor, get_engine
from studyhall.database.models import Profile, WarningRecord
from studyhall.services import moderation_service, profile_service

router = APIRouter(prefix="/profiles", tags=["profiles"])


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: str | None = None
    bio: str | None = None
    profile_photo_url: str | None = None


# ---------------------------------------------------------------------------
# Serializers
# ---------------------------------------------------------------------------
def profile_dict(p: Profile) -> dict:
    return {
        "id": p.id,
        "user_id": p.user_id,
        "username": p.username,
        "bio": p.bio,
        "profile_photo_url": p.profile_photo_url,
        "role": p.role,
        "is_banned": p.is_banned,
        "is_muted": p.is_muted,
        "warning_count": p.warning_count,
        "joined_at": p.joined_at.isoformat() if p.joined_at else None,
    }


def warning_dict(w: WarningRecord) -> dict:
    return {
        "id": w.id,
        "user_id": w.user_id,
        "reason": w.reason,
        "issued_by": w.issued_by,
        "created_at": w.created_at.isoformat() if w.created_at else None,
    }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.get("/me")
def get_my_profile(actor: Profile = Depends(get_actor)):
    return profile_dict(actor)


@router.put("/me")
def update_my_profile(
    body: ProfileUpdate,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    updated = profile_service.update_profile(
        engine, actor.user_id, body.model_dump(exclude_unset=True),
    )
    return profile_dict(updated)


@router.get("/me/warnings")
def get_my_warnings(actor: Profile = Depends(get_actor), engine=Depends(get_engine)):
    rows = moderation_service.list_warnings(
        engine, user_id=actor.user_id, actor_id=actor.user_id,
    )
    return [warning_dict(w) for w in rows]
