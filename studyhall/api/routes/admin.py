"""
studyhall.api.routes.admin — Moderation endpoints
==================================================

Every endpoint here except ``/admin/verify`` requires the caller's
profile to hold the admin role; the check happens in the services, so a
non-admin gets ``403 forbidden``.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from studyhall.api.deps import get_actor, get_config, get_engine, get_session
from studyhall.api.routes.profiles import profile_dict, warning_dict
from studyhall.config import StudyHallConfig
from studyhall.database.models import Profile
from studyhall.engine.policy import Action, ensure_allowed
from studyhall.services import (
    community_service,
    moderation_service,
    profile_service,
    report_service,
)
from studyhall.services.audit import list_admin_log

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class PasscodeBody(BaseModel):
    passcode: str


class WarnBody(BaseModel):
    reason: str


class ResolveBody(BaseModel):
    status: str


# ---------------------------------------------------------------------------
# Elevation
# ---------------------------------------------------------------------------
@router.post("/verify")
def verify_passcode(
    body: PasscodeBody,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
    cfg: StudyHallConfig = Depends(get_config),
):
    """Promote the caller to admin if the shared passcode matches."""
    profile = profile_service.verify_admin_passcode(
        engine, actor.user_id, body.passcode, expected=cfg.admin_passcode,
    )
    return {"success": True, "profile": profile_dict(profile)}


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
@router.get("/users")
def list_users(actor: Profile = Depends(get_actor), engine=Depends(get_engine)):
    return [profile_dict(p) for p in profile_service.list_profiles(engine, actor_id=actor.user_id)]


@router.post("/users/{user_id}/ban")
def ban_user(user_id: str, actor: Profile = Depends(get_actor), engine=Depends(get_engine)):
    moderation_service.ban_user(engine, target_id=user_id, actor_id=actor.user_id)
    return {"success": True}


@router.post("/users/{user_id}/unban")
def unban_user(user_id: str, actor: Profile = Depends(get_actor), engine=Depends(get_engine)):
    moderation_service.unban_user(engine, target_id=user_id, actor_id=actor.user_id)
    return {"success": True}


@router.post("/users/{user_id}/mute")
def mute_user(user_id: str, actor: Profile = Depends(get_actor), engine=Depends(get_engine)):
    moderation_service.mute_user(engine, target_id=user_id, actor_id=actor.user_id)
    return {"success": True}


@router.post("/users/{user_id}/unmute")
def unmute_user(user_id: str, actor: Profile = Depends(get_actor), engine=Depends(get_engine)):
    moderation_service.unmute_user(engine, target_id=user_id, actor_id=actor.user_id)
    return {"success": True}


@router.post("/users/{user_id}/warn")
def warn_user(
    user_id: str,
    body: WarnBody,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    result = moderation_service.warn_user(
        engine, target_id=user_id, reason=body.reason, actor_id=actor.user_id,
    )
    return {
        "success": True,
        "autoBanned": result.auto_banned,
        "warningCount": result.warning_count,
    }


@router.get("/users/{user_id}/warnings")
def list_user_warnings(
    user_id: str,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    rows = moderation_service.list_warnings(engine, user_id=user_id, actor_id=actor.user_id)
    return [warning_dict(w) for w in rows]


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------
@router.get("/reports")
def list_reports(
    status: str | None = Query(None),
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    views = report_service.list_reports(engine, actor_id=actor.user_id, status=status)
    return [v.to_dict() for v in views]


@router.post("/reports/{report_id}/resolve")
def resolve_report(
    report_id: int,
    body: ResolveBody,
    actor: Profile = Depends(get_actor),
    engine=Depends(get_engine),
):
    report = report_service.resolve_report(
        engine, report_id=report_id, status=body.status, actor_id=actor.user_id,
    )
    return {"success": True, "id": report.id, "status": report.status}


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------
@router.post("/posts/{post_id}/pin")
def pin_post(post_id: int, actor: Profile = Depends(get_actor), engine=Depends(get_engine)):
    community_service.pin_post(engine, post_id=post_id, actor_id=actor.user_id)
    return {"success": True}


@router.post("/posts/{post_id}/unpin")
def unpin_post(post_id: int, actor: Profile = Depends(get_actor), engine=Depends(get_engine)):
    community_service.unpin_post(engine, post_id=post_id, actor_id=actor.user_id)
    return {"success": True}


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------
@router.get("/audit")
def get_audit_log(
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=100),
    target_table: str | None = Query(None),
    actor: Profile = Depends(get_actor),
    session: Session = Depends(get_session),
):
    """Paginated admin audit log."""
    ensure_allowed(Action.VIEW_AUDIT_LOG, actor)
    total, rows = list_admin_log(
        session, page=page, page_size=page_size, target_table=target_table,
    )
    return {
        "total": total,
        "page": page,
        "page_size": page_size,
        "entries": [
            {
                "id": r.id,
                "actor_id": r.actor_id,
                "action_type": r.action_type,
                "target_table": r.target_table,
                "target_id": r.target_id,
                "before_snapshot": r.before_snapshot,
                "after_snapshot": r.after_snapshot,
                "reason": r.reason,
                "timestamp": r.timestamp.isoformat() if r.timestamp else None,
            }
            for r in rows
        ],
    }
