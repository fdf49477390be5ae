"""
studyhall.services.announcement_service — Announcement Broadcast
=================================================================

Admin-authored notices shown to every signed-in user.  No editing: an
announcement is created, read, and eventually hard-deleted.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select

from studyhall.database.engine import get_session
from studyhall.database.models import Announcement
from studyhall.engine.policy import Action, ensure_allowed
from studyhall.errors import NotFoundError, ValidationError
from studyhall.services.audit import AdminActionType, log_admin_action, row_to_dict
from studyhall.services.profile_service import find_profile

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def list_announcements(engine: Engine) -> list[Announcement]:
    with get_session(engine) as session:
        return list(session.scalars(
            select(Announcement).order_by(
                Announcement.created_at.desc(), Announcement.id.desc()
            )
        ).all())


def create_announcement(engine: Engine, *, actor_id: str, title: str, content: str) -> Announcement:
    title = (title or "").strip()
    content = (content or "").strip()
    if not title:
        raise ValidationError("title must not be empty", field="title")
    if not content:
        raise ValidationError("content must not be empty", field="content")

    with get_session(engine) as session:
        ensure_allowed(Action.CREATE_ANNOUNCEMENT, find_profile(session, actor_id))
        row = Announcement(title=title, content=content, created_by=actor_id)
        session.add(row)
        session.flush()
        session.refresh(row)
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.CREATE,
            target_table="announcements",
            target_id=row.id,
            before=None,
            after=row_to_dict(row),
        )
        logger.info("Announcement %d published by %s", row.id, actor_id)
        return row


def delete_announcement(engine: Engine, *, announcement_id: int, actor_id: str) -> None:
    with get_session(engine) as session:
        ensure_allowed(Action.DELETE_ANNOUNCEMENT, find_profile(session, actor_id))
        row = session.get(Announcement, announcement_id)
        if row is None:
            raise NotFoundError(f"Announcement not found: {announcement_id}")
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.DELETE,
            target_table="announcements",
            target_id=announcement_id,
            before=row_to_dict(row),
            after=None,
        )
        session.delete(row)
