"""
studyhall.services.moderation_service — Trust-State Mutations
==============================================================

Ban, unban, mute, unmute and warn.  Each call runs in one transaction:
  1. Lock the target profile row (``SELECT … FOR UPDATE``)
  2. Evaluate policy (actor must be admin, target must not be)
  3. Apply change
  4. Write admin_log with before/after snapshots
  5. Commit

Warnings escalate: the third warning bans the user in the same
transaction that records it, so concurrent warnings against one user
serialize on the row lock and the threshold is never skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import select

from studyhall.database.engine import get_session
from studyhall.database.models import Profile, WarningRecord
from studyhall.engine.policy import Action, ensure_allowed, should_auto_ban
from studyhall.errors import ForbiddenError, ValidationError
from studyhall.services.audit import AdminActionType, log_admin_action, row_to_dict
from studyhall.services.profile_service import (
    find_profile,
    increment_warning,
    require_profile,
    set_flag_in_session,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WarnResult:
    warning: WarningRecord
    warning_count: int
    auto_banned: bool


_FLAG_ACTIONS: dict[Action, tuple[str, bool, AdminActionType]] = {
    Action.BAN: ("is_banned", True, AdminActionType.BAN),
    Action.UNBAN: ("is_banned", False, AdminActionType.UNBAN),
    Action.MUTE: ("is_muted", True, AdminActionType.MUTE),
    Action.UNMUTE: ("is_muted", False, AdminActionType.UNMUTE),
}


def _apply_flag(engine: Engine, action: Action, *, target_id: str, actor_id: str) -> Profile:
    flag, value, audit_type = _FLAG_ACTIONS[action]
    with get_session(engine) as session:
        actor = find_profile(session, actor_id)
        ensure_allowed(action, actor)
        target = require_profile(session, target_id, for_update=True)
        ensure_allowed(action, actor, target=target)

        before = row_to_dict(target)
        if set_flag_in_session(session, target, flag, value):
            log_admin_action(
                session,
                actor_id=actor_id,
                action_type=audit_type,
                target_table="profiles",
                target_id=target_id,
                before=before,
                after=row_to_dict(target),
            )
            logger.info("%s: %s by admin %s", audit_type, target_id, actor_id)
        return target


def ban_user(engine: Engine, *, target_id: str, actor_id: str) -> Profile:
    return _apply_flag(engine, Action.BAN, target_id=target_id, actor_id=actor_id)


def unban_user(engine: Engine, *, target_id: str, actor_id: str) -> Profile:
    return _apply_flag(engine, Action.UNBAN, target_id=target_id, actor_id=actor_id)


def mute_user(engine: Engine, *, target_id: str, actor_id: str) -> Profile:
    return _apply_flag(engine, Action.MUTE, target_id=target_id, actor_id=actor_id)


def unmute_user(engine: Engine, *, target_id: str, actor_id: str) -> Profile:
    return _apply_flag(engine, Action.UNMUTE, target_id=target_id, actor_id=actor_id)


def warn_user(engine: Engine, *, target_id: str, reason: str, actor_id: str) -> WarnResult:
    """Record a warning and auto-ban at the threshold.

    1. Reject if the target is banned or is an admin.
    2. Insert the warning row.
    3. Increment ``warning_count`` atomically.
    4. If the new count reaches the threshold, ban the target.
    """
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A reason is required", field="reason")

    with get_session(engine) as session:
        actor = find_profile(session, actor_id)
        ensure_allowed(Action.WARN, actor)
        target = require_profile(session, target_id, for_update=True)
        ensure_allowed(Action.WARN, actor, target=target)
        if target.is_banned:
            raise ForbiddenError("User is already banned")

        before = row_to_dict(target)

        warning = WarningRecord(user_id=target_id, reason=reason, issued_by=actor_id)
        session.add(warning)
        session.flush()

        new_count = increment_warning(session, target_id)
        session.refresh(target)

        auto_banned = should_auto_ban(new_count)
        if auto_banned:
            set_flag_in_session(session, target, "is_banned", True)

        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.AUTO_BAN if auto_banned else AdminActionType.WARN,
            target_table="profiles",
            target_id=target_id,
            before=before,
            after=row_to_dict(target),
            reason=reason,
        )
        session.refresh(warning)

        if auto_banned:
            logger.info(
                "User %s auto-banned after %d warnings (last by %s)",
                target_id, new_count, actor_id,
            )
        else:
            logger.info("User %s warned by %s (%d total)", target_id, actor_id, new_count)

        return WarnResult(warning=warning, warning_count=new_count, auto_banned=auto_banned)


def list_warnings(engine: Engine, *, user_id: str, actor_id: str) -> list[WarningRecord]:
    """Warnings for *user_id*, newest first.  The user themself or an admin."""
    with get_session(engine) as session:
        ensure_allowed(Action.VIEW_WARNINGS, find_profile(session, actor_id), owner_id=user_id)
        return list(session.scalars(
            select(WarningRecord)
            .where(WarningRecord.user_id == user_id)
            .order_by(WarningRecord.created_at.desc(), WarningRecord.id.desc())
        ).all())
