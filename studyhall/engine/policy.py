"""
studyhall.engine.policy — Moderation Policy
============================================

Pure allow/deny evaluation.  No database access, no side effects: every
function takes the acting user's trust state (anything with ``user_id``,
``role``, ``is_banned`` and ``is_muted`` — normally a
:class:`~studyhall.database.models.Profile`) and answers whether the
action may proceed.

Services call :func:`ensure_allowed` before touching the store.  The
warning escalation threshold also lives here so the rule has exactly one
definition.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Protocol

from studyhall.constants import WARNING_BAN_THRESHOLD, Role
from studyhall.errors import ForbiddenError

logger = logging.getLogger(__name__)

__all__ = [
    "Action",
    "Decision",
    "TrustState",
    "evaluate",
    "ensure_allowed",
    "should_auto_ban",
]


class TrustState(Protocol):
    user_id: str
    role: str
    is_banned: bool
    is_muted: bool


class Action(enum.StrEnum):
    # Content creation — blocked by ban and mute
    CREATE_POST = "create_post"
    REPLY = "reply"
    REACT = "react"
    COMMENT_LIBRARY_ITEM = "comment_library_item"

    # Participation — blocked by ban only
    REPORT = "report"
    UPDATE_PROFILE = "update_profile"
    CREATE_VAULT_ITEM = "create_vault_item"
    RATE_LIBRARY_ITEM = "rate_library_item"

    # Punitive actions against another user
    BAN = "ban"
    UNBAN = "unban"
    MUTE = "mute"
    UNMUTE = "unmute"
    WARN = "warn"

    # Admin-only
    DELETE_POST = "delete_post"
    DELETE_REPLY = "delete_reply"
    PIN_POST = "pin_post"
    UNPIN_POST = "unpin_post"
    LIST_REPORTS = "list_reports"
    RESOLVE_REPORT = "resolve_report"
    CREATE_ANNOUNCEMENT = "create_announcement"
    DELETE_ANNOUNCEMENT = "delete_announcement"
    CREATE_LIBRARY_ITEM = "create_library_item"
    UPDATE_LIBRARY_ITEM = "update_library_item"
    DELETE_LIBRARY_ITEM = "delete_library_item"
    DELETE_LIBRARY_COMMENT = "delete_library_comment"
    PIN_LIBRARY_COMMENT = "pin_library_comment"
    UNPIN_LIBRARY_COMMENT = "unpin_library_comment"
    LIST_USERS = "list_users"
    VIEW_AUDIT_LOG = "view_audit_log"

    # Ownership-gated
    DELETE_VAULT_ITEM = "delete_vault_item"
    VIEW_WARNINGS = "view_warnings"


CONTENT_ACTIONS: frozenset[Action] = frozenset({
    Action.CREATE_POST,
    Action.REPLY,
    Action.REACT,
    Action.COMMENT_LIBRARY_ITEM,
})

PARTICIPATION_ACTIONS: frozenset[Action] = frozenset({
    Action.REPORT,
    Action.UPDATE_PROFILE,
    Action.CREATE_VAULT_ITEM,
    Action.RATE_LIBRARY_ITEM,
})

PUNITIVE_ACTIONS: frozenset[Action] = frozenset({
    Action.BAN,
    Action.UNBAN,
    Action.MUTE,
    Action.UNMUTE,
    Action.WARN,
})

ADMIN_ACTIONS: frozenset[Action] = frozenset({
    Action.DELETE_POST,
    Action.DELETE_REPLY,
    Action.PIN_POST,
    Action.UNPIN_POST,
    Action.LIST_REPORTS,
    Action.RESOLVE_REPORT,
    Action.CREATE_ANNOUNCEMENT,
    Action.DELETE_ANNOUNCEMENT,
    Action.CREATE_LIBRARY_ITEM,
    Action.UPDATE_LIBRARY_ITEM,
    Action.DELETE_LIBRARY_ITEM,
    Action.DELETE_LIBRARY_COMMENT,
    Action.PIN_LIBRARY_COMMENT,
    Action.UNPIN_LIBRARY_COMMENT,
    Action.LIST_USERS,
    Action.VIEW_AUDIT_LOG,
})


@dataclass(frozen=True, slots=True)
class Decision:
    """Outcome of a policy check.  ``reason`` is set only on denial."""

    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


_ALLOW = Decision(True)


def _deny(reason: str) -> Decision:
    return Decision(False, reason)


def _is_admin(state: TrustState | None) -> bool:
    return state is not None and state.role == Role.ADMIN


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------
def evaluate(
    action: Action,
    actor: TrustState | None,
    *,
    target: TrustState | None = None,
    owner_id: str | None = None,
) -> Decision:
    """Decide whether *actor* may perform *action*.

    Parameters
    ----------
    target:
        The profile a punitive action is aimed at.  Required for
        :data:`PUNITIVE_ACTIONS`.
    owner_id:
        Owner identity of the resource, for ownership-gated actions.
    """
    if actor is None:
        return _deny("Profile not found")

    if action in CONTENT_ACTIONS:
        if actor.is_banned:
            return _deny("You are banned")
        if actor.is_muted:
            return _deny("You are muted")
        return _ALLOW

    if action in PARTICIPATION_ACTIONS:
        if actor.is_banned:
            return _deny("You are banned")
        return _ALLOW

    if action in PUNITIVE_ACTIONS:
        if not _is_admin(actor):
            return _deny("Admin access required")
        if _is_admin(target):
            return _deny("Admins cannot be banned, muted or warned")
        return _ALLOW

    if action in ADMIN_ACTIONS:
        if not _is_admin(actor):
            return _deny("Admin access required")
        return _ALLOW

    if action is Action.DELETE_VAULT_ITEM:
        if owner_id is None or actor.user_id != owner_id:
            return _deny("You can only delete your own vault items")
        return _ALLOW

    if action is Action.VIEW_WARNINGS:
        if actor.user_id == owner_id or _is_admin(actor):
            return _ALLOW
        return _deny("Admin access required")

    return _deny(f"Unknown action: {action}")


def ensure_allowed(
    action: Action,
    actor: TrustState | None,
    *,
    target: TrustState | None = None,
    owner_id: str | None = None,
) -> None:
    """Raise :class:`ForbiddenError` unless :func:`evaluate` allows the action."""
    decision = evaluate(action, actor, target=target, owner_id=owner_id)
    if not decision.allowed:
        level = logging.WARNING if action in ADMIN_ACTIONS | PUNITIVE_ACTIONS else logging.INFO
        logger.log(
            level, "Denied %s for %s: %s",
            action, getattr(actor, "user_id", None), decision.reason,
        )
        raise ForbiddenError(decision.reason or "Forbidden")


# ---------------------------------------------------------------------------
# Warning escalation
# ---------------------------------------------------------------------------
def should_auto_ban(warning_count: int) -> bool:
    """A user is banned once their accumulated warnings reach the threshold."""
    return warning_count >= WARNING_BAN_THRESHOLD
