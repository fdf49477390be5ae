"""
studyhall.services.profile_service — Identity & Trust Store
============================================================

One :class:`Profile` per authenticated identity, created lazily on first
access.  Holds the role and the trust flags (banned / muted / warning
count) that the moderation policy reads on every mutation.

Public functions take an ``engine`` and own their transaction.  The
``*_in_session`` helpers take a live ``Session`` so other services can
compose them into a single atomic unit (see ``moderation_service``).
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studyhall.constants import DEFAULT_USERNAME, Role
from studyhall.database.engine import get_session
from studyhall.database.models import Profile
from studyhall.engine.policy import Action, ensure_allowed
from studyhall.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from studyhall.services.audit import AdminActionType, log_admin_action, row_to_dict

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

SELF_EDITABLE_FIELDS: frozenset[str] = frozenset({"username", "bio", "profile_photo_url"})


# ---------------------------------------------------------------------------
# Session-level helpers
# ---------------------------------------------------------------------------
def find_profile(session: Session, user_id: str, *, for_update: bool = False) -> Profile | None:
    """Fetch a profile by identity, optionally locking the row."""
    stmt = select(Profile).where(Profile.user_id == user_id)
    if for_update:
        stmt = stmt.with_for_update()
    return session.scalar(stmt)


def require_profile(session: Session, user_id: str, *, for_update: bool = False) -> Profile:
    profile = find_profile(session, user_id, for_update=for_update)
    if profile is None:
        raise NotFoundError(f"Profile not found: {user_id}")
    return profile


def get_or_create_in_session(
    session: Session, user_id: str, username: str | None = None,
) -> Profile:
    """Fetch or insert the profile for *user_id*.

    Two first requests from the same new user may race.  The insert runs
    inside a SAVEPOINT; if the unique ``user_id`` index rejects it, the
    SAVEPOINT is rolled back and the winner's row is read instead.
    """
    profile = find_profile(session, user_id)
    if profile is not None:
        return profile

    try:
        with session.begin_nested():   # SAVEPOINT
            profile = Profile(
                user_id=user_id,
                username=username or DEFAULT_USERNAME,
                role=Role.STUDENT.value,
                is_banned=False,
                is_muted=False,
                warning_count=0,
            )
            session.add(profile)
            session.flush()
    except IntegrityError:
        profile = find_profile(session, user_id)
        if profile is None:
            raise ConflictError(f"Could not create profile for {user_id}")
        return profile

    session.refresh(profile)
    logger.info("Created profile for %s", user_id)
    return profile


def set_flag_in_session(session: Session, profile: Profile, flag: str, value: bool) -> bool:
    """Set ``is_banned`` / ``is_muted``.  Returns True if the value changed."""
    if getattr(profile, flag) == value:
        return False
    setattr(profile, flag, value)
    session.flush()
    return True


def increment_warning(session: Session, user_id: str) -> int:
    """Atomically bump ``warning_count`` and return the new value.

    Runs as a single ``UPDATE … SET warning_count = warning_count + 1
    RETURNING warning_count`` so the read of the new count can never see a
    stale value.  Must be called inside the transaction that inserts the
    matching warning row.
    """
    new_count = session.execute(
        update(Profile)
        .where(Profile.user_id == user_id)
        .values(warning_count=Profile.warning_count + 1)
        .returning(Profile.warning_count)
    ).scalar_one_or_none()
    if new_count is None:
        raise NotFoundError(f"Profile not found: {user_id}")
    return new_count


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def get_or_create_profile(engine: Engine, user_id: str, *, username: str | None = None) -> Profile:
    """Return the caller's profile, creating a default student profile if needed."""
    with get_session(engine) as session:
        return get_or_create_in_session(session, user_id, username)


def get_profile(engine: Engine, user_id: str) -> Profile:
    with get_session(engine) as session:
        return require_profile(session, user_id)


def list_profiles(engine: Engine, *, actor_id: str) -> list[Profile]:
    """All profiles, most recently joined first.  Admin only."""
    with get_session(engine) as session:
        ensure_allowed(Action.LIST_USERS, find_profile(session, actor_id))
        return list(session.scalars(
            select(Profile).order_by(Profile.joined_at.desc(), Profile.id.desc())
        ).all())


def update_profile(engine: Engine, user_id: str, updates: Mapping[str, Any]) -> Profile:
    """Self-edit of display fields.  Role and trust flags are not editable here."""
    illegal = set(updates) - SELF_EDITABLE_FIELDS
    if illegal:
        raise ValidationError(
            f"Field(s) not editable: {', '.join(sorted(illegal))}",
            field=sorted(illegal)[0],
        )

    with get_session(engine) as session:
        profile = require_profile(session, user_id)
        ensure_allowed(Action.UPDATE_PROFILE, profile)
        for key, value in updates.items():
            setattr(profile, key, value)
        session.flush()
        return profile


def set_role(engine: Engine, user_id: str, role: str, *, actor_id: str | None = None) -> Profile:
    """Idempotently set a profile's role."""
    if role not in {r.value for r in Role}:
        raise ValidationError(f"Unknown role: {role!r}", field="role")

    with get_session(engine) as session:
        profile = require_profile(session, user_id, for_update=True)
        if profile.role == role:
            return profile
        before = row_to_dict(profile)
        profile.role = role
        session.flush()
        log_admin_action(
            session,
            actor_id=actor_id or user_id,
            action_type=AdminActionType.ROLE_CHANGE,
            target_table="profiles",
            target_id=user_id,
            before=before,
            after=row_to_dict(profile),
        )
        logger.info("Role of %s set to %s", user_id, role)
        return profile


def verify_admin_passcode(
    engine: Engine, user_id: str, passcode: str, *, expected: str,
) -> Profile:
    """Elevate *user_id* to admin if *passcode* equals the shared secret.

    The comparison is an exact string match against a single configured
    value.  It is not a real credential check.
    """
    if not expected or not secrets.compare_digest(passcode.encode(), expected.encode()):
        logger.warning("Rejected admin passcode attempt by %s", user_id)
        raise ForbiddenError("Invalid passcode")

    with get_session(engine) as session:
        get_or_create_in_session(session, user_id)

    return set_role(engine, user_id, Role.ADMIN.value)
