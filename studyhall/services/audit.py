"""
studyhall.services.audit — Admin Audit Trail
=============================================

Every admin mutation writes one ``admin_log`` row in the same transaction
as the change itself:
  1. Read "before" snapshot
  2. Apply change
  3. Write admin_log with before/after JSONB
  4. Commit (done by the caller's session block)
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from studyhall.database.models import AdminLog


class AdminActionType(enum.StrEnum):
    """Categories of admin mutations recorded in admin_log."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    BAN = "BAN"
    UNBAN = "UNBAN"
    MUTE = "MUTE"
    UNMUTE = "UNMUTE"
    WARN = "WARN"
    AUTO_BAN = "AUTO_BAN"
    PIN = "PIN"
    UNPIN = "UNPIN"
    RESOLVE = "RESOLVE"
    ROLE_CHANGE = "ROLE_CHANGE"


def row_to_dict(obj: Any) -> dict | None:
    """Convert a SQLAlchemy model instance to a JSON-serializable dict."""
    if obj is None:
        return None
    result = {}
    for col in obj.__table__.columns:
        val = getattr(obj, col.key, None)
        if isinstance(val, datetime):
            val = val.isoformat()
        result[col.name] = val
    return result


def log_admin_action(
    session: Session,
    *,
    actor_id: str,
    action_type: AdminActionType | str,
    target_table: str,
    target_id: str | int | None,
    before: dict | None,
    after: dict | None,
    reason: str | None = None,
) -> None:
    """Insert a row into admin_log within the current transaction."""
    session.add(AdminLog(
        actor_id=actor_id,
        action_type=str(action_type),
        target_table=target_table,
        target_id=str(target_id) if target_id is not None else None,
        before_snapshot=before,
        after_snapshot=after,
        reason=reason,
    ))


def list_admin_log(
    session: Session,
    *,
    page: int = 1,
    page_size: int = 25,
    target_table: str | None = None,
) -> tuple[int, list[AdminLog]]:
    """Return ``(total, rows)`` for one page of the audit log, newest first."""
    base = select(AdminLog)
    if target_table:
        base = base.where(AdminLog.target_table == target_table)

    total = session.scalar(
        select(func.count()).select_from(base.subquery())
    ) or 0
    rows = session.scalars(
        base.order_by(AdminLog.timestamp.desc(), AdminLog.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    ).all()
    return total, list(rows)
