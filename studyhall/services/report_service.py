"""
studyhall.services.report_service — Report Pipeline
====================================================

Users flag posts or replies; admins work the queue.

Lifecycle: ``pending`` → ``resolved`` | ``dismissed``.  Both end states
are terminal: resolving an already-closed report returns it unchanged and
writes nothing.  Report targets are not checked for existence, so a report
may point at content that has since been deleted.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select

from studyhall.constants import TERMINAL_REPORT_STATUSES, ReportStatus, ReportTargetType
from studyhall.database.engine import get_session
from studyhall.database.models import Profile, Report
from studyhall.engine.policy import Action, ensure_allowed
from studyhall.engine.views import ReportView
from studyhall.errors import NotFoundError, ValidationError
from studyhall.services.audit import AdminActionType, log_admin_action, row_to_dict
from studyhall.services.profile_service import find_profile

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

_TARGET_TYPES = frozenset(t.value for t in ReportTargetType)
_STATUSES = frozenset(s.value for s in ReportStatus)


def create_report(
    engine: Engine,
    *,
    actor_id: str,
    target_id: int,
    target_type: str,
    reason: str,
    target_user_id: str | None = None,
) -> Report:
    """File a report.  Always lands as ``pending``."""
    if target_type not in _TARGET_TYPES:
        raise ValidationError(
            f"target_type must be one of {sorted(_TARGET_TYPES)}", field="target_type",
        )
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A reason is required", field="reason")

    with get_session(engine) as session:
        ensure_allowed(Action.REPORT, find_profile(session, actor_id))
        report = Report(
            target_id=target_id,
            target_type=target_type,
            target_user_id=target_user_id or None,
            reason=reason,
            reported_by=actor_id,
            status=ReportStatus.PENDING.value,
        )
        session.add(report)
        session.flush()
        session.refresh(report)
        logger.info(
            "Report %d filed by %s against %s %d",
            report.id, actor_id, target_type, target_id,
        )
        return report


def resolve_report(engine: Engine, *, report_id: int, status: str, actor_id: str) -> Report:
    """Close a pending report as ``resolved`` or ``dismissed``."""
    if status not in TERMINAL_REPORT_STATUSES:
        raise ValidationError(
            f"status must be one of {sorted(TERMINAL_REPORT_STATUSES)}", field="status",
        )

    with get_session(engine) as session:
        ensure_allowed(Action.RESOLVE_REPORT, find_profile(session, actor_id))
        report = session.scalar(
            select(Report).where(Report.id == report_id).with_for_update()
        )
        if report is None:
            raise NotFoundError(f"Report not found: {report_id}")

        if report.status in TERMINAL_REPORT_STATUSES:
            logger.info(
                "Report %d already %s; ignoring %s by %s",
                report_id, report.status, status, actor_id,
            )
            return report

        before = row_to_dict(report)
        report.status = status
        session.flush()
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.RESOLVE,
            target_table="reports",
            target_id=report_id,
            before=before,
            after=row_to_dict(report),
        )
        logger.info("Report %d marked %s by admin %s", report_id, status, actor_id)
        return report


def list_reports(engine: Engine, *, actor_id: str, status: str | None = None) -> list[ReportView]:
    """Admin queue view, newest first, with the reported user's profile."""
    if status is not None and status not in _STATUSES:
        raise ValidationError(f"status must be one of {sorted(_STATUSES)}", field="status")

    with get_session(engine) as session:
        ensure_allowed(Action.LIST_REPORTS, find_profile(session, actor_id))
        stmt = select(Report).order_by(Report.created_at.desc(), Report.id.desc())
        if status is not None:
            stmt = stmt.where(Report.status == status)
        reports = session.scalars(stmt).all()

        target_ids = {r.target_user_id for r in reports if r.target_user_id}
        profiles: dict[str, Profile] = {}
        if target_ids:
            profiles = {
                p.user_id: p
                for p in session.scalars(select(Profile).where(Profile.user_id.in_(target_ids)))
            }
        return [ReportView.from_model(r, profiles) for r in reports]
