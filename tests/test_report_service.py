"""
tests/test_report_service.py — Report Pipeline
===============================================
"""

from __future__ import annotations

import pytest

from studyhall.constants import ReportStatus
from studyhall.errors import ForbiddenError, NotFoundError, ValidationError
from studyhall.services import report_service
from studyhall.services.audit import AdminActionType


def _file(engine, actor, **overrides):
    kwargs = {
        "target_id": 7,
        "target_type": "post",
        "reason": "spam",
        "target_user_id": "student-2",
    }
    kwargs.update(overrides)
    return report_service.create_report(engine, actor_id=actor, **kwargs)


class TestCreateReport:
    def test_lands_pending(self, db_engine, student):
        report = _file(db_engine, student.user_id)
        assert report.status == ReportStatus.PENDING
        assert report.reported_by == student.user_id

    def test_target_existence_not_checked(self, db_engine, student):
        assert _file(db_engine, student.user_id, target_id=123456).target_id == 123456

    def test_muted_user_may_report(self, db_engine, make_profile):
        make_profile("m", is_muted=True)
        assert _file(db_engine, "m").status == ReportStatus.PENDING

    def test_banned_user_may_not(self, db_engine, make_profile):
        make_profile("b", is_banned=True)
        with pytest.raises(ForbiddenError):
            _file(db_engine, "b")

    def test_bad_target_type(self, db_engine, student):
        with pytest.raises(ValidationError):
            _file(db_engine, student.user_id, target_type="comment")

    def test_reason_required(self, db_engine, student):
        with pytest.raises(ValidationError):
            _file(db_engine, student.user_id, reason="")


class TestResolveReport:
    def test_resolve(self, db_engine, admin, student, audit_entries):
        report = _file(db_engine, student.user_id)
        done = report_service.resolve_report(
            db_engine, report_id=report.id, status="resolved", actor_id=admin.user_id,
        )
        assert done.status == ReportStatus.RESOLVED

        total, rows = audit_entries(target_table="reports")
        assert total == 1
        assert rows[0].action_type == AdminActionType.RESOLVE

    def test_terminal_report_is_not_reopened(self, db_engine, admin, student, audit_entries):
        report = _file(db_engine, student.user_id)
        report_service.resolve_report(
            db_engine, report_id=report.id, status="dismissed", actor_id=admin.user_id,
        )
        again = report_service.resolve_report(
            db_engine, report_id=report.id, status="resolved", actor_id=admin.user_id,
        )
        assert again.status == ReportStatus.DISMISSED
        assert audit_entries(target_table="reports")[0] == 1

    def test_pending_is_not_a_resolution(self, db_engine, admin, student):
        report = _file(db_engine, student.user_id)
        with pytest.raises(ValidationError):
            report_service.resolve_report(
                db_engine, report_id=report.id, status="pending", actor_id=admin.user_id,
            )

    def test_student_forbidden(self, db_engine, student):
        report = _file(db_engine, student.user_id)
        with pytest.raises(ForbiddenError):
            report_service.resolve_report(
                db_engine, report_id=report.id, status="resolved", actor_id=student.user_id,
            )

    def test_missing_report(self, db_engine, admin):
        with pytest.raises(NotFoundError):
            report_service.resolve_report(
                db_engine, report_id=99, status="resolved", actor_id=admin.user_id,
            )


class TestListReports:
    def test_newest_first_with_target_profile(self, db_engine, admin, student, other_student):
        first = _file(db_engine, student.user_id, reason="one")
        second = _file(db_engine, student.user_id, reason="two")
        views = report_service.list_reports(db_engine, actor_id=admin.user_id)
        assert [v.id for v in views] == [second.id, first.id]
        assert views[0].target_user.username == "Bob"

    def test_status_filter(self, db_engine, admin, student):
        open_report = _file(db_engine, student.user_id)
        closed = _file(db_engine, student.user_id)
        report_service.resolve_report(
            db_engine, report_id=closed.id, status="resolved", actor_id=admin.user_id,
        )
        pending = report_service.list_reports(db_engine, actor_id=admin.user_id, status="pending")
        assert [v.id for v in pending] == [open_report.id]

    def test_unknown_status_filter(self, db_engine, admin):
        with pytest.raises(ValidationError):
            report_service.list_reports(db_engine, actor_id=admin.user_id, status="open")

    def test_student_forbidden(self, db_engine, student):
        with pytest.raises(ForbiddenError):
            report_service.list_reports(db_engine, actor_id=student.user_id)
