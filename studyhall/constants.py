"""
studyhall.constants — Shared Constants
=======================================

Single source of truth for roles, statuses and moderation thresholds.
Import from here instead of repeating string literals in services and routes.
"""

from __future__ import annotations

import enum


class Role(enum.StrEnum):
    STUDENT = "student"
    ADMIN = "admin"


class PostType(enum.StrEnum):
    TEXT = "text"
    PHOTO = "photo"
    LINK = "link"


class ReportStatus(enum.StrEnum):
    PENDING = "pending"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class ReportTargetType(enum.StrEnum):
    POST = "post"
    REPLY = "reply"


# Statuses an admin may move a report into.  Both are terminal.
TERMINAL_REPORT_STATUSES: frozenset[str] = frozenset({
    ReportStatus.RESOLVED,
    ReportStatus.DISMISSED,
})

# ---------------------------------------------------------------------------
# Moderation thresholds
# ---------------------------------------------------------------------------
WARNING_BAN_THRESHOLD = 3

DEFAULT_USERNAME = "Student"

MAX_EMOJI_LENGTH = 32
MIN_RATING = 1
MAX_RATING = 5
