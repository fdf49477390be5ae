"""
studyhall.errors — Domain Error Taxonomy
=========================================

Services raise these; the API layer maps each to an HTTP status and a
``{"error": kind, "message": ...}`` body.  Anything else escaping a
service is an internal error.
"""

from __future__ import annotations


class StudyHallError(Exception):
    """Base class for all expected, request-terminal failures."""

    kind: str = "error"
    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.kind, "message": self.message}


class NotFoundError(StudyHallError):
    """A referenced profile, post, report, announcement, etc. does not exist."""

    kind = "not_found"
    status_code = 404


class ForbiddenError(StudyHallError):
    """The actor lacks the role, ownership or trust state for the action."""

    kind = "forbidden"
    status_code = 403


class ValidationError(StudyHallError):
    """Malformed input: missing field, wrong type, value outside its enum/range."""

    kind = "validation"
    status_code = 422

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict[str, str]:
        body = super().to_dict()
        if self.field:
            body["field"] = self.field
        return body


class ConflictError(StudyHallError):
    """A concurrent mutation could not be reconciled."""

    kind = "conflict"
    status_code = 409
