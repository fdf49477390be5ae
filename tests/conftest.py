"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of studyhall.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine, event  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite doesn't support JSONB natively, but SQLAlchemy's JSON type works.
# We register a custom type compiler so SQLite renders JSONB as TEXT.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402

from studyhall.config import StudyHallConfig  # noqa: E402
from studyhall.constants import Role  # noqa: E402
from studyhall.database.engine import get_session, init_db  # noqa: E402
from studyhall.database.models import Profile  # noqa: E402

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent)."""
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


TEST_CONFIG = StudyHallConfig(
    platform_name="StudyHall",
    api_port=8000,
    admin_passcode="2009",
    upload_base_url="https://storage.test/studyhall",
    max_upload_mb=25,
)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all StudyHall tables.

    JSONB columns are transparently mapped to TEXT for SQLite compatibility.
    Uses StaticPool so the TestClient's worker threads share the same
    in-memory database.  pysqlite's implicit transaction handling is
    switched off so SAVEPOINTs behave as they do on PostgreSQL.
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    init_db(engine)
    return engine


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------
def _insert_profile(
    engine: Engine,
    user_id: str,
    *,
    username: str | None = None,
    role: str = Role.STUDENT.value,
    is_banned: bool = False,
    is_muted: bool = False,
    warning_count: int = 0,
) -> Profile:
    """Insert a profile directly, bypassing policy checks."""
    with get_session(engine) as session:
        profile = Profile(
            user_id=user_id,
            username=username or user_id,
            role=role,
            is_banned=is_banned,
            is_muted=is_muted,
            warning_count=warning_count,
        )
        session.add(profile)
        session.flush()
        session.refresh(profile)
        return profile


@pytest.fixture
def make_profile(db_engine):
    """Factory: ``make_profile("u1", is_muted=True)`` seeds a profile row."""
    def _make(user_id: str, **kwargs) -> Profile:
        return _insert_profile(db_engine, user_id, **kwargs)
    return _make


@pytest.fixture
def student(db_engine) -> Profile:
    return _insert_profile(db_engine, "student-1", username="Alice")


@pytest.fixture
def other_student(db_engine) -> Profile:
    return _insert_profile(db_engine, "student-2", username="Bob")


@pytest.fixture
def admin(db_engine) -> Profile:
    return _insert_profile(db_engine, "admin-1", username="Prof", role=Role.ADMIN.value)


@pytest.fixture
def audit_entries(db_engine):
    """Factory returning ``(total, rows)`` from the admin log, newest first."""
    from studyhall.services.audit import list_admin_log

    def _entries(target_table: str | None = None, page_size: int = 100):
        with get_session(db_engine) as session:
            return list_admin_log(session, page_size=page_size, target_table=target_table)
    return _entries


# ---------------------------------------------------------------------------
# Tokens & client
# ---------------------------------------------------------------------------
def _make_token(sub: str, username: str | None = None) -> str:
    import jwt

    from studyhall.api.deps import JWT_ALGORITHM, JWT_SECRET

    payload = {"sub": sub}
    if username:
        payload["username"] = username
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


@pytest.fixture
def token_headers():
    """Factory: ``token_headers("u1", "Ana")`` builds a Bearer header for that identity."""
    def _headers(sub: str, username: str | None = None) -> dict:
        return {"Authorization": f"Bearer {_make_token(sub, username)}"}
    return _headers


@pytest.fixture
def student_headers(student, token_headers) -> dict:
    return token_headers(student.user_id, student.username)


@pytest.fixture
def admin_headers(admin, token_headers) -> dict:
    return token_headers(admin.user_id, admin.username)


@pytest.fixture
def client(db_engine):
    """FastAPI TestClient wired to the in-memory engine and a fixed config."""
    from fastapi.testclient import TestClient

    from studyhall.api.deps import get_config, get_engine
    from studyhall.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: TEST_CONFIG
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()
