"""
studyhall.api.main — FastAPI application entry point
======================================================

Run with::

    uvicorn studyhall.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

load_dotenv()

from studyhall import __version__  # noqa: E402
from studyhall.api.deps import get_engine  # noqa: E402
from studyhall.api.routes.admin import router as admin_router  # noqa: E402
from studyhall.api.routes.announcements import router as announcements_router  # noqa: E402
from studyhall.api.routes.community import router as community_router  # noqa: E402
from studyhall.api.routes.library import router as library_router  # noqa: E402
from studyhall.api.routes.profiles import router as profiles_router  # noqa: E402
from studyhall.api.routes.uploads import router as uploads_router  # noqa: E402
from studyhall.api.routes.vault import router as vault_router  # noqa: E402
from studyhall.errors import StudyHallError  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the DB engine."""
    engine = get_engine()
    logger.info("StudyHall API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("StudyHall API shutting down")


app = FastAPI(
    title="StudyHall API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error rendering
# ---------------------------------------------------------------------------
@app.exception_handler(StudyHallError)
async def studyhall_error_handler(request: Request, exc: StudyHallError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


_HTTP_ERROR_KINDS = {
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
}


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    body = {
        "error": _HTTP_ERROR_KINDS.get(exc.status_code, "error"),
        "message": str(exc.detail),
    }
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    body = {
        "error": "validation",
        "message": first.get("msg", "Invalid request"),
    }
    if loc:
        body["field"] = ".".join(loc)
    return JSONResponse(status_code=422, content=body)


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Storage failure on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "internal", "message": "Internal storage error"},
    )


# Mount routers
app.include_router(profiles_router, prefix="/api")
app.include_router(library_router, prefix="/api")
app.include_router(vault_router, prefix="/api")
app.include_router(community_router, prefix="/api")
app.include_router(admin_router, prefix="/api")
app.include_router(announcements_router, prefix="/api")
app.include_router(uploads_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
