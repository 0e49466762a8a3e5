"""Main FastAPI application."""

import logging
import re
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import __version__
from .api import links_router, workspaces_router
from .core.config import ConfigurationError, Environment, settings
from .core.logging_config import setup_logging
from .database import DATABASE_URL, get_db, init_db, is_postgresql
from .exceptions import FoldlyException
from .middleware.exception_handler import foldly_exception_handler
from .middleware.request_context import RequestContextMiddleware

setup_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = logging.getLogger(__name__)


def _mask_url(url: str) -> str:
    """Mask password in database URL for safe logging."""
    return re.sub(r'://([^:]+):([^@]+)@', r'://\1:***@', url)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle for the Foldly API."""
    logger.info(f"Environment: {settings.environment.value}")
    try:
        settings.validate_production_config()
    except ConfigurationError as e:
        logger.critical(f"STARTUP BLOCKED: {e}")
        raise SystemExit(1) from e

    if settings.environment == Environment.DEVELOPMENT and not settings.auth_enabled:
        logger.warning(
            "SECURITY: Authentication is disabled (AUTH_ENABLED=false). "
            "Requests without X-User-Id act as %s.",
            settings.dev_user_id,
        )

    logger.info(f"Connecting to database: {_mask_url(DATABASE_URL)}")
    try:
        init_db()
    except SQLAlchemyError as e:
        logger.critical(f"Database initialisation failed: {e}")
        raise SystemExit(1) from e

    logger.info(
        "Foldly API started | env=%s | db=%s | storage=%s | auth=%s | strict_invariants=%s",
        settings.environment.value,
        "PostgreSQL" if is_postgresql() else "SQLite",
        settings.storage_backend.value,
        "enabled" if settings.auth_enabled else "disabled",
        settings.strict_invariants,
    )

    yield


app = FastAPI(
    title="Foldly API",
    description=(
        "File and folder trees for upload links and personal workspaces. "
        "Serves tree views, copies link content into a workspace and accepts "
        "cross-tree drops.\n\n"
        "**Identity:** the caller is taken from the `X-User-Id` header set by "
        "the upstream auth gateway. With `AUTH_ENABLED=false` a development "
        "user is assumed when the header is missing."
    ),
    version=__version__,
    lifespan=lifespan,
)

# Middleware stack (outermost first: CORS wraps request context).
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "X-User-Id", "X-Request-ID"],
)
app.add_middleware(RequestContextMiddleware)

app.add_exception_handler(FoldlyException, foldly_exception_handler)

app.include_router(workspaces_router)
app.include_router(links_router)


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "name": "Foldly API",
        "version": __version__,
        "status": "running"
    }


_startup_time = time.monotonic()


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Health check returning database status and uptime.

    Never raises: returns degraded status on DB failure so load balancers
    can still probe without receiving 5xx.
    """
    db_status = "ok"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        db_status = "error"

    return {
        "status": "healthy" if db_status == "ok" else "degraded",
        "db": db_status,
        "storage": settings.storage_backend.value,
        "uptime_seconds": round(time.monotonic() - _startup_time),
        "version": __version__,
    }
