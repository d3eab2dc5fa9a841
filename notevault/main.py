"""Main FastAPI application.

``create_app(store)`` builds an app around an explicitly owned ``Store``;
tests pass their own, ``uvicorn notevault.main:app`` uses the module-level
app built from settings.
"""

import logging
import re
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .api import auth_router, notes_router
from .core.config import settings, ConfigurationError, Environment, DEFAULT_JWT_SECRET
from .core.logging_config import setup_logging
from .core.migrator import MigrationError
from .database import Store, StoreSession, get_db
from .exceptions import NoteVaultException
from .middleware.exception_handler import (
    notevault_exception_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from .middleware.request_context import RequestContextMiddleware
from .models.note import Note
from .services import log_service

# Setup logging first
setup_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = logging.getLogger(__name__)


def _mask_url(url: str) -> str:
    """Mask a password in a database URL for safe logging."""
    return re.sub(r'://([^:]+):([^@]+)@', r'://\1:***@', url)


def _check_security_settings() -> None:
    logger.info(f"Environment: {settings.environment.value}")
    try:
        settings.validate_production_config()
    except ConfigurationError as e:
        logger.critical(f"STARTUP BLOCKED: {e}")
        raise SystemExit(1) from e

    if settings.environment == Environment.DEVELOPMENT:
        if settings.jwt_secret_key == DEFAULT_JWT_SECRET and settings.auth_enabled:
            logger.critical(
                "SECURITY: AUTH_ENABLED=true but JWT_SECRET_KEY is the default. "
                "Anyone can forge tokens. Generate a secure key: openssl rand -hex 32"
            )
        if not settings.auth_enabled:
            logger.warning(
                "SECURITY: Authentication is disabled (AUTH_ENABLED=false). "
                "Every request acts as user %r.", settings.dev_username
            )


def _init_store(store: Store) -> None:
    masked = _mask_url(store.database_url)
    logger.info(f"Opening database: {masked}")
    if not store.ping():
        logger.critical(
            "SQLite database error.\n"
            f"  DATABASE_URL: {masked}\n"
            "  Check that the directory exists and is writable."
        )
        raise SystemExit(1)

    try:
        store.init_schema()
    except MigrationError as e:
        logger.critical(f"Database migration failed: {e}")
        raise SystemExit(1) from e
    except SQLAlchemyError as e:
        logger.critical(f"Schema initialisation failed: {e}")
        raise SystemExit(1) from e

    if settings.log_retention_days > 0:
        with store.unit_of_work() as db:
            purged = log_service.purge_old_entries(db, days=settings.log_retention_days)
        if purged > 0:
            logger.info(f"Purged {purged} system log entries older than {settings.log_retention_days} days")


def create_app(store: Optional[Store] = None) -> FastAPI:
    """Build the API around ``store`` (a settings-configured Store if omitted)."""
    store = store or Store()
    started = time.monotonic()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup / shutdown lifecycle."""
        _check_security_settings()
        _init_store(app.state.store)
        logger.info(
            "NoteVault API started | env=%s | auth=%s | cors=%s",
            settings.environment.value,
            "enabled" if settings.auth_enabled else "disabled",
            ",".join(settings.get_cors_origins()),
        )
        yield
        app.state.store.dispose()

    app = FastAPI(
        title="NoteVault API",
        description=(
            "Personal markdown notes organised in a per-user folder tree, with "
            "front-matter tags, substring search, recently-modified tracking and "
            "whole-tree import/export.\n\n"
            "**Authentication:** When `AUTH_ENABLED=true`, every notes endpoint requires a "
            "`Bearer` token from `POST /api/auth/login`. When `AUTH_ENABLED=false` (default), "
            "requests act as the development account."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    app.state.store = store

    # Middleware stack (outermost first: CORS wraps request context).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(NoteVaultException, notevault_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(auth_router)
    app.include_router(notes_router)

    @app.get("/")
    def root():
        """Root endpoint."""
        return {"name": "NoteVault API", "version": __version__, "status": "running"}

    @app.get("/health")
    def health_check(db: StoreSession = Depends(get_db)):
        """Database status, uptime and note count.

        Never raises: returns degraded status on DB failure so health checks still
        get a 200.
        """
        db_status = "ok"
        note_count = 0
        try:
            note_count = db.query(func.count(Note.note_id)).scalar() or 0
        except SQLAlchemyError:
            logger.warning("Health check query failed", exc_info=True)
            db_status = "error"

        return {
            "status": "healthy" if db_status == "ok" else "degraded",
            "db": db_status,
            "uptime_seconds": round(time.monotonic() - started),
            "version": __version__,
            "note_count": note_count,
        }

    return app


app = create_app()
