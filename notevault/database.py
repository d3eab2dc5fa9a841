"""Persistent store: engine construction, session handles and transaction scopes.

A ``Store`` is created explicitly and handed to whoever needs it (the FastAPI
app, scripts, tests). It owns one SQLAlchemy engine and one in-process write
lock. Each unit of work gets its own ``StoreSession``, whose ``transaction()``
scope is reference counted: only the outermost scope commits or rolls back,
so service methods that open their own scope compose into larger operations
(import, reset) without losing atomicity.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import create_engine, text
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from starlette.requests import Request

from .core.config import settings
from .exceptions import StorageError

logger = logging.getLogger(__name__)

# Create base class for models
Base = declarative_base()


def local_now() -> datetime:
    """Wall-clock time in the configured zone, naive (SQLite stores no offset)."""
    return datetime.now(ZoneInfo(settings.timezone)).replace(tzinfo=None)


def server_time() -> str:
    """ISO-8601 wall-clock time with offset, stamped on every API response."""
    return datetime.now(ZoneInfo(settings.timezone)).isoformat(timespec="seconds")


def _set_sqlite_pragma(dbapi_connection, connection_record):
    # SQLite defaults foreign_keys to OFF; every CASCADE in the schema depends on it.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA encoding='UTF-8'")
    cursor.close()


class StoreSession(Session):
    """SQLAlchemy session with a reference-counted transaction scope.

    Usage::

        with db.transaction():
            ...            # nested ``with db.transaction()`` blocks only adjust depth

    The outermost scope takes the store's write lock, then commits on a clean
    exit or rolls back on an exception. An exception leaving a nested scope
    marks the whole transaction rollback-only: even if an intermediate caller
    swallows it, the outermost exit rolls back and raises ``StorageError``.
    Engine errors (``SQLAlchemyError``) are logged and re-raised as
    ``StorageError`` at the scope where they occur.
    """

    def __init__(self, *args, write_lock: Optional[threading.RLock] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._write_lock = write_lock or threading.RLock()
        self._tx_depth = 0
        self._rollback_only = False

    @property
    def transaction_depth(self) -> int:
        return self._tx_depth

    @contextmanager
    def transaction(self) -> Iterator["StoreSession"]:
        outermost = self._tx_depth == 0
        if outermost:
            self._write_lock.acquire()
            self._rollback_only = False
        self._tx_depth += 1
        try:
            yield self
            if outermost:
                if self._rollback_only:
                    raise StorageError("Transaction rolled back after a nested failure")
                self.commit()
            else:
                # Surface constraint errors inside the scope that caused them.
                self.flush()
        except Exception as exc:
            if outermost:
                self.rollback()
            else:
                self._rollback_only = True
            if isinstance(exc, SQLAlchemyError):
                logger.error("Storage failure, transaction rolled back", exc_info=True)
                raise StorageError(original_error=exc) from exc
            raise
        finally:
            self._tx_depth -= 1
            if outermost:
                self._write_lock.release()


class Store:
    """Explicitly owned handle on one SQLite database."""

    def __init__(self, database_url: Optional[str] = None, busy_timeout: Optional[float] = None):
        self.database_url = database_url or settings.database_url
        timeout = settings.sqlite_busy_timeout if busy_timeout is None else busy_timeout

        engine_kwargs = {
            "connect_args": {"check_same_thread": False, "timeout": timeout},
        }
        if self.database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every checkout sees an empty database.
            engine_kwargs["poolclass"] = StaticPool

        self.engine = create_engine(self.database_url, **engine_kwargs)
        event.listen(self.engine, "connect", _set_sqlite_pragma)

        self.write_lock = threading.RLock()
        self._session_factory = sessionmaker(
            bind=self.engine,
            class_=StoreSession,
            autoflush=False,
            expire_on_commit=False,
        )

    def session(self) -> StoreSession:
        """Open an independently owned session. Callers must close it."""
        return self._session_factory(write_lock=self.write_lock)

    @contextmanager
    def unit_of_work(self) -> Iterator[StoreSession]:
        """Session that is always closed, rolled back if left dirty by an error."""
        db = self.session()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def init_schema(self) -> None:
        """Create or upgrade the schema and seed the hidden root folder. Idempotent."""
        from . import models  # noqa: F401  (registers tables on Base.metadata)
        from .core.migrator import run_migrations
        from .core.seeder import seed_root_folder

        result = run_migrations(self.engine, Base)
        if result.applied:
            logger.info("Applied %d database migration(s)", result.applied)

        with self.unit_of_work() as db:
            seed_root_folder(db)

    def ping(self) -> bool:
        """True when the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.warning("Database ping failed", exc_info=True)
            return False

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Iterator[StoreSession]:
    """FastAPI dependency: one session per request on the app's store."""
    store: Store = request.app.state.store
    db = store.session()
    try:
        yield db
    finally:
        db.close()
