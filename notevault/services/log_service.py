"""Persistent request log (``system_logs``).

Entries are immutable. Writing is best-effort: a failed log write is
reported through the standard logger and never breaks the request.

Usage at the API boundary:
    log_service.log(db, "save", user_id=7, request_method="POST",
                    request_uri="/api/notes", request_data=body)
"""

import logging
from datetime import timedelta
from typing import Optional

import sqlalchemy.exc
from sqlalchemy.orm import Session

from ..database import local_now
from ..models.user import SystemLog

logger = logging.getLogger(__name__)

# Request bodies can carry whole notes or import documents.
MAX_REQUEST_DATA = 10_000


def log(
    db: Session,
    message: str,
    user_id: Optional[int] = None,
    session_id: Optional[str] = None,
    request_method: Optional[str] = None,
    request_uri: Optional[str] = None,
    request_data: Optional[str] = None,
) -> None:
    """Write a system log entry. Never raises."""
    if request_data is not None and len(request_data) > MAX_REQUEST_DATA:
        request_data = request_data[:MAX_REQUEST_DATA]
    try:
        db.add(SystemLog(
            message=message,
            user_id=user_id,
            session_id=session_id,
            request_method=request_method,
            request_uri=request_uri,
            request_data=request_data,
        ))
        db.commit()
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.warning("Failed to write system log: %s", e)
        db.rollback()


def get_recent(db: Session, limit: int = 1000) -> list[SystemLog]:
    """Most recent entries first."""
    return (
        db.query(SystemLog)
        .order_by(SystemLog.timestamp.desc(), SystemLog.log_id.desc())
        .limit(limit)
        .all()
    )


def get_by_user(db: Session, user_id: int, limit: int = 100) -> list[SystemLog]:
    return (
        db.query(SystemLog)
        .filter(SystemLog.user_id == user_id)
        .order_by(SystemLog.timestamp.desc(), SystemLog.log_id.desc())
        .limit(limit)
        .all()
    )


def purge_old_entries(db: Session, days: int = 90) -> int:
    """Delete entries older than `days`. Returns count of deleted rows.

    Skipped when days <= 0 (keep forever). Never raises.
    """
    if days <= 0:
        return 0

    cutoff = local_now() - timedelta(days=days)
    try:
        count = db.query(SystemLog).filter(SystemLog.timestamp < cutoff).delete()
        db.commit()
        return count
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.warning("Failed to purge system log: %s", e)
        db.rollback()
        return 0
