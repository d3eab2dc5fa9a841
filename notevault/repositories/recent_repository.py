"""Repository for the recently-modified index."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.orm import Session

from ..database import local_now
from ..models.note import Note, RecentModification


class RecentModificationRepository:
    """One row per (user, note). A later touch overwrites ``modified_at``."""

    def __init__(self, db: Session):
        self.db = db

    def touch(self, user_id: int, note_id: int, at: Optional[datetime] = None) -> None:
        at = at or local_now()
        stmt = insert(RecentModification).values(user_id=user_id, note_id=note_id, modified_at=at)
        stmt = stmt.on_conflict_do_update(
            index_elements=[RecentModification.user_id, RecentModification.note_id],
            set_={"modified_at": at},
        )
        self.db.execute(stmt)

    def get_recent(self, user_id: int, limit: int) -> List[tuple]:
        """(Note, modified_at) pairs, most recent first."""
        return (
            self.db.query(Note, RecentModification.modified_at)
            .join(RecentModification, RecentModification.note_id == Note.note_id)
            .filter(RecentModification.user_id == user_id, Note.user_id == user_id)
            .order_by(RecentModification.modified_at.desc(), Note.note_id.desc())
            .limit(limit)
            .all()
        )
