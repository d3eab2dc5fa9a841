"""Repository for note rows."""

from datetime import datetime
from typing import List, Optional

from ..database import local_now
from ..exceptions import NoteNotFoundError
from ..models.note import Note
from .base import BaseRepository


class NoteRepository(BaseRepository[Note]):
    """Data access layer for notes."""

    model_class = Note
    id_column = "note_id"
    not_found_error = NoteNotFoundError

    def create(
        self,
        user_id: int,
        title: str,
        content: str,
        folder_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> Note:
        created_at = created_at or local_now()
        note = Note(
            user_id=user_id,
            folder_id=folder_id,
            title=title,
            content=content,
            created_at=created_at,
            updated_at=updated_at or created_at,
        )
        self.db.add(note)
        self.db.flush()
        return note

    def get_owner_id(self, note_id: int) -> Optional[int]:
        row = self.db.query(Note.user_id).filter(Note.note_id == note_id).first()
        return row[0] if row else None

    def get_by_user(self, user_id: int) -> List[Note]:
        return (
            self.db.query(Note)
            .filter(Note.user_id == user_id)
            .order_by(Note.updated_at.desc(), Note.note_id.desc())
            .all()
        )

    def get_by_folder(self, user_id: int, folder_id: Optional[int]) -> List[Note]:
        return (
            self.db.query(Note)
            .filter(Note.user_id == user_id, Note.folder_id.is_not_distinct_from(folder_id))
            .order_by(Note.title)
            .all()
        )

    def update_content(self, note_id: int, title: str, content: str) -> int:
        return (
            self.db.query(Note)
            .filter(Note.note_id == note_id)
            .update({Note.title: title, Note.content: content, Note.updated_at: local_now()},
                    synchronize_session="fetch")
        )

    def update_title(self, note_id: int, user_id: int, title: str) -> int:
        return (
            self.db.query(Note)
            .filter(Note.note_id == note_id, Note.user_id == user_id)
            .update({Note.title: title, Note.updated_at: local_now()},
                    synchronize_session="fetch")
        )

    def update_folder(self, note_id: int, user_id: int, folder_id: Optional[int]) -> int:
        return (
            self.db.query(Note)
            .filter(Note.note_id == note_id, Note.user_id == user_id)
            .update({Note.folder_id: folder_id}, synchronize_session="fetch")
        )

    def delete(self, note_id: int, user_id: int) -> int:
        """Delete one note. Tags and the recent-modification row go by FK cascade."""
        return (
            self.db.query(Note)
            .filter(Note.note_id == note_id, Note.user_id == user_id)
            .delete(synchronize_session=False)
        )

    def delete_by_user(self, user_id: int) -> int:
        return (
            self.db.query(Note)
            .filter(Note.user_id == user_id)
            .delete(synchronize_session=False)
        )
