"""Repository for tag rows."""

from typing import Dict, Iterable, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.note import Note, Tag


class TagRepository:
    """Data access layer for tags. Tags carry no user id; ownership is via the note."""

    def __init__(self, db: Session):
        self.db = db

    def replace_for_note(self, note_id: int, tags: Iterable[str]) -> None:
        """Delete every tag of the note, then insert ``tags`` in order."""
        self.db.query(Tag).filter(Tag.note_id == note_id).delete(synchronize_session=False)
        for tag in tags:
            self.db.add(Tag(note_id=note_id, tag=tag))
        self.db.flush()

    def add(self, note_id: int, tag: str) -> Tag:
        entry = Tag(note_id=note_id, tag=tag)
        self.db.add(entry)
        self.db.flush()
        return entry

    def exists(self, note_id: int, tag: str) -> bool:
        return (
            self.db.query(Tag.tag_id)
            .filter(Tag.note_id == note_id, Tag.tag == tag)
            .first()
            is not None
        )

    def get_for_note(self, note_id: int) -> List[str]:
        rows = (
            self.db.query(Tag.tag)
            .filter(Tag.note_id == note_id)
            .distinct()
            .order_by(Tag.tag)
            .all()
        )
        return [row[0] for row in rows]

    def get_for_notes(self, note_ids: List[int]) -> Dict[int, List[str]]:
        """Tags of several notes at once, keyed by note id, in insertion order."""
        result: Dict[int, List[str]] = {note_id: [] for note_id in note_ids}
        if not note_ids:
            return result
        rows = (
            self.db.query(Tag.note_id, Tag.tag)
            .filter(Tag.note_id.in_(note_ids))
            .order_by(Tag.tag_id)
            .all()
        )
        for note_id, tag in rows:
            result[note_id].append(tag)
        return result

    def get_by_user(self, user_id: int) -> List[Tag]:
        return (
            self.db.query(Tag)
            .join(Note, Note.note_id == Tag.note_id)
            .filter(Note.user_id == user_id)
            .order_by(Tag.tag_id)
            .all()
        )

    def delete_by_user(self, user_id: int) -> int:
        owned = select(Note.note_id).where(Note.user_id == user_id)
        return (
            self.db.query(Tag)
            .filter(Tag.note_id.in_(owned))
            .delete(synchronize_session=False)
        )
