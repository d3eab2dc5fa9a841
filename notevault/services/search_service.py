"""Search Engine: case-insensitive substring search over a user's notes."""

import logging
from typing import Any, Dict, List

from sqlalchemy import exists, or_

from ..database import StoreSession
from ..exceptions import ValidationError
from ..models.note import Note, Tag
from ..repositories.tag_repository import TagRepository
from .content_utils import head_snippet, sanitize_tag, search_snippet

logger = logging.getLogger(__name__)

SEARCH_TYPES = ("all", "title", "content", "tags")


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SearchService:
    """Search notes by title, content, tag, or all three.

    Results are one entry per note, most recently updated first. Tag matches
    go through an EXISTS subquery so a note with several matching tags is
    still returned once.
    """

    def __init__(self, db: StoreSession):
        self.db = db
        self.tag_repo = TagRepository(db)

    def search_notes(self, user_id: int, query: str, search_type: str = "all") -> List[Dict[str, Any]]:
        """Search a user's notes.

        ``title`` and ``content`` match a substring; ``tags`` matches one
        sanitized tag exactly; ``all`` matches a substring of any of the three.
        A blank query returns an empty list.

        Raises:
            ValidationError: unknown ``search_type``.
        """
        search_type = search_type or "all"
        if search_type not in SEARCH_TYPES:
            raise ValidationError(f"Unsupported search type: {search_type}", field="type")

        query = (query or "").strip()
        if not query:
            return []

        pattern = _like_pattern(query)
        q = self.db.query(Note).filter(Note.user_id == user_id)

        if search_type == "title":
            q = q.filter(Note.title.ilike(pattern, escape="\\"))
        elif search_type == "content":
            q = q.filter(Note.content.ilike(pattern, escape="\\"))
        elif search_type == "tags":
            tag = sanitize_tag(query)
            if not tag:
                return []
            q = q.filter(exists().where(Tag.note_id == Note.note_id, Tag.tag == tag))
        else:
            q = q.filter(or_(
                Note.title.ilike(pattern, escape="\\"),
                Note.content.ilike(pattern, escape="\\"),
                exists().where(Tag.note_id == Note.note_id, Tag.tag.ilike(pattern, escape="\\")),
            ))

        notes = q.order_by(Note.updated_at.desc(), Note.note_id.desc()).all()
        tags_by_note = self.tag_repo.get_for_notes([note.note_id for note in notes])

        logger.debug("Search matched %d notes", len(notes),
                     extra={"userid": user_id, "search_type": search_type})

        results = []
        for note in notes:
            if search_type == "content":
                preview = search_snippet(note.content, query)
            else:
                preview = head_snippet(note.content)
            results.append({
                "noteid": note.note_id,
                "title": note.title,
                "folderid": note.folder_id,
                "updated_at": note.updated_at,
                "preview": preview,
                "tags": tags_by_note.get(note.note_id, []),
            })
        return results
