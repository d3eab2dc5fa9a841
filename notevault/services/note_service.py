"""Note service: note CRUD, derived tags, and recency tracking.

Tags are never edited directly by the save path. Every create and update
deletes the note's tags and re-derives them from the front matter of the new
content, inside the same transaction as the row write.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from ..core.config import settings
from ..database import StoreSession
from ..exceptions import IntegrityViolationError, StorageError, ValidationError
from ..models.note import Note, Tag
from ..repositories.folder_repository import FolderRepository
from ..repositories.note_repository import NoteRepository
from ..repositories.recent_repository import RecentModificationRepository
from ..repositories.tag_repository import TagRepository
from .content_utils import clean_preview, extract_tags, is_valid_tag, sanitize_tag
from .folder_service import normalize_folder_id

logger = logging.getLogger(__name__)


class NoteService:
    """Business logic for notes and their tags.

    Multi-statement writes (create_note, update_note) re-raise storage
    failures after rollback. Single-statement writes report them as False.
    """

    def __init__(self, db: StoreSession):
        self.db = db
        self.repo = NoteRepository(db)
        self.folder_repo = FolderRepository(db)
        self.tag_repo = TagRepository(db)
        self.recent_repo = RecentModificationRepository(db)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_note(
        self,
        user_id: int,
        title: str,
        content: str,
        folder_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> int:
        """Insert a note, derive its tags and mark it recently modified.

        Raises:
            ValidationError: blank title.
            IntegrityViolationError: folder missing or owned by someone else.
            StorageError: the insert failed; nothing was written.
        """
        if not (title or "").strip():
            raise ValidationError("Note title cannot be empty", field="title")

        folder_id = normalize_folder_id(folder_id)
        content = content or ""
        with self.db.transaction():
            if folder_id is not None and self.folder_repo.get_owned(folder_id, user_id) is None:
                raise IntegrityViolationError(
                    "Folder does not belong to this user",
                    details={"folderid": folder_id},
                )
            note = self.repo.create(user_id, title, content, folder_id, created_at, updated_at)
            self.tag_repo.replace_for_note(note.note_id, extract_tags(content))
            self.recent_repo.touch(user_id, note.note_id)

        logger.info("Created note", extra={"noteid": note.note_id, "userid": user_id})
        return note.note_id

    def update_note(self, note_id: int, title: str, content: str) -> bool:
        """Replace title and content, regenerate tags, touch recency.

        The recency row goes to the note's owner as stored, whoever calls.
        Returns False if the note does not exist.

        Raises:
            ValidationError: blank title.
            StorageError: any write failed; the whole update was rolled back.
        """
        if not (title or "").strip():
            raise ValidationError("Note title cannot be empty", field="title")

        content = content or ""
        with self.db.transaction():
            owner_id = self.repo.get_owner_id(note_id)
            if owner_id is None:
                return False
            updated = self.repo.update_content(note_id, title, content)
            self.tag_repo.replace_for_note(note_id, extract_tags(content))
            self.recent_repo.touch(owner_id, note_id)

        return updated > 0

    def rename_note(self, note_id: int, user_id: int, new_title: str) -> bool:
        new_title = (new_title or "").strip()
        if not new_title:
            raise ValidationError("New name cannot be empty", field="newName")

        try:
            with self.db.transaction():
                updated = self.repo.update_title(note_id, user_id, new_title)
                if updated:
                    self.recent_repo.touch(user_id, note_id)
        except StorageError:
            return False
        return updated > 0

    def move_note(self, note_id: int, user_id: int, folder_id: Optional[int] = None) -> bool:
        """Move a note into ``folder_id`` (None or the root id = top level)."""
        folder_id = normalize_folder_id(folder_id)
        try:
            with self.db.transaction():
                if folder_id is not None and self.folder_repo.get_owned(folder_id, user_id) is None:
                    logger.warning("Refused note move into foreign or missing folder",
                                   extra={"noteid": note_id, "folderid": folder_id})
                    return False
                updated = self.repo.update_folder(note_id, user_id, folder_id)
        except StorageError:
            return False
        return updated > 0

    def delete_note(self, note_id: int, user_id: int) -> bool:
        """Delete a note. Its tags and recency row cascade."""
        try:
            with self.db.transaction():
                deleted = self.repo.delete(note_id, user_id)
        except StorageError:
            return False
        return deleted > 0

    def add_tag(self, note_id: int, tag: str) -> bool:
        """Attach one extra tag. False if it sanitizes to nothing, is too long, or is already there."""
        tag = sanitize_tag(tag or "")
        if not is_valid_tag(tag):
            return False

        try:
            with self.db.transaction():
                if self.tag_repo.exists(note_id, tag):
                    return False
                self.tag_repo.add(note_id, tag)
        except StorageError:
            return False
        return True

    def purge_user_data(self, user_id: int) -> None:
        """Remove every folder, note and tag of a user. The hidden root stays.

        Raises:
            StorageError: on failure; nothing was removed.
        """
        with self.db.transaction():
            tags = self.tag_repo.delete_by_user(user_id)
            notes = self.repo.delete_by_user(user_id)
            folders = self.folder_repo.delete_by_user(user_id)

        logger.info("Purged user data", extra={
            "userid": user_id, "folders": folders, "notes": notes, "tags": tags,
        })

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_note(self, note_id: int, user_id: int) -> Optional[Note]:
        return self.repo.get_owned(note_id, user_id)

    def get_notes_by_user(self, user_id: int) -> List[Note]:
        """All of a user's notes, most recently updated first."""
        return self.repo.get_by_user(user_id)

    def get_notes_by_folder(self, user_id: int, folder_id: Optional[int] = None) -> List[Note]:
        return self.repo.get_by_folder(user_id, normalize_folder_id(folder_id))

    def get_note_tags(self, note_id: int) -> List[str]:
        return self.tag_repo.get_for_note(note_id)

    def get_tags_by_user(self, user_id: int) -> List[Tag]:
        return self.tag_repo.get_by_user(user_id)

    def search_by_tag(self, user_id: int, tag: str) -> List[Note]:
        """Notes carrying exactly ``tag`` (case-insensitive), most recent first."""
        tag = (tag or "").strip().lower()
        if not tag:
            return []
        return (
            self.db.query(Note)
            .filter(
                Note.user_id == user_id,
                Note.note_id.in_(select(Tag.note_id).where(Tag.tag == tag)),
            )
            .order_by(Note.updated_at.desc(), Note.note_id.desc())
            .all()
        )

    def get_recent_modified_files(self, user_id: int, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Most recently touched notes with a one-line cleaned preview."""
        limit = settings.recent_files_limit if limit is None else limit
        if limit <= 0:
            return []

        return [
            {
                "noteid": note.note_id,
                "title": note.title,
                "folderid": note.folder_id,
                "modified_at": modified_at,
                "preview": clean_preview(note.content),
            }
            for note, modified_at in self.recent_repo.get_recent(user_id, limit)
        ]
