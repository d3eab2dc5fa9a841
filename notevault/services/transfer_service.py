"""Import/Export Engine: whole-tree dump and atomic restore.

An import replaces everything the user has. It runs as one transaction:
purge, folders in parent-before-child order, notes against the remapped
folder ids, then tags against the remapped note ids. Any failure rolls the
store back to the pre-import state.
"""

import logging
from typing import Any, Dict, Optional

import pydantic

from ..database import StoreSession, local_now
from ..exceptions import StorageError, ValidationError
from ..models.folder import ROOT_FOLDER_ID
from ..schemas.transfer import EXPORT_VERSION, ExportDocument, format_timestamp
from .folder_service import FolderService
from .note_service import NoteService

logger = logging.getLogger(__name__)

RESET_FOLDER_NAME = "Root"


class TransferService:
    """export_user / import_user / reset_app for one store session."""

    def __init__(self, db: StoreSession):
        self.db = db
        self.folders = FolderService(db)
        self.notes = NoteService(db)

    def export_user(self, user_id: int) -> Dict[str, Any]:
        """Dump a user's folders, notes and tags with their original ids."""
        folders = [
            {
                "folderid": f.folder_id,
                "parent_folderid": f.parent_id,
                "name": f.name,
                "created_at": format_timestamp(f.created_at),
                "updated_at": format_timestamp(f.updated_at),
            }
            for f in self.folders.get_folders_by_user(user_id)
        ]
        notes = [
            {
                "noteid": n.note_id,
                "userid": n.user_id,
                "folderid": n.folder_id,
                "title": n.title,
                "content": n.content,
                "created_at": format_timestamp(n.created_at),
                "updated_at": format_timestamp(n.updated_at),
            }
            for n in self.notes.get_notes_by_user(user_id)
        ]
        tags = [
            {"tagid": t.tag_id, "noteid": t.note_id, "tag": t.tag}
            for t in self.notes.get_tags_by_user(user_id)
        ]

        logger.info("Exported user data", extra={
            "userid": user_id, "folders": len(folders), "notes": len(notes), "tags": len(tags),
        })
        return {
            "userid": user_id,
            "folders": folders,
            "notes": notes,
            "tags": tags,
            "exportDate": format_timestamp(local_now().replace(microsecond=0)),
            "version": EXPORT_VERSION,
        }

    def import_user(self, user_id: int, document: Any) -> bool:
        """Replace a user's data with the contents of an export document.

        Raises:
            ValidationError: malformed document, wrong version, or a folder
                hierarchy that cannot be ordered (parent cycle). Nothing changes.
            StorageError: a write failed; the store was rolled back.
        """
        doc = self._validate(document)

        try:
            with self.db.transaction():
                self.notes.purge_user_data(user_id)
                folder_map = self._import_folders(user_id, doc)
                note_map = self._import_notes(user_id, doc, folder_map)
                tag_count = 0
                for tag in doc.tags:
                    new_note_id = note_map.get(tag.noteid)
                    if new_note_id is not None and self.notes.add_tag(new_note_id, tag.tag):
                        tag_count += 1
        except Exception:
            logger.error("Import rolled back", extra={"userid": user_id}, exc_info=True)
            raise

        logger.info("Imported user data", extra={
            "userid": user_id, "folders": len(folder_map) - 1, "notes": len(note_map), "tags": tag_count,
        })
        return True

    def reset_app(self, user_id: int) -> int:
        """Purge all user data and create a fresh top-level folder named "Root".

        The hidden root placeholder is untouched; the new folder is an
        ordinary visible folder.
        """
        with self.db.transaction():
            self.notes.purge_user_data(user_id)
            folder_id = self.folders.create_folder(user_id, RESET_FOLDER_NAME, None)
            if folder_id is None:
                raise StorageError("Failed to create root folder")

        logger.info("Reset user data", extra={"userid": user_id})
        return folder_id

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(document: Any) -> ExportDocument:
        if not isinstance(document, dict):
            raise ValidationError("Import data must be a JSON object", field="jsonData")
        missing = [k for k in ("folders", "notes", "tags", "version") if k not in document]
        if missing:
            raise ValidationError(
                "Invalid JSON structure: missing required fields", field=", ".join(missing)
            )
        if document["version"] != EXPORT_VERSION:
            raise ValidationError("Unsupported JSON version", field="version")
        try:
            return ExportDocument.model_validate(document)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid import data: {e.errors()[0]['msg']}", field="jsonData") from e

    def _import_folders(self, user_id: int, doc: ExportDocument) -> Dict[int, Optional[int]]:
        """Create folders parents-first. Returns old id -> new id (root -> None)."""
        folder_map: Dict[int, Optional[int]] = {ROOT_FOLDER_ID: None}
        pending = {f.folderid: f for f in doc.folders if f.folderid != ROOT_FOLDER_ID}
        # A parent that is not in the document at all is treated as top level.
        known = set(pending) | {ROOT_FOLDER_ID}

        while pending:
            placed = 0
            for old_id, folder in list(pending.items()):
                parent = folder.parent_folderid
                if parent is not None and parent in known and parent not in folder_map:
                    continue
                new_parent = folder_map.get(parent) if parent is not None else None
                new_id = self.folders.create_folder(
                    user_id, folder.name, new_parent, folder.created_at, folder.updated_at
                )
                if new_id is None:
                    raise StorageError("Failed to create folder during import")
                folder_map[old_id] = new_id
                del pending[old_id]
                placed += 1
            if not placed:
                raise ValidationError(
                    "Folder hierarchy contains a cycle", field="folders"
                )
        return folder_map

    def _import_notes(
        self, user_id: int, doc: ExportDocument, folder_map: Dict[int, Optional[int]]
    ) -> Dict[int, int]:
        note_map: Dict[int, int] = {}
        for note in doc.notes:
            folder_id = folder_map.get(note.folderid) if note.folderid is not None else None
            note_map[note.noteid] = self.notes.create_note(
                user_id, note.title, note.content or "", folder_id, note.created_at, note.updated_at
            )
        return note_map
