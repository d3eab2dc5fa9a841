"""Folder Tree Manager: folder CRUD, cycle-safe moves, and path resolution.

Every user's tree hangs off the hidden root (id 1). Clients may name the root
explicitly; internally a top-level item always has ``parent_id IS NULL``, so
both spellings address the same level.

Ancestor walks are iterative and bounded by ``settings.max_folder_depth``
plus a visited set, so a corrupted parent chain ends the walk instead of
looping. Creates and moves refuse to build a tree deeper than that limit,
so any chain the walk gives up on is a corrupted one.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..core.config import settings
from ..database import StoreSession
from ..exceptions import IntegrityViolationError, StorageError, ValidationError
from ..models.folder import Folder, ROOT_FOLDER_ID
from ..repositories.folder_repository import FolderRepository
from ..repositories.note_repository import NoteRepository

logger = logging.getLogger(__name__)


def normalize_folder_id(folder_id: Optional[int]) -> Optional[int]:
    """Map the hidden root's id to ``None`` (top level)."""
    if folder_id is None or folder_id == ROOT_FOLDER_ID:
        return None
    return folder_id


class FolderService:
    """All folder operations behind a narrow interface.

    Public methods:
        create_folder          -- insert; optional timestamps for import
        move_folder            -- re-parent; refuses cycles
        rename_folder          -- new name, bumps updated_at
        delete_folder          -- row delete, subtree removed by cascade
        get_folder             -- owned lookup
        get_folder_path        -- "A/B/C" root-first
        get_status_folder_path -- breadcrumb [{id, name}, ...]
        get_folder_contents    -- direct children, folders then notes
        get_folders_by_parent / get_folders_by_user
    """

    def __init__(self, db: StoreSession):
        self.db = db
        self.repo = FolderRepository(db)
        self.note_repo = NoteRepository(db)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_folder(
        self,
        user_id: int,
        name: str,
        parent_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> Optional[int]:
        """Create a folder and return its id, or None on a storage failure.

        Raises:
            ValidationError: blank name.
            IntegrityViolationError: parent missing, owned by someone else, or
                already at ``max_folder_depth``.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Folder name cannot be empty", field="name")

        parent_id = normalize_folder_id(parent_id)
        try:
            with self.db.transaction():
                if parent_id is not None:
                    if self.repo.get_owned(parent_id, user_id) is None:
                        raise IntegrityViolationError(
                            "Parent folder does not belong to this user",
                            details={"parent_id": parent_id},
                        )
                    chain, intact = self._ancestor_chain(parent_id)
                    if not intact or len(chain) + 1 > settings.max_folder_depth:
                        raise IntegrityViolationError(
                            "Folder nesting too deep",
                            details={"parent_id": parent_id, "max_depth": settings.max_folder_depth},
                        )
                folder = self.repo.create(user_id, name, parent_id, created_at, updated_at)
        except StorageError:
            return None

        logger.info("Created folder", extra={"folderid": folder.folder_id, "userid": user_id})
        return folder.folder_id

    def move_folder(self, folder_id: int, user_id: int, new_parent_id: Optional[int]) -> bool:
        """Re-parent a folder.

        False (no change) if the folder or target is not the user's, if the
        move would create a cycle, or if the moved subtree would end up deeper
        than ``max_folder_depth``. Checks run under the write lock so two
        concurrent moves cannot each pass them and persist a cycle together.
        """
        if folder_id == ROOT_FOLDER_ID:
            return False
        new_parent_id = normalize_folder_id(new_parent_id)

        try:
            with self.db.transaction():
                if self.repo.get_owned(folder_id, user_id) is None:
                    return False
                if new_parent_id is not None and not self._can_attach(folder_id, user_id, new_parent_id):
                    return False
                updated = self.repo.update_parent(folder_id, user_id, new_parent_id)
        except StorageError:
            return False
        return updated > 0

    def rename_folder(self, folder_id: int, user_id: int, new_name: str) -> bool:
        new_name = (new_name or "").strip()
        if not new_name:
            raise ValidationError("New name cannot be empty", field="newName")
        if folder_id == ROOT_FOLDER_ID:
            return False

        try:
            with self.db.transaction():
                updated = self.repo.update_name(folder_id, user_id, new_name)
        except StorageError:
            return False
        return updated > 0

    def delete_folder(self, folder_id: int, user_id: int) -> bool:
        """Delete a folder. Descendant folders and all their notes cascade."""
        if folder_id == ROOT_FOLDER_ID:
            return False

        try:
            with self.db.transaction():
                deleted = self.repo.delete(folder_id, user_id)
        except StorageError:
            return False

        if deleted:
            logger.info("Deleted folder subtree", extra={"folderid": folder_id, "userid": user_id})
        return deleted > 0

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_folder(self, folder_id: int, user_id: int) -> Optional[Folder]:
        if folder_id == ROOT_FOLDER_ID:
            return None
        return self.repo.get_owned(folder_id, user_id)

    def get_folder_path(self, folder_id: Optional[int], user_id: Optional[int] = None) -> str:
        """Slash-joined folder names from the top level down to ``folder_id``."""
        return "/".join(entry["name"] for entry in self.get_status_folder_path(folder_id, user_id))

    def get_status_folder_path(
        self, folder_id: Optional[int], user_id: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Breadcrumb entries ``{"id", "name"}``, top level first, hidden root excluded."""
        folder_id = normalize_folder_id(folder_id)
        if folder_id is None:
            return []
        if user_id is not None and self.repo.get_owned(folder_id, user_id) is None:
            return []

        chain, _ = self._ancestor_chain(folder_id)
        return [
            {"id": row.folder_id, "name": row.name}
            for row in reversed(chain)
            if row.folder_id != ROOT_FOLDER_ID
        ]

    def get_folder_contents(self, user_id: int, folder_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """Direct children of a folder: folders by name, then notes by title."""
        folder_id = normalize_folder_id(folder_id)
        contents: List[Dict[str, Any]] = []

        for folder in self.repo.get_children(user_id, folder_id):
            contents.append({
                "type": "folder",
                "folderid": folder.folder_id,
                "name": folder.name,
                "created_at": folder.created_at,
                "updated_at": folder.updated_at,
            })
        for note in self.note_repo.get_by_folder(user_id, folder_id):
            contents.append({
                "type": "note",
                "noteid": note.note_id,
                "name": note.title,
                "created_at": note.created_at,
                "updated_at": note.updated_at,
            })
        return contents

    def get_folders_by_parent(self, user_id: int, parent_id: Optional[int] = None) -> List[Folder]:
        return self.repo.get_children(user_id, normalize_folder_id(parent_id))

    def get_folders_by_user(self, user_id: int) -> List[Folder]:
        return self.repo.get_by_user(user_id)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _ancestor_chain(self, start_id: int) -> Tuple[List[Any], bool]:
        """Rows from ``start_id`` upward, nearest first.

        Returns (rows, intact). ``intact`` is False when the walk was cut
        short by a repeated id or the depth limit; a missing parent row just
        ends the chain.
        """
        chain = []
        seen = set()
        current: Optional[int] = start_id
        while current is not None:
            if current in seen or len(chain) >= settings.max_folder_depth:
                logger.warning("Folder parent chain is cyclic or too deep; walk stopped",
                               extra={"folderid": start_id, "depth": len(chain)})
                return chain, False
            seen.add(current)
            row = self.repo.get_parent_link(current)
            if row is None:
                break
            chain.append(row)
            current = row.parent_id
        return chain, True

    def _can_attach(self, folder_id: int, user_id: int, new_parent_id: int) -> bool:
        if self.repo.get_owned(new_parent_id, user_id) is None:
            logger.warning("Refused move into foreign or missing folder",
                           extra={"folderid": folder_id, "parent_id": new_parent_id})
            return False
        if self._would_create_cycle(folder_id, new_parent_id):
            logger.info("Refused cyclic folder move",
                        extra={"folderid": folder_id, "parent_id": new_parent_id})
            return False

        limit = settings.max_folder_depth
        parent_depth = len(self._ancestor_chain(new_parent_id)[0])
        if parent_depth + self._subtree_height(folder_id, limit) > limit:
            logger.info("Refused folder move past depth limit",
                        extra={"folderid": folder_id, "parent_id": new_parent_id, "max_depth": limit})
            return False
        return True

    def _subtree_height(self, folder_id: int, limit: int) -> int:
        """Levels in the subtree rooted at ``folder_id`` (a leaf is 1).

        Stops counting once ``limit`` is exceeded.
        """
        height = 0
        seen = set()
        level = [folder_id]
        while level and height <= limit:
            seen.update(level)
            height += 1
            level = [fid for fid in self.repo.get_child_ids(level) if fid not in seen]
        return height

    def _would_create_cycle(self, folder_id: int, new_parent_id: int) -> bool:
        """True if ``new_parent_id`` is ``folder_id`` or one of its descendants.

        Walks up from the candidate parent. A chain that cannot be walked to
        the top is treated as a cycle.
        """
        if new_parent_id == folder_id:
            return True
        chain, intact = self._ancestor_chain(new_parent_id)
        if any(row.folder_id == folder_id for row in chain):
            return True
        return not intact
