"""Repository for folder rows."""

from datetime import datetime
from typing import List, Optional

from ..database import local_now
from ..exceptions import FolderNotFoundError
from ..models.folder import Folder, ROOT_FOLDER_ID
from .base import BaseRepository


class FolderRepository(BaseRepository[Folder]):
    """Data access layer for folders.

    Parent comparisons use SQL ``IS`` (``is_not_distinct_from``) so that a
    ``None`` parent matches top-level rows instead of matching nothing.
    """

    model_class = Folder
    id_column = "folder_id"
    not_found_error = FolderNotFoundError

    def create(
        self,
        user_id: int,
        name: str,
        parent_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> Folder:
        created_at = created_at or local_now()
        folder = Folder(
            user_id=user_id,
            parent_id=parent_id,
            name=name,
            created_at=created_at,
            updated_at=updated_at or created_at,
        )
        self.db.add(folder)
        self.db.flush()
        return folder

    def get_parent_link(self, folder_id: int) -> Optional[tuple]:
        """(folder_id, parent_id, name) for one row, ignoring ownership.

        Used by ancestor walks, which must follow whatever chain is stored.
        """
        return (
            self.db.query(Folder.folder_id, Folder.parent_id, Folder.name)
            .filter(Folder.folder_id == folder_id)
            .first()
        )

    def get_child_ids(self, parent_ids: List[int]) -> List[int]:
        """Ids of folders whose parent is any of ``parent_ids``."""
        rows = self.db.query(Folder.folder_id).filter(Folder.parent_id.in_(parent_ids)).all()
        return [row.folder_id for row in rows]

    def get_children(self, user_id: int, parent_id: Optional[int]) -> List[Folder]:
        return (
            self.db.query(Folder)
            .filter(
                Folder.user_id == user_id,
                Folder.parent_id.is_not_distinct_from(parent_id),
                Folder.folder_id != ROOT_FOLDER_ID,
            )
            .order_by(Folder.name)
            .all()
        )

    def get_by_user(self, user_id: int) -> List[Folder]:
        """All of a user's folders except the hidden root, parents sorted first."""
        return (
            self.db.query(Folder)
            .filter(Folder.user_id == user_id, Folder.folder_id != ROOT_FOLDER_ID)
            .order_by(Folder.parent_id, Folder.name)
            .all()
        )

    def update_parent(self, folder_id: int, user_id: int, parent_id: Optional[int]) -> int:
        return (
            self.db.query(Folder)
            .filter(Folder.folder_id == folder_id, Folder.user_id == user_id)
            .update({Folder.parent_id: parent_id, Folder.updated_at: local_now()},
                    synchronize_session="fetch")
        )

    def update_name(self, folder_id: int, user_id: int, name: str) -> int:
        return (
            self.db.query(Folder)
            .filter(Folder.folder_id == folder_id, Folder.user_id == user_id)
            .update({Folder.name: name, Folder.updated_at: local_now()},
                    synchronize_session="fetch")
        )

    def delete(self, folder_id: int, user_id: int) -> int:
        """Delete one folder. Descendants and their notes go by FK cascade."""
        return (
            self.db.query(Folder)
            .filter(Folder.folder_id == folder_id, Folder.user_id == user_id)
            .delete(synchronize_session=False)
        )

    def delete_by_user(self, user_id: int) -> int:
        return (
            self.db.query(Folder)
            .filter(Folder.user_id == user_id, Folder.folder_id != ROOT_FOLDER_ID)
            .delete(synchronize_session=False)
        )
