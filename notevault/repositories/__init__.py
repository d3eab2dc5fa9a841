"""Data access repositories."""

from .base import BaseRepository
from .user_repository import UserRepository
from .folder_repository import FolderRepository
from .note_repository import NoteRepository
from .tag_repository import TagRepository
from .recent_repository import RecentModificationRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "FolderRepository",
    "NoteRepository",
    "TagRepository",
    "RecentModificationRepository",
]
