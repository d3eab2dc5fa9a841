"""Database models."""

from .user import User, SystemLog
from .folder import Folder, ROOT_FOLDER_ID, ROOT_FOLDER_NAME
from .note import Note, Tag, RecentModification

__all__ = [
    "User", "SystemLog",
    "Folder", "ROOT_FOLDER_ID", "ROOT_FOLDER_NAME",
    "Note", "Tag", "RecentModification",
]
