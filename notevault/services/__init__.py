"""Business logic services."""

from .folder_service import FolderService
from .note_service import NoteService
from .search_service import SearchService
from .transfer_service import TransferService

__all__ = ["FolderService", "NoteService", "SearchService", "TransferService"]
