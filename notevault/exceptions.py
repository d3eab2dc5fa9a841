"""Custom exception hierarchy for NoteVault."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    NOTE_NOT_FOUND = "NOTE_NOT_FOUND"
    FOLDER_NOT_FOUND = "FOLDER_NOT_FOUND"

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTEGRITY_VIOLATION = "INTEGRITY_VIOLATION"

    STORAGE_ERROR = "STORAGE_ERROR"

    UNAUTHORIZED = "UNAUTHORIZED"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class NoteVaultException(Exception):
    """
    Base exception for all NoteVault errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to the JSON error body returned by the API."""
        return {
            "error": self.message,
            "error_code": self.error_code.value,
            "details": self.details,
        }


class NoteNotFoundError(NoteVaultException):
    """Note absent or owned by another user."""

    def __init__(self, note_id: int):
        super().__init__(
            "Note not found",
            ErrorCode.NOTE_NOT_FOUND,
            status_code=404,
            details={"noteid": note_id}
        )


class FolderNotFoundError(NoteVaultException):
    """Folder absent or owned by another user."""

    def __init__(self, folder_id: int):
        super().__init__(
            "Folder not found",
            ErrorCode.FOLDER_NOT_FOUND,
            status_code=404,
            details={"folderid": folder_id}
        )


class ValidationError(NoteVaultException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class IntegrityViolationError(NoteVaultException):
    """Operation would break tree ownership or shape."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            ErrorCode.INTEGRITY_VIOLATION,
            status_code=409,
            details=details
        )


class StorageError(NoteVaultException):
    """Engine-level failure. The underlying error is logged, never returned."""

    def __init__(self, message: str = "Storage operation failed", original_error: Optional[Exception] = None):
        super().__init__(
            message,
            ErrorCode.STORAGE_ERROR,
            status_code=500,
        )
        self.original_error = original_error


class AuthenticationError(NoteVaultException):
    """Request lacks valid authentication credentials."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )
