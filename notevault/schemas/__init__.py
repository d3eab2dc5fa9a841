"""Pydantic schemas for API validation."""

from .actions import (
    ActionRequest,
    LoginRequest,
    RememberRequest,
    TokenResponse,
)
from .transfer import (
    EXPORT_VERSION,
    ExportDocument,
    FolderExport,
    NoteExport,
    TagExport,
    format_timestamp,
)

__all__ = [
    "ActionRequest",
    "LoginRequest",
    "RememberRequest",
    "TokenResponse",
    "EXPORT_VERSION",
    "ExportDocument",
    "FolderExport",
    "NoteExport",
    "TagExport",
    "format_timestamp",
]
