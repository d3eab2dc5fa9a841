"""Export/import document schemas (format version 1.0)."""

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, field_validator

EXPORT_VERSION = "1.0"


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Timestamps travel as 'YYYY-MM-DD HH:MM:SS', the stored SQLite form."""
    return value.isoformat(sep=" ", timespec="seconds") if value else None


def _parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    value = str(value).strip()
    if not value:
        return None
    # fromisoformat accepts both the "T" and the space separator.
    return datetime.fromisoformat(value)


class _Timestamped(BaseModel):
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def parse_timestamp(cls, v):
        return _parse_timestamp(v)


class FolderExport(_Timestamped):
    """One folder row. Ids only cross-reference entries of the same document."""
    folderid: int
    parent_folderid: Optional[int] = None
    name: str


class NoteExport(_Timestamped):
    """One note row."""
    noteid: int
    folderid: Optional[int] = None
    title: str
    content: Optional[str] = ""


class TagExport(BaseModel):
    """One tag row."""
    tagid: Optional[int] = None
    noteid: int
    tag: str


class ExportDocument(BaseModel):
    """A user's whole tree as produced by ``exportNotes``."""
    userid: Optional[int] = None
    folders: List[FolderExport]
    notes: List[NoteExport]
    tags: List[TagExport]
    exportDate: Optional[str] = None
    version: str
