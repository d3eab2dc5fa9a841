"""Payloads of the ``POST /api/notes`` actions.

Field names follow the wire format the browser client sends
(``noteid``, ``folderid``, ``parent_id``, ``newName``, ``jsonData``).
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ActionRequest(BaseModel):
    """Envelope: every request names its action; other fields depend on it."""
    action: str

    model_config = {"extra": "allow"}


class LoadAction(BaseModel):
    noteid: int


class SaveAction(BaseModel):
    noteid: Optional[int] = None
    title: str
    content: str
    folderid: Optional[int] = None  # None or 1 = top level


class ListAction(BaseModel):
    folderid: Optional[int] = None


class DeleteAction(BaseModel):
    noteid: int


class DeleteFolderAction(BaseModel):
    folderid: int


class CreateFolderAction(BaseModel):
    path: str = Field(..., description="Name of the new folder")
    parent_id: Optional[int] = None


class MoveAction(BaseModel):
    id: int
    folderid: Optional[int] = None


class SearchAction(BaseModel):
    query: str = ""
    type: str = "all"


class ImportAction(BaseModel):
    jsonData: Dict[str, Any]


class RenameAction(BaseModel):
    id: int
    type: str
    newName: str


class LoginRequest(BaseModel):
    username: str
    password: str
    remember: bool = False


class RememberRequest(BaseModel):
    remember_token: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    userid: int
    username: str
    remember_token: Optional[str] = None
