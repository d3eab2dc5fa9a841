"""JSON action endpoint for notes and folders.

``POST /api/notes`` takes ``{"action": <name>, ...}`` and dispatches to the
matching handler. Every handler is scoped to the user resolved by
``require_user``; ids in the body are never trusted to carry ownership.
Every response (success or error) carries ``server_time``.

Convenience reads:
    GET /api/notes/recent  -- recently modified notes
    GET /api/notes/export  -- export document
"""

import html
import json
import logging
from typing import Any, Callable, Dict, Optional, Type

import pydantic
from fastapi import APIRouter, Body, Depends, Query, Request

from ..core.auth import AuthContext, require_user
from ..core.config import settings
from ..core.logging_config import request_id_var
from ..database import StoreSession, get_db, server_time
from ..exceptions import (
    FolderNotFoundError,
    IntegrityViolationError,
    NoteNotFoundError,
    StorageError,
    ValidationError,
)
from ..schemas.actions import (
    ActionRequest,
    CreateFolderAction,
    DeleteAction,
    DeleteFolderAction,
    ImportAction,
    ListAction,
    LoadAction,
    MoveAction,
    RenameAction,
    SaveAction,
    SearchAction,
)
from ..schemas.transfer import format_timestamp
from ..services import log_service
from ..services.folder_service import FolderService
from ..services.note_service import NoteService
from ..services.search_service import SearchService
from ..services.transfer_service import TransferService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notes", tags=["notes"])

Handler = Callable[[StoreSession, AuthContext, Any], Dict[str, Any]]


def _respond(data: Dict[str, Any]) -> Dict[str, Any]:
    data["server_time"] = server_time()
    return data


def _parse(model: Type[pydantic.BaseModel], payload: Dict[str, Any]) -> Any:
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ValidationError(f"Missing or invalid field: {field}", field=field) from e


# ----------------------------------------------------------------------
# Action handlers
# ----------------------------------------------------------------------

def _load(db: StoreSession, auth: AuthContext, body: LoadAction) -> Dict[str, Any]:
    notes = NoteService(db)
    note = notes.get_note(body.noteid, auth.user_id)
    if note is None:
        raise NoteNotFoundError(body.noteid)
    return {
        "noteid": note.note_id,
        "title": note.title,
        "content": note.content,
        "folderid": note.folder_id,
        "tags": notes.get_note_tags(note.note_id),
    }


def _save(db: StoreSession, auth: AuthContext, body: SaveAction) -> Dict[str, Any]:
    notes = NoteService(db)
    if body.noteid:
        # update_note scopes recency to the stored owner, not the caller; check ownership here.
        if notes.get_note(body.noteid, auth.user_id) is None:
            raise NoteNotFoundError(body.noteid)
        if not notes.update_note(body.noteid, body.title, body.content):
            raise NoteNotFoundError(body.noteid)
        note_id = body.noteid
    else:
        note_id = notes.create_note(auth.user_id, body.title, body.content, body.folderid)
    return {"success": True, "noteid": note_id}


def _list(db: StoreSession, auth: AuthContext, body: ListAction) -> Dict[str, Any]:
    folders = FolderService(db)

    current = None
    if body.folderid is not None:
        folder = folders.get_folder(body.folderid, auth.user_id)
        if folder is not None:
            current = {
                "folderid": folder.folder_id,
                "name": folder.name,
                "parent_folderid": folder.parent_id,
                "created_at": format_timestamp(folder.created_at),
            }

    items = []
    for entry in folders.get_folder_contents(auth.user_id, body.folderid):
        if entry["type"] == "folder":
            items.append({
                "id": f"folder_{entry['folderid']}",
                "name": entry["name"],
                "type": "directory",
                "lastModified": format_timestamp(entry["created_at"]),
            })
        else:
            items.append({
                "id": f"note_{entry['noteid']}",
                "name": entry["name"],
                "type": "file",
                "lastModified": format_timestamp(entry["updated_at"] or entry["created_at"]),
            })

    return {
        "items": items,
        "currentFolder": current,
        "breadcrumbs": folders.get_status_folder_path(body.folderid, auth.user_id),
    }


def _delete(db: StoreSession, auth: AuthContext, body: DeleteAction) -> Dict[str, Any]:
    if not NoteService(db).delete_note(body.noteid, auth.user_id):
        raise NoteNotFoundError(body.noteid)
    return {"success": True}


def _delete_folder(db: StoreSession, auth: AuthContext, body: DeleteFolderAction) -> Dict[str, Any]:
    if not FolderService(db).delete_folder(body.folderid, auth.user_id):
        raise FolderNotFoundError(body.folderid)
    return {"success": True}


def _create_folder(db: StoreSession, auth: AuthContext, body: CreateFolderAction) -> Dict[str, Any]:
    folder_id = FolderService(db).create_folder(auth.user_id, body.path, body.parent_id)
    if folder_id is None:
        raise StorageError("Failed to create folder in database")
    return {"message": "Folder created successfully", "folderid": folder_id}


def _move_note(db: StoreSession, auth: AuthContext, body: MoveAction) -> Dict[str, Any]:
    if not NoteService(db).move_note(body.id, auth.user_id, body.folderid):
        raise ValidationError("Failed to move note", field="id")
    return {"success": True}


def _move_folder(db: StoreSession, auth: AuthContext, body: MoveAction) -> Dict[str, Any]:
    if not FolderService(db).move_folder(body.id, auth.user_id, body.folderid):
        raise IntegrityViolationError(
            "Failed to move folder", details={"id": body.id, "folderid": body.folderid}
        )
    return {"success": True}


def _recent(db: StoreSession, auth: AuthContext, body: Any) -> Dict[str, Any]:
    files = NoteService(db).get_recent_modified_files(auth.user_id)
    for entry in files:
        entry["modified_at"] = format_timestamp(entry["modified_at"])
    return {"success": True, "files": files}


def _search(db: StoreSession, auth: AuthContext, body: SearchAction) -> Dict[str, Any]:
    if not body.query.strip():
        raise ValidationError("Search query is required", field="query")
    results = SearchService(db).search_notes(auth.user_id, body.query, body.type)
    for entry in results:
        entry["updated_at"] = format_timestamp(entry["updated_at"])
    return {"success": True, "results": results}


def _export(db: StoreSession, auth: AuthContext, body: Any) -> Dict[str, Any]:
    return TransferService(db).export_user(auth.user_id)


def _import(db: StoreSession, auth: AuthContext, body: ImportAction) -> Dict[str, Any]:
    TransferService(db).import_user(auth.user_id, body.jsonData)
    return {"success": True, "message": "Import completed successfully"}


def _rename(db: StoreSession, auth: AuthContext, body: RenameAction) -> Dict[str, Any]:
    new_name = body.newName.strip()
    if not new_name:
        raise ValidationError("New name cannot be empty", field="newName")
    new_name = html.escape(new_name, quote=True)

    if body.type == "folder":
        if not FolderService(db).rename_folder(body.id, auth.user_id, new_name):
            raise FolderNotFoundError(body.id)
    elif body.type == "note":
        if not NoteService(db).rename_note(body.id, auth.user_id, new_name):
            raise NoteNotFoundError(body.id)
    else:
        raise ValidationError("Invalid type for rename operation", field="type")

    return {"success": True, "message": f"{body.type.capitalize()} renamed successfully"}


def _reset(db: StoreSession, auth: AuthContext, body: Any) -> Dict[str, Any]:
    TransferService(db).reset_app(auth.user_id)
    return {"success": True}


_ACTIONS: Dict[str, tuple] = {
    "load": (LoadAction, _load),
    "save": (SaveAction, _save),
    "list": (ListAction, _list),
    "delete": (DeleteAction, _delete),
    "deleteFolder": (DeleteFolderAction, _delete_folder),
    "createFolder": (CreateFolderAction, _create_folder),
    "moveNote": (MoveAction, _move_note),
    "moveFolder": (MoveAction, _move_folder),
    "get_recent_modified": (None, _recent),
    "search": (SearchAction, _search),
    "exportNotes": (None, _export),
    "importNotes": (ImportAction, _import),
    "rename": (RenameAction, _rename),
    "resetApp": (None, _reset),
}


def _log_action(db: StoreSession, request: Request, action: str, user_id: int, payload: Dict[str, Any]) -> None:
    if not settings.log_requests:
        return
    log_service.log(
        db,
        f"Processed {action} action",
        user_id=user_id,
        session_id=request_id_var.get(None),
        request_method=request.method,
        request_uri=str(request.url.path),
        request_data=json.dumps(payload, default=str),
    )


# ----------------------------------------------------------------------
# Endpoints
# ----------------------------------------------------------------------

@router.post("")
def dispatch_action(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    db: StoreSession = Depends(get_db),
    auth: AuthContext = Depends(require_user),
):
    """Run one action for the acting user."""
    if "action" not in payload:
        raise ValidationError("No action specified", field="action")
    envelope = _parse(ActionRequest, payload)

    entry = _ACTIONS.get(envelope.action)
    if entry is None:
        raise ValidationError(f"Invalid action: {envelope.action}", field="action")
    model, handler = entry

    logger.debug("Processing %s action", envelope.action, extra={"userid": auth.user_id})
    body = _parse(model, payload) if model is not None else None
    result = handler(db, auth, body)

    _log_action(db, request, envelope.action, auth.user_id, payload)
    return _respond(result)


@router.get("/recent")
def get_recent(
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: StoreSession = Depends(get_db),
    auth: AuthContext = Depends(require_user),
):
    """Recently modified notes, newest first."""
    files = NoteService(db).get_recent_modified_files(auth.user_id, limit)
    for entry in files:
        entry["modified_at"] = format_timestamp(entry["modified_at"])
    return _respond({"success": True, "files": files})


@router.get("/export")
def export_notes(
    db: StoreSession = Depends(get_db),
    auth: AuthContext = Depends(require_user),
):
    """The acting user's export document."""
    return _respond(TransferService(db).export_user(auth.user_id))
