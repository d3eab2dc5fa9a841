"""Exception handlers producing the API's JSON error shape.

Every error body is ``{"error", "error_code", "details", "server_time"}``.
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..database import server_time
from ..exceptions import ErrorCode, NoteVaultException, StorageError

logger = logging.getLogger(__name__)


async def notevault_exception_handler(request: Request, exc: NoteVaultException) -> JSONResponse:
    """Convert a NoteVaultException into its status code and JSON body."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"NoteVaultException: {exc.error_code.value}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code,
        },
    )
    if isinstance(exc, StorageError) and exc.original_error is not None:
        logger.error("Storage failure cause: %s", exc.original_error)

    body = exc.to_dict()
    body["server_time"] = server_time()
    return JSONResponse(status_code=exc.status_code, content=body)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies get the same 400 shape as other validation failures."""
    errors = exc.errors()
    field = ".".join(str(p) for p in errors[0].get("loc", ())) if errors else None
    logger.warning("Request validation failed", extra={"path": request.url.path, "field": field})
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request body",
            "error_code": ErrorCode.VALIDATION_ERROR.value,
            "details": {"field": field} if field else {},
            "server_time": server_time(),
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected becomes a generic 500; the cause stays in the log."""
    logger.error(
        "Unhandled exception",
        extra={"path": request.url.path, "method": request.method},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "error_code": ErrorCode.INTERNAL_ERROR.value,
            "details": {},
            "server_time": server_time(),
        },
    )
