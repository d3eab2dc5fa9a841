"""API routes."""

from .auth_routes import router as auth_router
from .notes import router as notes_router

__all__ = [
    "auth_router",
    "notes_router",
]
