"""Authentication: resolve the acting user for every API call.

Public interface:
    ``require_user`` -- FastAPI dependency returning an AuthContext or raising 401.

When ``settings.auth_enabled`` is False every request acts as
``settings.dev_username``; the account is created on first use so a fresh
database works without any setup.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .token_factory import decode_token
from ..database import StoreSession, get_db
from ..exceptions import AuthenticationError

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """The user every folder/note operation of this request is scoped to."""

    user_id: int
    username: str


def require_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: StoreSession = Depends(get_db),
) -> AuthContext:
    """Return the acting user.

    Raises AuthenticationError when auth is enabled and the bearer token is
    missing, invalid, expired, or names a user that no longer exists.
    """
    from ..services import user_service

    if not settings.auth_enabled:
        user = user_service.get_or_create_user(db, settings.dev_username)
        return AuthContext(user_id=user.user_id, username=user.username)

    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = decode_token(credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm)
    if payload is None:
        raise AuthenticationError("Invalid or expired token")

    user = user_service.get_user_by_id(db, payload.sub)
    if user is None:
        logger.warning("Token for unknown userid=%s", payload.sub)
        raise AuthenticationError("No userid in session")

    return AuthContext(user_id=user.user_id, username=user.username)
