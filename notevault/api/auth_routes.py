"""Authentication endpoints.

    POST /api/auth/login     -- username/password, returns a bearer token
    POST /api/auth/remember  -- exchange a remember-me token for a bearer token
    POST /api/auth/logout    -- forget the caller's remember-me token

Tokens only matter when ``AUTH_ENABLED=true``; with auth disabled every
request acts as the development account.
"""

import logging

from fastapi import APIRouter, Depends

from ..core.auth import AuthContext, require_user
from ..core.config import settings
from ..core.token_factory import create_token
from ..database import StoreSession, get_db, server_time
from ..exceptions import AuthenticationError
from ..models.user import User
from ..schemas.actions import LoginRequest, RememberRequest, TokenResponse
from ..services import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _token_for(user: User) -> str:
    return create_token(user.user_id, user.username, settings.jwt_secret_key, settings.jwt_algorithm)


@router.post("/login", response_model=TokenResponse)
def login(body: LoginRequest, db: StoreSession = Depends(get_db)):
    """Authenticate with username and password."""
    user = user_service.authenticate(db, body.username, body.password)
    remember = user_service.issue_remember_token(db, user.user_id) if body.remember else None
    logger.info("User logged in", extra={"userid": user.user_id})
    return TokenResponse(
        access_token=_token_for(user),
        userid=user.user_id,
        username=user.username,
        remember_token=remember,
    )


@router.post("/remember", response_model=TokenResponse)
def login_with_remember_token(body: RememberRequest, db: StoreSession = Depends(get_db)):
    """Trade a remember-me token for a fresh bearer token."""
    user = user_service.verify_remember_token(db, body.remember_token)
    if user is None:
        raise AuthenticationError("Invalid remember token")
    return TokenResponse(access_token=_token_for(user), userid=user.user_id, username=user.username)


@router.post("/logout")
def logout(db: StoreSession = Depends(get_db), auth: AuthContext = Depends(require_user)):
    user_service.clear_remember_token(db, auth.user_id)
    return {"success": True, "server_time": server_time()}
