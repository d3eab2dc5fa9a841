"""User accounts: registration, password checks, remember-me tokens.

Passwords are hashed with bcrypt via passlib and never stored or logged in
plaintext. Remember-me tokens are random; only their SHA-256 digest is kept
in ``users.remember_token``.
"""

import hashlib
import logging
import secrets
from typing import Optional

from passlib.hash import bcrypt

from ..core.seeder import seed_root_folder
from ..database import StoreSession
from ..exceptions import AuthenticationError, ValidationError
from ..models.user import User
from ..repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

# 32 random bytes, hex encoded.
REMEMBER_TOKEN_BYTES = 32


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def register_user(db: StoreSession, username: str, password: str) -> User:
    """Create a new account and make sure the hidden root folder exists.

    Raises ValidationError if the username is blank or taken, or the
    password is empty.
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("Username required", field="username")
    if not password:
        raise ValidationError("Password required", field="password")

    repo = UserRepository(db)
    if repo.get_by_username(username) is not None:
        raise ValidationError("Username already exists", field="username")

    with db.transaction():
        user = repo.create(username, bcrypt.hash(password))
        seed_root_folder(db, owner_id=user.user_id)

    logger.info("Registered user", extra={"userid": user.user_id})
    return user


def authenticate(db: StoreSession, username: str, password: str) -> User:
    """Validate credentials and return the user.

    Raises AuthenticationError on unknown username or wrong password.
    """
    user = UserRepository(db).get_by_username((username or "").strip())
    if user is None or not bcrypt.verify(password or "", user.password_hash):
        raise AuthenticationError("Invalid username or password")
    return user


def get_user_by_id(db: StoreSession, user_id: int) -> Optional[User]:
    return UserRepository(db).get_by_id_optional(user_id)


def get_or_create_user(db: StoreSession, username: str) -> User:
    """Return the named account, creating it with an unusable random password.

    Used for the acting user when authentication is disabled.
    """
    user = UserRepository(db).get_by_username(username)
    if user is not None:
        return user
    logger.info("Creating development account %r", username)
    return register_user(db, username, secrets.token_urlsafe(32))


def issue_remember_token(db: StoreSession, user_id: int) -> str:
    """Store a fresh remember-me token for the user and return it."""
    token = secrets.token_hex(REMEMBER_TOKEN_BYTES)
    with db.transaction():
        UserRepository(db).update_remember_token(user_id, _digest(token))
    return token


def verify_remember_token(db: StoreSession, token: str) -> Optional[User]:
    if not token:
        return None
    return db.query(User).filter(User.remember_token == _digest(token)).first()


def clear_remember_token(db: StoreSession, user_id: int) -> None:
    with db.transaction():
        UserRepository(db).update_remember_token(user_id, None)
