"""Repository for user accounts."""

from typing import Optional

from ..exceptions import AuthenticationError
from ..models.user import User
from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Data access layer for users."""

    model_class = User
    id_column = "user_id"
    not_found_error = AuthenticationError

    def create(self, username: str, password_hash: str) -> User:
        user = User(username=username, password_hash=password_hash)
        self.db.add(user)
        self.db.flush()
        return user

    def get_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def update_remember_token(self, user_id: int, token: Optional[str]) -> int:
        return (
            self.db.query(User)
            .filter(User.user_id == user_id)
            .update({User.remember_token: token}, synchronize_session="fetch")
        )
