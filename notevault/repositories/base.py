"""Base repository with shared lookup patterns.

Every table except ``users`` is owned by a user; ``get_owned`` applies the
ownership filter so no repository method can hand out a foreign row by id.
Subclasses specify model_class, id_column, and not_found_error.

Repositories only stage changes (add / flush / bulk update). Commit and
rollback belong to ``StoreSession.transaction()`` scopes opened by services.
"""

from typing import TypeVar, Generic, Optional, Type
from sqlalchemy.orm import Session, Query

from ..database import Base
from ..exceptions import NoteVaultException

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Shared repository logic for SQLAlchemy models.

    Class variables to set in subclasses:
        model_class:     The SQLAlchemy model (e.g., Note)
        id_column:       Attribute name of the primary key
        not_found_error: Exception class to raise from get_by_id
    """

    model_class: Type[ModelT]
    id_column: str = "id"
    not_found_error: Type[NoteVaultException]

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self) -> Query:
        return self.db.query(self.model_class)

    def _id_filter(self, entity_id: int):
        return getattr(self.model_class, self.id_column) == entity_id

    def get_by_id(self, entity_id: int) -> ModelT:
        """Get entity by primary key. Raises not_found_error if missing."""
        entity = self._base_query().filter(self._id_filter(entity_id)).first()
        if not entity:
            raise self.not_found_error(entity_id)
        return entity

    def get_by_id_optional(self, entity_id: int) -> Optional[ModelT]:
        """Get entity by primary key, or None if not found."""
        return self._base_query().filter(self._id_filter(entity_id)).first()

    def get_owned(self, entity_id: int, user_id: int) -> Optional[ModelT]:
        """Get entity by primary key only if ``user_id`` owns it."""
        return (
            self._base_query()
            .filter(self._id_filter(entity_id), self.model_class.user_id == user_id)
            .first()
        )
