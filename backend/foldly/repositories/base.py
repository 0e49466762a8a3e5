"""Base repository with shared get-by-ID patterns.

Subclasses specify model_class and record_kind; the base provides
get_by_id / get_by_id_optional and the owner-scope filter shared by
folders and files.
"""

from dataclasses import dataclass
from typing import Generic, Optional, Type, TypeVar

from sqlalchemy.orm import Query, Session

from ..database import Base
from ..exceptions import RecordNotFoundError, ValidationError

ModelT = TypeVar("ModelT", bound=Base)


@dataclass(frozen=True)
class OwnerScope:
    """Exactly one of ``link_id`` / ``workspace_id`` identifies the owner."""
    link_id: Optional[str] = None
    workspace_id: Optional[str] = None

    def __post_init__(self):
        if (self.link_id is None) == (self.workspace_id is None):
            raise ValidationError("Scope needs exactly one of link_id or workspace_id", field="scope")

    @classmethod
    def link(cls, link_id: str) -> "OwnerScope":
        return cls(link_id=link_id)

    @classmethod
    def workspace(cls, workspace_id: str) -> "OwnerScope":
        return cls(workspace_id=workspace_id)

    def owns(self, record) -> bool:
        if self.link_id is not None:
            return record.link_id == self.link_id
        return record.workspace_id == self.workspace_id


class BaseRepository(Generic[ModelT]):
    """Shared repository logic for SQLAlchemy models.

    Class variables to set in subclasses:
        model_class:  The SQLAlchemy model (e.g., Folder)
        record_kind:  Label used in RecordNotFoundError messages
    """

    model_class: Type[ModelT]
    record_kind: str = "record"

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self) -> Query:
        return self.db.query(self.model_class)

    def _scoped_query(self, scope: OwnerScope) -> Query:
        query = self._base_query()
        if scope.link_id is not None:
            return query.filter(self.model_class.link_id == scope.link_id)
        return query.filter(self.model_class.workspace_id == scope.workspace_id)

    def get_by_id(self, entity_id: str) -> ModelT:
        """Get entity by primary key. Raises RecordNotFoundError if missing."""
        entity = self.get_by_id_optional(entity_id)
        if entity is None:
            raise RecordNotFoundError(self.record_kind, entity_id)
        return entity

    def get_by_id_optional(self, entity_id: str) -> Optional[ModelT]:
        return self._base_query().filter(self.model_class.id == entity_id).first()

    def insert(self, entity: ModelT) -> ModelT:
        """Persist a new entity and commit. Rolls back and re-raises on failure."""
        self.db.add(entity)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(entity)
        return entity

    def delete(self, entity_id: str) -> bool:
        entity = self.get_by_id_optional(entity_id)
        if entity is None:
            return False
        self.db.delete(entity)
        self.db.commit()
        return True
