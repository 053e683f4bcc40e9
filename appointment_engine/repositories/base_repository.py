# appointment_engine/repositories/base_repository.py
"""
Base Repository Pattern for the appointment engine.

Repositories are the engine's storage port. Services receive them through
their constructors and own the transaction boundaries; a repository only
flushes. SQLAlchemy errors are logged and re-raised as RepositoryException.
"""

from abc import ABC, abstractmethod
import logging
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException

T = TypeVar("T")

logger = logging.getLogger(__name__)


class IRepository(ABC, Generic[T]):
    """Storage operations every entity repository supports."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Return the entity or None."""

    @abstractmethod
    def create(self, **kwargs: Any) -> T:
        """
        Insert a new entity and flush so its id is assigned.

        Raises:
            RepositoryException: Constraint violation or storage failure
        """

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Delete by id; False when there was nothing to delete."""

    @abstractmethod
    def find_by(self, **kwargs: Any) -> List[T]:
        """Entities whose columns equal the given values."""


class BaseRepository(IRepository[T]):
    """SQLAlchemy implementation shared by the slot, booking and interviewer stores."""

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @property
    def _name(self) -> str:
        return self.model.__name__

    def get_by_id(self, id: str) -> Optional[T]:
        try:
            return self.db.get(self.model, id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting {self._name} {id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve {self._name}: {str(e)}")

    def reload(self, id: str) -> Optional[T]:
        """
        Read ``id`` straight from the database.

        Ledger counters are changed with bulk UPDATEs that bypass the
        session, so callers about to act on them reload first.
        """
        try:
            return self.db.get(self.model, id, populate_existing=True)
        except SQLAlchemyError as e:
            self.logger.error(f"Error reloading {self._name} {id}: {str(e)}")
            raise RepositoryException(f"Failed to reload {self._name}: {str(e)}")

    def create(self, **kwargs: Any) -> T:
        entity = self.model(**kwargs)
        try:
            self.db.add(entity)
            self.db.flush()
        except IntegrityError as e:
            self.logger.error(f"Integrity error creating {self._name}: {str(e)}")
            raise RepositoryException(f"Integrity constraint violated: {str(e)}") from e
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating {self._name}: {str(e)}")
            raise RepositoryException(f"Failed to create {self._name}: {str(e)}") from e
        return entity

    def flush(self) -> None:
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error flushing {self._name} changes: {str(e)}")
            raise RepositoryException(f"Failed to save {self._name}: {str(e)}") from e

    def delete(self, id: str) -> bool:
        entity = self.get_by_id(id)
        if entity is None:
            return False
        try:
            self.db.delete(entity)
            self.db.flush()
        except IntegrityError as e:
            self.logger.error(f"Cannot delete {self._name} {id}: {str(e)}")
            raise RepositoryException(f"Cannot delete due to existing references: {str(e)}")
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting {self._name} {id}: {str(e)}")
            raise RepositoryException(f"Failed to delete {self._name}: {str(e)}")
        return True

    def find_by(self, **kwargs: Any) -> List[T]:
        try:
            return self.db.query(self.model).filter_by(**kwargs).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding {self._name} by {sorted(kwargs)}: {str(e)}")
            raise RepositoryException(f"Failed to find {self._name}: {str(e)}")

    # Helpers for subclass queries

    def _execute_scalar(self, query: Query) -> Any:
        try:
            return query.scalar()
        except SQLAlchemyError as e:
            self.logger.error(f"Scalar query error on {self._name}: {str(e)}")
            raise RepositoryException(f"Scalar query failed: {str(e)}")

    def _execute_update(self, query: Query, values: dict) -> int:
        """Run a bulk UPDATE and return the affected row count."""
        try:
            return int(query.update(values, synchronize_session=False))
        except SQLAlchemyError as e:
            self.logger.error(f"Update error on {self._name}: {str(e)}")
            raise RepositoryException(f"Update failed: {str(e)}")
