"""
Base Repository implementation.
Provides common data access patterns and the transaction scope.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TypeVar, Generic, Any, Sequence

from sqlalchemy import Select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shared.config.constants import Limits
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import AppException, ConflictError, PersistenceError

logger = get_logger(__name__)

ModelT = TypeVar("ModelT")


@dataclass
class RepositoryFilters:
    """Base filters for repository queries."""

    limit: int = Limits.DEFAULT_PAGE_SIZE
    offset: int = 0

    def __post_init__(self):
        """Validate and normalize filters."""
        self.limit = min(max(1, self.limit), Limits.MAX_PAGE_SIZE)
        self.offset = max(0, self.offset)


class BaseRepository(ABC, Generic[ModelT]):
    """
    Abstract base repository with common operations.

    Subclasses must implement:
    - model: the SQLAlchemy model class
    - _base_query(): base query with eager loading
    - _apply_filters(): entity-specific filters
    """

    def __init__(self, db: Session):
        self._db = db

    @property
    def db(self) -> Session:
        return self._db

    @property
    @abstractmethod
    def model(self) -> type[ModelT]:
        ...

    @abstractmethod
    def _base_query(self) -> Select:
        ...

    @abstractmethod
    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        ...

    def find_all(self, filters: RepositoryFilters | None = None) -> Sequence[ModelT]:
        filters = filters or RepositoryFilters()
        query = self._apply_filters(self._base_query(), filters)
        query = query.offset(filters.offset).limit(filters.limit)
        return self._db.execute(query).scalars().unique().all()

    def find_by_id(self, entity_id: Any) -> ModelT | None:
        query = self._base_query().where(self.model.id == entity_id)
        return self._db.scalar(query)

    @contextmanager
    def transaction(self, operation: str, **log_context: Any) -> Iterator[Session]:
        """
        Run a logical operation as one unit of work.

        Commits on success. On any failure everything is rolled back and the
        error is re-raised: application errors unchanged, uniqueness
        violations as ConflictError, other database errors as PersistenceError.

        Usage:
            with repo.transaction("create_order", order_id=order_id):
                repo.add(order)
        """
        try:
            yield self._db
            safe_commit(self._db)
        except AppException:
            self._db.rollback()
            raise
        except IntegrityError as e:
            self._db.rollback()
            raise ConflictError(
                f"Conflicting write during {operation}",
                operation=operation,
                error=str(e.orig),
                **log_context,
            ) from e
        except SQLAlchemyError as e:
            self._db.rollback()
            raise PersistenceError(operation, error=str(e), **log_context) from e
        except Exception:
            self._db.rollback()
            raise
