"""Base query builder class.

Provides common query operations that all query builders inherit.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, ClassVar, Generic, Self, TypeVar

from sqlalchemy import asc, desc
from sqlalchemy.orm import Query

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

T = TypeVar("T")


def coerce_uuid(value: uuid.UUID | str) -> uuid.UUID:
    """Parse ``value`` as a UUID; raises ``ValueError`` on malformed input."""
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


def as_utc(value: datetime) -> datetime:
    """Normalise a bound to UTC so string-compared backends (SQLite) filter correctly."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class BaseQuery(Generic[T]):
    """Base class for composable query builders.

    Provides fluent interface for building SQLAlchemy queries with:
    - Chainable filter methods
    - Ordering support
    - Execution helpers

    Subclasses should:
    1. Set `model_class` to the SQLAlchemy model
    2. Define `ordering_fields` mapping column names to model attributes
    3. Implement domain-specific filter methods
    """

    model_class: type[T]
    ordering_fields: ClassVar[dict[str, Any]] = {}

    def __init__(self, db: Session):
        self.db = db
        self._query: Query = db.query(self.model_class)

    def _clone(self) -> Self:
        """Create a copy of this query builder with current state."""
        new = self.__class__.__new__(self.__class__)
        new.db = self.db
        new._query = self._query
        return new

    def _filter(self, *criteria) -> Self:
        clone = self._clone()
        clone._query = clone._query.filter(*criteria)
        return clone

    # -------------------------------------------------------------------------
    # Common filters
    # -------------------------------------------------------------------------

    def by_id(self, id: uuid.UUID | str) -> Self:
        """Filter by primary key ID."""
        id_column = getattr(self.model_class, "id", None)
        if id_column is None:
            return self._clone()
        return self._filter(id_column == coerce_uuid(id))

    def active_only(self, active: bool = True) -> Self:
        """Filter by is_active flag."""
        is_active_col = getattr(self.model_class, "is_active", None)
        if is_active_col is None:
            return self._clone()
        return self._filter(is_active_col.is_(active))

    # -------------------------------------------------------------------------
    # Ordering
    # -------------------------------------------------------------------------

    def order_by(self, field: str, direction: str = "asc") -> Self:
        """Apply ordering to the query.

        Args:
            field: Field name (must be in ordering_fields)
            direction: 'asc' or 'desc'
        """
        clone = self._clone()
        column = self.ordering_fields.get(field)
        if column is not None:
            if direction.lower() == "desc":
                clone._query = clone._query.order_by(desc(column))
            else:
                clone._query = clone._query.order_by(asc(column))
        return clone

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def all(self) -> list[T]:
        """Execute query and return all results."""
        return self._query.all()

    def first(self) -> T | None:
        """Execute query and return first result."""
        return self._query.first()

    def count(self) -> int:
        """Return count of matching records."""
        return self._query.count()

    def query(self) -> Query:
        """Return the underlying SQLAlchemy Query object."""
        return self._query
