"""
Base repositories with generic CRUD operations.

Provides reusable base classes for shared reference tables and for
tenant-scoped tables whose every query filters on ``organization_id``.
"""

from datetime import date, datetime
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from src.database.models.base import Base

# Type alias for valid database field values
FieldValue = str | int | float | bool | date | datetime | UUID | None

# Generic type variable bound to Base model
ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Generic repository providing common CRUD operations.

    Attributes:
        model: SQLAlchemy model class.
        session: Database session.
    """

    model: type[ModelT]

    def __init__(self, session: Session) -> None:
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session instance.
        """
        self._session = session

    @property
    def session(self) -> Session:
        """Get the database session."""
        return self._session

    def _select(self) -> Select[tuple[ModelT]]:
        """Base statement every lookup starts from."""
        return select(self.model)

    def get_by_id(self, entity_id: UUID, for_update: bool = False) -> ModelT | None:
        """Retrieve entity by primary key.

        Args:
            entity_id: Primary key value.
            for_update: Lock the row until the transaction ends.

        Returns:
            Entity instance or None if not found.
        """
        stmt = self._select().where(self.model.id == entity_id)  # type: ignore[attr-defined]
        if for_update:
            stmt = stmt.with_for_update()
        return self._session.scalars(stmt).first()

    def get_by_field(self, field_name: str, value: FieldValue) -> ModelT | None:
        """Retrieve entity by a specific field value.

        Args:
            field_name: Name of the field to filter on.
            value: Value to match.

        Returns:
            Entity instance or None if not found.
        """
        field = getattr(self.model, field_name)
        stmt = self._select().where(field == value)
        return self._session.scalars(stmt).first()

    def exists(self, entity_id: UUID) -> bool:
        """Check if entity exists by primary key.

        Args:
            entity_id: Primary key value.

        Returns:
            True if entity exists.
        """
        return self.get_by_id(entity_id) is not None

    def count(self, *criteria: Any) -> int:
        """Count entities matching optional criteria.

        Args:
            *criteria: Extra WHERE clauses.

        Returns:
            Total count.
        """
        subquery = self._select().where(*criteria).subquery()
        stmt = select(func.count()).select_from(subquery)
        result = self._session.execute(stmt).scalar()
        return result or 0

    def create(self, entity: ModelT) -> ModelT:
        """Create a new entity.

        Args:
            entity: Entity instance to persist.

        Returns:
            Persisted entity with generated ID.
        """
        self._session.add(entity)
        self._session.flush()
        return entity

    def update(self, entity: ModelT, values: dict[str, Any]) -> ModelT:
        """Apply attribute changes to a loaded entity.

        Args:
            entity: Entity instance attached to the session.
            values: Attribute names mapped to new values.

        Returns:
            Updated entity.
        """
        for key, value in values.items():
            setattr(entity, key, value)
        self._session.flush()
        return entity

    def delete(self, entity: ModelT) -> None:
        """Delete an entity.

        Args:
            entity: Entity instance to delete.
        """
        self._session.delete(entity)
        self._session.flush()


class TenantRepository(BaseRepository[ModelT]):
    """Repository whose every statement is scoped to one organization.

    A row belonging to another organization is indistinguishable from a
    missing row: lookups return None and listings never include it.
    """

    def __init__(self, session: Session, organization_id: UUID) -> None:
        """Initialize a tenant-scoped repository.

        Args:
            session: SQLAlchemy session instance.
            organization_id: Tenant every query is restricted to.
        """
        super().__init__(session)
        self._organization_id = organization_id

    @property
    def organization_id(self) -> UUID:
        """Tenant this repository reads and writes."""
        return self._organization_id

    def _select(self) -> Select[tuple[ModelT]]:
        return select(self.model).where(
            self.model.organization_id == self._organization_id  # type: ignore[attr-defined]
        )

    def create(self, entity: ModelT) -> ModelT:
        """Create a new entity in this tenant.

        Args:
            entity: Entity instance; its organization is forced to the tenant.

        Returns:
            Persisted entity with generated ID.
        """
        entity.organization_id = self._organization_id  # type: ignore[attr-defined]
        return super().create(entity)
