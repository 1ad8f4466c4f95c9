"""Organization (tenant) repository."""

from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from src.database.models.organization import Organization
from src.database.repositories.base import BaseRepository


class OrganizationRepository(BaseRepository[Organization]):
    """Repository for Organization entity operations."""

    model = Organization

    def __init__(self, session: Session) -> None:
        """Initialize organization repository.

        Args:
            session: SQLAlchemy session instance.
        """
        super().__init__(session)

    def get_by_slug(self, slug: str) -> Organization | None:
        """Retrieve organization by slug.

        Args:
            slug: Unique organization slug.

        Returns:
            Organization instance or None.
        """
        return self.get_by_field("slug", slug)

    def get_with_headquarters(self, organization_id: UUID) -> Organization | None:
        """Retrieve organization with its headquarters country loaded."""
        stmt = (
            self._select()
            .options(joinedload(Organization.headquarters_country))
            .where(Organization.id == organization_id)
        )
        return self._session.scalars(stmt).first()
