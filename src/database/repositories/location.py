"""Recipient processing location repository."""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from src.database.models.recipient import RecipientProcessingLocation
from src.database.repositories.base import TenantRepository


class ProcessingLocationRepository(TenantRepository[RecipientProcessingLocation]):
    """Repository for RecipientProcessingLocation entity operations."""

    model = RecipientProcessingLocation

    def __init__(self, session: Session, organization_id: UUID) -> None:
        """Initialize processing location repository.

        Args:
            session: SQLAlchemy session instance.
            organization_id: Tenant scope.
        """
        super().__init__(session, organization_id)

    def get_for_recipients(
        self,
        recipient_ids: Iterable[UUID],
        active_only: bool = True,
    ) -> list[RecipientProcessingLocation]:
        """Locations of several recipients with country and mechanism loaded.

        Args:
            recipient_ids: Recipients to look up.
            active_only: Skip moved or retired locations.

        Returns:
            Locations ordered by creation time.
        """
        wanted = set(recipient_ids)
        if not wanted:
            return []
        stmt = (
            self._select()
            .options(
                joinedload(RecipientProcessingLocation.country),
                joinedload(RecipientProcessingLocation.transfer_mechanism),
            )
            .where(RecipientProcessingLocation.recipient_id.in_(wanted))
        )
        if active_only:
            stmt = stmt.where(RecipientProcessingLocation.is_active.is_(True))
        stmt = stmt.order_by(RecipientProcessingLocation.created_at, RecipientProcessingLocation.id)
        return list(self._session.scalars(stmt).unique().all())

    def count_for_recipient(self, recipient_id: UUID) -> int:
        """Count locations of any status attached to a recipient."""
        return self.count(RecipientProcessingLocation.recipient_id == recipient_id)
