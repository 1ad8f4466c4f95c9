"""Processing activity repository."""

from uuid import UUID

from sqlalchemy.orm import Session

from src.database.models.recipient import DataProcessingActivity, Recipient
from src.database.repositories.base import TenantRepository


class ActivityRepository(TenantRepository[DataProcessingActivity]):
    """Repository for DataProcessingActivity entity operations."""

    model = DataProcessingActivity

    def __init__(self, session: Session, organization_id: UUID) -> None:
        """Initialize activity repository.

        Args:
            session: SQLAlchemy session instance.
            organization_id: Tenant scope.
        """
        super().__init__(session, organization_id)

    def link_recipient(self, activity: DataProcessingActivity, recipient: Recipient) -> None:
        """Attach a recipient to an activity if not already linked."""
        if recipient.organization_id != self._organization_id:
            raise ValueError("Recipient belongs to another organization")
        if recipient not in activity.recipients:
            activity.recipients.append(recipient)
            self._session.flush()
