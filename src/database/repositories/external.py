"""External organization and agreement repositories."""

from collections.abc import Iterable
from datetime import date
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from src.database.models.enums import AgreementStatus
from src.database.models.external import Agreement, ExternalOrganization
from src.database.models.recipient import Recipient
from src.database.repositories.base import TenantRepository

# Statuses under which an agreement still protects a transfer
IN_FORCE_STATUSES = (AgreementStatus.ACTIVE, AgreementStatus.EXPIRING_SOON)


class ExternalOrganizationRepository(TenantRepository[ExternalOrganization]):
    """Repository for ExternalOrganization entity operations."""

    model = ExternalOrganization

    def __init__(self, session: Session, organization_id: UUID) -> None:
        """Initialize external organization repository.

        Args:
            session: SQLAlchemy session instance.
            organization_id: Tenant scope.
        """
        super().__init__(session, organization_id)

    def list_all(self) -> list[ExternalOrganization]:
        """Every external organization of the tenant ordered by legal name."""
        stmt = self._select().order_by(ExternalOrganization.legal_name, ExternalOrganization.id)
        return list(self._session.scalars(stmt).all())

    def get_many(self, ids: Iterable[UUID]) -> dict[UUID, ExternalOrganization]:
        """Resolve several external organizations at once."""
        wanted = set(ids)
        if not wanted:
            return {}
        stmt = self._select().where(ExternalOrganization.id.in_(wanted))
        return {org.id: org for org in self._session.scalars(stmt).all()}


class AgreementRepository(TenantRepository[Agreement]):
    """Repository for Agreement entity operations."""

    model = Agreement

    def __init__(self, session: Session, organization_id: UUID) -> None:
        """Initialize agreement repository.

        Args:
            session: SQLAlchemy session instance.
            organization_id: Tenant scope.
        """
        super().__init__(session, organization_id)

    def get_in_force_for_external_organizations(
        self,
        external_organization_ids: Iterable[UUID],
        today: date | None = None,
    ) -> list[Agreement]:
        """Agreements in force for the given counterparties.

        Args:
            external_organization_ids: Counterparties to look up.
            today: Reference date for expiry (defaults to today).

        Returns:
            Active or expiring-soon agreements not yet past expiry.
        """
        wanted = set(external_organization_ids)
        if not wanted:
            return []
        today = today or date.today()
        stmt = self._select().where(
            Agreement.external_organization_id.in_(wanted),
            Agreement.status.in_(IN_FORCE_STATUSES),
            or_(Agreement.expiry_date.is_(None), Agreement.expiry_date >= today),
        )
        return list(self._session.scalars(stmt).all())

    def get_in_force_for_recipient(self, recipient: Recipient, today: date | None = None) -> list[Agreement]:
        """Agreements in force covering one recipient role.

        An agreement covers a recipient when it binds the recipient's
        external organization and is either unscoped or scoped to it.
        """
        if recipient.external_organization_id is None:
            return []
        agreements = self.get_in_force_for_external_organizations(
            [recipient.external_organization_id], today
        )
        return [a for a in agreements if a.recipient_id in (None, recipient.id)]

    def count_for_recipient(self, recipient_id: UUID) -> int:
        """Count agreements of any status scoped to a recipient."""
        return self.count(Agreement.recipient_id == recipient_id)

    def get_expiring(self, cutoff: date) -> list[Agreement]:
        """Agreements in force whose expiry date is on or before ``cutoff``.

        Args:
            cutoff: Last expiry date to include.

        Returns:
            Agreements ordered by expiry date, soonest first.
        """
        stmt = (
            self._select()
            .where(
                Agreement.status.in_(IN_FORCE_STATUSES),
                Agreement.expiry_date.is_not(None),
                Agreement.expiry_date <= cutoff,
            )
            .order_by(Agreement.expiry_date, Agreement.id)
        )
        return list(self._session.scalars(stmt).all())
