"""Cross-border transfer detection and processing locations.

Applies the transfer risk evaluator to stored data: the organization's
headquarters country is the origin of every transfer, each active
processing location of a recipient (or of one of its ancestors) a
destination.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from src.compliance.errors import (
    ActivityNotFoundError,
    CountryNotFoundError,
    OrganizationConfigurationError,
    OrganizationNotFoundError,
    ProcessingLocationNotFoundError,
    TransferMechanismNotFoundError,
    TransferValidationError,
)
from src.compliance.hierarchy import HierarchyManager
from src.compliance.transfer_risk import (
    MechanismRequirement,
    TransferRisk,
    TransferRiskLevel,
    derive_transfer_risk,
    validate_transfer_mechanism_requirement,
)
from src.database.models.enums import LocationRole
from src.database.models.recipient import Recipient, RecipientProcessingLocation
from src.database.models.reference import Country, TransferMechanism
from src.database.repositories.activity import ActivityRepository
from src.database.repositories.location import ProcessingLocationRepository
from src.database.repositories.organization import OrganizationRepository
from src.database.repositories.reference import CountryRepository, TransferMechanismRepository
from src.monitoring.metrics import TRANSFER_RISK_EVALUATIONS
from src.settings import HierarchySettings

logger = logging.getLogger(__name__)

LOCATION_UPDATABLE_FIELDS = frozenset(
    {"service", "country_id", "location_role", "transfer_mechanism_id", "purpose_text", "is_active"}
)


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass(frozen=True)
class TransferEvaluation:
    """Risk and mechanism requirement for one country pair."""

    source: Country
    destination: Country
    mechanism: TransferMechanism | None
    risk: TransferRisk
    requirement: MechanismRequirement


@dataclass(frozen=True)
class CrossBorderTransfer:
    """Transfer implied by one processing location.

    Attributes:
        organization_country: Origin (organization headquarters).
        recipient: Recipient operating the location.
        location: Processing location (destination).
        risk: Derived transfer risk.
        depth: 0 for the recipient itself, n for its n-th ancestor.
    """

    organization_country: Country
    recipient: Recipient
    location: RecipientProcessingLocation
    risk: TransferRisk
    depth: int


@dataclass(frozen=True)
class CountryLocationCount:
    """Destination country and the number of transfers towards it."""

    country: Country
    location_count: int


@dataclass
class TransferSummary:
    """Aggregates of an activity transfer analysis."""

    total_recipients: int = 0
    recipients_with_transfers: int = 0
    risk_distribution: dict[str, int] = field(
        default_factory=lambda: {level.value: 0 for level in TransferRiskLevel}
    )
    countries_involved: list[CountryLocationCount] = field(default_factory=list)


@dataclass
class ActivityTransferAnalysis:
    """Transfers implied by the recipients of one processing activity."""

    activity_id: UUID
    activity_name: str
    organization_country: Country
    transfers: list[CrossBorderTransfer]
    summary: TransferSummary


@dataclass(frozen=True)
class SubtreeJurisdiction:
    """Headquarters country of one node in a recipient subtree."""

    recipient: Recipient
    depth: int
    country: Country | None


@dataclass(frozen=True)
class LocationWriteResult:
    """Processing location written and the transfer it implies."""

    location: RecipientProcessingLocation
    requirement: MechanismRequirement
    risk: TransferRisk | None


# =============================================================================
# PURE EVALUATION ENTRY POINT
# =============================================================================


def evaluate_transfer(
    session: Session,
    source_country_id: UUID,
    destination_country_id: UUID,
    mechanism_id: UUID | None = None,
) -> TransferEvaluation:
    """Resolve two countries and a mechanism, then evaluate the transfer.

    Raises:
        CountryNotFoundError: Unknown country id.
        TransferMechanismNotFoundError: Unknown or inactive mechanism id.
    """
    countries = CountryRepository(session)
    source = countries.get_by_id(source_country_id)
    if source is None:
        raise CountryNotFoundError(source_country_id)
    destination = countries.get_by_id(destination_country_id)
    if destination is None:
        raise CountryNotFoundError(destination_country_id)

    mechanism = None
    if mechanism_id is not None:
        mechanism = TransferMechanismRepository(session).get_active_by_id(mechanism_id)
        if mechanism is None:
            raise TransferMechanismNotFoundError(mechanism_id)

    risk = _derive(source, destination, mechanism)
    requirement = validate_transfer_mechanism_requirement(source, destination, mechanism_id)
    return TransferEvaluation(source, destination, mechanism, risk, requirement)


def _derive(source: Country, destination: Country, mechanism: TransferMechanism | None) -> TransferRisk:
    risk = derive_transfer_risk(source, destination, mechanism)
    TRANSFER_RISK_EVALUATIONS.labels(level=risk.level.value).inc()
    return risk


# =============================================================================
# TRANSFER SERVICE
# =============================================================================


class TransferService:
    """Transfer detection and processing locations for one organization."""

    def __init__(
        self,
        session: Session,
        organization_id: UUID,
        limits: HierarchySettings | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            session: SQLAlchemy session.
            organization_id: Tenant scope.
            limits: Hierarchy caps (defaults to settings).
        """
        self.organization_id = organization_id
        self.manager = HierarchyManager(session, organization_id, limits)
        self.recipients = self.manager.recipients
        self.locations = ProcessingLocationRepository(session, organization_id)
        self.activities = ActivityRepository(session, organization_id)
        self.organizations = OrganizationRepository(session)
        self.countries = CountryRepository(session)
        self.mechanisms = TransferMechanismRepository(session)

    def _headquarters_country(self) -> Country | None:
        organization = self.organizations.get_with_headquarters(self.organization_id)
        if organization is None:
            raise OrganizationNotFoundError(self.organization_id)
        return organization.headquarters_country

    # -------------------------------------------------------------------------
    # Detection
    # -------------------------------------------------------------------------

    def _transfers_for(
        self,
        recipients: list[Recipient],
        origin: Country,
    ) -> list[CrossBorderTransfer]:
        chains = {r.id: [r, *self.manager.iter_ancestors(r)] for r in recipients}
        involved = {node.id for chain in chains.values() for node in chain}
        locations: dict[UUID, list[RecipientProcessingLocation]] = {}
        for location in self.locations.get_for_recipients(involved):
            locations.setdefault(location.recipient_id, []).append(location)

        transfers = []
        for recipient in recipients:
            for depth, node in enumerate(chains[recipient.id]):
                for location in locations.get(node.id, []):
                    risk = _derive(origin, location.country, location.transfer_mechanism)
                    if risk.level != TransferRiskLevel.NONE:
                        transfers.append(CrossBorderTransfer(origin, node, location, risk, depth))
        return transfers

    def detect_cross_border_transfers(self) -> list[CrossBorderTransfer]:
        """Every non-NONE transfer implied by active recipients.

        Returns an empty list when the organization has no headquarters
        country.
        """
        origin = self._headquarters_country()
        if origin is None:
            logger.warning(
                "Organization %s has no headquarters country, transfer detection skipped",
                self.organization_id,
            )
            return []
        return self._transfers_for(self.recipients.list_all(active_only=True), origin)

    def get_activity_transfer_analysis(self, activity_id: UUID) -> ActivityTransferAnalysis:
        """Transfers implied by the recipients of one activity, with a summary.

        Raises:
            ActivityNotFoundError: Unknown activity or other organization.
            OrganizationConfigurationError: No headquarters country set.
        """
        activity = self.activities.get_by_id(activity_id)
        if activity is None:
            raise ActivityNotFoundError(activity_id)
        origin = self._headquarters_country()
        if origin is None:
            raise OrganizationConfigurationError(
                f"Organization {self.organization_id} has no headquarters country set. "
                "Set the organization's headquarters country to enable cross-border "
                "transfer analysis."
            )

        recipients = self.recipients.get_for_activity(activity_id)
        transfers = self._transfers_for(recipients, origin)

        summary = TransferSummary(total_recipients=len(recipients))
        summary.recipients_with_transfers = len({t.recipient.id for t in transfers})
        per_country: dict[UUID, CountryLocationCount] = {}
        for transfer in transfers:
            summary.risk_distribution[transfer.risk.level.value] += 1
            country = transfer.location.country
            previous = per_country.get(country.id)
            per_country[country.id] = CountryLocationCount(
                country, (previous.location_count if previous else 0) + 1
            )
        summary.countries_involved = sorted(
            per_country.values(),
            key=lambda entry: (-entry.location_count, entry.country.name),
        )
        return ActivityTransferAnalysis(activity.id, activity.name, origin, transfers, summary)

    def assess_cross_border_transfers(self, recipient_id: UUID) -> list[SubtreeJurisdiction]:
        """Headquarters country of a recipient and of every descendant.

        Raises:
            RecipientNotFoundError: Unknown id or other organization.
        """
        root = self.manager.get_recipient(recipient_id)
        nodes = [(root, 0)] + [(row.recipient, row.depth) for row in self.manager.get_descendants(recipient_id)]
        assessment = []
        for recipient, depth in nodes:
            external = recipient.external_organization
            country = external.headquarters_country if external else None
            assessment.append(SubtreeJurisdiction(recipient, depth, country))
        return assessment

    # -------------------------------------------------------------------------
    # Processing locations
    # -------------------------------------------------------------------------

    def _resolve_country(self, country_id: UUID) -> Country:
        country = self.countries.get_by_id(country_id)
        if country is None:
            raise CountryNotFoundError(country_id)
        return country

    def _check_transfer(
        self,
        country: Country,
        mechanism_id: UUID | None,
    ) -> tuple[MechanismRequirement, TransferRisk | None]:
        mechanism = None
        if mechanism_id is not None:
            mechanism = self.mechanisms.get_active_by_id(mechanism_id)
            if mechanism is None:
                raise TransferMechanismNotFoundError(mechanism_id)

        origin = self._headquarters_country()
        if origin is None:
            logger.warning(
                "Organization %s has no headquarters country, mechanism requirement not checked",
                self.organization_id,
            )
            return MechanismRequirement(valid=True, required=False), None

        requirement = validate_transfer_mechanism_requirement(origin, country, mechanism_id)
        if not requirement.valid:
            raise TransferValidationError(requirement.error or "Transfer mechanism required")
        return requirement, _derive(origin, country, mechanism)

    def list_locations(self, recipient_id: UUID, active_only: bool = True) -> list[RecipientProcessingLocation]:
        """Processing locations of one recipient."""
        self.manager.get_recipient(recipient_id)
        return self.locations.get_for_recipients([recipient_id], active_only=active_only)

    def create_location(
        self,
        recipient_id: UUID,
        service: str,
        country_id: UUID,
        location_role: LocationRole = LocationRole.BOTH,
        transfer_mechanism_id: UUID | None = None,
        purpose_text: str | None = None,
    ) -> LocationWriteResult:
        """Attach a processing location to a recipient.

        Raises:
            RecipientNotFoundError: Unknown recipient or other organization.
            CountryNotFoundError: Unknown country.
            TransferMechanismNotFoundError: Unknown or inactive mechanism.
            TransferValidationError: Required safeguard missing.
        """
        self.manager.get_recipient(recipient_id)
        country = self._resolve_country(country_id)
        requirement, risk = self._check_transfer(country, transfer_mechanism_id)

        location = self.locations.create(
            RecipientProcessingLocation(
                recipient_id=recipient_id,
                service=service,
                country_id=country.id,
                location_role=LocationRole(location_role),
                transfer_mechanism_id=transfer_mechanism_id,
                purpose_text=purpose_text,
                is_active=True,
            )
        )
        logger.info(
            "Added processing location %s (%s) to recipient %s",
            location.id,
            country.iso_code,
            recipient_id,
        )
        return LocationWriteResult(location, requirement, risk)

    def update_location(self, location_id: UUID, changes: Mapping[str, Any]) -> LocationWriteResult:
        """Partially update a processing location.

        The transfer requirement is re-checked whenever the country or
        the mechanism changes.

        Raises:
            ProcessingLocationNotFoundError: Unknown location or other organization.
            TransferValidationError: Required safeguard missing.
            ValueError: Unknown field in ``changes``.
        """
        unknown = set(changes) - LOCATION_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        location = self.locations.get_by_id(location_id, for_update=True)
        if location is None:
            raise ProcessingLocationNotFoundError(location_id)

        country = self._resolve_country(changes.get("country_id", location.country_id))
        mechanism_id = changes.get("transfer_mechanism_id", location.transfer_mechanism_id)
        if "country_id" in changes or "transfer_mechanism_id" in changes:
            requirement, risk = self._check_transfer(country, mechanism_id)
        else:
            requirement, risk = MechanismRequirement(valid=True, required=False), None

        self.locations.update(location, dict(changes))
        self.locations.session.expire(location, ["country", "transfer_mechanism"])
        return LocationWriteResult(location, requirement, risk)

    def move_location(
        self,
        location_id: UUID,
        country_id: UUID,
        transfer_mechanism_id: UUID | None = None,
    ) -> LocationWriteResult:
        """Move a processing location to another country.

        A new location is created and the old one deactivated in the same
        transaction; if validation fails neither change is made.

        Raises:
            ProcessingLocationNotFoundError: Unknown location or other organization.
            TransferValidationError: Required safeguard missing.
        """
        current = self.locations.get_by_id(location_id, for_update=True)
        if current is None:
            raise ProcessingLocationNotFoundError(location_id)

        result = self.create_location(
            recipient_id=current.recipient_id,
            service=current.service,
            country_id=country_id,
            location_role=current.location_role,
            transfer_mechanism_id=transfer_mechanism_id,
            purpose_text=current.purpose_text,
        )
        self.locations.update(current, {"is_active": False})
        logger.info("Moved processing location %s to %s", location_id, result.location.id)
        return result
