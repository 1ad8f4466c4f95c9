"""Advanced read-only recipient queries.

Derived views over one organization's recipients: orphans, third-country
recipients, statistics, duplicates, expiring agreements, missing links
and the hierarchy health report. Nothing here writes.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from src.compliance.duplicates import DuplicateGroup, find_duplicate_groups
from src.compliance.errors import ActivityNotFoundError
from src.compliance.hierarchy import HierarchyManager
from src.compliance.hierarchy_rules import (
    effective_hierarchy_type,
    get_hierarchy_rule,
    get_max_depth,
    is_allowed_parent,
)
from src.compliance.recipients import RecipientPage, RecipientService
from src.compliance.transfer_risk import is_third_country
from src.compliance.validation import RecipientValidator, ValidationIssue
from src.database.models.enums import RecipientType
from src.database.models.external import Agreement, ExternalOrganization
from src.database.models.recipient import Recipient
from src.database.models.reference import Country
from src.database.repositories.activity import ActivityRepository
from src.database.repositories.external import (
    AgreementRepository,
    ExternalOrganizationRepository,
)
from src.settings import ComplianceSettings, HierarchySettings, settings

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass
class RecipientStatistics:
    """Aggregate counts for one organization."""

    total_recipients: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    with_parent: int = 0
    without_parent: int = 0
    active: int = 0
    inactive: int = 0
    with_agreements: int = 0
    without_agreements: int = 0
    third_country_recipients: int = 0


@dataclass(frozen=True)
class ThirdCountryRecipient:
    """Recipient whose legal entity is headquartered in a third country."""

    recipient: Recipient
    external_organization: ExternalOrganization
    country: Country


@dataclass(frozen=True)
class MissingAgreements:
    """Recipient lacking agreements it is expected to hold."""

    recipient: Recipient
    issues: list[ValidationIssue]


@dataclass(frozen=True)
class DepthViolation:
    """Recipient deeper than its hierarchy type allows."""

    recipient_id: UUID
    depth: int
    max_depth: int


@dataclass(frozen=True)
class TypeViolation:
    """Parent/child pair breaking the type compatibility rules."""

    recipient_id: UUID
    parent_recipient_id: UUID
    message: str


@dataclass
class HierarchyHealthReport:
    """Structural health of an organization's recipient graph.

    Attributes:
        total_recipients: Recipients inspected.
        cycles: Each cycle as the list of recipient ids on it.
        depth_violations: Recipients past their depth cap.
        type_violations: Incompatible parent/child pairs.
        orphans: Sub-processors without parent or recipients with a dangling parent.
        unlinked: Non-internal recipients without external organization.
        children_of_inactive_parents: Active recipients under a deactivated parent.
        missing_agreements: Recipients lacking expected agreements.
    """

    total_recipients: int = 0
    cycles: list[list[UUID]] = field(default_factory=list)
    depth_violations: list[DepthViolation] = field(default_factory=list)
    type_violations: list[TypeViolation] = field(default_factory=list)
    orphans: list[UUID] = field(default_factory=list)
    unlinked: list[UUID] = field(default_factory=list)
    children_of_inactive_parents: list[UUID] = field(default_factory=list)
    missing_agreements: list[UUID] = field(default_factory=list)

    @property
    def is_healthy(self) -> bool:
        """True when no structural violation was found."""
        return not (self.cycles or self.depth_violations or self.type_violations or self.orphans)

    @property
    def counts(self) -> dict[str, int]:
        """Number of findings per category, for dashboards."""
        return {
            "cycles": len(self.cycles),
            "depth_violations": len(self.depth_violations),
            "type_violations": len(self.type_violations),
            "orphans": len(self.orphans),
            "unlinked": len(self.unlinked),
            "children_of_inactive_parents": len(self.children_of_inactive_parents),
            "missing_agreements": len(self.missing_agreements),
        }


# =============================================================================
# QUERY SERVICE
# =============================================================================


class RecipientQueries:
    """Read-only analytics over one organization's recipients."""

    def __init__(
        self,
        session: Session,
        organization_id: UUID,
        limits: HierarchySettings | None = None,
        thresholds: ComplianceSettings | None = None,
    ) -> None:
        """Initialize the query service.

        Args:
            session: SQLAlchemy session.
            organization_id: Tenant scope.
            limits: Hierarchy caps (defaults to settings).
            thresholds: Duplicate and expiry thresholds (defaults to settings).
        """
        self.organization_id = organization_id
        self.thresholds = thresholds or settings.compliance
        self.manager = HierarchyManager(session, organization_id, limits)
        self.recipients = self.manager.recipients
        self.validator = RecipientValidator(session, self.manager)
        self.external_organizations = ExternalOrganizationRepository(session, organization_id)
        self.agreements = AgreementRepository(session, organization_id)
        self.activities = ActivityRepository(session, organization_id)
        self._session = session

    def get_recipients_by_type(
        self,
        recipient_type: RecipientType,
        cursor: UUID | None = None,
        limit: int = 50,
    ) -> RecipientPage:
        """Active recipients of one type, cursor-paginated."""
        service = RecipientService(self._session, self.organization_id, limits=self.manager.limits)
        return service.list_recipients(
            limit=limit,
            recipient_type=recipient_type,
            is_active=True,
            cursor=cursor,
        )

    def find_orphaned_recipients(self) -> list[Recipient]:
        """Sub-processors without a parent and recipients whose parent is missing."""
        found = {r.id: r for r in self.recipients.find_sub_processors_without_parent()}
        for recipient in self.recipients.find_with_missing_parent():
            found.setdefault(recipient.id, recipient)
        return sorted(found.values(), key=lambda r: (r.name, str(r.id)))

    def get_recipients_for_activity(self, activity_id: UUID) -> list[Recipient]:
        """Recipients linked to a processing activity.

        Raises:
            ActivityNotFoundError: Unknown activity or other organization.
        """
        if self.activities.get_by_id(activity_id) is None:
            raise ActivityNotFoundError(activity_id)
        return self.recipients.get_for_activity(activity_id)

    def get_third_country_recipients(self) -> list[ThirdCountryRecipient]:
        """Active recipients whose external organization sits in a third country."""
        recipients = [r for r in self.recipients.list_all(active_only=True) if r.external_organization_id]
        orgs = self.external_organizations.get_many(r.external_organization_id for r in recipients)
        found = []
        for recipient in recipients:
            org = orgs.get(recipient.external_organization_id)
            country = org.headquarters_country if org else None
            if country is not None and is_third_country(country):
                found.append(ThirdCountryRecipient(recipient, org, country))
        return found

    def get_recipient_statistics(self) -> RecipientStatistics:
        """Counts by type, status, parent, agreement coverage and jurisdiction."""
        recipients = self.recipients.list_all()
        stats = RecipientStatistics(total_recipients=len(recipients))
        stats.by_type = {str(t): n for t, n in sorted(self.recipients.count_by_type().items())}
        stats.with_parent = sum(1 for r in recipients if r.parent_recipient_id is not None)
        stats.without_parent = stats.total_recipients - stats.with_parent
        stats.active = sum(1 for r in recipients if r.is_active)
        stats.inactive = stats.total_recipients - stats.active

        covered = self._recipients_with_agreements(recipients)
        stats.with_agreements = len(covered)
        stats.without_agreements = stats.total_recipients - stats.with_agreements
        stats.third_country_recipients = len(self.get_third_country_recipients())
        return stats

    def _recipients_with_agreements(self, recipients: list[Recipient]) -> set[UUID]:
        agreements = self.agreements.get_in_force_for_external_organizations(
            {r.external_organization_id for r in recipients if r.external_organization_id}
        )
        by_org: dict[UUID, list[Agreement]] = {}
        for agreement in agreements:
            by_org.setdefault(agreement.external_organization_id, []).append(agreement)
        return {
            r.id
            for r in recipients
            if any(a.recipient_id in (None, r.id) for a in by_org.get(r.external_organization_id, []))
        }

    def find_duplicate_external_organizations(self, threshold: float | None = None) -> list[DuplicateGroup]:
        """External organizations with near-identical names."""
        threshold = threshold if threshold is not None else self.thresholds.duplicate_name_similarity
        return find_duplicate_groups(self.external_organizations.list_all(), threshold)

    def get_expiring_agreements(self, days: int | None = None, today: date | None = None) -> list[Agreement]:
        """Agreements in force expiring within ``days`` (overdue ones included)."""
        days = days if days is not None else self.thresholds.agreement_expiry_window_days
        today = today or date.today()
        return self.agreements.get_expiring(today + timedelta(days=days))

    def find_recipients_without_activities(self) -> list[Recipient]:
        """Active recipients not used by any processing activity."""
        return self.recipients.find_without_activities()

    def find_recipients_missing_agreements(self, today: date | None = None) -> list[MissingAgreements]:
        """Active recipients lacking the agreements their type expects."""
        found = []
        for recipient in self.recipients.list_all(active_only=True):
            result = self.validator.validate_required_agreements(recipient, today)
            if result.warnings:
                found.append(MissingAgreements(recipient, result.warnings))
        return found

    def find_unlinked_recipients(self) -> list[Recipient]:
        """Active non-internal recipients with no external organization."""
        return self.recipients.find_unlinked()

    # -------------------------------------------------------------------------
    # Health report
    # -------------------------------------------------------------------------

    def check_hierarchy_health(self) -> HierarchyHealthReport:
        """Inspect the whole recipient graph of the organization.

        The graph is loaded once and walked iteratively, so cycles are
        reported instead of raising.
        """
        recipients = self.recipients.list_all()
        by_id = {r.id: r for r in recipients}
        report = HierarchyHealthReport(total_recipients=len(recipients))

        depths = self._compute_depths(by_id, report)

        for recipient in recipients:
            depth = depths.get(recipient.id)
            hierarchy_type = effective_hierarchy_type(recipient.type, recipient.hierarchy_type)
            max_depth = get_max_depth(hierarchy_type, self.manager.limits)
            if depth is not None and depth > max_depth:
                report.depth_violations.append(DepthViolation(recipient.id, depth, max_depth))

            parent = by_id.get(recipient.parent_recipient_id) if recipient.parent_recipient_id else None
            if parent is not None:
                message = self._type_violation(recipient, parent)
                if message:
                    report.type_violations.append(TypeViolation(recipient.id, parent.id, message))
                if recipient.is_active and not parent.is_active:
                    report.children_of_inactive_parents.append(recipient.id)

        report.orphans = [r.id for r in self.find_orphaned_recipients()]
        report.unlinked = [r.id for r in self.find_unlinked_recipients()]
        report.missing_agreements = [m.recipient.id for m in self.find_recipients_missing_agreements()]

        logger.info(
            "Hierarchy health for organization %s: %s",
            self.organization_id,
            ", ".join(f"{k}={v}" for k, v in report.counts.items()),
        )
        return report

    @staticmethod
    def _compute_depths(
        by_id: dict[UUID, Recipient],
        report: HierarchyHealthReport,
    ) -> dict[UUID, int | None]:
        """Depth of every recipient; None for nodes on or above a cycle."""
        depths: dict[UUID, int | None] = {}
        for start in by_id:
            path: list[UUID] = []
            position: dict[UUID, int] = {}
            node: UUID | None = start
            while node is not None and node in by_id and node not in depths and node not in position:
                position[node] = len(path)
                path.append(node)
                node = by_id[node].parent_recipient_id

            base: int | None
            if node is not None and node in position:
                cycle = path[position[node]:]
                report.cycles.append(cycle)
                for member in cycle:
                    depths[member] = None
                path = path[: position[node]]
                base = None
            elif node is None or node not in by_id:
                base = -1
            else:
                base = depths[node]

            for member in reversed(path):
                base = None if base is None else base + 1
                depths[member] = base
        return depths

    @staticmethod
    def _type_violation(recipient: Recipient, parent: Recipient) -> str | None:
        rule = get_hierarchy_rule(recipient.type)
        if not rule.can_have_parent:
            return f"Recipient type {recipient.type} cannot have a parent"
        if not is_allowed_parent(recipient.type, parent.type):
            return f"Parent type {parent.type} is not allowed for {recipient.type}"
        child_type = effective_hierarchy_type(recipient.type, recipient.hierarchy_type)
        parent_type = effective_hierarchy_type(parent.type, parent.hierarchy_type)
        if child_type and parent_type and child_type != parent_type:
            return f"Hierarchy type {child_type} does not match parent hierarchy type {parent_type}"
        return None

