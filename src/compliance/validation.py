"""Recipient validation.

Validation never raises for rule violations: it returns a
``ValidationResult`` holding blocking errors and advisory warnings so
callers can present every problem at once. Mutating services turn a
failed result into ``HierarchyValidationError``.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from src.compliance.hierarchy import HierarchyManager
from src.compliance.hierarchy_rules import (
    AGREEMENT_EXPECTED_TYPES,
    effective_hierarchy_type,
    get_hierarchy_rule,
    get_max_depth,
    is_allowed_parent,
)
from src.database.models.enums import HierarchyType, RecipientType
from src.database.models.recipient import Recipient
from src.database.repositories.external import (
    AgreementRepository,
    ExternalOrganizationRepository,
)
from src.monitoring.metrics import HIERARCHY_VALIDATION_FAILURES

logger = logging.getLogger(__name__)

# Same wording for missing and foreign parents
PARENT_NOT_FOUND_MESSAGE = "Parent recipient not found in this organization"
EXTERNAL_ORG_NOT_FOUND_MESSAGE = "External organization not found in this organization"


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass(frozen=True)
class ValidationIssue:
    """One validation finding.

    Attributes:
        field: Input field the issue is about.
        rule: Stable rule identifier (e.g. ``depth_exceeded``).
        message: Human-readable remediation message.
        value: Offending value, if any.
    """

    field: str
    rule: str
    message: str
    value: Any = None


@dataclass
class ValidationResult:
    """Blocking errors and advisory warnings from one validation pass."""

    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """True when no blocking error was found."""
        return not self.errors

    def add_error(self, field_name: str, rule: str, message: str, value: Any = None) -> None:
        """Record a blocking issue."""
        self.errors.append(ValidationIssue(field_name, rule, message, value))

    def add_warning(self, field_name: str, rule: str, message: str, value: Any = None) -> None:
        """Record an advisory issue."""
        self.warnings.append(ValidationIssue(field_name, rule, message, value))

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        """Append another result's issues to this one."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        return self

    def has_rule(self, rule: str) -> bool:
        """Whether any error or warning carries ``rule``."""
        return any(issue.rule == rule for issue in (*self.errors, *self.warnings))


# =============================================================================
# PURE CHECKS
# =============================================================================


def validate_recipient_data(
    recipient_type: RecipientType,
    external_organization_id: UUID | None,
) -> ValidationResult:
    """Check the external organization link required by a recipient type.

    Args:
        recipient_type: Recipient role.
        external_organization_id: Linked legal entity, if any.

    Returns:
        Error when a required link is missing, warning when an internal
        department is linked to an external entity.
    """
    result = ValidationResult()
    rule = get_hierarchy_rule(recipient_type)
    if rule.requires_external_organization and external_organization_id is None:
        result.add_error(
            "external_organization_id",
            "external_organization_required",
            f"Recipient type {recipient_type} requires an external organization",
        )
    if recipient_type == RecipientType.INTERNAL_DEPARTMENT and external_organization_id is not None:
        result.add_warning(
            "external_organization_id",
            "internal_department_linked",
            "Internal departments usually do not reference an external organization",
            external_organization_id,
        )
    return result


def validate_hierarchy_type(
    recipient_type: RecipientType,
    hierarchy_type: HierarchyType | None,
) -> ValidationResult:
    """Check an explicit hierarchy type against the recipient type."""
    result = ValidationResult()
    if hierarchy_type is None:
        return result
    rule = get_hierarchy_rule(recipient_type)
    if HierarchyType(hierarchy_type) not in rule.allowed_hierarchy_types:
        allowed = ", ".join(sorted(rule.allowed_hierarchy_types))
        result.add_error(
            "hierarchy_type",
            "hierarchy_type_mismatch",
            f"Hierarchy type {hierarchy_type} is not valid for recipient type "
            f"{recipient_type}. Allowed types: {allowed}",
            hierarchy_type,
        )
    return result


def record_failures(result: ValidationResult) -> None:
    """Count blocking issues per rule."""
    for issue in result.errors:
        HIERARCHY_VALIDATION_FAILURES.labels(rule=issue.rule).inc()


# =============================================================================
# STORAGE-BACKED VALIDATOR
# =============================================================================


class RecipientValidator:
    """Validates recipient writes against one organization's data."""

    def __init__(self, session: Session, manager: HierarchyManager) -> None:
        self.manager = manager
        self.organization_id = manager.organization_id
        self.external_organizations = ExternalOrganizationRepository(session, self.organization_id)
        self.agreements = AgreementRepository(session, self.organization_id)

    def validate_hierarchy(
        self,
        recipient_type: RecipientType,
        parent_recipient_id: UUID | None,
        recipient_id: UUID | None = None,
        hierarchy_type: HierarchyType | None = None,
        lock: bool = False,
    ) -> ValidationResult:
        """Validate the position of a recipient in the tree.

        Checks, in order: explicit hierarchy type, whether the type may
        have a parent, parent existence in the organization, parent type,
        hierarchy type consistency with the parent, then (only when no
        error was found) cycles and depth caps for the recipient and,
        when it already exists, for every descendant moving with it.

        Args:
            recipient_type: Type the recipient has (or will have).
            parent_recipient_id: Proposed parent or None.
            recipient_id: Existing recipient being updated, None on create.
            hierarchy_type: Explicit hierarchy type or None for the default.
            lock: Lock the parent chain rows for the transaction.

        Returns:
            ValidationResult.
        """
        result = validate_hierarchy_type(recipient_type, hierarchy_type)
        effective = effective_hierarchy_type(recipient_type, hierarchy_type)

        if recipient_id is not None and not result.errors:
            self._check_children_compatible(recipient_id, recipient_type, effective, result)

        if parent_recipient_id is None:
            if recipient_id is not None and not result.errors:
                self._check_subtree_depth(recipient_id, 0, result)
            record_failures(result)
            return result

        rule = get_hierarchy_rule(recipient_type)
        if not rule.can_have_parent:
            result.add_error(
                "parent_recipient_id",
                "parent_not_allowed",
                f"Recipient type {recipient_type} cannot have a parent according to hierarchy rules",
                parent_recipient_id,
            )
            record_failures(result)
            return result

        parent = self.manager.recipients.get_by_id(parent_recipient_id, for_update=lock)
        if parent is None:
            result.add_error(
                "parent_recipient_id",
                "parent_not_in_organization",
                PARENT_NOT_FOUND_MESSAGE,
                parent_recipient_id,
            )
            record_failures(result)
            return result

        if not is_allowed_parent(recipient_type, parent.type):
            allowed = ", ".join(sorted(rule.allowed_parent_types))
            result.add_error(
                "parent_recipient_id",
                "parent_type_incompatible",
                f"Parent recipient type {parent.type} is not an allowed parent type for "
                f"{recipient_type}. Allowed types: {allowed}",
                parent_recipient_id,
            )

        parent_effective = effective_hierarchy_type(parent.type, parent.hierarchy_type)
        if parent_effective is not None and effective is not None and parent_effective != effective:
            result.add_error(
                "hierarchy_type",
                "hierarchy_type_mismatch",
                f"Hierarchy type {effective} does not match the parent's hierarchy type "
                f"{parent_effective}",
                effective,
            )

        if not parent.is_active:
            result.add_warning(
                "parent_recipient_id",
                "inactive_parent",
                f"Parent recipient {parent.name} is inactive",
                parent_recipient_id,
            )

        if not result.errors:
            self._check_cycle_and_depth(parent, recipient_id, effective, lock, result)

        record_failures(result)
        return result

    def _check_cycle_and_depth(
        self,
        parent: Recipient,
        recipient_id: UUID | None,
        effective: HierarchyType | None,
        lock: bool,
        result: ValidationResult,
    ) -> None:
        if recipient_id is not None and self.manager.check_circular_reference(parent.id, recipient_id):
            result.add_error(
                "parent_recipient_id",
                "circular_reference",
                "Setting this parent would create a circular reference in the hierarchy",
                parent.id,
            )
            return

        depth = len(list(self.manager.iter_ancestors(parent, for_update=lock))) + 1
        max_depth = get_max_depth(effective, self.manager.limits)
        if depth > max_depth:
            result.add_error(
                "parent_recipient_id",
                "depth_exceeded",
                f"Setting this parent would result in depth {depth}, which exceeds "
                f"maximum depth of {max_depth} for type {effective}",
                depth,
            )
            return

        if recipient_id is not None:
            self._check_subtree_depth(recipient_id, depth, result)

    def _check_subtree_depth(self, recipient_id: UUID, new_depth: int, result: ValidationResult) -> None:
        for row in self.manager.get_descendants(recipient_id):
            descendant = row.recipient
            depth = new_depth + row.depth
            max_depth = get_max_depth(
                effective_hierarchy_type(descendant.type, descendant.hierarchy_type),
                self.manager.limits,
            )
            if depth > max_depth:
                result.add_error(
                    "parent_recipient_id",
                    "depth_exceeded",
                    f"Moving this recipient would place descendant {descendant.name} at depth "
                    f"{depth}, which exceeds maximum depth of {max_depth}",
                    descendant.id,
                )

    def _check_children_compatible(
        self,
        recipient_id: UUID,
        recipient_type: RecipientType,
        effective: HierarchyType | None,
        result: ValidationResult,
    ) -> None:
        for child in self.manager.recipients.get_children(recipient_id):
            if not is_allowed_parent(child.type, recipient_type):
                result.add_error(
                    "type",
                    "child_type_incompatible",
                    f"Recipient type {recipient_type} is not an allowed parent type for "
                    f"child {child.name} of type {child.type}",
                    child.id,
                )
                continue
            child_effective = effective_hierarchy_type(child.type, child.hierarchy_type)
            if effective is not None and child_effective is not None and child_effective != effective:
                result.add_error(
                    "hierarchy_type",
                    "hierarchy_type_mismatch",
                    f"Hierarchy type {effective} does not match the hierarchy type "
                    f"{child_effective} of child {child.name}",
                    child.id,
                )

    def validate_external_org_tenant(self, external_organization_id: UUID | None) -> ValidationResult:
        """Check that a linked external organization belongs to the tenant."""
        result = ValidationResult()
        if external_organization_id is None:
            return result
        if self.external_organizations.get_by_id(external_organization_id) is None:
            result.add_error(
                "external_organization_id",
                "external_organization_not_in_organization",
                EXTERNAL_ORG_NOT_FOUND_MESSAGE,
                external_organization_id,
            )
        record_failures(result)
        return result

    def validate_required_agreements(
        self,
        recipient: Recipient,
        today: date | None = None,
    ) -> ValidationResult:
        """Warn about agreements a recipient is expected to hold.

        Types with explicit required agreement types (PROCESSOR needs a DPA,
        JOINT_CONTROLLER a joint controller agreement) are checked per type;
        other agreement-bearing types only need one agreement in force.

        Args:
            recipient: Recipient to check (may be transient).
            today: Reference date for expiry.

        Returns:
            ValidationResult containing warnings only.
        """
        result = ValidationResult()
        if recipient.type not in AGREEMENT_EXPECTED_TYPES or recipient.external_organization_id is None:
            return result

        in_force = self.agreements.get_in_force_for_recipient(recipient, today)
        external_org = self.external_organizations.get_by_id(recipient.external_organization_id)
        legal_name = external_org.legal_name if external_org else str(recipient.external_organization_id)
        required_types = get_hierarchy_rule(recipient.type).required_agreement_types

        if required_types:
            held = {agreement.type for agreement in in_force}
            for agreement_type in required_types:
                if agreement_type not in held:
                    result.add_warning(
                        "agreements",
                        "missing_required_agreement",
                        f"Recipient type {recipient.type} is missing required {agreement_type} "
                        f"agreement with {legal_name}",
                        agreement_type,
                    )
        elif not in_force:
            result.add_warning(
                "agreements",
                "missing_active_agreement",
                f"No active agreement with {legal_name} covers this {recipient.type} recipient",
                recipient.external_organization_id,
            )
        return result
