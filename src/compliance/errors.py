"""Exception taxonomy of the compliance engine.

Expected conditions (not found, validation failure, blocked delete)
are raised as ``ComplianceError`` subclasses and mapped to HTTP status
codes by the API layer. ``HierarchyIntegrityError`` signals corrupted
data and is never recovered locally.
"""

from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from src.compliance.validation import ValidationResult


class ComplianceError(Exception):
    """Base exception for compliance operations."""

    pass


# =============================================================================
# NOT FOUND
# =============================================================================


class NotFoundError(ComplianceError):
    """Raised when an id does not resolve within the caller's scope.

    The message never says whether the entity exists in another
    organization.

    Attributes:
        entity: Entity name (e.g. "Recipient").
        entity_id: Identifier that failed to resolve.
    """

    entity = "Entity"

    def __init__(self, entity_id: UUID | str) -> None:
        self.entity_id = entity_id
        super().__init__(f"{self.entity} {entity_id} not found")


class RecipientNotFoundError(NotFoundError):
    """Raised when a recipient is unknown to the organization."""

    entity = "Recipient"


class OrganizationNotFoundError(NotFoundError):
    """Raised when the caller's organization does not exist."""

    entity = "Organization"


class CountryNotFoundError(NotFoundError):
    """Raised when a country id is unknown."""

    entity = "Country"


class TransferMechanismNotFoundError(NotFoundError):
    """Raised when a mechanism id is unknown or inactive."""

    entity = "Transfer mechanism"


class ActivityNotFoundError(NotFoundError):
    """Raised when a processing activity is unknown to the organization."""

    entity = "Processing activity"


class ExternalOrganizationNotFoundError(NotFoundError):
    """Raised when an external organization is unknown to the organization."""

    entity = "External organization"


class ProcessingLocationNotFoundError(NotFoundError):
    """Raised when a processing location is unknown to the organization."""

    entity = "Processing location"


# =============================================================================
# VALIDATION
# =============================================================================


class HierarchyValidationError(ComplianceError):
    """Raised when a write is rejected by hierarchy or data validation.

    Attributes:
        result: Full validation result, errors and warnings included.
    """

    def __init__(self, result: "ValidationResult") -> None:
        self.result = result
        messages = "; ".join(issue.message for issue in result.errors)
        super().__init__(messages or "Validation failed")


class TransferValidationError(ComplianceError):
    """Raised when a processing location lacks a required safeguard.

    Attributes:
        required: Whether a mechanism was legally required.
    """

    def __init__(self, message: str, required: bool = True) -> None:
        self.required = required
        super().__init__(message)


# =============================================================================
# CONFLICTS AND INTEGRITY
# =============================================================================


class ConflictOnDeleteError(ComplianceError):
    """Raised when a recipient still has dependents and cannot be deleted.

    Attributes:
        recipient_id: Recipient whose deletion was refused.
        reasons: Human-readable blocking reasons.
    """

    def __init__(self, recipient_id: UUID, reasons: list[str]) -> None:
        self.recipient_id = recipient_id
        self.reasons = reasons
        super().__init__(f"Recipient {recipient_id} cannot be deleted: {'; '.join(reasons)}")


class HierarchyIntegrityError(ComplianceError):
    """Raised when stored data breaks a hierarchy invariant (e.g. a cycle)."""

    pass


class OrganizationConfigurationError(ComplianceError):
    """Raised when the organization lacks data an operation depends on."""

    pass
