"""Recipient hierarchy and cross-border transfer compliance core.

Every stateful entry point is scoped to one organization; pure
functions (transfer risk, hierarchy rules) take plain values.
"""

from src.compliance.errors import (
    ActivityNotFoundError,
    ComplianceError,
    ConflictOnDeleteError,
    CountryNotFoundError,
    ExternalOrganizationNotFoundError,
    HierarchyIntegrityError,
    HierarchyValidationError,
    NotFoundError,
    OrganizationConfigurationError,
    OrganizationNotFoundError,
    ProcessingLocationNotFoundError,
    RecipientNotFoundError,
    TransferMechanismNotFoundError,
    TransferValidationError,
)
from src.compliance.hierarchy import DescendantRow, HierarchyManager, RecipientTreeNode
from src.compliance.queries import HierarchyHealthReport, RecipientQueries, RecipientStatistics
from src.compliance.recipients import RecipientPage, RecipientService, RecipientWriteResult
from src.compliance.transfer_risk import (
    MechanismRequirement,
    TransferRisk,
    TransferRiskLevel,
    TransferRiskReason,
    derive_transfer_risk,
    validate_transfer_mechanism_requirement,
)
from src.compliance.transfers import TransferService, evaluate_transfer
from src.compliance.validation import RecipientValidator, ValidationIssue, ValidationResult

__all__ = [
    # Errors
    "ActivityNotFoundError",
    "ComplianceError",
    "ConflictOnDeleteError",
    "CountryNotFoundError",
    "ExternalOrganizationNotFoundError",
    "HierarchyIntegrityError",
    "HierarchyValidationError",
    "NotFoundError",
    "OrganizationConfigurationError",
    "OrganizationNotFoundError",
    "ProcessingLocationNotFoundError",
    "RecipientNotFoundError",
    "TransferMechanismNotFoundError",
    "TransferValidationError",
    # Hierarchy
    "DescendantRow",
    "HierarchyManager",
    "RecipientTreeNode",
    # Services
    "HierarchyHealthReport",
    "RecipientPage",
    "RecipientQueries",
    "RecipientService",
    "RecipientStatistics",
    "RecipientWriteResult",
    "TransferService",
    "evaluate_transfer",
    # Transfer risk
    "MechanismRequirement",
    "TransferRisk",
    "TransferRiskLevel",
    "TransferRiskReason",
    "derive_transfer_risk",
    "validate_transfer_mechanism_requirement",
    # Validation
    "RecipientValidator",
    "ValidationIssue",
    "ValidationResult",
]
