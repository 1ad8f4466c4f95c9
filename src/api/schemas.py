"""Pydantic schemas for API request/response validation.

Defines data transfer objects for authentication, recipients,
reports and cross-border transfers.
"""

from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.compliance.transfer_risk import TransferRiskLevel, TransferRiskReason
from src.database.models.enums import (
    AgreementStatus,
    AgreementType,
    HierarchyType,
    LocationRole,
    MechanismCategory,
    RecipientType,
)

# =============================================================================
# HEALTH
# =============================================================================


class DatabaseComponentHealth(BaseModel):
    """Database connection health status."""

    connected: bool = False


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str = Field(examples=["healthy"])
    version: str = Field(examples=["1.0.0"])
    database: DatabaseComponentHealth = Field(default_factory=DatabaseComponentHealth)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


# =============================================================================
# AUTHENTICATION
# =============================================================================


class TokenRequest(BaseModel):
    """Token request schema (login credentials)."""

    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=8, max_length=100)


class TokenResponse(BaseModel):
    """JWT token response schema."""

    access_token: str
    token_type: str = Field(default="bearer")
    expires_in: int = Field(description="Token lifetime in seconds")
    organization_id: UUID


# =============================================================================
# VALIDATION
# =============================================================================


class ValidationIssueSchema(BaseModel):
    """One blocking error or advisory warning."""

    model_config = ConfigDict(from_attributes=True)

    field: str
    rule: str
    message: str
    value: Any = None


class ValidationResultResponse(BaseModel):
    """Outcome of a dry-run validation."""

    model_config = ConfigDict(from_attributes=True)

    is_valid: bool
    errors: list[ValidationIssueSchema] = Field(default_factory=list)
    warnings: list[ValidationIssueSchema] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error body returned by the exception handlers."""

    detail: str
    errors: list[ValidationIssueSchema] = Field(default_factory=list)
    warnings: list[ValidationIssueSchema] = Field(default_factory=list)
    reasons: list[str] = Field(default_factory=list)


# =============================================================================
# REFERENCE DATA
# =============================================================================


class CountryRead(BaseModel):
    """Country with its GDPR status tags."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    iso_code: str
    gdpr_status: list[str] = Field(default_factory=list)


class TransferMechanismRead(BaseModel):
    """Legal instrument permitting a transfer."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    name: str
    gdpr_article: str | None = None
    category: MechanismCategory


class ExternalOrganizationRead(BaseModel):
    """Legal entity behind one or more recipient roles."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    legal_name: str
    trading_name: str | None = None
    headquarters_country_id: UUID | None = None


class AgreementRead(BaseModel):
    """Contract with an external organization."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    external_organization_id: UUID
    recipient_id: UUID | None = None
    type: AgreementType
    status: AgreementStatus
    reference: str | None = None
    signed_date: date | None = None
    expiry_date: date | None = None


# =============================================================================
# RECIPIENTS
# =============================================================================


class RecipientCreate(BaseModel):
    """Recipient creation payload."""

    name: str = Field(min_length=1, max_length=255)
    type: RecipientType
    description: str | None = None
    purpose: str | None = None
    external_organization_id: UUID | None = None
    parent_recipient_id: UUID | None = None
    hierarchy_type: HierarchyType | None = None


class RecipientUpdate(BaseModel):
    """Partial recipient update; only fields sent are changed."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    type: RecipientType | None = None
    description: str | None = None
    purpose: str | None = None
    external_organization_id: UUID | None = None
    parent_recipient_id: UUID | None = None
    hierarchy_type: HierarchyType | None = None


class RecipientRead(BaseModel):
    """Recipient as stored."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    name: str
    type: RecipientType
    description: str | None = None
    purpose: str | None = None
    external_organization_id: UUID | None = None
    parent_recipient_id: UUID | None = None
    hierarchy_type: HierarchyType | None = None
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RecipientWriteResponse(BaseModel):
    """Written recipient and the warnings validation raised."""

    model_config = ConfigDict(from_attributes=True)

    recipient: RecipientRead
    warnings: list[ValidationIssueSchema] = Field(default_factory=list)


class RecipientListResponse(BaseModel):
    """Cursor-paginated recipient list."""

    data: list[RecipientRead]
    next_cursor: UUID | None = None


class DescendantRead(BaseModel):
    """Descendant with its depth relative to the subtree root."""

    model_config = ConfigDict(from_attributes=True)

    recipient: RecipientRead
    depth: int


class RecipientTreeRead(BaseModel):
    """Nested subtree."""

    model_config = ConfigDict(from_attributes=True)

    recipient: RecipientRead
    depth: int
    children: list["RecipientTreeRead"] = Field(default_factory=list)


class DescendantsResponse(BaseModel):
    """Subtree of a recipient, flat and nested."""

    root_id: UUID
    count: int
    descendants: list[DescendantRead]
    tree: RecipientTreeRead


class AncestorsResponse(BaseModel):
    """Ancestor chain, immediate parent first."""

    recipient_id: UUID
    ancestors: list[RecipientRead]


class DepthResponse(BaseModel):
    """Depth of a recipient and the cap of its hierarchy type."""

    recipient_id: UUID
    depth: int
    hierarchy_type: HierarchyType | None = None
    max_depth: int


class ParentValidationRequest(BaseModel):
    """Candidate parent for a dry-run re-parenting."""

    parent_recipient_id: UUID | None = None


# =============================================================================
# REPORTS
# =============================================================================


class RecipientStatisticsResponse(BaseModel):
    """Aggregate recipient counts."""

    model_config = ConfigDict(from_attributes=True)

    total_recipients: int
    by_type: dict[str, int]
    with_parent: int
    without_parent: int
    active: int
    inactive: int
    with_agreements: int
    without_agreements: int
    third_country_recipients: int


class ThirdCountryRecipientRead(BaseModel):
    """Recipient whose legal entity sits in a third country."""

    model_config = ConfigDict(from_attributes=True)

    recipient: RecipientRead
    external_organization: ExternalOrganizationRead
    country: CountryRead


class MissingAgreementsRead(BaseModel):
    """Recipient lacking expected agreements."""

    model_config = ConfigDict(from_attributes=True)

    recipient: RecipientRead
    issues: list[ValidationIssueSchema]


class DuplicateGroupRead(BaseModel):
    """Probable duplicates among external organizations."""

    model_config = ConfigDict(from_attributes=True)

    normalized_name: str
    similarity: float
    organizations: list[ExternalOrganizationRead]


class DepthViolationRead(BaseModel):
    """Recipient past its depth cap."""

    model_config = ConfigDict(from_attributes=True)

    recipient_id: UUID
    depth: int
    max_depth: int


class TypeViolationRead(BaseModel):
    """Incompatible parent/child pair."""

    model_config = ConfigDict(from_attributes=True)

    recipient_id: UUID
    parent_recipient_id: UUID
    message: str


class HierarchyHealthResponse(BaseModel):
    """Hierarchy health report for dashboards."""

    model_config = ConfigDict(from_attributes=True)

    is_healthy: bool
    total_recipients: int
    counts: dict[str, int]
    cycles: list[list[UUID]]
    depth_violations: list[DepthViolationRead]
    type_violations: list[TypeViolationRead]
    orphans: list[UUID]
    unlinked: list[UUID]
    children_of_inactive_parents: list[UUID]
    missing_agreements: list[UUID]


# =============================================================================
# TRANSFERS
# =============================================================================


class TransferEvaluationRequest(BaseModel):
    """Country pair and optional mechanism to evaluate."""

    source_country_id: UUID
    destination_country_id: UUID
    transfer_mechanism_id: UUID | None = None


class TransferRiskRead(BaseModel):
    """Derived transfer risk."""

    model_config = ConfigDict(from_attributes=True)

    level: TransferRiskLevel
    reason: TransferRiskReason
    mechanism: TransferMechanismRead | None = None


class MechanismRequirementRead(BaseModel):
    """Whether a safeguard is required and supplied."""

    model_config = ConfigDict(from_attributes=True)

    valid: bool
    required: bool
    error: str | None = None
    warning: str | None = None


class TransferEvaluationResponse(BaseModel):
    """Risk and requirement of one country pair."""

    model_config = ConfigDict(from_attributes=True)

    source: CountryRead
    destination: CountryRead
    risk: TransferRiskRead
    requirement: MechanismRequirementRead


class ProcessingLocationRead(BaseModel):
    """Place where a recipient hosts or processes data."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    recipient_id: UUID
    service: str
    country: CountryRead
    location_role: LocationRole
    transfer_mechanism_id: UUID | None = None
    purpose_text: str | None = None
    is_active: bool


class ProcessingLocationCreate(BaseModel):
    """Processing location creation payload."""

    service: str = Field(min_length=1, max_length=255)
    country_id: UUID
    location_role: LocationRole = LocationRole.BOTH
    transfer_mechanism_id: UUID | None = None
    purpose_text: str | None = None


class ProcessingLocationUpdate(BaseModel):
    """Partial processing location update."""

    service: str | None = Field(default=None, min_length=1, max_length=255)
    country_id: UUID | None = None
    location_role: LocationRole | None = None
    transfer_mechanism_id: UUID | None = None
    purpose_text: str | None = None


class ProcessingLocationMove(BaseModel):
    """Target country of a location move."""

    country_id: UUID
    transfer_mechanism_id: UUID | None = None


class LocationWriteResponse(BaseModel):
    """Written location and the transfer it implies."""

    model_config = ConfigDict(from_attributes=True)

    location: ProcessingLocationRead
    requirement: MechanismRequirementRead
    risk: TransferRiskRead | None = None


class CrossBorderTransferRead(BaseModel):
    """Transfer implied by one processing location."""

    model_config = ConfigDict(from_attributes=True)

    organization_country: CountryRead
    recipient: RecipientRead
    location: ProcessingLocationRead
    risk: TransferRiskRead
    depth: int


class TransferListResponse(BaseModel):
    """Detected cross-border transfers."""

    transfers: list[CrossBorderTransferRead]
    count: int


class CountryLocationCountRead(BaseModel):
    """Destination country ranked by transfer count."""

    model_config = ConfigDict(from_attributes=True)

    country: CountryRead
    location_count: int


class TransferSummaryRead(BaseModel):
    """Aggregates of an activity analysis."""

    model_config = ConfigDict(from_attributes=True)

    total_recipients: int
    recipients_with_transfers: int
    risk_distribution: dict[str, int]
    countries_involved: list[CountryLocationCountRead]


class ActivityTransferAnalysisResponse(BaseModel):
    """Transfers implied by one processing activity."""

    model_config = ConfigDict(from_attributes=True)

    activity_id: UUID
    activity_name: str
    organization_country: CountryRead
    transfers: list[CrossBorderTransferRead]
    summary: TransferSummaryRead


class SubtreeJurisdictionRead(BaseModel):
    """Headquarters country of one subtree node."""

    model_config = ConfigDict(from_attributes=True)

    recipient: RecipientRead
    depth: int
    country: CountryRead | None = None
