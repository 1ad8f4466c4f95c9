"""Recipient report endpoints.

Read-only views over the caller's organization used by compliance
dashboards. Registered ahead of the recipient item routes so that
``/recipients/reports/...`` is not parsed as a recipient id.
"""

from typing import Annotated

from fastapi import APIRouter, Query

from src.api.dependencies.services import RecipientQueriesDep
from src.api.schemas import (
    AgreementRead,
    DuplicateGroupRead,
    HierarchyHealthResponse,
    MissingAgreementsRead,
    RecipientRead,
    RecipientStatisticsResponse,
    ThirdCountryRecipientRead,
)

router = APIRouter(
    prefix="/recipients/reports",
    tags=["Reports"],
)


@router.get("/statistics", response_model=RecipientStatisticsResponse, summary="Recipient statistics")
def get_statistics(queries: RecipientQueriesDep) -> RecipientStatisticsResponse:
    """Counts by type, status, parent and agreement coverage."""
    return RecipientStatisticsResponse.model_validate(queries.get_recipient_statistics())


@router.get("/orphans", response_model=list[RecipientRead], summary="Orphaned recipients")
def get_orphans(queries: RecipientQueriesDep) -> list[RecipientRead]:
    """Sub-processors without parent and recipients with a dangling parent."""
    return [RecipientRead.model_validate(r) for r in queries.find_orphaned_recipients()]


@router.get(
    "/third-country",
    response_model=list[ThirdCountryRecipientRead],
    summary="Third-country recipients",
)
def get_third_country(queries: RecipientQueriesDep) -> list[ThirdCountryRecipientRead]:
    """Recipients whose legal entity is headquartered in a third country."""
    return [ThirdCountryRecipientRead.model_validate(r) for r in queries.get_third_country_recipients()]


@router.get(
    "/missing-agreements",
    response_model=list[MissingAgreementsRead],
    summary="Recipients missing agreements",
)
def get_missing_agreements(queries: RecipientQueriesDep) -> list[MissingAgreementsRead]:
    """Recipients without the agreements their type expects."""
    return [MissingAgreementsRead.model_validate(m) for m in queries.find_recipients_missing_agreements()]


@router.get("/unlinked", response_model=list[RecipientRead], summary="Unlinked recipients")
def get_unlinked(queries: RecipientQueriesDep) -> list[RecipientRead]:
    """Non-internal recipients without an external organization."""
    return [RecipientRead.model_validate(r) for r in queries.find_unlinked_recipients()]


@router.get(
    "/without-activities",
    response_model=list[RecipientRead],
    summary="Recipients without activities",
)
def get_without_activities(queries: RecipientQueriesDep) -> list[RecipientRead]:
    """Active recipients no processing activity refers to."""
    return [RecipientRead.model_validate(r) for r in queries.find_recipients_without_activities()]


@router.get("/health", response_model=HierarchyHealthResponse, summary="Hierarchy health")
def get_health(queries: RecipientQueriesDep) -> HierarchyHealthResponse:
    """Cycle, depth and type violations across the organization."""
    return HierarchyHealthResponse.model_validate(queries.check_hierarchy_health())


@router.get(
    "/duplicate-organizations",
    response_model=list[DuplicateGroupRead],
    summary="Duplicate external organizations",
)
def get_duplicate_organizations(
    queries: RecipientQueriesDep,
    threshold: Annotated[float | None, Query(gt=0.0, le=1.0)] = None,
) -> list[DuplicateGroupRead]:
    """Groups of external organizations with near-identical names."""
    groups = queries.find_duplicate_external_organizations(threshold)
    return [DuplicateGroupRead.model_validate(g) for g in groups]


@router.get(
    "/expiring-agreements",
    response_model=list[AgreementRead],
    summary="Expiring agreements",
)
def get_expiring_agreements(
    queries: RecipientQueriesDep,
    days: Annotated[int | None, Query(ge=0, le=365)] = None,
) -> list[AgreementRead]:
    """Agreements in force expiring within the window, overdue ones included."""
    return [AgreementRead.model_validate(a) for a in queries.get_expiring_agreements(days)]
