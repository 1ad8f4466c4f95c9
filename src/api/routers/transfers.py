"""Cross-border transfer endpoints.

Pure risk evaluation of a country pair, detection of the transfers
implied by the caller's processing locations, and processing location
management with transfer validation.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from src.api.database import get_db
from src.api.dependencies.auth import CurrentUser
from src.api.dependencies.services import TransferServiceDep
from src.api.schemas import (
    ActivityTransferAnalysisResponse,
    CrossBorderTransferRead,
    LocationWriteResponse,
    ProcessingLocationCreate,
    ProcessingLocationMove,
    ProcessingLocationRead,
    ProcessingLocationUpdate,
    SubtreeJurisdictionRead,
    TransferEvaluationRequest,
    TransferEvaluationResponse,
    TransferListResponse,
)
from src.compliance.transfers import evaluate_transfer

router = APIRouter(tags=["Transfers"])


# =============================================================================
# EVALUATION & DETECTION
# =============================================================================


@router.post(
    "/transfers/evaluate",
    response_model=TransferEvaluationResponse,
    summary="Evaluate transfer risk",
    description="Risk level and safeguard requirement for two countries and an optional mechanism.",
)
def evaluate(
    request: TransferEvaluationRequest,
    _user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
) -> TransferEvaluationResponse:
    """Evaluate one country pair without touching recipient data."""
    evaluation = evaluate_transfer(
        db,
        request.source_country_id,
        request.destination_country_id,
        request.transfer_mechanism_id,
    )
    return TransferEvaluationResponse.model_validate(evaluation)


@router.get(
    "/transfers",
    response_model=TransferListResponse,
    summary="Detect cross-border transfers",
)
def list_transfers(service: TransferServiceDep) -> TransferListResponse:
    """Every non-NONE transfer implied by active recipients."""
    transfers = service.detect_cross_border_transfers()
    return TransferListResponse(
        transfers=[CrossBorderTransferRead.model_validate(t) for t in transfers],
        count=len(transfers),
    )


@router.get(
    "/transfers/activities/{activity_id}",
    response_model=ActivityTransferAnalysisResponse,
    summary="Activity transfer analysis",
)
def analyse_activity(activity_id: UUID, service: TransferServiceDep) -> ActivityTransferAnalysisResponse:
    """Transfers implied by the recipients of one processing activity."""
    analysis = service.get_activity_transfer_analysis(activity_id)
    return ActivityTransferAnalysisResponse.model_validate(analysis)


@router.get(
    "/recipients/{recipient_id}/transfer-assessment",
    response_model=list[SubtreeJurisdictionRead],
    summary="Subtree jurisdictions",
)
def assess_recipient(recipient_id: UUID, service: TransferServiceDep) -> list[SubtreeJurisdictionRead]:
    """Headquarters country of a recipient and of each descendant."""
    return [SubtreeJurisdictionRead.model_validate(n) for n in service.assess_cross_border_transfers(recipient_id)]


# =============================================================================
# PROCESSING LOCATIONS
# =============================================================================


@router.get(
    "/recipients/{recipient_id}/locations",
    response_model=list[ProcessingLocationRead],
    summary="List processing locations",
)
def list_locations(
    recipient_id: UUID,
    service: TransferServiceDep,
    active_only: Annotated[bool, Query()] = True,
) -> list[ProcessingLocationRead]:
    """Processing locations of one recipient."""
    locations = service.list_locations(recipient_id, active_only=active_only)
    return [ProcessingLocationRead.model_validate(loc) for loc in locations]


@router.post(
    "/recipients/{recipient_id}/locations",
    response_model=LocationWriteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add processing location",
)
def create_location(
    recipient_id: UUID,
    request: ProcessingLocationCreate,
    service: TransferServiceDep,
) -> LocationWriteResponse:
    """Attach a location; refused with 422 when a required safeguard is missing."""
    result = service.create_location(
        recipient_id=recipient_id,
        service=request.service,
        country_id=request.country_id,
        location_role=request.location_role,
        transfer_mechanism_id=request.transfer_mechanism_id,
        purpose_text=request.purpose_text,
    )
    return LocationWriteResponse.model_validate(result)


@router.patch(
    "/locations/{location_id}",
    response_model=LocationWriteResponse,
    summary="Update processing location",
)
def update_location(
    location_id: UUID,
    request: ProcessingLocationUpdate,
    service: TransferServiceDep,
) -> LocationWriteResponse:
    """Partial update; country or mechanism changes are re-validated."""
    changes = request.model_dump(exclude_unset=True)
    for name in ("service", "country_id", "location_role"):
        if name in changes and changes[name] is None:
            del changes[name]
    return LocationWriteResponse.model_validate(service.update_location(location_id, changes))


@router.post(
    "/locations/{location_id}/move",
    response_model=LocationWriteResponse,
    summary="Move processing location",
    description="Creates the location in the new country and deactivates the old one.",
)
def move_location(
    location_id: UUID,
    request: ProcessingLocationMove,
    service: TransferServiceDep,
) -> LocationWriteResponse:
    """Move a location to another country atomically."""
    result = service.move_location(location_id, request.country_id, request.transfer_mechanism_id)
    return LocationWriteResponse.model_validate(result)
