"""Service dependencies bound to the caller's organization."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from src.api.database import get_db
from src.api.dependencies.auth import CurrentOrganizationId, CurrentUser
from src.compliance.queries import RecipientQueries
from src.compliance.recipients import RecipientService
from src.compliance.transfers import TransferService


def get_recipient_service(
    user: CurrentUser,
    organization_id: CurrentOrganizationId,
    db: Annotated[Session, Depends(get_db)],
) -> RecipientService:
    """Recipient service scoped to the token's organization."""
    return RecipientService(db, organization_id, user_id=user.sub)


def get_recipient_queries(
    organization_id: CurrentOrganizationId,
    db: Annotated[Session, Depends(get_db)],
) -> RecipientQueries:
    """Report queries scoped to the token's organization."""
    return RecipientQueries(db, organization_id)


def get_transfer_service(
    organization_id: CurrentOrganizationId,
    db: Annotated[Session, Depends(get_db)],
) -> TransferService:
    """Transfer service scoped to the token's organization."""
    return TransferService(db, organization_id)


RecipientServiceDep = Annotated[RecipientService, Depends(get_recipient_service)]
RecipientQueriesDep = Annotated[RecipientQueries, Depends(get_recipient_queries)]
TransferServiceDep = Annotated[TransferService, Depends(get_transfer_service)]
