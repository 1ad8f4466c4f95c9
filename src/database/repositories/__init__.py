"""Database repositories for the Compilo compliance engine.

Provides repository pattern implementations for shared reference
data and tenant-scoped compliance records.

Usage:
    from src.database.repositories import RecipientRepository
    from src.database import get_database

    db = get_database()
    with db.session() as session:
        repo = RecipientRepository(session, organization_id)
        children = repo.get_children(recipient_id)
"""

from src.database.repositories.activity import ActivityRepository
from src.database.repositories.base import BaseRepository, TenantRepository
from src.database.repositories.external import (
    AgreementRepository,
    ExternalOrganizationRepository,
)
from src.database.repositories.location import ProcessingLocationRepository
from src.database.repositories.organization import OrganizationRepository
from src.database.repositories.recipient import RecipientRepository
from src.database.repositories.reference import (
    CountryRepository,
    TransferMechanismRepository,
)

__all__ = [
    # Base
    "BaseRepository",
    "TenantRepository",
    # Reference data
    "CountryRepository",
    "TransferMechanismRepository",
    "OrganizationRepository",
    # Tenant data
    "RecipientRepository",
    "ExternalOrganizationRepository",
    "AgreementRepository",
    "ActivityRepository",
    "ProcessingLocationRepository",
]
