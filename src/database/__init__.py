"""Database package for the Compilo compliance engine.

Provides database connection management, ORM models, repositories
and reference data seeding.

Usage:
    from src.database import get_database, RecipientRepository

    db = get_database()
    with db.session() as session:
        repo = RecipientRepository(session, organization_id)
        recipient = repo.get_by_id(recipient_id)
"""

from src.database.connection import (
    DatabaseConnection,
    close_database,
    get_database,
    get_session,
    init_database,
)
from src.database.models import (
    Agreement,
    Base,
    Country,
    DataProcessingActivity,
    ExternalOrganization,
    Organization,
    Recipient,
    RecipientProcessingLocation,
    TransferMechanism,
)
from src.database.repositories import (
    ActivityRepository,
    AgreementRepository,
    BaseRepository,
    CountryRepository,
    ExternalOrganizationRepository,
    OrganizationRepository,
    ProcessingLocationRepository,
    RecipientRepository,
    TenantRepository,
    TransferMechanismRepository,
)
from src.database.seed import seed_reference_data

__all__ = [
    # Connection
    "DatabaseConnection",
    "get_database",
    "get_session",
    "init_database",
    "close_database",
    # Models
    "Base",
    "Organization",
    "Country",
    "TransferMechanism",
    "ExternalOrganization",
    "Agreement",
    "Recipient",
    "RecipientProcessingLocation",
    "DataProcessingActivity",
    # Repositories
    "BaseRepository",
    "TenantRepository",
    "CountryRepository",
    "TransferMechanismRepository",
    "OrganizationRepository",
    "RecipientRepository",
    "ExternalOrganizationRepository",
    "AgreementRepository",
    "ActivityRepository",
    "ProcessingLocationRepository",
    # Seeding
    "seed_reference_data",
]
