"""SQLAlchemy ORM models for the Compilo compliance database.

This module exports all database models and the Base class
for use throughout the application.

Usage:
    from src.database.models import Base, Recipient, Country

Tables:
    - organizations: Tenants
    - countries: Jurisdictions with GDPR status tags
    - transfer_mechanisms: Legal safeguards for transfers
    - external_organizations: Vendors and partners
    - agreements: DPA, SCC and other contracts
    - recipients: Self-referential recipient hierarchy
    - recipient_processing_locations: Where recipients handle data
    - data_processing_activities: Article 30 records
    - data_processing_activity_recipients: Activity-Recipient association
"""

from src.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.database.models.enums import (
    ActivityStatus,
    AgreementStatus,
    AgreementType,
    GdprStatus,
    HierarchyType,
    LocationRole,
    MechanismCategory,
    RecipientType,
)
from src.database.models.external import Agreement, ExternalOrganization
from src.database.models.organization import Organization
from src.database.models.recipient import (
    DataProcessingActivity,
    Recipient,
    RecipientProcessingLocation,
    activity_recipients,
)
from src.database.models.reference import Country, TransferMechanism

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    # Enums
    "ActivityStatus",
    "AgreementStatus",
    "AgreementType",
    "GdprStatus",
    "HierarchyType",
    "LocationRole",
    "MechanismCategory",
    "RecipientType",
    # Tenant
    "Organization",
    # Reference data
    "Country",
    "TransferMechanism",
    # External parties
    "ExternalOrganization",
    "Agreement",
    # Recipients
    "Recipient",
    "RecipientProcessingLocation",
    "DataProcessingActivity",
    "activity_recipients",
]
