"""Recipient models.

Contains Recipient (self-referential hierarchy), its processing
locations, and processing activities linked to recipients.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Enum,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.database.models.enums import (
    ActivityStatus,
    HierarchyType,
    LocationRole,
    RecipientType,
)

if TYPE_CHECKING:
    from src.database.models.external import ExternalOrganization
    from src.database.models.reference import Country, TransferMechanism

# Foreign key references
ORGANIZATION_FK = "organizations.id"
RECIPIENT_FK = "recipients.id"


# =============================================================================
# ASSOCIATION TABLE
# =============================================================================

activity_recipients = Table(
    "data_processing_activity_recipients",
    Base.metadata,
    Column(
        "activity_id",
        Uuid,
        ForeignKey("data_processing_activities.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "recipient_id",
        Uuid,
        ForeignKey(RECIPIENT_FK, ondelete="CASCADE"),
        primary_key=True,
    ),
)


# =============================================================================
# RECIPIENT
# =============================================================================


class Recipient(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Party receiving or processing personal data for an organization.

    The parent is kept as a plain id and always resolved through a
    tenant-scoped query. Acyclicity and depth caps are enforced by the
    hierarchy manager before any write touching ``parent_recipient_id``.

    Attributes:
        id: Primary key.
        organization_id: Owning tenant.
        name: Display name.
        type: Recipient role.
        external_organization_id: Legal entity behind the role.
        parent_recipient_id: Parent in the same organization, if any.
        hierarchy_type: Tree kind deciding the depth cap.
        is_active: False once soft-deleted.
    """

    __tablename__ = "recipients"

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey(ORGANIZATION_FK, ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[RecipientType] = mapped_column(
        Enum(RecipientType, name="recipient_type"),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(Text)
    purpose: Mapped[str | None] = mapped_column(Text)

    # Links
    external_organization_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("external_organizations.id", ondelete="SET NULL"),
    )
    parent_recipient_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey(RECIPIENT_FK, ondelete="RESTRICT"),
    )
    hierarchy_type: Mapped[HierarchyType | None] = mapped_column(
        Enum(HierarchyType, name="hierarchy_type"),
    )

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    external_organization: Mapped["ExternalOrganization | None"] = relationship(
        "ExternalOrganization",
        back_populates="recipients",
    )
    processing_locations: Mapped[list["RecipientProcessingLocation"]] = relationship(
        "RecipientProcessingLocation",
        back_populates="recipient",
    )
    activities: Mapped[list["DataProcessingActivity"]] = relationship(
        "DataProcessingActivity",
        secondary=activity_recipients,
        back_populates="recipients",
    )

    __table_args__ = (
        CheckConstraint("parent_recipient_id IS NULL OR parent_recipient_id != id", name="chk_not_own_parent"),
        Index("idx_recipient_tenant_parent", "organization_id", "parent_recipient_id"),
        Index("idx_recipient_tenant_type", "organization_id", "type"),
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<Recipient(id={self.id}, name='{self.name}', type={self.type})>"


# =============================================================================
# PROCESSING LOCATION
# =============================================================================


class RecipientProcessingLocation(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Country where a recipient hosts or processes data.

    Attributes:
        id: Primary key.
        organization_id: Owning tenant.
        recipient_id: Recipient operating the location.
        service: Service or workload name.
        country_id: Destination jurisdiction.
        location_role: HOSTING, PROCESSING or BOTH.
        transfer_mechanism_id: Safeguard covering the transfer.
        is_active: False once moved or retired.
    """

    __tablename__ = "recipient_processing_locations"

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey(ORGANIZATION_FK, ondelete="CASCADE"),
        nullable=False,
    )
    recipient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey(RECIPIENT_FK, ondelete="RESTRICT"),
        nullable=False,
    )
    service: Mapped[str] = mapped_column(String(255), nullable=False)
    country_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("countries.id", ondelete="RESTRICT"),
        nullable=False,
    )
    location_role: Mapped[LocationRole] = mapped_column(
        Enum(LocationRole, name="location_role"),
        default=LocationRole.BOTH,
        nullable=False,
    )
    transfer_mechanism_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("transfer_mechanisms.id", ondelete="RESTRICT"),
    )
    purpose_text: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    recipient: Mapped["Recipient"] = relationship("Recipient", back_populates="processing_locations")
    country: Mapped["Country"] = relationship("Country")
    transfer_mechanism: Mapped["TransferMechanism | None"] = relationship("TransferMechanism")

    __table_args__ = (Index("idx_location_tenant_recipient", "organization_id", "recipient_id"),)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<RecipientProcessingLocation(id={self.id}, service='{self.service}')>"


# =============================================================================
# PROCESSING ACTIVITY
# =============================================================================


class DataProcessingActivity(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Record of processing activity (GDPR Article 30).

    Attributes:
        id: Primary key.
        organization_id: Owning tenant.
        name: Activity name.
        status: DRAFT, ACTIVE or ARCHIVED.
    """

    __tablename__ = "data_processing_activities"

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey(ORGANIZATION_FK, ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[ActivityStatus] = mapped_column(
        Enum(ActivityStatus, name="activity_status"),
        default=ActivityStatus.DRAFT,
        nullable=False,
    )

    # Relationships
    recipients: Mapped[list["Recipient"]] = relationship(
        "Recipient",
        secondary=activity_recipients,
        back_populates="activities",
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<DataProcessingActivity(id={self.id}, name='{self.name}')>"
