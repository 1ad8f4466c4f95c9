"""External legal entities and their contracts.

Contains ExternalOrganization (the vendor or partner behind a
recipient role) and Agreement (DPA, SCC, ...).
"""

import uuid
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.database.models.enums import AgreementStatus, AgreementType

if TYPE_CHECKING:
    from src.database.models.recipient import Recipient
    from src.database.models.reference import Country

# Foreign key references
ORGANIZATION_FK = "organizations.id"


# =============================================================================
# EXTERNAL ORGANIZATION
# =============================================================================


class ExternalOrganization(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Real-world legal entity referenced by one or more recipients.

    Attributes:
        id: Primary key.
        organization_id: Owning tenant.
        legal_name: Registered legal name.
        trading_name: Commercial name, if different.
        headquarters_country_id: Country of the registered office.
    """

    __tablename__ = "external_organizations"

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey(ORGANIZATION_FK, ondelete="CASCADE"),
        nullable=False,
    )
    legal_name: Mapped[str] = mapped_column(String(255), nullable=False)
    trading_name: Mapped[str | None] = mapped_column(String(255))
    registration_number: Mapped[str | None] = mapped_column(String(100))
    vat_number: Mapped[str | None] = mapped_column(String(50))
    headquarters_country_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("countries.id", ondelete="SET NULL"),
    )

    # Contact
    website: Mapped[str | None] = mapped_column(String(500))
    contact_email: Mapped[str | None] = mapped_column(String(255))

    # Classification
    is_public_authority: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sector: Mapped[str | None] = mapped_column(String(100))
    notes: Mapped[str | None] = mapped_column(Text)

    # Relationships
    headquarters_country: Mapped["Country | None"] = relationship("Country")
    agreements: Mapped[list["Agreement"]] = relationship(
        "Agreement",
        back_populates="external_organization",
        cascade="all, delete-orphan",
    )
    recipients: Mapped[list["Recipient"]] = relationship(
        "Recipient",
        back_populates="external_organization",
    )

    __table_args__ = (Index("idx_external_org_tenant_name", "organization_id", "legal_name"),)

    @property
    def display_name(self) -> str:
        """Trading name if present, otherwise legal name."""
        return self.trading_name or self.legal_name

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<ExternalOrganization(id={self.id}, legal_name='{self.legal_name}')>"


# =============================================================================
# AGREEMENT
# =============================================================================


class Agreement(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Contractual safeguard binding an external organization.

    ``recipient_id`` narrows the agreement to one recipient role; when it
    is null the agreement covers every role of the external organization.

    Attributes:
        id: Primary key.
        organization_id: Owning tenant.
        external_organization_id: Counterparty.
        recipient_id: Optional recipient role bound by the agreement.
        type: Agreement family.
        status: Lifecycle status.
        signed_date: Signature date.
        expiry_date: End of validity, if any.
    """

    __tablename__ = "agreements"

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey(ORGANIZATION_FK, ondelete="CASCADE"),
        nullable=False,
    )
    external_organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("external_organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    recipient_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("recipients.id", ondelete="RESTRICT"),
    )
    type: Mapped[AgreementType] = mapped_column(
        Enum(AgreementType, name="agreement_type"),
        nullable=False,
    )
    status: Mapped[AgreementStatus] = mapped_column(
        Enum(AgreementStatus, name="agreement_status"),
        default=AgreementStatus.DRAFT,
        nullable=False,
    )
    reference: Mapped[str | None] = mapped_column(String(100))
    signed_date: Mapped[date | None] = mapped_column(Date)
    expiry_date: Mapped[date | None] = mapped_column(Date)

    # Relationships
    external_organization: Mapped["ExternalOrganization"] = relationship(
        "ExternalOrganization",
        back_populates="agreements",
    )

    __table_args__ = (
        CheckConstraint(
            "expiry_date IS NULL OR signed_date IS NULL OR expiry_date >= signed_date",
            name="chk_agreement_dates",
        ),
        Index("idx_agreement_status_expiry", "organization_id", "status", "expiry_date"),
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<Agreement(id={self.id}, type={self.type}, status={self.status})>"
