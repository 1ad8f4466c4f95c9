"""Shared reference data models.

Countries and transfer mechanisms are not tenant-scoped: every
organization reads the same rows, seeded by ``src.database.seed``.
"""

from sqlalchemy import JSON, Boolean, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.database.models.enums import MechanismCategory

# =============================================================================
# COUNTRY
# =============================================================================


class Country(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Jurisdiction with its GDPR classification tags.

    Attributes:
        id: Primary key.
        name: English country name.
        iso_code: ISO 3166-1 alpha-2 code.
        iso_code3: ISO 3166-1 alpha-3 code.
        gdpr_status: List of GdprStatus values (e.g. ["EU", "EEA"]).
        is_active: Whether the country can be selected.
    """

    __tablename__ = "countries"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    iso_code: Mapped[str] = mapped_column(String(2), unique=True, nullable=False)
    iso_code3: Mapped[str | None] = mapped_column(String(3), unique=True)
    gdpr_status: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<Country(iso_code='{self.iso_code}', gdpr_status={self.gdpr_status})>"


# =============================================================================
# TRANSFER MECHANISM
# =============================================================================


class TransferMechanism(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Legal instrument permitting a cross-border transfer.

    Attributes:
        id: Primary key.
        code: Stable identifier (e.g. SCC, BCR).
        name: Display name.
        gdpr_article: Article reference (e.g. "Art. 46(2)(c)").
        category: ADEQUACY, SAFEGUARD, DEROGATION or NONE.
    """

    __tablename__ = "transfer_mechanisms"

    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    gdpr_article: Mapped[str | None] = mapped_column(String(50))
    category: Mapped[MechanismCategory] = mapped_column(
        Enum(MechanismCategory, name="mechanism_category"),
        nullable=False,
    )

    # Flags
    is_derogation: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    requires_adequacy: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    requires_documentation: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<TransferMechanism(code='{self.code}', category={self.category})>"
