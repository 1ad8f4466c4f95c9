"""Tenant model.

Every compliance record belongs to exactly one organization and
every query on tenant data is scoped by ``organization_id``.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from src.database.models.reference import Country


class Organization(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Organization (tenant) owning recipients and activities.

    Attributes:
        id: Primary key.
        name: Display name.
        slug: Unique URL-safe identifier, used by login.
        headquarters_country_id: Origin jurisdiction of outbound transfers.
    """

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    headquarters_country_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("countries.id", ondelete="SET NULL"),
    )

    # Relationships
    headquarters_country: Mapped["Country | None"] = relationship("Country")

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<Organization(id={self.id}, slug='{self.slug}')>"
