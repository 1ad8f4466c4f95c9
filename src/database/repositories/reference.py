"""Repositories for shared reference data.

Countries and transfer mechanisms are read by every tenant and
written only by the seeding command.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.database.models.reference import Country, TransferMechanism
from src.database.repositories.base import BaseRepository


class CountryRepository(BaseRepository[Country]):
    """Repository for Country entity operations."""

    model = Country

    def __init__(self, session: Session) -> None:
        """Initialize country repository.

        Args:
            session: SQLAlchemy session instance.
        """
        super().__init__(session)

    def get_by_iso_code(self, iso_code: str) -> Country | None:
        """Retrieve country by ISO alpha-2 code.

        Args:
            iso_code: Two-letter code, any case.

        Returns:
            Country instance or None.
        """
        return self.get_by_field("iso_code", iso_code.upper())

    def get_active(self) -> list[Country]:
        """Return selectable countries ordered by name."""
        stmt = select(Country).where(Country.is_active.is_(True)).order_by(Country.name)
        return list(self._session.scalars(stmt).all())

    def upsert(self, data: dict[str, Any]) -> tuple[Country, bool]:
        """Insert or refresh a country keyed by ISO code.

        Args:
            data: Column values including ``iso_code``.

        Returns:
            Tuple of (country, created).
        """
        existing = self.get_by_iso_code(data["iso_code"])
        if existing is None:
            return self.create(Country(**data)), True
        return self.update(existing, data), False


class TransferMechanismRepository(BaseRepository[TransferMechanism]):
    """Repository for TransferMechanism entity operations."""

    model = TransferMechanism

    def __init__(self, session: Session) -> None:
        """Initialize transfer mechanism repository.

        Args:
            session: SQLAlchemy session instance.
        """
        super().__init__(session)

    def get_by_code(self, code: str) -> TransferMechanism | None:
        """Retrieve mechanism by its stable code.

        Args:
            code: Mechanism code (e.g. 'SCC').

        Returns:
            TransferMechanism instance or None.
        """
        return self.get_by_field("code", code.upper())

    def get_active_by_id(self, mechanism_id: UUID) -> TransferMechanism | None:
        """Retrieve a mechanism only if it can still be selected."""
        mechanism = self.get_by_id(mechanism_id)
        if mechanism is None or not mechanism.is_active:
            return None
        return mechanism

    def upsert(self, data: dict[str, Any]) -> tuple[TransferMechanism, bool]:
        """Insert or refresh a mechanism keyed by code.

        Args:
            data: Column values including ``code``.

        Returns:
            Tuple of (mechanism, created).
        """
        existing = self.get_by_code(data["code"])
        if existing is None:
            return self.create(TransferMechanism(**data)), True
        return self.update(existing, data), False
