"""Shared pytest fixtures: in-memory database, reference data and tenants."""

import os

# Settings are read once at import time
os.environ["JWT_SECRET_KEY"] = "test_jwt_secret_key_12345678901234567890"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["AUTH_DEMO_USERS"] = "alice:alice-password:acme,bob:bob-password:globex"
os.environ["LOG_FORMAT"] = "json"

from collections.abc import Generator  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine, select  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from src.database.models import Base, Country, Organization, TransferMechanism  # noqa: E402
from src.database.seed import seed_reference_data  # noqa: E402
from src.settings import HierarchySettings  # noqa: E402
from tests.factories import make_organization  # noqa: E402


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Fresh in-memory SQLite database with the full schema."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine: Engine) -> Generator[Session, None, None]:
    """Session configured like the application's session factory."""
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def countries(session: Session) -> dict[str, Country]:
    """Seeded countries keyed by ISO alpha-2 code."""
    seed_reference_data(session)
    return {c.iso_code: c for c in session.scalars(select(Country))}


@pytest.fixture
def mechanisms(session: Session, countries: dict[str, Country]) -> dict[str, TransferMechanism]:
    """Seeded transfer mechanisms keyed by code."""
    return {m.code: m for m in session.scalars(select(TransferMechanism))}


@pytest.fixture
def organization(session: Session, countries: dict[str, Country]) -> Organization:
    """Tenant headquartered in France."""
    return make_organization(session, slug="acme", name="Acme SAS", headquarters=countries["FR"])


@pytest.fixture
def other_organization(session: Session, countries: dict[str, Country]) -> Organization:
    """Second tenant, headquartered in Germany."""
    return make_organization(session, slug="globex", name="Globex GmbH", headquarters=countries["DE"])


@pytest.fixture
def limits() -> HierarchySettings:
    """Default hierarchy caps."""
    return HierarchySettings()
