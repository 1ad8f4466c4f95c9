"""Shared fixtures for API integration tests.

Uses the module-level ``app`` from ``src.api.main`` with ``get_db``
overridden to yield the test session, so every request sees the rows
built by the factories. The lifespan is not run by ``ASGITransport``.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Generator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from src.api.database import get_db
from src.api.services.jwt_service import JWTService
from src.database.models import Organization

# ---------------------------------------------------------------------------
# Auto-mark all tests in this directory as "integration"
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Auto-apply ``@pytest.mark.integration`` to every test collected here."""
    integration_marker = pytest.mark.integration
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(integration_marker)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def client(session: Session) -> AsyncGenerator[AsyncClient, None]:
    """Provide an ``httpx.AsyncClient`` wired to the real app."""
    from src.api.main import app

    def _override_get_db() -> Generator[Session, None, None]:
        yield session

    app.dependency_overrides[get_db] = _override_get_db
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.pop(get_db, None)


def bearer(organization: Organization, username: str = "alice") -> dict[str, str]:
    """Authorization header for a user of ``organization``."""
    token = JWTService().create_token(subject=username, organization_id=organization.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(organization: Organization) -> dict[str, str]:
    """Headers of a user of the default tenant."""
    return bearer(organization)


@pytest.fixture
def other_auth_headers(other_organization: Organization) -> dict[str, str]:
    """Headers of a user of the second tenant."""
    return bearer(other_organization, username="bob")
