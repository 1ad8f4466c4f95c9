"""Integration tests for the cross-border transfer endpoints."""

from __future__ import annotations

from uuid import uuid4

from httpx import AsyncClient

from src.database.models.enums import RecipientType
from tests.factories import (
    make_activity,
    make_chain,
    make_external_organization,
    make_location,
    make_recipient,
)

# ============================================================================
# Evaluation
# ============================================================================


class TestEvaluateTransfer:
    """POST /api/v1/transfers/evaluate."""

    @staticmethod
    async def test_third_country_without_mechanism(client: AsyncClient, auth_headers, countries) -> None:
        resp = await client.post(
            "/api/v1/transfers/evaluate",
            json={
                "source_country_id": str(countries["FR"].id),
                "destination_country_id": str(countries["US"].id),
            },
            headers=auth_headers,
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["risk"]["level"] == "CRITICAL"
        assert body["risk"]["reason"] == "THIRD_COUNTRY_NO_MECHANISM"
        assert body["requirement"]["valid"] is False
        assert body["requirement"]["required"] is True
        assert "Article 46" in body["requirement"]["error"]

    @staticmethod
    async def test_safeguard_lowers_risk(client: AsyncClient, auth_headers, countries, mechanisms) -> None:
        resp = await client.post(
            "/api/v1/transfers/evaluate",
            json={
                "source_country_id": str(countries["FR"].id),
                "destination_country_id": str(countries["US"].id),
                "transfer_mechanism_id": str(mechanisms["SCC"].id),
            },
            headers=auth_headers,
        )

        body = resp.json()
        assert body["risk"]["level"] == "MEDIUM"
        assert body["risk"]["mechanism"]["code"] == "SCC"
        assert body["requirement"]["valid"] is True

    @staticmethod
    async def test_intra_eu_transfer(client: AsyncClient, auth_headers, countries) -> None:
        resp = await client.post(
            "/api/v1/transfers/evaluate",
            json={
                "source_country_id": str(countries["FR"].id),
                "destination_country_id": str(countries["DE"].id),
            },
            headers=auth_headers,
        )

        body = resp.json()
        assert body["risk"] == {"level": "NONE", "reason": "SAME_JURISDICTION", "mechanism": None}
        assert body["requirement"]["required"] is False

    @staticmethod
    async def test_unknown_country(client: AsyncClient, auth_headers, countries) -> None:
        resp = await client.post(
            "/api/v1/transfers/evaluate",
            json={
                "source_country_id": str(countries["FR"].id),
                "destination_country_id": str(uuid4()),
            },
            headers=auth_headers,
        )
        assert resp.status_code == 404

    @staticmethod
    async def test_requires_authentication(client: AsyncClient, countries) -> None:
        resp = await client.post(
            "/api/v1/transfers/evaluate",
            json={
                "source_country_id": str(countries["FR"].id),
                "destination_country_id": str(countries["US"].id),
            },
        )
        assert resp.status_code in (401, 403)


# ============================================================================
# Detection
# ============================================================================


class TestDetectTransfers:
    """GET /api/v1/transfers and activity analysis."""

    @staticmethod
    async def test_lists_inherited_transfers(client: AsyncClient, auth_headers, session, organization, countries) -> None:
        chain = make_chain(session, organization, 1)
        make_location(session, organization, chain[0], countries["US"], service="Compute")
        make_location(session, organization, chain[0], countries["FR"], service="Backups")

        resp = await client.get("/api/v1/transfers", headers=auth_headers)

        body = resp.json()
        assert body["count"] == len(body["transfers"])
        rows = {(t["recipient"]["id"], t["depth"]) for t in body["transfers"]}
        assert (str(chain[0].id), 0) in rows
        assert all(t["location"]["country"]["iso_code"] == "US" for t in body["transfers"])
        assert body["transfers"][0]["organization_country"]["iso_code"] == "FR"

    @staticmethod
    async def test_other_tenant_sees_nothing(
        client: AsyncClient, other_auth_headers, session, organization, countries
    ) -> None:
        recipient = make_recipient(session, organization, "Analytics")
        make_location(session, organization, recipient, countries["US"])

        resp = await client.get("/api/v1/transfers", headers=other_auth_headers)

        assert resp.json() == {"transfers": [], "count": 0}

    @staticmethod
    async def test_activity_analysis(client: AsyncClient, auth_headers, session, organization, countries) -> None:
        recipient = make_recipient(session, organization, "Analytics")
        make_location(session, organization, recipient, countries["US"])
        activity = make_activity(session, organization, "Marketing", recipients=[recipient])

        resp = await client.get(f"/api/v1/transfers/activities/{activity.id}", headers=auth_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["activity_name"] == "Marketing"
        assert body["summary"]["total_recipients"] == 1
        assert body["summary"]["recipients_with_transfers"] == 1
        assert body["summary"]["risk_distribution"]["CRITICAL"] == 1
        assert [c["country"]["iso_code"] for c in body["summary"]["countries_involved"]] == ["US"]

    @staticmethod
    async def test_activity_of_other_tenant(
        client: AsyncClient, auth_headers, session, other_organization
    ) -> None:
        activity = make_activity(session, other_organization, "Foreign")

        resp = await client.get(f"/api/v1/transfers/activities/{activity.id}", headers=auth_headers)

        assert resp.status_code == 404

    @staticmethod
    async def test_activity_analysis_without_headquarters(client: AsyncClient, session) -> None:
        from tests.factories import make_organization
        from tests.integration.conftest import bearer

        headless = make_organization(session, slug="nowhere", name="Nowhere Ltd")
        activity = make_activity(session, headless, "Payroll")

        resp = await client.get(f"/api/v1/transfers/activities/{activity.id}", headers=bearer(headless))

        assert resp.status_code == 422
        assert resp.json()["detail"]

    @staticmethod
    async def test_subtree_assessment(client: AsyncClient, auth_headers, session, organization, countries) -> None:
        us_vendor = make_external_organization(session, organization, "Hyperscale Inc", countries["US"])
        chain = make_chain(session, organization, 1, external_organization=us_vendor)

        resp = await client.get(f"/api/v1/recipients/{chain[0].id}/transfer-assessment", headers=auth_headers)

        body = resp.json()
        assert [(row["recipient"]["id"], row["depth"]) for row in body] == [
            (str(chain[0].id), 0),
            (str(chain[1].id), 1),
        ]
        assert {row["country"]["iso_code"] for row in body} == {"US"}


# ============================================================================
# Processing locations
# ============================================================================


class TestProcessingLocations:
    """Location management with transfer validation."""

    @staticmethod
    async def test_create_in_third_country_requires_mechanism(
        client: AsyncClient, auth_headers, session, organization, countries
    ) -> None:
        recipient = make_recipient(session, organization, "Analytics")

        resp = await client.post(
            f"/api/v1/recipients/{recipient.id}/locations",
            json={"service": "Compute", "country_id": str(countries["US"].id)},
            headers=auth_headers,
        )

        assert resp.status_code == 422
        errors = resp.json()["errors"]
        assert [e["rule"] for e in errors] == ["transfer_mechanism_required"]
        assert errors[0]["field"] == "transfer_mechanism_id"

    @staticmethod
    async def test_create_with_safeguard(
        client: AsyncClient, auth_headers, session, organization, countries, mechanisms
    ) -> None:
        recipient = make_recipient(session, organization, "Analytics")

        resp = await client.post(
            f"/api/v1/recipients/{recipient.id}/locations",
            json={
                "service": "Compute",
                "country_id": str(countries["US"].id),
                "transfer_mechanism_id": str(mechanisms["SCC"].id),
                "location_role": "PROCESSING",
            },
            headers=auth_headers,
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["location"]["country"]["iso_code"] == "US"
        assert body["location"]["location_role"] == "PROCESSING"
        assert body["risk"]["level"] == "MEDIUM"

    @staticmethod
    async def test_list_active_only(client: AsyncClient, auth_headers, session, organization, countries) -> None:
        recipient = make_recipient(session, organization, "Hosting", RecipientType.INTERNAL_DEPARTMENT)
        make_location(session, organization, recipient, countries["FR"], service="Live")
        make_location(session, organization, recipient, countries["DE"], service="Old", is_active=False)

        active = await client.get(f"/api/v1/recipients/{recipient.id}/locations", headers=auth_headers)
        every = await client.get(
            f"/api/v1/recipients/{recipient.id}/locations",
            params={"active_only": "false"},
            headers=auth_headers,
        )

        assert [loc["service"] for loc in active.json()] == ["Live"]
        assert len(every.json()) == 2

    @staticmethod
    async def test_update_to_third_country_is_validated(
        client: AsyncClient, auth_headers, session, organization, countries
    ) -> None:
        recipient = make_recipient(session, organization, "Hosting")
        location = make_location(session, organization, recipient, countries["FR"])

        resp = await client.patch(
            f"/api/v1/locations/{location.id}",
            json={"country_id": str(countries["CN"].id)},
            headers=auth_headers,
        )

        assert resp.status_code == 422
        session.refresh(location)
        assert location.country_id == countries["FR"].id

    @staticmethod
    async def test_update_service_only(client: AsyncClient, auth_headers, session, organization, countries) -> None:
        recipient = make_recipient(session, organization, "Hosting")
        location = make_location(session, organization, recipient, countries["FR"])

        resp = await client.patch(
            f"/api/v1/locations/{location.id}",
            json={"service": "Archive", "country_id": None},
            headers=auth_headers,
        )

        assert resp.status_code == 200
        assert resp.json()["location"]["service"] == "Archive"
        assert resp.json()["location"]["country"]["iso_code"] == "FR"

    @staticmethod
    async def test_move_location(
        client: AsyncClient, auth_headers, session, organization, countries, mechanisms
    ) -> None:
        recipient = make_recipient(session, organization, "Hosting")
        location = make_location(session, organization, recipient, countries["FR"])

        resp = await client.post(
            f"/api/v1/locations/{location.id}/move",
            json={"country_id": str(countries["US"].id), "transfer_mechanism_id": str(mechanisms["BCR"].id)},
            headers=auth_headers,
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["location"]["id"] != str(location.id)
        assert body["location"]["country"]["iso_code"] == "US"
        session.refresh(location)
        assert location.is_active is False

    @staticmethod
    async def test_foreign_location_is_not_found(
        client: AsyncClient, auth_headers, session, other_organization, countries
    ) -> None:
        foreign = make_recipient(session, other_organization, "Foreign")
        location = make_location(session, other_organization, foreign, countries["DE"])

        resp = await client.patch(
            f"/api/v1/locations/{location.id}",
            json={"service": "Hijack"},
            headers=auth_headers,
        )

        assert resp.status_code == 404
