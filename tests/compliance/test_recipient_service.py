"""Tests for RecipientService writes, listing and audit events."""

import uuid

import pytest
from structlog.testing import capture_logs

from src.compliance.errors import (
    ConflictOnDeleteError,
    HierarchyValidationError,
    RecipientNotFoundError,
)
from src.compliance.recipients import RecipientService
from src.database.models.enums import AgreementType, HierarchyType, RecipientType
from tests.factories import (
    make_activity,
    make_agreement,
    make_chain,
    make_external_organization,
    make_location,
    make_recipient,
)


@pytest.fixture
def service(session, organization, limits) -> RecipientService:
    return RecipientService(session, organization.id, user_id="alice", limits=limits)


@pytest.fixture
def vendor(session, organization):
    return make_external_organization(session, organization, "Cloudy Hosting SAS")


def _rules(issues) -> list[str]:
    return [issue.rule for issue in issues]


# =============================================================================
# CREATE
# =============================================================================


class TestCreate:
    """Tests for RecipientService.create."""

    @staticmethod
    def test_creates_processor(service, vendor, organization) -> None:
        result = service.create("Hosting", RecipientType.PROCESSOR, external_organization_id=vendor.id)

        recipient = result.recipient
        assert recipient.id is not None
        assert recipient.organization_id == organization.id
        assert recipient.is_active
        assert recipient.hierarchy_type is None
        assert _rules(result.warnings) == ["missing_required_agreement"]

    @staticmethod
    def test_sub_processor_gets_chain_hierarchy_type(service, vendor) -> None:
        parent = service.create("Hosting", RecipientType.PROCESSOR, external_organization_id=vendor.id)
        child = service.create(
            "Backups",
            RecipientType.SUB_PROCESSOR,
            external_organization_id=vendor.id,
            parent_recipient_id=parent.recipient.id,
        )
        assert child.recipient.hierarchy_type == HierarchyType.PROCESSOR_CHAIN
        assert child.recipient.parent_recipient_id == parent.recipient.id

    @staticmethod
    def test_no_warning_with_dpa(session, organization, service, vendor) -> None:
        make_agreement(session, organization, vendor, AgreementType.DPA)
        result = service.create("Hosting", RecipientType.PROCESSOR, external_organization_id=vendor.id)
        assert result.warnings == []

    @staticmethod
    def test_collects_every_error(service) -> None:
        with pytest.raises(HierarchyValidationError) as exc_info:
            service.create("Hosting", RecipientType.PROCESSOR, parent_recipient_id=uuid.uuid4())
        assert _rules(exc_info.value.result.errors) == [
            "external_organization_required",
            "parent_not_allowed",
        ]

    @staticmethod
    def test_rejects_foreign_external_organization(session, other_organization, service) -> None:
        foreign = make_external_organization(session, other_organization, "Foreign Corp")
        with pytest.raises(HierarchyValidationError) as exc_info:
            service.create("Hosting", RecipientType.PROCESSOR, external_organization_id=foreign.id)
        assert _rules(exc_info.value.result.errors) == ["external_organization_not_in_organization"]

    @staticmethod
    def test_rejects_depth_overflow(session, organization, service, vendor) -> None:
        chain = make_chain(session, organization, 5, external_organization=vendor)
        with pytest.raises(HierarchyValidationError) as exc_info:
            service.create(
                "Too deep",
                RecipientType.SUB_PROCESSOR,
                external_organization_id=vendor.id,
                parent_recipient_id=chain[-1].id,
            )
        assert _rules(exc_info.value.result.errors) == ["depth_exceeded"]

    @staticmethod
    def test_internal_department_without_vendor(service) -> None:
        result = service.create("HR", RecipientType.INTERNAL_DEPARTMENT)
        assert result.recipient.hierarchy_type == HierarchyType.ORGANIZATIONAL
        assert result.warnings == []

    @staticmethod
    def test_emits_audit_event(service, vendor, organization) -> None:
        with capture_logs() as events:
            result = service.create("Hosting", RecipientType.PROCESSOR, external_organization_id=vendor.id)

        audit = [e for e in events if e["event"] == "recipient_access"]
        assert len(audit) == 1
        assert audit[0]["action"] == "create"
        assert audit[0]["recipient_id"] == str(result.recipient.id)
        assert audit[0]["organization_id"] == str(organization.id)
        assert audit[0]["user_id"] == "alice"


# =============================================================================
# UPDATE
# =============================================================================


class TestUpdate:
    """Tests for RecipientService.update and reparent."""

    @staticmethod
    def test_updates_plain_fields(session, organization, service, vendor) -> None:
        recipient = make_recipient(session, organization, "Hosting", external_organization=vendor)
        result = service.update(recipient.id, {"name": "Hosting EU", "purpose": "Backups"})
        assert result.recipient.name == "Hosting EU"
        assert result.recipient.purpose == "Backups"

    @staticmethod
    def test_rejects_unknown_fields(session, organization, service) -> None:
        recipient = make_recipient(session, organization, "Hosting")
        with pytest.raises(ValueError, match="organization_id"):
            service.update(recipient.id, {"organization_id": uuid.uuid4()})

    @staticmethod
    def test_unknown_recipient(service) -> None:
        with pytest.raises(RecipientNotFoundError):
            service.update(uuid.uuid4(), {"name": "Nope"})

    @staticmethod
    def test_reparent_moves_subtree(session, organization, service, vendor) -> None:
        first = make_recipient(session, organization, "First", external_organization=vendor)
        second = make_recipient(session, organization, "Second", external_organization=vendor)
        child = make_recipient(
            session, organization, "Child", RecipientType.SUB_PROCESSOR, parent=first, external_organization=vendor
        )
        grandchild = make_recipient(
            session, organization, "Grandchild", RecipientType.SUB_PROCESSOR, parent=child, external_organization=vendor
        )

        with capture_logs() as events:
            service.reparent(child.id, second.id)

        assert child.parent_recipient_id == second.id
        assert [r.id for r in service.manager.get_ancestor_chain(grandchild.id)] == [child.id, second.id]
        reparent = [e for e in events if e.get("action") == "reparent"]
        assert reparent[0]["previous_parent_id"] == str(first.id)
        assert reparent[0]["parent_recipient_id"] == str(second.id)

    @staticmethod
    def test_reparent_to_descendant_is_rejected(session, organization, service, vendor) -> None:
        chain = make_chain(session, organization, 3, external_organization=vendor)
        with pytest.raises(HierarchyValidationError) as exc_info:
            service.reparent(chain[1].id, chain[3].id)
        assert _rules(exc_info.value.result.errors) == ["circular_reference"]
        assert chain[1].parent_recipient_id == chain[0].id

    @staticmethod
    def test_reparent_to_self_is_rejected(session, organization, service, vendor) -> None:
        chain = make_chain(session, organization, 1, external_organization=vendor)
        with pytest.raises(HierarchyValidationError) as exc_info:
            service.reparent(chain[1].id, chain[1].id)
        assert _rules(exc_info.value.result.errors) == ["circular_reference"]

    @staticmethod
    def test_reparent_to_current_parent_is_noop(session, organization, service, vendor) -> None:
        chain = make_chain(session, organization, 1, external_organization=vendor)
        result = service.reparent(chain[1].id, chain[0].id)
        assert result.recipient.parent_recipient_id == chain[0].id

    @staticmethod
    def test_detach_sub_processor(session, organization, service, vendor) -> None:
        chain = make_chain(session, organization, 1, external_organization=vendor)
        result = service.update(chain[1].id, {"parent_recipient_id": None})
        assert result.recipient.parent_recipient_id is None

    @staticmethod
    def test_type_change_resets_hierarchy_type(session, organization, service, vendor) -> None:
        recipient = make_recipient(
            session, organization, "Vendor", RecipientType.SUB_PROCESSOR, external_organization=vendor
        )
        result = service.update(recipient.id, {"type": RecipientType.SERVICE_PROVIDER})
        assert result.recipient.type == RecipientType.SERVICE_PROVIDER
        assert result.recipient.hierarchy_type is None

    @staticmethod
    def test_type_change_blocked_by_children(session, organization, service, vendor) -> None:
        chain = make_chain(session, organization, 1, external_organization=vendor)
        with pytest.raises(HierarchyValidationError) as exc_info:
            service.update(chain[0].id, {"type": RecipientType.SERVICE_PROVIDER})
        assert "child_type_incompatible" in _rules(exc_info.value.result.errors)

    @staticmethod
    def test_removing_external_organization_is_rejected(session, organization, service, vendor) -> None:
        recipient = make_recipient(session, organization, "Hosting", external_organization=vendor)
        with pytest.raises(HierarchyValidationError) as exc_info:
            service.update(recipient.id, {"external_organization_id": None})
        assert _rules(exc_info.value.result.errors) == ["external_organization_required"]


# =============================================================================
# PARENT DRY RUN
# =============================================================================


class TestValidateParent:
    """Tests for RecipientService.validate_parent."""

    @staticmethod
    def test_reports_without_writing(session, organization, service, vendor) -> None:
        chain = make_chain(session, organization, 2, external_organization=vendor)
        result = service.validate_parent(chain[1].id, chain[2].id)
        assert _rules(result.errors) == ["circular_reference"]
        assert chain[1].parent_recipient_id == chain[0].id

    @staticmethod
    def test_current_parent_is_valid(session, organization, service, vendor) -> None:
        chain = make_chain(session, organization, 1, external_organization=vendor)
        assert service.validate_parent(chain[1].id, chain[0].id).is_valid


# =============================================================================
# DEACTIVATE / DELETE
# =============================================================================


class TestDeactivate:
    """Tests for RecipientService.deactivate."""

    @staticmethod
    def test_children_keep_parent(session, organization, service, vendor) -> None:
        chain = make_chain(session, organization, 1, external_organization=vendor)

        result = service.deactivate(chain[0].id)

        assert not result.recipient.is_active
        assert chain[1].parent_recipient_id == chain[0].id
        assert _rules(result.warnings) == ["children_of_inactive_parent"]
        assert result.warnings[0].value == [chain[1].id]

    @staticmethod
    def test_leaf_deactivates_silently(session, organization, service) -> None:
        recipient = make_recipient(session, organization, "Leaf")
        assert service.deactivate(recipient.id).warnings == []

    @staticmethod
    def test_is_idempotent(session, organization, service) -> None:
        recipient = make_recipient(session, organization, "Leaf")
        service.deactivate(recipient.id)
        with capture_logs() as events:
            service.deactivate(recipient.id)
        assert not recipient.is_active
        assert [e for e in events if e.get("action") == "deactivate"] == []


class TestDelete:
    """Tests for RecipientService.delete."""

    @staticmethod
    def test_deletes_leaf(session, organization, service) -> None:
        recipient = make_recipient(session, organization, "Leaf")
        make_activity(session, organization, "Payroll", [recipient])

        service.delete(recipient.id)

        with pytest.raises(RecipientNotFoundError):
            service.get(recipient.id)

    @staticmethod
    def test_blocked_by_children(session, organization, service) -> None:
        chain = make_chain(session, organization, 1)
        with pytest.raises(ConflictOnDeleteError) as exc_info:
            service.delete(chain[0].id)
        assert exc_info.value.reasons == ["1 child recipient(s) reference it as parent"]

    @staticmethod
    def test_blocked_by_agreements_and_locations(session, organization, service, vendor, countries) -> None:
        recipient = make_recipient(session, organization, "Hosting", external_organization=vendor)
        make_agreement(session, organization, vendor, recipient=recipient)
        make_location(session, organization, recipient, countries["DE"])

        with pytest.raises(ConflictOnDeleteError) as exc_info:
            service.delete(recipient.id)

        assert len(exc_info.value.reasons) == 2
        assert service.get(recipient.id) is recipient

    @staticmethod
    def test_foreign_recipient_cannot_be_deleted(session, other_organization, service) -> None:
        foreign = make_recipient(session, other_organization, "Foreign")
        with pytest.raises(RecipientNotFoundError):
            service.delete(foreign.id)


# =============================================================================
# LISTING
# =============================================================================


class TestListRecipients:
    """Tests for cursor pagination."""

    @staticmethod
    def test_pages_in_name_order(session, organization, service) -> None:
        for name in ("Delta", "Alpha", "Charlie", "Bravo", "Echo"):
            make_recipient(session, organization, name)

        first = service.list_recipients(limit=2)
        second = service.list_recipients(limit=2, cursor=first.next_cursor)
        third = service.list_recipients(limit=2, cursor=second.next_cursor)

        assert [r.name for r in first.items] == ["Alpha", "Bravo"]
        assert [r.name for r in second.items] == ["Charlie", "Delta"]
        assert [r.name for r in third.items] == ["Echo"]
        assert third.next_cursor is None

    @staticmethod
    def test_exact_page_has_no_cursor(session, organization, service) -> None:
        make_recipient(session, organization, "Alpha")
        make_recipient(session, organization, "Bravo")
        assert service.list_recipients(limit=2).next_cursor is None

    @staticmethod
    def test_filters(session, organization, service) -> None:
        make_recipient(session, organization, "Processor")
        make_recipient(session, organization, "HR", RecipientType.INTERNAL_DEPARTMENT)
        make_recipient(session, organization, "Old", is_active=False)

        departments = service.list_recipients(recipient_type=RecipientType.INTERNAL_DEPARTMENT)
        active = service.list_recipients(is_active=True)

        assert [r.name for r in departments.items] == ["HR"]
        assert [r.name for r in active.items] == ["HR", "Processor"]

    @staticmethod
    def test_tenant_isolation(session, organization, other_organization, service) -> None:
        make_recipient(session, organization, "Mine")
        make_recipient(session, other_organization, "Theirs")
        assert [r.name for r in service.list_recipients().items] == ["Mine"]

    @staticmethod
    def test_unknown_cursor(service) -> None:
        with pytest.raises(RecipientNotFoundError):
            service.list_recipients(cursor=uuid.uuid4())
