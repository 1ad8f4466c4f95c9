"""Tests for recipient data and hierarchy validation."""

import uuid
from datetime import date, timedelta

import pytest

from src.compliance.hierarchy import HierarchyManager
from src.compliance.hierarchy_rules import is_allowed_parent
from src.compliance.validation import (
    RecipientValidator,
    ValidationResult,
    validate_hierarchy_type,
    validate_recipient_data,
)
from src.database.models.enums import AgreementStatus, AgreementType, HierarchyType, RecipientType
from tests.factories import (
    make_agreement,
    make_chain,
    make_external_organization,
    make_recipient,
)


@pytest.fixture
def validator(session, organization, limits) -> RecipientValidator:
    return RecipientValidator(session, HierarchyManager(session, organization.id, limits))


def _rules(issues) -> list[str]:
    return [issue.rule for issue in issues]


class TestValidationResult:
    """Tests for the result container."""

    @staticmethod
    def test_empty_result_is_valid() -> None:
        assert ValidationResult().is_valid

    @staticmethod
    def test_warnings_keep_result_valid() -> None:
        result = ValidationResult()
        result.add_warning("field", "some_warning", "Heads up")
        assert result.is_valid
        assert result.has_rule("some_warning")

    @staticmethod
    def test_merge_appends_issues() -> None:
        first = ValidationResult()
        first.add_error("a", "rule_a", "A")
        second = ValidationResult()
        second.add_error("b", "rule_b", "B")
        second.add_warning("c", "rule_c", "C")

        merged = first.merge(second)

        assert merged is first
        assert _rules(merged.errors) == ["rule_a", "rule_b"]
        assert _rules(merged.warnings) == ["rule_c"]


class TestRecipientData:
    """Tests for validate_recipient_data and validate_hierarchy_type."""

    @staticmethod
    def test_processor_requires_external_organization() -> None:
        result = validate_recipient_data(RecipientType.PROCESSOR, None)
        assert _rules(result.errors) == ["external_organization_required"]

    @staticmethod
    def test_internal_department_needs_no_external_organization() -> None:
        assert validate_recipient_data(RecipientType.INTERNAL_DEPARTMENT, None).is_valid

    @staticmethod
    def test_linked_internal_department_warns() -> None:
        result = validate_recipient_data(RecipientType.INTERNAL_DEPARTMENT, uuid.uuid4())
        assert result.is_valid
        assert _rules(result.warnings) == ["internal_department_linked"]

    @staticmethod
    def test_hierarchy_type_allowed() -> None:
        assert validate_hierarchy_type(RecipientType.SUB_PROCESSOR, HierarchyType.GROUPING).is_valid

    @staticmethod
    def test_hierarchy_type_rejected() -> None:
        result = validate_hierarchy_type(RecipientType.PROCESSOR, HierarchyType.ORGANIZATIONAL)
        assert _rules(result.errors) == ["hierarchy_type_mismatch"]
        assert "Allowed types" in result.errors[0].message


class TestValidateHierarchy:
    """Tests for RecipientValidator.validate_hierarchy."""

    @staticmethod
    def test_root_processor_is_valid(validator) -> None:
        assert validator.validate_hierarchy(RecipientType.PROCESSOR, None).is_valid

    @staticmethod
    def test_processor_cannot_have_parent(session, organization, validator) -> None:
        parent = make_recipient(session, organization, "Parent")
        result = validator.validate_hierarchy(RecipientType.PROCESSOR, parent.id)
        assert _rules(result.errors) == ["parent_not_allowed"]

    @staticmethod
    def test_unknown_parent(validator) -> None:
        result = validator.validate_hierarchy(RecipientType.SUB_PROCESSOR, uuid.uuid4())
        assert _rules(result.errors) == ["parent_not_in_organization"]

    @staticmethod
    def test_foreign_parent_looks_like_unknown(session, other_organization, validator) -> None:
        foreign = make_recipient(session, other_organization, "Foreign")
        unknown = validator.validate_hierarchy(RecipientType.SUB_PROCESSOR, uuid.uuid4())
        result = validator.validate_hierarchy(RecipientType.SUB_PROCESSOR, foreign.id)
        assert _rules(result.errors) == ["parent_not_in_organization"]
        assert result.errors[0].message == unknown.errors[0].message

    @staticmethod
    def test_incompatible_parent_type(session, organization, validator) -> None:
        department = make_recipient(session, organization, "HR", RecipientType.INTERNAL_DEPARTMENT)
        result = validator.validate_hierarchy(RecipientType.SUB_PROCESSOR, department.id)
        assert "parent_type_incompatible" in _rules(result.errors)

    @staticmethod
    @pytest.mark.parametrize("parent_type", list(RecipientType))
    def test_parent_type_check_follows_rules_table(session, organization, validator, parent_type) -> None:
        parent = make_recipient(session, organization, "Parent", parent_type)
        result = validator.validate_hierarchy(RecipientType.SUB_PROCESSOR, parent.id)
        flagged = "parent_type_incompatible" in _rules(result.errors)
        assert flagged is not is_allowed_parent(RecipientType.SUB_PROCESSOR, parent_type)

    @staticmethod
    def test_hierarchy_type_must_match_parent(session, organization, validator) -> None:
        parent = make_recipient(session, organization, "Parent", hierarchy_type=HierarchyType.GROUPING)
        result = validator.validate_hierarchy(RecipientType.SUB_PROCESSOR, parent.id)
        assert _rules(result.errors) == ["hierarchy_type_mismatch"]

    @staticmethod
    def test_inactive_parent_warns(session, organization, validator) -> None:
        parent = make_recipient(session, organization, "Parent", is_active=False)
        result = validator.validate_hierarchy(RecipientType.SUB_PROCESSOR, parent.id)
        assert result.is_valid
        assert _rules(result.warnings) == ["inactive_parent"]

    @staticmethod
    def test_sub_processor_at_max_depth(session, organization, validator) -> None:
        chain = make_chain(session, organization, 4)
        result = validator.validate_hierarchy(RecipientType.SUB_PROCESSOR, chain[-1].id)
        assert result.is_valid

    @staticmethod
    def test_sub_processor_beyond_max_depth(session, organization, validator) -> None:
        chain = make_chain(session, organization, 5)
        result = validator.validate_hierarchy(RecipientType.SUB_PROCESSOR, chain[-1].id)
        assert _rules(result.errors) == ["depth_exceeded"]
        assert result.errors[0].value == 6
        assert "exceeds maximum depth of 5" in result.errors[0].message

    @staticmethod
    def test_organizational_depth_cap(session, organization, validator) -> None:
        chain = make_chain(
            session,
            organization,
            9,
            root_type=RecipientType.INTERNAL_DEPARTMENT,
            child_type=RecipientType.INTERNAL_DEPARTMENT,
        )
        assert validator.validate_hierarchy(RecipientType.INTERNAL_DEPARTMENT, chain[-1].id).is_valid

        chain.append(
            make_recipient(
                session, organization, "Level 10", RecipientType.INTERNAL_DEPARTMENT, parent=chain[-1]
            )
        )
        result = validator.validate_hierarchy(RecipientType.INTERNAL_DEPARTMENT, chain[-1].id)
        assert _rules(result.errors) == ["depth_exceeded"]

    @staticmethod
    def test_grouping_depth_cap(session, organization, validator) -> None:
        root = make_recipient(session, organization, "Group", hierarchy_type=HierarchyType.GROUPING)
        parent = root
        for depth in range(1, 4):
            parent = make_recipient(
                session,
                organization,
                f"Member {depth}",
                RecipientType.SUB_PROCESSOR,
                parent=parent,
                hierarchy_type=HierarchyType.GROUPING,
            )
        result = validator.validate_hierarchy(
            RecipientType.SUB_PROCESSOR, parent.id, hierarchy_type=HierarchyType.GROUPING
        )
        assert _rules(result.errors) == ["depth_exceeded"]

    @staticmethod
    def test_moving_under_own_descendant_is_circular(session, organization, validator) -> None:
        chain = make_chain(session, organization, 3)
        result = validator.validate_hierarchy(
            RecipientType.SUB_PROCESSOR, chain[3].id, recipient_id=chain[1].id
        )
        assert _rules(result.errors) == ["circular_reference"]

    @staticmethod
    def test_moving_subtree_checks_descendant_depth(session, organization, validator) -> None:
        deep = make_chain(session, organization, 4)
        subtree = make_recipient(session, organization, "Moved", RecipientType.SUB_PROCESSOR)
        make_recipient(session, organization, "Moved child", RecipientType.SUB_PROCESSOR, parent=subtree)

        result = validator.validate_hierarchy(
            RecipientType.SUB_PROCESSOR, deep[-1].id, recipient_id=subtree.id
        )

        assert _rules(result.errors) == ["depth_exceeded"]
        assert "Moved child" in result.errors[0].message

    @staticmethod
    def test_type_change_must_fit_children(session, organization, validator) -> None:
        root = make_recipient(session, organization, "Root")
        make_recipient(session, organization, "Child", RecipientType.SUB_PROCESSOR, parent=root)
        result = validator.validate_hierarchy(
            RecipientType.JOINT_CONTROLLER, None, recipient_id=root.id
        )
        assert _rules(result.errors) == ["child_type_incompatible"]


class TestExternalOrganizationTenant:
    """Tests for validate_external_org_tenant."""

    @staticmethod
    def test_none_is_accepted(validator) -> None:
        assert validator.validate_external_org_tenant(None).is_valid

    @staticmethod
    def test_own_external_organization(session, organization, validator) -> None:
        vendor = make_external_organization(session, organization)
        assert validator.validate_external_org_tenant(vendor.id).is_valid

    @staticmethod
    def test_foreign_external_organization(session, other_organization, validator) -> None:
        vendor = make_external_organization(session, other_organization)
        result = validator.validate_external_org_tenant(vendor.id)
        assert _rules(result.errors) == ["external_organization_not_in_organization"]


class TestRequiredAgreements:
    """Tests for validate_required_agreements."""

    @staticmethod
    def test_processor_without_dpa_warns(session, organization, validator) -> None:
        vendor = make_external_organization(session, organization, "Cloudy Hosting SAS")
        recipient = make_recipient(session, organization, "Hosting", external_organization=vendor)

        result = validator.validate_required_agreements(recipient)

        assert _rules(result.warnings) == ["missing_required_agreement"]
        assert "DPA" in result.warnings[0].message
        assert "Cloudy Hosting SAS" in result.warnings[0].message

    @staticmethod
    def test_processor_with_dpa(session, organization, validator) -> None:
        vendor = make_external_organization(session, organization)
        recipient = make_recipient(session, organization, "Hosting", external_organization=vendor)
        make_agreement(session, organization, vendor, AgreementType.DPA)
        assert validator.validate_required_agreements(recipient).warnings == []

    @staticmethod
    def test_expired_dpa_does_not_count(session, organization, validator) -> None:
        vendor = make_external_organization(session, organization)
        recipient = make_recipient(session, organization, "Hosting", external_organization=vendor)
        make_agreement(
            session,
            organization,
            vendor,
            AgreementType.DPA,
            expiry_date=date.today() - timedelta(days=1),
        )
        assert _rules(validator.validate_required_agreements(recipient).warnings) == [
            "missing_required_agreement"
        ]

    @staticmethod
    def test_dpa_scoped_to_another_recipient(session, organization, validator) -> None:
        vendor = make_external_organization(session, organization)
        first = make_recipient(session, organization, "First", external_organization=vendor)
        second = make_recipient(session, organization, "Second", external_organization=vendor)
        make_agreement(session, organization, vendor, AgreementType.DPA, recipient=first)

        assert validator.validate_required_agreements(first).warnings == []
        assert _rules(validator.validate_required_agreements(second).warnings) == [
            "missing_required_agreement"
        ]

    @staticmethod
    def test_sub_processor_needs_any_agreement(session, organization, validator) -> None:
        vendor = make_external_organization(session, organization)
        root = make_recipient(session, organization, "Root", external_organization=vendor)
        child = make_recipient(
            session,
            organization,
            "Child",
            RecipientType.SUB_PROCESSOR,
            parent=root,
            external_organization=vendor,
        )
        assert _rules(validator.validate_required_agreements(child).warnings) == [
            "missing_active_agreement"
        ]

        make_agreement(session, organization, vendor, AgreementType.NDA, status=AgreementStatus.EXPIRING_SOON)
        assert validator.validate_required_agreements(child).warnings == []

    @staticmethod
    def test_public_authority_expects_nothing(session, organization, validator) -> None:
        vendor = make_external_organization(session, organization, "Tax Office")
        recipient = make_recipient(
            session, organization, "Tax", RecipientType.PUBLIC_AUTHORITY, external_organization=vendor
        )
        assert validator.validate_required_agreements(recipient).warnings == []
