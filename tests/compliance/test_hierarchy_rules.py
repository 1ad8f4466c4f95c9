"""Tests for the per-type hierarchy rules."""

import pytest

from src.compliance.hierarchy_rules import (
    HIERARCHY_RULES,
    effective_hierarchy_type,
    get_hierarchy_rule,
    get_hierarchy_type_for_recipient,
    get_max_depth,
    is_allowed_parent,
)
from src.database.models.enums import AgreementType, HierarchyType, RecipientType
from src.settings import HierarchySettings


class TestHierarchyRules:
    """Tests for the rules table."""

    @staticmethod
    def test_every_type_has_a_rule() -> None:
        assert set(HIERARCHY_RULES) == set(RecipientType)

    @staticmethod
    def test_rules_are_read_only() -> None:
        with pytest.raises(TypeError):
            HIERARCHY_RULES[RecipientType.PROCESSOR] = None  # type: ignore[index]

    @staticmethod
    @pytest.mark.parametrize(
        ("child", "parent", "expected"),
        [
            (RecipientType.SUB_PROCESSOR, RecipientType.PROCESSOR, True),
            (RecipientType.SUB_PROCESSOR, RecipientType.SUB_PROCESSOR, True),
            (RecipientType.SUB_PROCESSOR, RecipientType.INTERNAL_DEPARTMENT, False),
            (RecipientType.INTERNAL_DEPARTMENT, RecipientType.INTERNAL_DEPARTMENT, True),
            (RecipientType.INTERNAL_DEPARTMENT, RecipientType.PROCESSOR, False),
            (RecipientType.PROCESSOR, RecipientType.PROCESSOR, False),
            (RecipientType.JOINT_CONTROLLER, RecipientType.PROCESSOR, False),
        ],
    )
    def test_is_allowed_parent(child: RecipientType, parent: RecipientType, expected: bool) -> None:
        assert is_allowed_parent(child, parent) is expected

    @staticmethod
    def test_required_agreements() -> None:
        assert get_hierarchy_rule(RecipientType.PROCESSOR).required_agreement_types == (AgreementType.DPA,)
        assert get_hierarchy_rule(RecipientType.JOINT_CONTROLLER).required_agreement_types == (
            AgreementType.JOINT_CONTROLLER_AGREEMENT,
        )
        assert get_hierarchy_rule(RecipientType.SERVICE_PROVIDER).required_agreement_types == ()

    @staticmethod
    def test_only_internal_departments_skip_external_organization() -> None:
        exempt = {t for t, rule in HIERARCHY_RULES.items() if not rule.requires_external_organization}
        assert exempt == {RecipientType.INTERNAL_DEPARTMENT}


class TestHierarchyTypes:
    """Tests for hierarchy type assignment and caps."""

    @staticmethod
    def test_default_hierarchy_types() -> None:
        assert get_hierarchy_type_for_recipient(RecipientType.SUB_PROCESSOR) == HierarchyType.PROCESSOR_CHAIN
        assert get_hierarchy_type_for_recipient(RecipientType.INTERNAL_DEPARTMENT) == HierarchyType.ORGANIZATIONAL
        assert get_hierarchy_type_for_recipient(RecipientType.PROCESSOR) is None

    @staticmethod
    def test_explicit_hierarchy_type_wins() -> None:
        assert (
            effective_hierarchy_type(RecipientType.SUB_PROCESSOR, HierarchyType.GROUPING)
            == HierarchyType.GROUPING
        )

    @staticmethod
    def test_default_caps() -> None:
        limits = HierarchySettings()
        assert get_max_depth(HierarchyType.PROCESSOR_CHAIN, limits) == 5
        assert get_max_depth(HierarchyType.ORGANIZATIONAL, limits) == 10
        assert get_max_depth(HierarchyType.GROUPING, limits) == 3

    @staticmethod
    def test_recipients_outside_hierarchies_are_roots() -> None:
        assert get_max_depth(None) == 0

    @staticmethod
    def test_caps_follow_limits() -> None:
        limits = HierarchySettings(HIERARCHY_PROCESSOR_CHAIN_MAX_DEPTH=2)
        assert get_max_depth(HierarchyType.PROCESSOR_CHAIN, limits) == 2
