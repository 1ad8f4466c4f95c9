"""Tests for HierarchyManager tree queries."""

import uuid

import pytest

from src.compliance.errors import HierarchyIntegrityError, RecipientNotFoundError
from src.compliance.hierarchy import HierarchyManager
from src.database.models.enums import RecipientType
from tests.factories import make_chain, make_recipient


def _make_cycle(session, organization):
    first = make_recipient(session, organization, "Alpha", RecipientType.SUB_PROCESSOR)
    second = make_recipient(session, organization, "Beta", RecipientType.SUB_PROCESSOR, parent=first)
    first.parent_recipient_id = second.id
    session.flush()
    return first, second


class TestGetRecipient:
    """Tests for tenant-scoped resolution."""

    @staticmethod
    def test_resolves_own_recipient(session, organization) -> None:
        recipient = make_recipient(session, organization, "Payroll SaaS")
        manager = HierarchyManager(session, organization.id)
        assert manager.get_recipient(recipient.id) is recipient

    @staticmethod
    def test_unknown_id_raises(session, organization) -> None:
        manager = HierarchyManager(session, organization.id)
        with pytest.raises(RecipientNotFoundError):
            manager.get_recipient(uuid.uuid4())

    @staticmethod
    def test_other_organization_is_not_found(session, organization, other_organization) -> None:
        foreign = make_recipient(session, other_organization, "Foreign")
        manager = HierarchyManager(session, organization.id)
        with pytest.raises(RecipientNotFoundError) as exc_info:
            manager.get_recipient(foreign.id)
        assert str(exc_info.value) == f"Recipient {foreign.id} not found"


class TestDescendants:
    """Tests for downward traversal."""

    @staticmethod
    def test_direct_children(session, organization) -> None:
        root = make_recipient(session, organization, "Root")
        first = make_recipient(session, organization, "A", RecipientType.SUB_PROCESSOR, parent=root)
        second = make_recipient(session, organization, "B", RecipientType.SUB_PROCESSOR, parent=root)
        make_recipient(session, organization, "Grandchild", RecipientType.SUB_PROCESSOR, parent=first)

        children = HierarchyManager(session, organization.id).get_direct_children(root.id)

        assert {c.id for c in children} == {first.id, second.id}

    @staticmethod
    def test_descendants_carry_relative_depth(session, organization) -> None:
        chain = make_chain(session, organization, 3)
        manager = HierarchyManager(session, organization.id)

        rows = manager.get_descendants(chain[1].id)

        assert [(row.recipient.id, row.depth) for row in rows] == [
            (chain[2].id, 1),
            (chain[3].id, 2),
        ]

    @staticmethod
    def test_leaf_has_no_descendants(session, organization) -> None:
        chain = make_chain(session, organization, 2)
        assert HierarchyManager(session, organization.id).get_descendants(chain[-1].id) == []

    @staticmethod
    def test_descendant_tree(session, organization) -> None:
        root = make_recipient(session, organization, "Root")
        child_b = make_recipient(session, organization, "B", RecipientType.SUB_PROCESSOR, parent=root)
        child_a = make_recipient(session, organization, "A", RecipientType.SUB_PROCESSOR, parent=root)
        leaf = make_recipient(session, organization, "Leaf", RecipientType.SUB_PROCESSOR, parent=child_b)

        tree = HierarchyManager(session, organization.id).get_descendant_tree(root.id)

        assert tree.recipient is root
        assert tree.depth == 0
        assert [node.recipient.id for node in tree.children] == [child_a.id, child_b.id]
        assert tree.children[1].children[0].recipient is leaf
        assert tree.children[1].children[0].depth == 2
        assert tree.size == 4

    @staticmethod
    def test_tree_nodes_iterate_breadth_first(session, organization) -> None:
        root = make_recipient(session, organization, "Root")
        child_a = make_recipient(session, organization, "A", RecipientType.SUB_PROCESSOR, parent=root)
        child_b = make_recipient(session, organization, "B", RecipientType.SUB_PROCESSOR, parent=root)
        deep = make_recipient(session, organization, "Deep", RecipientType.SUB_PROCESSOR, parent=child_a)

        tree = HierarchyManager(session, organization.id).get_descendant_tree(root.id)

        assert [node.recipient.id for node in tree.iter_nodes()] == [root.id, child_a.id, child_b.id, deep.id]
        assert [node.depth for node in tree.iter_nodes()] == [0, 1, 1, 2]

    @staticmethod
    def test_cycle_raises_integrity_error(session, organization) -> None:
        first, _ = _make_cycle(session, organization)
        with pytest.raises(HierarchyIntegrityError):
            HierarchyManager(session, organization.id).get_descendants(first.id)

    @staticmethod
    def test_other_tenant_children_are_invisible(session, organization, other_organization) -> None:
        root = make_recipient(session, organization, "Root")
        intruder = make_recipient(session, other_organization, "Intruder", RecipientType.SUB_PROCESSOR)
        intruder.parent_recipient_id = root.id
        session.flush()

        manager = HierarchyManager(session, organization.id)

        assert manager.get_direct_children(root.id) == []
        assert manager.get_descendants(root.id) == []


class TestAncestors:
    """Tests for upward traversal."""

    @staticmethod
    def test_chain_from_parent_to_root(session, organization) -> None:
        chain = make_chain(session, organization, 3)
        ancestors = HierarchyManager(session, organization.id).get_ancestor_chain(chain[3].id)
        assert [a.id for a in ancestors] == [chain[2].id, chain[1].id, chain[0].id]

    @staticmethod
    def test_root_has_depth_zero(session, organization) -> None:
        root = make_recipient(session, organization, "Root")
        assert HierarchyManager(session, organization.id).calculate_hierarchy_depth(root.id) == 0

    @staticmethod
    def test_depth_counts_ancestors(session, organization) -> None:
        chain = make_chain(session, organization, 4)
        manager = HierarchyManager(session, organization.id)
        assert [manager.calculate_hierarchy_depth(r.id) for r in chain] == [0, 1, 2, 3, 4]

    @staticmethod
    def test_walk_stops_at_foreign_parent(session, organization, other_organization) -> None:
        foreign = make_recipient(session, other_organization, "Foreign")
        child = make_recipient(session, organization, "Child", RecipientType.SUB_PROCESSOR)
        child.parent_recipient_id = foreign.id
        session.flush()

        assert HierarchyManager(session, organization.id).get_ancestor_chain(child.id) == []

    @staticmethod
    def test_cycle_in_ancestors_raises(session, organization) -> None:
        first, _ = _make_cycle(session, organization)
        with pytest.raises(HierarchyIntegrityError):
            HierarchyManager(session, organization.id).get_ancestor_chain(first.id)

    @staticmethod
    def test_walk_limit_raises(session, organization) -> None:
        from src.settings import HierarchySettings

        limits = HierarchySettings(
            HIERARCHY_PROCESSOR_CHAIN_MAX_DEPTH=2,
            HIERARCHY_ORGANIZATIONAL_MAX_DEPTH=2,
            HIERARCHY_GROUPING_MAX_DEPTH=2,
            HIERARCHY_ANCESTOR_WALK_LIMIT=2,
        )
        chain = make_chain(session, organization, 4)
        with pytest.raises(HierarchyIntegrityError):
            HierarchyManager(session, organization.id, limits).get_ancestor_chain(chain[4].id)


class TestCircularReference:
    """Tests for check_circular_reference."""

    @staticmethod
    def test_self_parent_is_circular(session, organization) -> None:
        recipient = make_recipient(session, organization, "Self", RecipientType.SUB_PROCESSOR)
        manager = HierarchyManager(session, organization.id)
        assert manager.check_circular_reference(recipient.id, recipient.id)

    @staticmethod
    def test_descendant_as_parent_is_circular(session, organization) -> None:
        chain = make_chain(session, organization, 3)
        manager = HierarchyManager(session, organization.id)
        assert manager.check_circular_reference(chain[3].id, chain[1].id)

    @staticmethod
    def test_unrelated_parent_is_fine(session, organization) -> None:
        chain = make_chain(session, organization, 2)
        other = make_recipient(session, organization, "Other")
        manager = HierarchyManager(session, organization.id)
        assert not manager.check_circular_reference(other.id, chain[2].id)
