"""Recipient hierarchy manager.

Answers ancestry and descendant queries over one organization's
recipient tree. Parents are always resolved by id through tenant-scoped
queries, never through in-memory references.
"""

import logging
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.orm import Session

from src.compliance.errors import HierarchyIntegrityError, RecipientNotFoundError
from src.database.models.recipient import Recipient
from src.database.repositories.recipient import RecipientRepository
from src.settings import HierarchySettings, settings

logger = logging.getLogger(__name__)


# =============================================================================
# DATA STRUCTURES
# =============================================================================


@dataclass(frozen=True)
class DescendantRow:
    """Descendant with its depth relative to the queried root (children = 1)."""

    recipient: Recipient
    depth: int


@dataclass
class RecipientTreeNode:
    """Node of a reassembled subtree.

    Attributes:
        recipient: Recipient at this node.
        depth: Depth relative to the subtree root (root = 0).
        children: Child nodes in name order.
    """

    recipient: Recipient
    depth: int
    children: list["RecipientTreeNode"] = field(default_factory=list)

    def iter_nodes(self) -> Iterator["RecipientTreeNode"]:
        """Yield nodes breadth-first without recursion."""
        queue = deque([self])
        while queue:
            node = queue.popleft()
            yield node
            queue.extend(node.children)

    @property
    def size(self) -> int:
        """Number of nodes including the root."""
        return sum(1 for _ in self.iter_nodes())


# =============================================================================
# HIERARCHY MANAGER
# =============================================================================


class HierarchyManager:
    """Tree queries over the recipients of one organization.

    Attributes:
        organization_id: Tenant scope of every query.
    """

    def __init__(
        self,
        session: Session,
        organization_id: UUID,
        limits: HierarchySettings | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            session: SQLAlchemy session.
            organization_id: Tenant scope.
            limits: Depth caps and walk limit (defaults to settings).
        """
        self.organization_id = organization_id
        self.limits = limits or settings.hierarchy
        self.recipients = RecipientRepository(session, organization_id)

    def get_recipient(self, recipient_id: UUID, for_update: bool = False) -> Recipient:
        """Resolve a recipient inside the organization.

        Args:
            recipient_id: Recipient ID.
            for_update: Lock the row for the rest of the transaction.

        Returns:
            Recipient instance.

        Raises:
            RecipientNotFoundError: Unknown id or other organization.
        """
        recipient = self.recipients.get_by_id(recipient_id, for_update=for_update)
        if recipient is None:
            raise RecipientNotFoundError(recipient_id)
        return recipient

    # -------------------------------------------------------------------------
    # Downwards
    # -------------------------------------------------------------------------

    def get_direct_children(self, recipient_id: UUID) -> list[Recipient]:
        """Children of a recipient in creation order.

        Raises:
            RecipientNotFoundError: Unknown id or other organization.
        """
        self.get_recipient(recipient_id)
        return self.recipients.get_children(recipient_id)

    def get_descendants(self, recipient_id: UUID) -> list[DescendantRow]:
        """Flat subtree of a recipient with relative depths.

        Args:
            recipient_id: Subtree root.

        Returns:
            Descendants ordered by depth then name, root excluded.

        Raises:
            RecipientNotFoundError: Unknown id or other organization.
            HierarchyIntegrityError: The root reappears below itself.
        """
        self.get_recipient(recipient_id)
        rows = self.recipients.get_descendant_rows(recipient_id, self.limits.ancestor_walk_limit)

        seen: set[UUID] = set()
        descendants = []
        for recipient, depth in rows:
            if recipient.id == recipient_id:
                logger.error(
                    "Cycle through recipient %s in organization %s",
                    recipient_id,
                    self.organization_id,
                )
                raise HierarchyIntegrityError(f"Recipient {recipient_id} is its own descendant")
            if recipient.id in seen:
                continue
            seen.add(recipient.id)
            descendants.append(DescendantRow(recipient, depth))
        return descendants

    def get_descendant_tree(self, recipient_id: UUID) -> RecipientTreeNode:
        """Subtree of a recipient reassembled from the flat descendant list."""
        root = RecipientTreeNode(self.get_recipient(recipient_id), 0)
        nodes = {recipient_id: root}
        for row in self.get_descendants(recipient_id):
            node = RecipientTreeNode(row.recipient, row.depth)
            parent = nodes.get(row.recipient.parent_recipient_id)
            if parent is None:
                continue
            parent.children.append(node)
            nodes[row.recipient.id] = node
        return root

    # -------------------------------------------------------------------------
    # Upwards
    # -------------------------------------------------------------------------

    def iter_ancestors(self, recipient: Recipient, for_update: bool = False) -> Iterator[Recipient]:
        """Walk from the parent of ``recipient`` up to its root.

        Stops silently at a parent id that does not resolve in the
        organization.

        Args:
            recipient: Starting recipient (not yielded).
            for_update: Lock each ancestor row.

        Yields:
            Ancestors, immediate parent first.

        Raises:
            HierarchyIntegrityError: A node is revisited or the walk
                exceeds the configured limit.
        """
        visited = {recipient.id}
        steps = 0
        parent_id = recipient.parent_recipient_id
        while parent_id is not None:
            if parent_id in visited:
                logger.error(
                    "Cycle in ancestor chain of recipient %s at %s (organization %s)",
                    recipient.id,
                    parent_id,
                    self.organization_id,
                )
                raise HierarchyIntegrityError(
                    f"Ancestor chain of recipient {recipient.id} revisits {parent_id}"
                )
            if steps >= self.limits.ancestor_walk_limit:
                raise HierarchyIntegrityError(
                    f"Ancestor chain of recipient {recipient.id} exceeds "
                    f"{self.limits.ancestor_walk_limit} levels"
                )
            parent = self.recipients.get_by_id(parent_id, for_update=for_update)
            if parent is None:
                logger.warning(
                    "Recipient %s points to parent %s outside organization %s",
                    recipient.id,
                    parent_id,
                    self.organization_id,
                )
                return
            visited.add(parent_id)
            steps += 1
            yield parent
            parent_id = parent.parent_recipient_id

    def get_ancestor_chain(self, recipient_id: UUID, for_update: bool = False) -> list[Recipient]:
        """Ancestors from immediate parent up to the root.

        Raises:
            RecipientNotFoundError: Unknown id or other organization.
            HierarchyIntegrityError: Cycle detected.
        """
        recipient = self.get_recipient(recipient_id, for_update=for_update)
        return list(self.iter_ancestors(recipient, for_update=for_update))

    def check_circular_reference(self, candidate_parent_id: UUID, recipient_id: UUID) -> bool:
        """Whether making ``candidate_parent_id`` the parent of ``recipient_id`` creates a cycle.

        Args:
            candidate_parent_id: Proposed parent.
            recipient_id: Recipient being attached.

        Returns:
            True if the recipient is the candidate itself or one of its ancestors.

        Raises:
            RecipientNotFoundError: Candidate unknown to the organization.
        """
        if candidate_parent_id == recipient_id:
            return True
        candidate = self.get_recipient(candidate_parent_id)
        return any(ancestor.id == recipient_id for ancestor in self.iter_ancestors(candidate))

    def calculate_hierarchy_depth(self, recipient_id: UUID) -> int:
        """Depth of a recipient, the root being 0."""
        return len(self.get_ancestor_chain(recipient_id))
