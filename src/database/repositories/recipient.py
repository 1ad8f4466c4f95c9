"""Recipient repository with hierarchy-aware queries.

Every statement is scoped to the repository's organization. Tree
traversal downwards uses a recursive CTE bounded by a depth limit.
"""

from uuid import UUID

from sqlalchemy import Integer, and_, func, literal, or_, select
from sqlalchemy.orm import Session, aliased

from src.database.models.enums import RecipientType
from src.database.models.recipient import Recipient, activity_recipients
from src.database.repositories.base import TenantRepository


class RecipientRepository(TenantRepository[Recipient]):
    """Repository for Recipient entity operations."""

    model = Recipient

    def __init__(self, session: Session, organization_id: UUID) -> None:
        """Initialize recipient repository.

        Args:
            session: SQLAlchemy session instance.
            organization_id: Tenant scope.
        """
        super().__init__(session, organization_id)

    # -------------------------------------------------------------------------
    # Hierarchy
    # -------------------------------------------------------------------------

    def get_children(self, parent_id: UUID) -> list[Recipient]:
        """Direct children in creation order.

        Args:
            parent_id: Parent recipient ID.

        Returns:
            Child recipients, active or not.
        """
        stmt = (
            self._select()
            .where(Recipient.parent_recipient_id == parent_id)
            .order_by(Recipient.created_at, Recipient.name, Recipient.id)
        )
        return list(self._session.scalars(stmt).all())

    def count_children(self, parent_id: UUID) -> int:
        """Count direct children of a recipient."""
        return self.count(Recipient.parent_recipient_id == parent_id)

    def get_descendant_rows(self, root_id: UUID, max_depth: int) -> list[tuple[Recipient, int]]:
        """Fetch every descendant of a recipient with its relative depth.

        Children are at depth 1. Recursion stops at ``max_depth`` so a
        corrupted (cyclic) tree still yields a finite result.

        Args:
            root_id: Recipient whose subtree is fetched.
            max_depth: Deepest relative level to return.

        Returns:
            (recipient, depth) pairs ordered by depth then name.
        """
        org_id = self._organization_id
        tree = (
            select(Recipient.id.label("id"), literal(1, Integer).label("depth"))
            .where(
                Recipient.organization_id == org_id,
                Recipient.parent_recipient_id == root_id,
            )
            .cte("recipient_descendants", recursive=True)
        )
        parent_level = aliased(tree, name="parent_level")
        child = aliased(Recipient, name="child")
        tree = tree.union_all(
            select(child.id, parent_level.c.depth + 1).where(
                child.parent_recipient_id == parent_level.c.id,
                child.organization_id == org_id,
                parent_level.c.depth < max_depth,
            )
        )
        stmt = (
            select(Recipient, tree.c.depth)
            .join(tree, Recipient.id == tree.c.id)
            .order_by(tree.c.depth, Recipient.name, Recipient.id)
        )
        return [(recipient, depth) for recipient, depth in self._session.execute(stmt).all()]

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    def list_page(
        self,
        limit: int,
        recipient_type: RecipientType | None = None,
        is_active: bool | None = None,
        after: Recipient | None = None,
    ) -> list[Recipient]:
        """List recipients ordered by (name, id) starting after a cursor row.

        Args:
            limit: Maximum rows to return.
            recipient_type: Optional type filter.
            is_active: Optional status filter.
            after: Last row of the previous page.

        Returns:
            Recipients of the requested page.
        """
        stmt = self._select()
        if recipient_type is not None:
            stmt = stmt.where(Recipient.type == recipient_type)
        if is_active is not None:
            stmt = stmt.where(Recipient.is_active.is_(is_active))
        if after is not None:
            stmt = stmt.where(
                or_(
                    Recipient.name > after.name,
                    and_(Recipient.name == after.name, Recipient.id > after.id),
                )
            )
        stmt = stmt.order_by(Recipient.name, Recipient.id).limit(limit)
        return list(self._session.scalars(stmt).all())

    def list_all(self, active_only: bool = False) -> list[Recipient]:
        """Every recipient of the tenant ordered by name."""
        stmt = self._select()
        if active_only:
            stmt = stmt.where(Recipient.is_active.is_(True))
        stmt = stmt.order_by(Recipient.name, Recipient.id)
        return list(self._session.scalars(stmt).all())

    def get_for_activity(self, activity_id: UUID) -> list[Recipient]:
        """Recipients linked to a processing activity."""
        stmt = (
            self._select()
            .join(activity_recipients, activity_recipients.c.recipient_id == Recipient.id)
            .where(activity_recipients.c.activity_id == activity_id)
            .order_by(Recipient.name, Recipient.id)
        )
        return list(self._session.scalars(stmt).all())

    # -------------------------------------------------------------------------
    # Anomalies
    # -------------------------------------------------------------------------

    def find_sub_processors_without_parent(self) -> list[Recipient]:
        """Active sub-processors not attached to any processor."""
        stmt = (
            self._select()
            .where(
                Recipient.type == RecipientType.SUB_PROCESSOR,
                Recipient.parent_recipient_id.is_(None),
                Recipient.is_active.is_(True),
            )
            .order_by(Recipient.name, Recipient.id)
        )
        return list(self._session.scalars(stmt).all())

    def find_with_missing_parent(self) -> list[Recipient]:
        """Recipients whose parent id does not resolve inside the tenant."""
        parent = aliased(Recipient, name="parent")
        stmt = (
            self._select()
            .outerjoin(
                parent,
                and_(
                    parent.id == Recipient.parent_recipient_id,
                    parent.organization_id == Recipient.organization_id,
                ),
            )
            .where(Recipient.parent_recipient_id.is_not(None), parent.id.is_(None))
            .order_by(Recipient.name, Recipient.id)
        )
        return list(self._session.scalars(stmt).all())

    def find_unlinked(self) -> list[Recipient]:
        """Active non-internal recipients with no external organization."""
        stmt = (
            self._select()
            .where(
                Recipient.type != RecipientType.INTERNAL_DEPARTMENT,
                Recipient.external_organization_id.is_(None),
                Recipient.is_active.is_(True),
            )
            .order_by(Recipient.name, Recipient.id)
        )
        return list(self._session.scalars(stmt).all())

    def find_without_activities(self) -> list[Recipient]:
        """Active recipients not linked to any processing activity."""
        stmt = (
            self._select()
            .where(Recipient.is_active.is_(True), ~Recipient.activities.any())
            .order_by(Recipient.name, Recipient.id)
        )
        return list(self._session.scalars(stmt).all())

    def count_by_type(self) -> dict[RecipientType, int]:
        """Recipient counts grouped by type."""
        stmt = (
            select(Recipient.type, func.count())
            .where(Recipient.organization_id == self._organization_id)
            .group_by(Recipient.type)
        )
        return {row[0]: row[1] for row in self._session.execute(stmt).all()}
