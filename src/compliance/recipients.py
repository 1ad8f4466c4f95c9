"""Recipient service.

Tenant-scoped create/read/update/delete of recipients. Every write
runs validation first and raises ``HierarchyValidationError`` with the
full result when it fails; warnings travel back with the written
recipient. Rows touched by a structural change are locked with
``SELECT ... FOR UPDATE`` for the rest of the caller's transaction.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from src.compliance.audit import AuditAction, audit_recipient_access
from src.compliance.errors import (
    ConflictOnDeleteError,
    HierarchyValidationError,
    RecipientNotFoundError,
)
from src.compliance.hierarchy import HierarchyManager
from src.compliance.hierarchy_rules import effective_hierarchy_type
from src.compliance.validation import (
    RecipientValidator,
    ValidationIssue,
    ValidationResult,
    record_failures,
    validate_recipient_data,
)
from src.database.models.enums import HierarchyType, RecipientType
from src.database.models.recipient import Recipient
from src.database.repositories.external import AgreementRepository
from src.database.repositories.location import ProcessingLocationRepository
from src.settings import HierarchySettings

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "type",
        "description",
        "purpose",
        "external_organization_id",
        "parent_recipient_id",
        "hierarchy_type",
        "is_active",
    }
)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


@dataclass
class RecipientWriteResult:
    """Recipient written by a service call and the warnings it raised."""

    recipient: Recipient
    warnings: list[ValidationIssue] = field(default_factory=list)


@dataclass
class RecipientPage:
    """One page of a cursor-paginated listing.

    Attributes:
        items: Recipients of this page.
        next_cursor: Id to pass as cursor for the next page, None at the end.
    """

    items: list[Recipient]
    next_cursor: UUID | None = None


class RecipientService:
    """Recipient operations for one organization and one acting user."""

    def __init__(
        self,
        session: Session,
        organization_id: UUID,
        user_id: str | None = None,
        limits: HierarchySettings | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            session: SQLAlchemy session; the caller owns the transaction.
            organization_id: Tenant scope.
            user_id: Acting user recorded in the audit trail.
            limits: Hierarchy caps (defaults to settings).
        """
        self.organization_id = organization_id
        self.user_id = user_id
        self.manager = HierarchyManager(session, organization_id, limits)
        self.validator = RecipientValidator(session, self.manager)
        self.recipients = self.manager.recipients
        self.agreements = AgreementRepository(session, organization_id)
        self.locations = ProcessingLocationRepository(session, organization_id)

    def _audit(self, recipient_id: UUID, action: AuditAction, **details: Any) -> None:
        audit_recipient_access(recipient_id, self.user_id, action, self.organization_id, **details)

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def get(self, recipient_id: UUID) -> Recipient:
        """Fetch one recipient of the organization.

        Raises:
            RecipientNotFoundError: Unknown id or other organization.
        """
        recipient = self.manager.get_recipient(recipient_id)
        self._audit(recipient_id, AuditAction.READ)
        return recipient

    def list_recipients(
        self,
        limit: int = DEFAULT_PAGE_SIZE,
        recipient_type: RecipientType | None = None,
        is_active: bool | None = None,
        cursor: UUID | None = None,
    ) -> RecipientPage:
        """List recipients ordered by name with cursor pagination.

        Args:
            limit: Page size, clamped to MAX_PAGE_SIZE.
            recipient_type: Optional type filter.
            is_active: Optional status filter.
            cursor: ``next_cursor`` of the previous page.

        Returns:
            RecipientPage.

        Raises:
            RecipientNotFoundError: Cursor does not resolve in the organization.
        """
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        after = None
        if cursor is not None:
            after = self.recipients.get_by_id(cursor)
            if after is None:
                raise RecipientNotFoundError(cursor)

        rows = self.recipients.list_page(limit + 1, recipient_type, is_active, after)
        next_cursor = rows[limit - 1].id if len(rows) > limit else None
        return RecipientPage(rows[:limit], next_cursor)

    # -------------------------------------------------------------------------
    # Write
    # -------------------------------------------------------------------------

    def create(
        self,
        name: str,
        recipient_type: RecipientType,
        external_organization_id: UUID | None = None,
        parent_recipient_id: UUID | None = None,
        hierarchy_type: HierarchyType | None = None,
        description: str | None = None,
        purpose: str | None = None,
    ) -> RecipientWriteResult:
        """Create a recipient after validating its data and position.

        The hierarchy type defaults to the one assigned to the recipient type.

        Raises:
            HierarchyValidationError: Any blocking issue.
        """
        recipient_type = RecipientType(recipient_type)
        result = validate_recipient_data(recipient_type, external_organization_id)
        record_failures(result)
        result.merge(self.validator.validate_external_org_tenant(external_organization_id))
        result.merge(
            self.validator.validate_hierarchy(
                recipient_type,
                parent_recipient_id,
                hierarchy_type=hierarchy_type,
                lock=True,
            )
        )
        if not result.is_valid:
            raise HierarchyValidationError(result)

        recipient = self.recipients.create(
            Recipient(
                name=name,
                type=recipient_type,
                description=description,
                purpose=purpose,
                external_organization_id=external_organization_id,
                parent_recipient_id=parent_recipient_id,
                hierarchy_type=effective_hierarchy_type(recipient_type, hierarchy_type),
                is_active=True,
            )
        )
        result.merge(self.validator.validate_required_agreements(recipient))

        logger.info(
            "Created recipient %s (%s) in organization %s",
            recipient.id,
            recipient_type,
            self.organization_id,
        )
        self._audit(recipient.id, AuditAction.CREATE, parent_recipient_id=parent_recipient_id)
        return RecipientWriteResult(recipient, result.warnings)

    def update(self, recipient_id: UUID, changes: Mapping[str, Any]) -> RecipientWriteResult:
        """Apply a partial update.

        Only keys present in ``changes`` are modified; an explicit None
        for ``parent_recipient_id`` detaches the recipient. Changing the
        type without giving a hierarchy type resets it to the type's
        default. Re-parenting to the current parent is a no-op.

        Raises:
            RecipientNotFoundError: Unknown id or other organization.
            HierarchyValidationError: Any blocking issue.
            ValueError: Unknown field in ``changes``.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        recipient = self.manager.get_recipient(recipient_id, for_update=True)
        new_type = RecipientType(changes.get("type", recipient.type))
        new_parent = changes.get("parent_recipient_id", recipient.parent_recipient_id)
        new_external = changes.get("external_organization_id", recipient.external_organization_id)
        if "hierarchy_type" in changes:
            requested_hierarchy = changes["hierarchy_type"]
        elif new_type != recipient.type:
            requested_hierarchy = None
        else:
            requested_hierarchy = recipient.hierarchy_type
        new_hierarchy = effective_hierarchy_type(new_type, requested_hierarchy)

        result = ValidationResult()
        if new_type != recipient.type or new_external != recipient.external_organization_id:
            data_result = validate_recipient_data(new_type, new_external)
            record_failures(data_result)
            result.merge(data_result)
        if new_external != recipient.external_organization_id:
            result.merge(self.validator.validate_external_org_tenant(new_external))

        structural = (
            new_type != recipient.type
            or new_parent != recipient.parent_recipient_id
            or new_hierarchy != recipient.hierarchy_type
        )
        if structural:
            result.merge(
                self.validator.validate_hierarchy(
                    new_type,
                    new_parent,
                    recipient_id=recipient.id,
                    hierarchy_type=requested_hierarchy,
                    lock=True,
                )
            )
        if not result.is_valid:
            raise HierarchyValidationError(result)

        previous_parent = recipient.parent_recipient_id
        values = dict(changes)
        values["type"] = new_type
        values["hierarchy_type"] = new_hierarchy
        self.recipients.update(recipient, values)
        result.merge(self.validator.validate_required_agreements(recipient))

        if new_parent != previous_parent:
            logger.info(
                "Re-parented recipient %s from %s to %s",
                recipient.id,
                previous_parent,
                new_parent,
            )
            self._audit(
                recipient.id,
                AuditAction.REPARENT,
                previous_parent_id=previous_parent,
                parent_recipient_id=new_parent,
            )
        else:
            self._audit(recipient.id, AuditAction.UPDATE, fields=sorted(changes))
        return RecipientWriteResult(recipient, result.warnings)

    def reparent(self, recipient_id: UUID, parent_recipient_id: UUID | None) -> RecipientWriteResult:
        """Move a recipient (and its subtree) under a new parent or to the root."""
        return self.update(recipient_id, {"parent_recipient_id": parent_recipient_id})

    def validate_parent(self, recipient_id: UUID, parent_recipient_id: UUID | None) -> ValidationResult:
        """Dry-run the hierarchy validation of a re-parenting."""
        recipient = self.manager.get_recipient(recipient_id)
        if parent_recipient_id == recipient.parent_recipient_id:
            return ValidationResult()
        return self.validator.validate_hierarchy(
            recipient.type,
            parent_recipient_id,
            recipient_id=recipient.id,
            hierarchy_type=recipient.hierarchy_type,
        )

    def deactivate(self, recipient_id: UUID) -> RecipientWriteResult:
        """Soft-delete a recipient.

        Children keep their parent reference; a warning lists how many
        now sit under an inactive parent.

        Raises:
            RecipientNotFoundError: Unknown id or other organization.
        """
        recipient = self.manager.get_recipient(recipient_id, for_update=True)
        result = ValidationResult()
        if recipient.is_active:
            self.recipients.update(recipient, {"is_active": False})
            self._audit(recipient.id, AuditAction.DEACTIVATE)
            logger.info("Deactivated recipient %s", recipient.id)

        active_children = [child for child in self.recipients.get_children(recipient.id) if child.is_active]
        if active_children:
            result.add_warning(
                "is_active",
                "children_of_inactive_parent",
                f"{len(active_children)} active child recipient(s) now have an inactive parent",
                [child.id for child in active_children],
            )
        return RecipientWriteResult(recipient, result.warnings)

    def delete(self, recipient_id: UUID) -> None:
        """Hard-delete a recipient with no dependents.

        Raises:
            RecipientNotFoundError: Unknown id or other organization.
            ConflictOnDeleteError: Children, agreements or processing
                locations still reference the recipient.
        """
        recipient = self.manager.get_recipient(recipient_id, for_update=True)

        reasons = []
        children = self.recipients.count_children(recipient.id)
        if children:
            reasons.append(f"{children} child recipient(s) reference it as parent")
        agreements = self.agreements.count_for_recipient(recipient.id)
        if agreements:
            reasons.append(f"{agreements} agreement(s) are bound to it")
        locations = self.locations.count_for_recipient(recipient.id)
        if locations:
            reasons.append(f"{locations} processing location(s) are attached to it")
        if reasons:
            logger.info("Delete of recipient %s blocked: %s", recipient.id, "; ".join(reasons))
            raise ConflictOnDeleteError(recipient.id, reasons)

        recipient.activities.clear()
        self.recipients.delete(recipient)
        logger.info("Deleted recipient %s from organization %s", recipient_id, self.organization_id)
        self._audit(recipient_id, AuditAction.DELETE)
