"""Audit trail of recipient access and mutations.

Events are emitted through structlog with the organization, the
recipient, the acting user and the action bound as fields.
"""

import enum
from typing import Any
from uuid import UUID

import structlog


class AuditAction(enum.StrEnum):
    """Audited operations on recipients."""

    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    REPARENT = "reparent"
    DEACTIVATE = "deactivate"
    DELETE = "delete"


def audit_recipient_access(
    recipient_id: UUID,
    user_id: str | None,
    action: AuditAction | str,
    organization_id: UUID,
    **details: Any,
) -> None:
    """Emit one audit event.

    Args:
        recipient_id: Recipient accessed or changed.
        user_id: Acting user (JWT subject), None for system calls.
        action: Operation performed.
        organization_id: Tenant of the recipient.
        **details: Extra fields (e.g. previous parent id).
    """
    logger = structlog.get_logger("compilo.audit")
    logger.info(
        "recipient_access",
        action=str(action),
        recipient_id=str(recipient_id),
        organization_id=str(organization_id),
        user_id=user_id or "system",
        **{key: str(value) if isinstance(value, UUID) else value for key, value in details.items()},
    )
