"""Recipient endpoints for REST API.

CRUD over the caller's recipients plus hierarchy navigation and
dry-run parent validation. Compliance errors are mapped to HTTP
responses by the application's exception handlers.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from src.api.dependencies.services import RecipientServiceDep
from src.api.schemas import (
    AncestorsResponse,
    DepthResponse,
    DescendantRead,
    DescendantsResponse,
    ParentValidationRequest,
    RecipientCreate,
    RecipientListResponse,
    RecipientRead,
    RecipientTreeRead,
    RecipientUpdate,
    RecipientWriteResponse,
    ValidationResultResponse,
)
from src.compliance.hierarchy_rules import get_max_depth
from src.compliance.recipients import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from src.database.models.enums import RecipientType

router = APIRouter(
    prefix="/recipients",
    tags=["Recipients"],
)

# Columns that cannot be cleared through a PATCH
_NON_NULLABLE_FIELDS = ("name", "type")


# =============================================================================
# COLLECTION
# =============================================================================


@router.get(
    "",
    response_model=RecipientListResponse,
    summary="List recipients",
    description="Cursor-paginated recipients ordered by name.",
)
def list_recipients(
    service: RecipientServiceDep,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
    type: Annotated[RecipientType | None, Query()] = None,  # noqa: A002
    is_active: Annotated[bool | None, Query()] = None,
    cursor: Annotated[UUID | None, Query()] = None,
) -> RecipientListResponse:
    """Get one page of recipients.

    Args:
        service: Recipient service of the caller's organization.
        limit: Page size.
        type: Optional recipient type filter.
        is_active: Optional status filter.
        cursor: ``next_cursor`` of the previous page.

    Returns:
        Page of recipients with the next cursor.
    """
    page = service.list_recipients(limit=limit, recipient_type=type, is_active=is_active, cursor=cursor)
    return RecipientListResponse(
        data=[RecipientRead.model_validate(r) for r in page.items],
        next_cursor=page.next_cursor,
    )


@router.post(
    "",
    response_model=RecipientWriteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create recipient",
)
def create_recipient(request: RecipientCreate, service: RecipientServiceDep) -> RecipientWriteResponse:
    """Create a recipient after hierarchy validation.

    Raises:
        HierarchyValidationError: Mapped to 422 with the issue list.
    """
    result = service.create(
        name=request.name,
        recipient_type=request.type,
        external_organization_id=request.external_organization_id,
        parent_recipient_id=request.parent_recipient_id,
        hierarchy_type=request.hierarchy_type,
        description=request.description,
        purpose=request.purpose,
    )
    return RecipientWriteResponse.model_validate(result)


# =============================================================================
# ITEM
# =============================================================================


@router.get("/{recipient_id}", response_model=RecipientRead, summary="Get recipient")
def get_recipient(recipient_id: UUID, service: RecipientServiceDep) -> RecipientRead:
    """Get one recipient of the caller's organization."""
    return RecipientRead.model_validate(service.get(recipient_id))


@router.patch(
    "/{recipient_id}",
    response_model=RecipientWriteResponse,
    summary="Update recipient",
    description="Partial update; sending parent_recipient_id null detaches the recipient.",
)
def update_recipient(
    recipient_id: UUID,
    request: RecipientUpdate,
    service: RecipientServiceDep,
) -> RecipientWriteResponse:
    """Apply the fields present in the request body."""
    changes = request.model_dump(exclude_unset=True)
    for name in _NON_NULLABLE_FIELDS:
        if name in changes and changes[name] is None:
            del changes[name]
    return RecipientWriteResponse.model_validate(service.update(recipient_id, changes))


@router.delete(
    "/{recipient_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete recipient",
    description="Hard delete; refused with 409 while children, agreements or locations depend on it.",
)
def delete_recipient(recipient_id: UUID, service: RecipientServiceDep) -> Response:
    """Hard-delete a recipient without dependents."""
    service.delete(recipient_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{recipient_id}/deactivate",
    response_model=RecipientWriteResponse,
    summary="Deactivate recipient",
)
def deactivate_recipient(recipient_id: UUID, service: RecipientServiceDep) -> RecipientWriteResponse:
    """Soft-delete a recipient; children keep their parent."""
    return RecipientWriteResponse.model_validate(service.deactivate(recipient_id))


# =============================================================================
# HIERARCHY
# =============================================================================


@router.get(
    "/{recipient_id}/children",
    response_model=list[RecipientRead],
    summary="Direct children",
)
def get_children(recipient_id: UUID, service: RecipientServiceDep) -> list[RecipientRead]:
    """Children of a recipient in creation order."""
    return [RecipientRead.model_validate(r) for r in service.manager.get_direct_children(recipient_id)]


@router.get(
    "/{recipient_id}/descendants",
    response_model=DescendantsResponse,
    summary="Subtree",
)
def get_descendants(recipient_id: UUID, service: RecipientServiceDep) -> DescendantsResponse:
    """Subtree of a recipient as a flat list and as a nested tree."""
    descendants = service.manager.get_descendants(recipient_id)
    tree = service.manager.get_descendant_tree(recipient_id)
    return DescendantsResponse(
        root_id=recipient_id,
        count=len(descendants),
        descendants=[DescendantRead.model_validate(row) for row in descendants],
        tree=RecipientTreeRead.model_validate(tree),
    )


@router.get(
    "/{recipient_id}/ancestors",
    response_model=AncestorsResponse,
    summary="Ancestor chain",
)
def get_ancestors(recipient_id: UUID, service: RecipientServiceDep) -> AncestorsResponse:
    """Ancestors from the immediate parent up to the root."""
    chain = service.manager.get_ancestor_chain(recipient_id)
    return AncestorsResponse(
        recipient_id=recipient_id,
        ancestors=[RecipientRead.model_validate(r) for r in chain],
    )


@router.get(
    "/{recipient_id}/depth",
    response_model=DepthResponse,
    summary="Hierarchy depth",
)
def get_depth(recipient_id: UUID, service: RecipientServiceDep) -> DepthResponse:
    """Depth of a recipient (root is 0) and the cap that applies to it."""
    recipient = service.manager.get_recipient(recipient_id)
    return DepthResponse(
        recipient_id=recipient_id,
        depth=service.manager.calculate_hierarchy_depth(recipient_id),
        hierarchy_type=recipient.hierarchy_type,
        max_depth=get_max_depth(recipient.hierarchy_type, service.manager.limits),
    )


@router.post(
    "/{recipient_id}/validate-parent",
    response_model=ValidationResultResponse,
    summary="Validate parent",
    description="Dry run of a re-parenting; nothing is written.",
)
def validate_parent(
    recipient_id: UUID,
    request: ParentValidationRequest,
    service: RecipientServiceDep,
) -> ValidationResultResponse:
    """Errors and warnings a re-parenting would raise."""
    result = service.validate_parent(recipient_id, request.parent_recipient_id)
    return ValidationResultResponse.model_validate(result)
