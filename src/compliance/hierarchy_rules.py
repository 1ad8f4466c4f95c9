"""Recipient hierarchy rules.

One rule per recipient type: whether it may have a parent, which
parent types are allowed, which hierarchy types it may belong to,
whether it must reference an external organization and which
agreement types it is expected to hold.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from src.database.models.enums import AgreementType, HierarchyType, RecipientType
from src.settings import HierarchySettings, settings


@dataclass(frozen=True)
class HierarchyRule:
    """Structural rule for one recipient type.

    Attributes:
        can_have_parent: Whether the type may be attached under another recipient.
        allowed_parent_types: Types accepted as parent.
        hierarchy_type: Hierarchy type assigned when none is given.
        allowed_hierarchy_types: Hierarchy types a caller may set explicitly.
        requires_external_organization: Whether the role must name a legal entity.
        required_agreement_types: Agreement types expected to be in force.
    """

    can_have_parent: bool
    allowed_parent_types: frozenset[RecipientType]
    hierarchy_type: HierarchyType | None
    allowed_hierarchy_types: frozenset[HierarchyType]
    requires_external_organization: bool
    required_agreement_types: tuple[AgreementType, ...] = ()


_ROOT_ONLY = frozenset[RecipientType]()
_GROUPING_ONLY = frozenset({HierarchyType.GROUPING})

HIERARCHY_RULES: Mapping[RecipientType, HierarchyRule] = MappingProxyType(
    {
        RecipientType.PROCESSOR: HierarchyRule(
            can_have_parent=False,
            allowed_parent_types=_ROOT_ONLY,
            hierarchy_type=None,
            allowed_hierarchy_types=frozenset({HierarchyType.PROCESSOR_CHAIN, HierarchyType.GROUPING}),
            requires_external_organization=True,
            required_agreement_types=(AgreementType.DPA,),
        ),
        RecipientType.SUB_PROCESSOR: HierarchyRule(
            can_have_parent=True,
            allowed_parent_types=frozenset({RecipientType.PROCESSOR, RecipientType.SUB_PROCESSOR}),
            hierarchy_type=HierarchyType.PROCESSOR_CHAIN,
            allowed_hierarchy_types=frozenset({HierarchyType.PROCESSOR_CHAIN, HierarchyType.GROUPING}),
            requires_external_organization=True,
        ),
        RecipientType.JOINT_CONTROLLER: HierarchyRule(
            can_have_parent=False,
            allowed_parent_types=_ROOT_ONLY,
            hierarchy_type=None,
            allowed_hierarchy_types=_GROUPING_ONLY,
            requires_external_organization=True,
            required_agreement_types=(AgreementType.JOINT_CONTROLLER_AGREEMENT,),
        ),
        RecipientType.SERVICE_PROVIDER: HierarchyRule(
            can_have_parent=False,
            allowed_parent_types=_ROOT_ONLY,
            hierarchy_type=None,
            allowed_hierarchy_types=_GROUPING_ONLY,
            requires_external_organization=True,
        ),
        RecipientType.SEPARATE_CONTROLLER: HierarchyRule(
            can_have_parent=False,
            allowed_parent_types=_ROOT_ONLY,
            hierarchy_type=None,
            allowed_hierarchy_types=_GROUPING_ONLY,
            requires_external_organization=True,
        ),
        RecipientType.PUBLIC_AUTHORITY: HierarchyRule(
            can_have_parent=False,
            allowed_parent_types=_ROOT_ONLY,
            hierarchy_type=None,
            allowed_hierarchy_types=_GROUPING_ONLY,
            requires_external_organization=True,
        ),
        RecipientType.INTERNAL_DEPARTMENT: HierarchyRule(
            can_have_parent=True,
            allowed_parent_types=frozenset({RecipientType.INTERNAL_DEPARTMENT}),
            hierarchy_type=HierarchyType.ORGANIZATIONAL,
            allowed_hierarchy_types=frozenset({HierarchyType.ORGANIZATIONAL, HierarchyType.GROUPING}),
            requires_external_organization=False,
        ),
    }
)

# Types expected to hold at least one agreement in force when linked to a legal entity
AGREEMENT_EXPECTED_TYPES = frozenset(
    {
        RecipientType.PROCESSOR,
        RecipientType.SUB_PROCESSOR,
        RecipientType.JOINT_CONTROLLER,
        RecipientType.SERVICE_PROVIDER,
    }
)


def get_hierarchy_rule(recipient_type: RecipientType) -> HierarchyRule:
    """Return the rule of a recipient type."""
    return HIERARCHY_RULES[RecipientType(recipient_type)]


def get_hierarchy_type_for_recipient(recipient_type: RecipientType) -> HierarchyType | None:
    """Hierarchy type assigned to a recipient when the caller gives none."""
    return get_hierarchy_rule(recipient_type).hierarchy_type


def effective_hierarchy_type(
    recipient_type: RecipientType,
    hierarchy_type: HierarchyType | None,
) -> HierarchyType | None:
    """Explicit hierarchy type if set, otherwise the type's default."""
    if hierarchy_type is not None:
        return HierarchyType(hierarchy_type)
    return get_hierarchy_type_for_recipient(recipient_type)


def is_allowed_parent(child_type: RecipientType, parent_type: RecipientType) -> bool:
    """Whether ``parent_type`` may sit directly above ``child_type``."""
    rule = get_hierarchy_rule(child_type)
    return rule.can_have_parent and RecipientType(parent_type) in rule.allowed_parent_types


def get_max_depth(
    hierarchy_type: HierarchyType | None,
    limits: HierarchySettings | None = None,
) -> int:
    """Maximum depth from the root for a hierarchy type.

    Recipients outside any hierarchy are roots and get a cap of 0.

    Args:
        hierarchy_type: Effective hierarchy type.
        limits: Depth caps (defaults to application settings).

    Returns:
        Deepest allowed position, root being 0.
    """
    limits = limits or settings.hierarchy
    caps = {
        HierarchyType.PROCESSOR_CHAIN: limits.processor_chain_max_depth,
        HierarchyType.ORGANIZATIONAL: limits.organizational_max_depth,
        HierarchyType.GROUPING: limits.grouping_max_depth,
    }
    if hierarchy_type is None:
        return 0
    return caps[HierarchyType(hierarchy_type)]
