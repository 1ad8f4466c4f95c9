"""Enumerations shared by the compliance models.

Values are persisted by name through SQLAlchemy ``Enum`` columns and
serialized by value in API payloads.
"""

import enum


class RecipientType(enum.StrEnum):
    """Role through which personal data flows to a party."""

    PROCESSOR = "PROCESSOR"
    SUB_PROCESSOR = "SUB_PROCESSOR"
    JOINT_CONTROLLER = "JOINT_CONTROLLER"
    SERVICE_PROVIDER = "SERVICE_PROVIDER"
    SEPARATE_CONTROLLER = "SEPARATE_CONTROLLER"
    PUBLIC_AUTHORITY = "PUBLIC_AUTHORITY"
    INTERNAL_DEPARTMENT = "INTERNAL_DEPARTMENT"


class HierarchyType(enum.StrEnum):
    """Kind of tree a recipient participates in."""

    PROCESSOR_CHAIN = "PROCESSOR_CHAIN"
    ORGANIZATIONAL = "ORGANIZATIONAL"
    GROUPING = "GROUPING"


class GdprStatus(enum.StrEnum):
    """Country classification tags. A country may carry several."""

    EU = "EU"
    EEA = "EEA"
    EFTA = "EFTA"
    THIRD_COUNTRY = "Third Country"
    ADEQUATE = "Adequate"


class MechanismCategory(enum.StrEnum):
    """Legal family of a transfer mechanism."""

    ADEQUACY = "ADEQUACY"
    SAFEGUARD = "SAFEGUARD"
    DEROGATION = "DEROGATION"
    NONE = "NONE"


class AgreementType(enum.StrEnum):
    """Contract families binding a recipient."""

    DPA = "DPA"
    JOINT_CONTROLLER_AGREEMENT = "JOINT_CONTROLLER_AGREEMENT"
    SCC = "SCC"
    BCR = "BCR"
    DPF = "DPF"
    NDA = "NDA"


class AgreementStatus(enum.StrEnum):
    """Agreement lifecycle states."""

    DRAFT = "DRAFT"
    PENDING_SIGNATURE = "PENDING_SIGNATURE"
    ACTIVE = "ACTIVE"
    EXPIRING_SOON = "EXPIRING_SOON"
    EXPIRED = "EXPIRED"
    TERMINATED = "TERMINATED"


class LocationRole(enum.StrEnum):
    """What a recipient does with data in a given country."""

    HOSTING = "HOSTING"
    PROCESSING = "PROCESSING"
    BOTH = "BOTH"


class ActivityStatus(enum.StrEnum):
    """Processing activity record status."""

    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"
