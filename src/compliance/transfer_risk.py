"""Cross-border transfer risk evaluation.

Pure functions classifying a data flow between two jurisdictions and
checking whether a safeguard mechanism is legally required (GDPR
Chapter V). Inputs are anything exposing ``name`` and ``gdpr_status``,
so ORM rows and plain objects are accepted alike.

Decision table of ``derive_transfer_risk``, first match wins:

    1. same jurisdiction                        -> NONE     SAME_JURISDICTION
    2. destination has an adequacy decision     -> LOW      ADEQUACY_DECISION
    3. third-country destination, no mechanism  -> CRITICAL THIRD_COUNTRY_NO_MECHANISM
    4. third-country destination, mechanism     -> MEDIUM   SAFEGUARDS_IN_PLACE
    otherwise                                   -> NONE     SAME_JURISDICTION
"""

import enum
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Protocol

from src.database.models.enums import GdprStatus

# Tags whose shared presence makes two countries one jurisdiction
TRUSTED_TAGS = frozenset({GdprStatus.EU.value, GdprStatus.EEA.value})

# Tags exempting a destination from third-country treatment
NON_THIRD_COUNTRY_TAGS = TRUSTED_TAGS | {GdprStatus.ADEQUATE.value}

ADEQUATE = GdprStatus.ADEQUATE.value


class Jurisdiction(Protocol):
    """Anything carrying a country name and its GDPR status tags."""

    name: str
    gdpr_status: Iterable[str]


class TransferRiskLevel(enum.StrEnum):
    """Severity of a cross-border transfer."""

    NONE = "NONE"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    CRITICAL = "CRITICAL"


class TransferRiskReason(enum.StrEnum):
    """Decision-table branch that produced a risk level."""

    SAME_JURISDICTION = "SAME_JURISDICTION"
    ADEQUACY_DECISION = "ADEQUACY_DECISION"
    SAFEGUARDS_IN_PLACE = "SAFEGUARDS_IN_PLACE"
    THIRD_COUNTRY_NO_MECHANISM = "THIRD_COUNTRY_NO_MECHANISM"


@dataclass(frozen=True)
class TransferRisk:
    """Derived risk of one transfer.

    Attributes:
        level: Severity.
        reason: Branch of the decision table.
        mechanism: Safeguard justifying a MEDIUM rating, else None.
    """

    level: TransferRiskLevel
    reason: TransferRiskReason
    mechanism: Any = None


@dataclass(frozen=True)
class MechanismRequirement:
    """Outcome of ``validate_transfer_mechanism_requirement``.

    Attributes:
        valid: False when a required mechanism is missing.
        required: Whether the pair legally requires a safeguard.
        error: Blocking message when invalid.
        warning: Advisory message (mechanism supplied but unnecessary).
    """

    valid: bool
    required: bool
    error: str | None = None
    warning: str | None = None


def _tags(country: Jurisdiction) -> frozenset[str]:
    return frozenset(str(tag) for tag in country.gdpr_status or ())


def is_same_jurisdiction(a: Jurisdiction, b: Jurisdiction) -> bool:
    """Whether two countries form one data-protection area.

    True when they share EU or EEA, or when both hold an adequacy decision.
    """
    tags_a, tags_b = _tags(a), _tags(b)
    if tags_a & tags_b & TRUSTED_TAGS:
        return True
    return ADEQUATE in tags_a and ADEQUATE in tags_b


def is_third_country(country: Jurisdiction) -> bool:
    """True iff the country is neither EU, EEA nor adequate."""
    return not _tags(country) & NON_THIRD_COUNTRY_TAGS


def has_adequacy_decision(country: Jurisdiction) -> bool:
    """True iff the country carries the Adequate tag."""
    return ADEQUATE in _tags(country)


def requires_safeguards(source: Jurisdiction, destination: Jurisdiction) -> bool:
    """Whether a transfer needs an Article 46 safeguard.

    Only EU/EEA-origin transfers to a genuine third country qualify.
    """
    if not _tags(source) & TRUSTED_TAGS:
        return False
    return is_third_country(destination)


def derive_transfer_risk(
    source: Jurisdiction,
    destination: Jurisdiction,
    mechanism: Any = None,
) -> TransferRisk:
    """Classify the risk of transferring data from source to destination.

    A mechanism is ignored unless the destination is a third country.

    Args:
        source: Exporting country.
        destination: Importing country.
        mechanism: Safeguard in place, if any.

    Returns:
        TransferRisk with level, reason and, for MEDIUM, the mechanism.
    """
    if is_same_jurisdiction(source, destination):
        return TransferRisk(TransferRiskLevel.NONE, TransferRiskReason.SAME_JURISDICTION)
    if has_adequacy_decision(destination):
        return TransferRisk(TransferRiskLevel.LOW, TransferRiskReason.ADEQUACY_DECISION)
    if is_third_country(destination):
        if mechanism is None:
            return TransferRisk(
                TransferRiskLevel.CRITICAL, TransferRiskReason.THIRD_COUNTRY_NO_MECHANISM
            )
        return TransferRisk(
            TransferRiskLevel.MEDIUM, TransferRiskReason.SAFEGUARDS_IN_PLACE, mechanism
        )
    return TransferRisk(TransferRiskLevel.NONE, TransferRiskReason.SAME_JURISDICTION)


def validate_transfer_mechanism_requirement(
    source: Jurisdiction,
    destination: Jurisdiction,
    mechanism_id: Any = None,
) -> MechanismRequirement:
    """Check that a required safeguard is present.

    The mechanism id is not resolved here; persisting callers verify it
    points to an active TransferMechanism.

    Args:
        source: Exporting country.
        destination: Importing country.
        mechanism_id: Selected mechanism id or None.

    Returns:
        MechanismRequirement describing validity and need.
    """
    if not requires_safeguards(source, destination):
        warning = None
        if mechanism_id is not None and is_same_jurisdiction(source, destination):
            warning = (
                f"Transfer mechanism not required: {source.name} and "
                f"{destination.name} belong to the same jurisdiction."
            )
        return MechanismRequirement(valid=True, required=False, warning=warning)

    if mechanism_id is None:
        return MechanismRequirement(
            valid=False,
            required=True,
            error=(
                f"Transfer mechanism required: {destination.name} is a third country "
                "without adequacy decision. Select an appropriate safeguard under "
                "GDPR Article 46 (e.g., Standard Contractual Clauses)."
            ),
        )
    return MechanismRequirement(valid=True, required=True)
