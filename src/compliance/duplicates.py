"""Duplicate external organization detection.

Names are transliterated, lowercased and stripped of punctuation and
legal-form suffixes, then compared pairwise with SequenceMatcher.
Matching pairs are merged into groups so that A~B and B~C report
A, B and C together.
"""

import logging
import re
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from itertools import combinations
from uuid import UUID

from unidecode import unidecode

from src.database.models.external import ExternalOrganization

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

LEGAL_SUFFIXES = frozenset(
    {
        "ag", "bv", "co", "company", "corp", "corporation", "gmbh", "inc",
        "incorporated", "limited", "llc", "llp", "ltd", "nv", "plc", "sa",
        "sarl", "sas", "spa", "srl",
    }
)
"""Legal-form tokens ignored when comparing names."""

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


# =============================================================================
# RESULT
# =============================================================================


@dataclass
class DuplicateGroup:
    """External organizations that probably denote the same legal entity.

    Attributes:
        organizations: Members ordered by legal name.
        similarity: Highest pairwise ratio that linked the group.
    """

    organizations: list[ExternalOrganization] = field(default_factory=list)
    similarity: float = 0.0

    @property
    def normalized_name(self) -> str:
        """Normalized name of the first member."""
        return normalize_organization_name(self.organizations[0].legal_name)


# =============================================================================
# MATCHING
# =============================================================================


def normalize_organization_name(name: str) -> str:
    """Reduce a company name to comparable tokens.

    Args:
        name: Legal or trading name.

    Returns:
        ASCII lowercase words without legal-form suffixes.
    """
    tokens = _NON_ALNUM.sub(" ", unidecode(name).lower()).split()
    kept = [token for token in tokens if token not in LEGAL_SUFFIXES]
    return " ".join(kept or tokens)


def name_similarity(org_a: ExternalOrganization, org_b: ExternalOrganization) -> float:
    """Best ratio across legal and trading names of two organizations."""
    names_a = {normalize_organization_name(n) for n in (org_a.legal_name, org_a.trading_name) if n}
    names_b = {normalize_organization_name(n) for n in (org_b.legal_name, org_b.trading_name) if n}
    return max(
        (SequenceMatcher(None, a, b).ratio() for a in names_a for b in names_b),
        default=0.0,
    )


def find_duplicate_groups(
    organizations: list[ExternalOrganization],
    threshold: float,
) -> list[DuplicateGroup]:
    """Group organizations whose names are similar.

    Args:
        organizations: Candidates, all from one tenant.
        threshold: Minimum SequenceMatcher ratio.

    Returns:
        Groups of two or more organizations, largest first.
    """
    parent: dict[UUID, UUID] = {org.id: org.id for org in organizations}
    best: dict[UUID, float] = {}

    def find(node: UUID) -> UUID:
        while parent[node] != node:
            parent[node] = parent[parent[node]]
            node = parent[node]
        return node

    for org_a, org_b in combinations(organizations, 2):
        ratio = name_similarity(org_a, org_b)
        if ratio < threshold:
            continue
        root_a, root_b = find(org_a.id), find(org_b.id)
        merged = max(ratio, best.get(root_a, 0.0), best.get(root_b, 0.0))
        if root_a != root_b:
            parent[root_b] = root_a
        best[root_a] = merged

    groups: dict[UUID, DuplicateGroup] = {}
    for org in organizations:
        root = find(org.id)
        if root in best:
            groups.setdefault(root, DuplicateGroup(similarity=best[root])).organizations.append(org)

    result = [group for group in groups.values() if len(group.organizations) > 1]
    for group in result:
        group.organizations.sort(key=lambda org: (org.legal_name, str(org.id)))
    result.sort(key=lambda group: (-len(group.organizations), group.organizations[0].legal_name))
    logger.debug("Duplicate detection: %d organizations, %d groups", len(organizations), len(result))
    return result
