"""Reference data seeding.

Loads countries with their GDPR status tags and the catalogue of
transfer mechanisms. Seeding is idempotent: rows are keyed by ISO
code and mechanism code and refreshed in place.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from src.database.models.enums import GdprStatus, MechanismCategory
from src.database.repositories.reference import CountryRepository, TransferMechanismRepository

logger = logging.getLogger(__name__)

EU = GdprStatus.EU.value
EEA = GdprStatus.EEA.value
EFTA = GdprStatus.EFTA.value
THIRD = GdprStatus.THIRD_COUNTRY.value
ADEQUATE = GdprStatus.ADEQUATE.value

# (iso2, iso3, name, gdpr_status)
COUNTRIES: list[tuple[str, str, str, list[str]]] = [
    # EU member states
    ("AT", "AUT", "Austria", [EU, EEA]),
    ("BE", "BEL", "Belgium", [EU, EEA]),
    ("BG", "BGR", "Bulgaria", [EU, EEA]),
    ("HR", "HRV", "Croatia", [EU, EEA]),
    ("CY", "CYP", "Cyprus", [EU, EEA]),
    ("CZ", "CZE", "Czechia", [EU, EEA]),
    ("DK", "DNK", "Denmark", [EU, EEA]),
    ("EE", "EST", "Estonia", [EU, EEA]),
    ("FI", "FIN", "Finland", [EU, EEA]),
    ("FR", "FRA", "France", [EU, EEA]),
    ("DE", "DEU", "Germany", [EU, EEA]),
    ("GR", "GRC", "Greece", [EU, EEA]),
    ("HU", "HUN", "Hungary", [EU, EEA]),
    ("IE", "IRL", "Ireland", [EU, EEA]),
    ("IT", "ITA", "Italy", [EU, EEA]),
    ("LV", "LVA", "Latvia", [EU, EEA]),
    ("LT", "LTU", "Lithuania", [EU, EEA]),
    ("LU", "LUX", "Luxembourg", [EU, EEA]),
    ("MT", "MLT", "Malta", [EU, EEA]),
    ("NL", "NLD", "Netherlands", [EU, EEA]),
    ("PL", "POL", "Poland", [EU, EEA]),
    ("PT", "PRT", "Portugal", [EU, EEA]),
    ("RO", "ROU", "Romania", [EU, EEA]),
    ("SK", "SVK", "Slovakia", [EU, EEA]),
    ("SI", "SVN", "Slovenia", [EU, EEA]),
    ("ES", "ESP", "Spain", [EU, EEA]),
    ("SE", "SWE", "Sweden", [EU, EEA]),
    # EEA / EFTA
    ("IS", "ISL", "Iceland", [EEA, EFTA]),
    ("LI", "LIE", "Liechtenstein", [EEA, EFTA]),
    ("NO", "NOR", "Norway", [EEA, EFTA]),
    ("CH", "CHE", "Switzerland", [EFTA, ADEQUATE]),
    # Adequacy decisions
    ("AD", "AND", "Andorra", [ADEQUATE]),
    ("AR", "ARG", "Argentina", [ADEQUATE]),
    ("CA", "CAN", "Canada", [ADEQUATE]),
    ("FO", "FRO", "Faroe Islands", [ADEQUATE]),
    ("GG", "GGY", "Guernsey", [ADEQUATE]),
    ("IL", "ISR", "Israel", [ADEQUATE]),
    ("IM", "IMN", "Isle of Man", [ADEQUATE]),
    ("JP", "JPN", "Japan", [ADEQUATE]),
    ("JE", "JEY", "Jersey", [ADEQUATE]),
    ("NZ", "NZL", "New Zealand", [ADEQUATE]),
    ("KR", "KOR", "South Korea", [ADEQUATE]),
    ("GB", "GBR", "United Kingdom", [ADEQUATE]),
    ("UY", "URY", "Uruguay", [ADEQUATE]),
    # Third countries
    ("US", "USA", "United States", [THIRD]),
    ("CN", "CHN", "China", [THIRD]),
    ("IN", "IND", "India", [THIRD]),
    ("BR", "BRA", "Brazil", [THIRD]),
    ("AU", "AUS", "Australia", [THIRD]),
    ("SG", "SGP", "Singapore", [THIRD]),
    ("RU", "RUS", "Russia", [THIRD]),
    ("ZA", "ZAF", "South Africa", [THIRD]),
    ("MX", "MEX", "Mexico", [THIRD]),
    ("AE", "ARE", "United Arab Emirates", [THIRD]),
    ("PH", "PHL", "Philippines", [THIRD]),
    ("UA", "UKR", "Ukraine", [THIRD]),
]

# (code, name, gdpr_article, category, is_derogation, requires_adequacy, requires_documentation)
TRANSFER_MECHANISMS: list[tuple[str, str, str | None, MechanismCategory, bool, bool, bool]] = [
    ("ADEQUACY", "Adequacy Decision", "Art. 45", MechanismCategory.ADEQUACY, False, True, False),
    ("SCC", "Standard Contractual Clauses", "Art. 46(2)(c)", MechanismCategory.SAFEGUARD, False, False, True),
    ("BCR", "Binding Corporate Rules", "Art. 46(2)(b)", MechanismCategory.SAFEGUARD, False, False, True),
    ("CODE_OF_CONDUCT", "Approved Code of Conduct", "Art. 46(2)(e)", MechanismCategory.SAFEGUARD, False, False, True),
    ("CERTIFICATION", "Approved Certification Mechanism", "Art. 46(2)(f)", MechanismCategory.SAFEGUARD, False, False, True),
    ("DEROGATION_CONSENT", "Explicit Consent (derogation)", "Art. 49(1)(a)", MechanismCategory.DEROGATION, True, False, True),
    ("DEROGATION_CONTRACT", "Performance of a Contract (derogation)", "Art. 49(1)(b)", MechanismCategory.DEROGATION, True, False, True),
    ("NONE", "No Mechanism", None, MechanismCategory.NONE, False, False, False),
]


@dataclass
class SeedStats:
    """Counts of reference rows written by one seeding run."""

    countries_created: int = 0
    countries_updated: int = 0
    mechanisms_created: int = 0
    mechanisms_updated: int = 0

    def log_summary(self) -> None:
        """Log seeding summary."""
        logger.info(
            "Reference data seeded: countries %d new / %d refreshed, "
            "mechanisms %d new / %d refreshed",
            self.countries_created,
            self.countries_updated,
            self.mechanisms_created,
            self.mechanisms_updated,
        )


def seed_countries(session: Session, stats: SeedStats) -> None:
    """Upsert the country catalogue.

    Args:
        session: Open database session.
        stats: Counters updated in place.
    """
    repo = CountryRepository(session)
    for iso_code, iso_code3, name, status in COUNTRIES:
        _, created = repo.upsert(
            {
                "iso_code": iso_code,
                "iso_code3": iso_code3,
                "name": name,
                "gdpr_status": list(status),
                "is_active": True,
            }
        )
        if created:
            stats.countries_created += 1
        else:
            stats.countries_updated += 1


def seed_transfer_mechanisms(session: Session, stats: SeedStats) -> None:
    """Upsert the transfer mechanism catalogue.

    Args:
        session: Open database session.
        stats: Counters updated in place.
    """
    repo = TransferMechanismRepository(session)
    for code, name, article, category, derogation, adequacy, documentation in TRANSFER_MECHANISMS:
        _, created = repo.upsert(
            {
                "code": code,
                "name": name,
                "gdpr_article": article,
                "category": category,
                "is_derogation": derogation,
                "requires_adequacy": adequacy,
                "requires_documentation": documentation,
                "is_active": True,
            }
        )
        if created:
            stats.mechanisms_created += 1
        else:
            stats.mechanisms_updated += 1


def seed_reference_data(session: Session) -> SeedStats:
    """Seed every reference table.

    Args:
        session: Open database session; the caller commits.

    Returns:
        Seeding statistics.
    """
    stats = SeedStats()
    seed_countries(session, stats)
    seed_transfer_mechanisms(session, stats)
    stats.log_summary()
    return stats
