"""Entry point of the src package. Enables python -m src."""

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path

from src.utils.logger import setup_logger


def run_init_db(drop: bool, seed: bool) -> None:
    """Create the schema, optionally seeding reference data."""
    from src.database.connection import get_database, init_database
    from src.database.seed import seed_reference_data

    if not init_database(create_schema=True, drop=drop):
        print("❌ Database unreachable")
        sys.exit(1)
    print("✅ Schema ready")

    if seed:
        with get_database().session() as session:
            seed_reference_data(session).log_summary()
        print("✅ Reference data seeded")


def run_seed() -> None:
    """Seed countries and transfer mechanisms."""
    from src.database.connection import get_database
    from src.database.seed import seed_reference_data

    with get_database().session() as session:
        stats = seed_reference_data(session)
        stats.log_summary()
    print(
        f"✅ Countries: {stats.countries_created} created, {stats.countries_updated} updated | "
        f"Mechanisms: {stats.mechanisms_created} created, {stats.mechanisms_updated} updated"
    )


def _resolve_organization(session, slug: str):
    from src.database.repositories.organization import OrganizationRepository

    organization = OrganizationRepository(session).get_by_slug(slug)
    if organization is None:
        print(f"❌ Unknown organization: {slug}")
        sys.exit(1)
    return organization


def run_create_org(slug: str, name: str, country: str | None) -> None:
    """Register an organization (tenant), optionally with its headquarters country."""
    from src.database.connection import get_database
    from src.database.models import Organization
    from src.database.repositories.organization import OrganizationRepository
    from src.database.repositories.reference import CountryRepository

    with get_database().session() as session:
        repo = OrganizationRepository(session)
        if repo.get_by_slug(slug) is not None:
            print(f"❌ Organization already exists: {slug}")
            sys.exit(1)
        headquarters = None
        if country:
            headquarters = CountryRepository(session).get_by_iso_code(country)
            if headquarters is None:
                print(f"❌ Unknown country: {country} (run: python -m src seed)")
                sys.exit(1)
        organization = repo.create(
            Organization(
                name=name,
                slug=slug,
                headquarters_country_id=headquarters.id if headquarters else None,
            )
        )
        print(f"✅ Organization {organization.slug} created ({organization.id})")


def _export_health_report(slug: str, report) -> Path:
    """Write a health report as JSON under the reports directory."""
    from dataclasses import asdict

    from src.settings import settings

    settings.paths.ensure_directories()
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    path = settings.paths.reports_dir / f"health_{slug}_{timestamp}.json"
    payload = {
        "organization": slug,
        "generated_at": datetime.now().isoformat(),
        "is_healthy": report.is_healthy,
        "counts": report.counts,
        **asdict(report),
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2, default=str)
    return path


def run_health_report(slug: str, export: bool = False) -> None:
    """Print the hierarchy health report of one organization."""
    from src.compliance.queries import RecipientQueries
    from src.database.connection import get_database

    with get_database().session() as session:
        organization = _resolve_organization(session, slug)
        report = RecipientQueries(session, organization.id).check_hierarchy_health()

    if export:
        path = _export_health_report(organization.slug, report)
        print(f"💾 Report written to {path}")

    status = "✅ healthy" if report.is_healthy else "⚠️  issues found"
    print(f"\n🩺 Hierarchy health of {organization.name}: {status}")
    print(f"  Recipients inspected: {report.total_recipients}")
    for category, count in report.counts.items():
        print(f"  - {category}: {count}")
    if not report.is_healthy:
        sys.exit(2)


def run_transfers(slug: str) -> None:
    """Print the cross-border transfers of one organization."""
    from src.compliance.transfers import TransferService
    from src.database.connection import get_database

    with get_database().session() as session:
        organization = _resolve_organization(session, slug)
        transfers = TransferService(session, organization.id).detect_cross_border_transfers()
        print(f"\n🌍 Cross-border transfers of {organization.name}: {len(transfers)}")
        for transfer in transfers:
            print(
                f"  - [{transfer.risk.level}] {transfer.recipient.name} → "
                f"{transfer.location.country.name} ({transfer.location.service}, depth {transfer.depth})"
            )


def run_api() -> None:
    """Start the FastAPI server."""
    import uvicorn

    from src.settings import settings

    print("🌐 Starting FastAPI server...")
    uvicorn.run(
        "src.api.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.api.reload,
    )


def main() -> None:
    """Main CLI."""
    parser = argparse.ArgumentParser(
        description="Compilo - GDPR recipient hierarchy and transfer risk engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m src init-db --seed                 # Create schema and reference data
  python -m src init-db --drop                 # Drop and recreate schema
  python -m src seed                           # Upsert reference data
  python -m src create-org acme "Acme SAS" --country FR
  python -m src health-report --org acme       # Hierarchy health report
  python -m src health-report --org acme --export  # ... and save it as JSON
  python -m src transfers --org acme           # Cross-border transfers
  python -m src serve                          # FastAPI server
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    init_parser = subparsers.add_parser("init-db", help="Create database schema")
    init_parser.add_argument("--drop", action="store_true", help="Drop existing tables first")
    init_parser.add_argument("--seed", action="store_true", help="Seed reference data afterwards")

    subparsers.add_parser("seed", help="Seed countries and transfer mechanisms")

    org_parser = subparsers.add_parser("create-org", help="Register an organization")
    org_parser.add_argument("slug", help="Organization slug")
    org_parser.add_argument("name", help="Organization name")
    org_parser.add_argument("--country", help="Headquarters ISO code (e.g. FR)")

    health_parser = subparsers.add_parser("health-report", help="Hierarchy health report")
    health_parser.add_argument("--org", required=True, help="Organization slug")
    health_parser.add_argument("--export", action="store_true", help="Also write the report as JSON under reports/")

    transfers_parser = subparsers.add_parser("transfers", help="Detect cross-border transfers")
    transfers_parser.add_argument("--org", required=True, help="Organization slug")

    subparsers.add_parser("serve", help="FastAPI server")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logger("src")

    try:
        if args.command == "init-db":
            run_init_db(args.drop, args.seed)
        elif args.command == "seed":
            run_seed()
        elif args.command == "create-org":
            run_create_org(args.slug, args.name, args.country)
        elif args.command == "health-report":
            run_health_report(args.org, args.export)
        elif args.command == "transfers":
            run_transfers(args.org)
        elif args.command == "serve":
            run_api()

    except KeyboardInterrupt:
        print("\n⚠️  Interrupted")
        sys.exit(130)
    except Exception as e:
        print(f"\n❌ ERROR: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
