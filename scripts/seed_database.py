#!/usr/bin/env python3
"""
Load the starter service providers, appliances and issue into the SQL database.

Usage:
  python scripts/seed_database.py [--force]
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Make the portal package importable when run directly
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from portal.client.seed import seed_records  # noqa: E402
from portal.db.create_tables import create_all  # noqa: E402
from portal.domain.entities import APPLIANCES, ISSUES, SERVICE_PROVIDERS, editable_fields  # noqa: E402
from portal.repositories.sql_repository import SQLRepository  # noqa: E402


def seed(repo: SQLRepository, *, force: bool = False) -> int:
    """Insert seed rows that are missing. Returns how many rows were written."""
    writers = {
        SERVICE_PROVIDERS: (repo.get_service_provider, repo.create_service_provider),
        APPLIANCES: (repo.get_appliance, repo.create_appliance),
        ISSUES: (repo.get_issue, repo.create_issue),
    }
    has_data = any(
        lister() for lister in (repo.list_service_providers, repo.list_appliances, repo.list_issues)
    )
    if has_data and not force:
        return 0
    written = 0
    for kind, (getter, creator) in writers.items():
        for record in seed_records(kind):
            if getter(record.id):
                continue
            values = {name: getattr(record, name) for name in editable_fields(kind)}
            creator(values, entity_id=record.id, created_at=record.created_at)
            written += 1
    return written


def main() -> None:
    ap = argparse.ArgumentParser(description="Seed the portal database with starter records")
    ap.add_argument("--force", action="store_true", help="Insert missing seed rows even if tables have data")
    args = ap.parse_args()

    create_all()
    written = seed(SQLRepository(), force=args.force)
    print(f"OK: {written} seed rows written")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover - CLI usage
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
