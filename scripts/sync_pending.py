#!/usr/bin/env python3
"""
Push writes that were saved only on this device back to the portal API.

Usage:
  PORTAL_API_URL=http://localhost:8000/api python scripts/sync_pending.py [--store path/to/local_store.json]
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Make the portal package importable when run directly
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from portal.client.bridge import PersistenceBridge  # noqa: E402
from portal.client.remote import RemoteApi  # noqa: E402
from portal.core.config import get_settings  # noqa: E402
from portal.repositories.json_storage import JsonFileStore  # noqa: E402


def main() -> None:
    settings = get_settings()
    ap = argparse.ArgumentParser(description="Replay offline writes against the portal API")
    ap.add_argument("--store", default=settings.local_store_path, help="Local store JSON file")
    ap.add_argument("--api", default=settings.api_base_url, help="API base URL (default: PORTAL_API_URL)")
    args = ap.parse_args()

    if not args.api:
        raise SystemExit("No API configured; set PORTAL_API_URL or pass --api")
    remote = RemoteApi(args.api, timeout=settings.remote_timeout_seconds)
    bridge = PersistenceBridge(JsonFileStore(args.store), remote)
    try:
        pending = bridge.pending_count()
        if not pending:
            print("Nothing to sync.")
            return
        report = bridge.reconcile()
    finally:
        remote.close()
    print(f"Synced: {len(report.committed)}")
    for outcome in report.committed:
        if outcome.record_id != outcome.local_id:
            print(f"  {outcome.kind} '{outcome.local_id}' is now '{outcome.record_id}'")
    for outcome in report.failed:
        print(f"  rejected {outcome.op} {outcome.kind} '{outcome.local_id}': {outcome.error}")
    if report.remaining:
        print(f"Still pending: {report.remaining} (API unreachable)")
        raise SystemExit(2)


if __name__ == "__main__":
    main()
