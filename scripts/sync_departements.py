"""
Sync script: update the département table from geo.api.gouv.fr.

What it does:
- Downloads the official list of départements (code + nom).
- Inserts unseen codes, renames départements whose official name changed.
- Never deletes anything and never overwrites a name with an empty one.

Run inside the API container to use 'postgres' host and project PYTHONPATH:
    docker compose exec api python scripts/sync_departements.py --dry-run
    docker compose exec api python scripts/sync_departements.py \
        --url https://geo.api.gouv.fr/departements --timeout 15
"""

# Add project root (/code) to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import logging

import requests

from app.core.config import settings
from app.database.database import SessionLocal
from app.modules.departements.sync import fetch_departements, sync_departements

logger = logging.getLogger("sync_departements")


def main():
    parser = argparse.ArgumentParser(description="Synchronise départements with geo.api.gouv.fr")
    parser.add_argument("--url", default=settings.GEO_API_URL)
    parser.add_argument("--timeout", type=int, default=settings.GEO_API_TIMEOUT)
    parser.add_argument("--dry-run", action="store_true", help="Compute the report without writing")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        incoming = fetch_departements(args.url, args.timeout)
    except (requests.RequestException, ValueError) as e:
        logger.error(f"Could not fetch départements: {e}")
        return 1

    db = SessionLocal()
    try:
        report = sync_departements(db, incoming, dry_run=args.dry_run)
    finally:
        db.close()

    print("\nSync completed." if not args.dry_run else "\nDry run completed (nothing written).")
    print(f"  Incoming: {report.total_incoming}")
    print(f"  Created:  {report.created}")
    print(f"  Updated:  {report.updated}")
    print(f"  Ignored:  {report.ignored}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
