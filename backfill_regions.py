#!/usr/bin/env python3
"""
Region Backfill Script
Classifies every creator location and writes the region bucket back to the table
"""

import argparse
import json
import sys

from creator_discovery.config import settings
from creator_discovery.core.errors import FetchError
from creator_discovery import dependencies


def run_backfill(only_missing: bool = True, batch_size: int = 500, dry_run: bool = False):
    """
    Run the region backfill against the configured backend

    Args:
        only_missing: Skip rows that already carry a known region
        batch_size: Rows read per window
        dry_run: Count changes without writing them

    Returns:
        BackfillReport with scanned / updated / skipped counts
    """
    from creator_discovery.core.query import CreatorQueryExecutor
    from creator_discovery.services.region_backfill import RegionBackfillService

    if not dependencies.init_backend():
        raise RuntimeError("Backend could not be initialized")
    dependencies.init_location_classifier()

    backend = dependencies.get_backend()
    executor = CreatorQueryExecutor(
        backend,
        table=settings.TABLE_NAME,
        max_retries=settings.FETCH_MAX_RETRIES,
        retry_delay=settings.FETCH_RETRY_DELAY,
        retry_max_wait=settings.FETCH_RETRY_MAX_WAIT,
    )
    service = RegionBackfillService(
        backend,
        dependencies.get_location_classifier(),
        table=settings.TABLE_NAME,
        executor=executor,
    )
    return service.run(only_missing=only_missing, batch_size=batch_size, dry_run=dry_run)


def main():
    """Main function"""
    parser = argparse.ArgumentParser(description="Backfill location_region for creator rows")
    parser.add_argument("--all", action="store_true", help="Reclassify rows that already have a region")
    parser.add_argument("--batch-size", type=int, default=500, help="Rows per batch (default: 500)")
    parser.add_argument("--dry-run", action="store_true", help="Report changes without writing them")
    parser.add_argument("--ai", action="store_true", help="Use the OpenAI classifier (needs OPENAI_API_KEY)")
    parser.add_argument("--json", action="store_true", help="Output the report in JSON format")

    args = parser.parse_args()

    if args.ai:
        settings.USE_AI_LOCATION = True

    print(f"Backfilling regions in table: '{settings.TABLE_NAME}'")

    try:
        report = run_backfill(only_missing=not args.all, batch_size=args.batch_size, dry_run=args.dry_run)
    except (FetchError, RuntimeError) as e:
        print(f"Error during backfill: {e}")
        sys.exit(1)

    if args.json:
        print(json.dumps(vars(report), indent=2))
    else:
        print("=" * 50)
        print(f"Scanned: {report.scanned}")
        print(f"Updated: {report.updated}{' (dry run)' if args.dry_run else ''}")
        print(f"Skipped: {report.skipped}")


if __name__ == "__main__":
    main()
