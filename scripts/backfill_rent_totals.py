"""Rebuild yearly and lifetime rent totals on every CRM contact.

Usage:
    python scripts/backfill_rent_totals.py --dry-run
    python scripts/backfill_rent_totals.py --batch-size 200 --sleep 2000 --rate 150

Groups all tenant rows by email, recomputes the totals from scratch and
overwrites the CF_YEARLY_RENT_TOTALS / CF_TOTAL_LIFETIME_RENT custom fields
of the matching contact.
"""

import argparse
import asyncio
import logging

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


async def main(dry_run: bool, batch_size: int, sleep_ms: int, rate: int) -> int:
    """Run the backfill and return a process exit code."""
    from lease_sync.core.sync_config import CustomFieldIds
    from lease_sync.domain.services.rent_backfill_service import RentBackfillService
    from lease_sync.infrastructure.lead_connector import LeadConnectorApi
    from lease_sync.persistence.database import get_session_factory
    from lease_sync.settings import settings

    missing = [
        name for name, value in (
            ("DATABASE_URL", settings.database_url),
            ("GHL_API_V2_KEY", settings.ghl_api_v2_key),
            ("GHL_LOCATION_ID", settings.ghl_location_id),
            ("CF_YEARLY_RENT_TOTALS", settings.cf_yearly_rent_totals),
            ("CF_TOTAL_LIFETIME_RENT", settings.cf_total_lifetime_rent),
        )
        if not value
    ]
    if missing:
        logger.error(f"Missing required configuration: {', '.join(missing)}")
        return 1

    logger.info(f"Starting rent totals backfill ({'DRY RUN' if dry_run else 'LIVE'})")
    custom_fields = CustomFieldIds(
        yearly_rent_totals=settings.cf_yearly_rent_totals,
        total_lifetime_rent=settings.cf_total_lifetime_rent,
    )
    crm = LeadConnectorApi.from_settings(settings)
    try:
        async with get_session_factory()() as session:
            service = RentBackfillService(session, crm, custom_fields)
            summary = await service.run(
                dry_run=dry_run,
                batch_size=batch_size,
                sleep_ms=sleep_ms,
                rate_per_minute=rate,
            )
    finally:
        await crm.aclose()

    logger.info("=== Summary ===")
    logger.info(f"Total grouped tenants: {summary.groups}")
    logger.info(f"Contacts not found: {summary.not_found}")
    logger.info(f"{'Would have updated' if dry_run else 'Successfully updated'}: {summary.updated}")
    logger.info(f"Skipped (no rent data): {summary.skipped}")
    if summary.failed:
        logger.info(f"Failed to update: {summary.failed}")
    return 0 if summary.failed == 0 else 2


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Backfill rent totals on CRM contacts")
    parser.add_argument("--dry-run", action="store_true", help="Look contacts up but don't update them")
    parser.add_argument("--batch-size", type=int, default=200, help="Contacts per batch")
    parser.add_argument("--sleep", type=int, default=2000, help="Milliseconds to sleep between batches")
    parser.add_argument("--rate", type=int, default=150, help="Max contacts per minute")

    args = parser.parse_args()
    raise SystemExit(asyncio.run(main(args.dry_run, args.batch_size, args.sleep, args.rate)))
