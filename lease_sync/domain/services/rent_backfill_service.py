"""Rebuild the rent totals custom fields on every CRM contact from scratch."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from lease_sync.core.rent_totals import Amount, accumulate, serialize_yearly_totals
from lease_sync.core.sync_config import CustomFieldIds
from lease_sync.domain.models.source_record import SourceRecord
from lease_sync.infrastructure.crm_client import RemoteCallFailed
from lease_sync.infrastructure.lead_connector import LeadConnectorApi
from lease_sync.infrastructure.rate_limiter import RATE_LIMITS, InMemoryRateLimiter, RateLimitConfig
from lease_sync.persistence.repositories.tenant_repository import TenantRepository

logger = logging.getLogger(__name__)


@dataclass
class EmailGroup:
    """All tenant rows sharing one (lower-cased) email."""

    email: str
    tenant_ids: list[int] = field(default_factory=list)
    yearly_totals: dict[str, Amount] = field(default_factory=dict)
    lifetime: Amount = 0


@dataclass
class BackfillSummary:
    """Result of a backfill run."""

    groups: int = 0
    updated: int = 0
    not_found: int = 0
    failed: int = 0
    skipped: int = 0
    dry_run: bool = False


def group_by_email(records: list[SourceRecord]) -> list[EmailGroup]:
    """Group tenant rows by email and total their rent per check-in year."""
    groups: dict[str, EmailGroup] = {}
    for record in records:
        if not record.tenant_email:
            continue
        email = record.tenant_email.strip().lower()
        group = groups.setdefault(email, EmailGroup(email=email))
        group.tenant_ids.append(record.id)

        year = record.check_in_year
        if not year or record.rent_amount <= 0:
            continue
        group.yearly_totals, group.lifetime = accumulate(group.yearly_totals, year, record.rent_amount)
    return list(groups.values())


class RentBackfillService:
    """Overwrites yearly/lifetime rent totals on contacts, matched by email."""

    def __init__(
        self,
        session: AsyncSession,
        crm: LeadConnectorApi,
        custom_fields: CustomFieldIds,
        rate_limiter: InMemoryRateLimiter | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if not custom_fields.yearly_rent_totals or not custom_fields.total_lifetime_rent:
            raise ValueError("CF_YEARLY_RENT_TOTALS and CF_TOTAL_LIFETIME_RENT must be set")
        self.session = session
        self.crm = crm
        self.custom_fields = custom_fields
        self.tenant_repo = TenantRepository(session)
        self.rate_limiter = rate_limiter or InMemoryRateLimiter()
        self._sleep = sleep

    async def run(
        self,
        dry_run: bool = False,
        batch_size: int = 200,
        sleep_ms: int = 2000,
        rate_per_minute: int = 150,
    ) -> BackfillSummary:
        """Run the backfill.

        Args:
            dry_run: Look contacts up but do not write anything
            batch_size: Email groups per batch
            sleep_ms: Pause between batches in milliseconds
            rate_per_minute: Maximum contacts processed per minute

        Returns:
            BackfillSummary with per-outcome counts
        """
        rows = await self.tenant_repo.list_with_email()
        groups = group_by_email([SourceRecord.from_row(row) for row in rows])
        summary = BackfillSummary(groups=len(groups), dry_run=dry_run)
        logger.info(f"Backfilling rent totals for {len(groups)} emails (dry_run={dry_run})")

        limit = RateLimitConfig(
            requests=rate_per_minute,
            window_seconds=60,
            key_prefix=RATE_LIMITS["crm_contacts"].key_prefix,
        )
        total_batches = (len(groups) + batch_size - 1) // batch_size
        for start in range(0, len(groups), batch_size):
            batch = groups[start:start + batch_size]
            logger.info(f"Processing batch {start // batch_size + 1} of {total_batches} ({len(batch)} contacts)")

            for group in batch:
                if not group.yearly_totals:
                    summary.skipped += 1
                    continue
                await self.rate_limiter.wait_for_slot("backfill", limit)
                await self._backfill_group(group, dry_run, summary)

            if start + batch_size < len(groups) and sleep_ms > 0:
                await self._sleep(sleep_ms / 1000)

        logger.info(
            f"Backfill complete: {summary.updated} updated, {summary.not_found} not found, "
            f"{summary.failed} failed, {summary.skipped} skipped"
        )
        return summary

    async def _backfill_group(self, group: EmailGroup, dry_run: bool, summary: BackfillSummary) -> None:
        try:
            contact = await self.crm.lookup_contact_by_email(group.email)
        except RemoteCallFailed as e:
            logger.error(f"Contact lookup failed for {group.email}: {e}")
            summary.failed += 1
            return
        if contact is None:
            logger.info(f"No contact found for {group.email}")
            summary.not_found += 1
            return

        if dry_run:
            logger.info(
                f"[DRY RUN] Would update contact {contact.id}: "
                f"{serialize_yearly_totals(group.yearly_totals)} lifetime {group.lifetime}"
            )
            summary.updated += 1
            return

        try:
            # Reload so the write keeps every other custom field
            full = await self.crm.get_contact(contact.id) or contact
            fields: dict[str, Any] = dict(full.custom_fields)
            fields[self.custom_fields.yearly_rent_totals] = serialize_yearly_totals(group.yearly_totals)
            fields[self.custom_fields.total_lifetime_rent] = str(group.lifetime)
            await self.crm.update_contact_custom_fields(contact.id, fields)
        except RemoteCallFailed as e:
            logger.error(f"Failed to update contact {contact.id} for {group.email}: {e}")
            summary.failed += 1
            return

        logger.info(f"Updated contact {contact.id} for {group.email}")
        summary.updated += 1
