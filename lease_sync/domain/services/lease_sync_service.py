"""Incremental tenant -> CRM sync.

One run reads the checkpoint, selects every tenant created or re-scraped at or
after it, pushes each one to the CRM as a contact (plus a pipeline
opportunity), and then moves the checkpoint forward.

Rows are handled one at a time. A row that fails is logged and skipped; it
never aborts the run. The checkpoint is only moved past rows that were fully
processed so a failed row is selected again on the next run. Rows already
synced but still at or after the checkpoint (because an earlier row failed)
are remembered with the checkpoint and skipped, so their rent is added once.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lease_sync.core.phone import normalize_tenant_phones
from lease_sync.core.rent_totals import accumulate, parse_yearly_totals, serialize_yearly_totals, to_number
from lease_sync.core.run_context import clear_run_context, start_run_context
from lease_sync.core.stages import select_stage
from lease_sync.core.sync_config import SyncConfig
from lease_sync.domain.errors import CheckpointWriteError, SourceReadError
from lease_sync.domain.models.remote import RemoteContact
from lease_sync.domain.models.source_record import SourceRecord, as_utc
from lease_sync.domain.models.sync_result import SyncResult
from lease_sync.domain.services.contact_resolver import ContactResolver
from lease_sync.infrastructure.crm_client import RemoteCallFailed
from lease_sync.infrastructure.lead_connector import LeadConnectorApi
from lease_sync.persistence.repositories.sync_state_repository import SyncStateRepository
from lease_sync.persistence.repositories.tenant_repository import TenantRepository

logger = logging.getLogger(__name__)

# Checkpoint used before the first successful run
FALLBACK_CHECKPOINT = datetime(2000, 1, 1, tzinfo=timezone.utc)

# Smallest step past a stored timestamp; rows are selected with >= checkpoint
CHECKPOINT_STEP = timedelta(microseconds=1)


def next_checkpoint(
    previous: datetime,
    now: datetime,
    candidates: list[SourceRecord],
    processed: list[SourceRecord],
    failed: list[SourceRecord],
) -> datetime:
    """Compute the checkpoint to store after a run.

    - no candidates: the run saw everything up to ``now``
    - candidates but nothing processed: unchanged
    - otherwise: just past the latest change of a processed row, but never
      past the earliest change of a failed row and never below ``previous``
    """
    if not candidates:
        return max(previous, now)
    if not processed:
        return previous

    stamps = [r.change_timestamp for r in processed if r.change_timestamp is not None]
    checkpoint = max(stamps) + CHECKPOINT_STEP if stamps else previous

    failed_stamps = [r.change_timestamp for r in failed if r.change_timestamp is not None]
    if failed_stamps:
        checkpoint = min(checkpoint, min(failed_stamps))

    return max(previous, checkpoint)


def _stamp(record: SourceRecord) -> str | None:
    ts = record.change_timestamp
    return ts.isoformat() if ts is not None else None


def synced_at_or_after(
    checkpoint: datetime,
    carried: dict[str, str],
    processed: list[SourceRecord],
) -> dict[str, str]:
    """Synced rows the next run will select again, as {tenant id: change timestamp}."""
    rows = dict(carried)
    for record in processed:
        stamp = _stamp(record)
        if stamp is not None:
            rows[str(record.id)] = stamp
    return {
        tenant_id: stamp
        for tenant_id, stamp in rows.items()
        if as_utc(datetime.fromisoformat(stamp)) >= checkpoint
    }


class LeaseSyncService:
    """Pushes changed tenants to the CRM and advances the checkpoint."""

    def __init__(self, session: AsyncSession, crm: LeadConnectorApi, config: SyncConfig) -> None:
        self.session = session
        self.crm = crm
        self.config = config
        self.resolver = ContactResolver(crm)
        self.tenant_repo = TenantRepository(session)
        self.state_repo = SyncStateRepository(session)

    async def run(self, now: datetime | None = None) -> SyncResult:
        """Run one sync pass.

        Args:
            now: Wall clock of the run (defaults to the current UTC time)

        Returns:
            SyncResult with per-row outcome and checkpoint movement

        Raises:
            SourceReadError: If the checkpoint or the tenant rows cannot be read
            CheckpointWriteError: If rows were synced but the checkpoint write failed
        """
        now = now or datetime.now(timezone.utc)
        run_id = start_run_context()
        try:
            return await self._run(now, run_id)
        finally:
            clear_run_context()

    async def _run(self, now: datetime, run_id: str) -> SyncResult:
        job_id = self.config.job_id
        current_year = self.config.current_year or now.year

        try:
            previous = await self.state_repo.get_checkpoint(job_id) or FALLBACK_CHECKPOINT
            already_synced = await self.state_repo.get_synced_rows(job_id)
            rows = await self.tenant_repo.list_changed_since(previous)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read tenants for sync: {e}", exc_info=True)
            raise SourceReadError(str(e)) from e

        candidates: list[SourceRecord] = []
        skipped: list[SourceRecord] = []
        for row in rows:
            record = SourceRecord.from_row(row)
            if already_synced.get(str(record.id)) == _stamp(record):
                skipped.append(record)
            else:
                candidates.append(record)
        if skipped:
            logger.info(f"Skipping {len(skipped)} tenants already synced at their current change time")

        result = SyncResult(candidates=len(candidates), checkpoint_before=previous)
        logger.info(
            f"Starting sync run {run_id}: {len(candidates)} tenants since {previous.isoformat()}",
            extra={"job_id": job_id, "candidates": len(candidates), "current_year": current_year},
        )

        processed: list[SourceRecord] = []
        failed: list[SourceRecord] = []
        for record in candidates:
            try:
                ok = await self.sync_record(record, current_year, result)
            except Exception as e:
                logger.error(f"Unexpected error syncing tenant {record.id}: {e}", exc_info=True)
                ok = False
            if ok:
                processed.append(record)
                result.processed_ids.append(record.id)
            else:
                failed.append(record)
                result.failed_ids.append(record.id)

        checkpoint = next_checkpoint(previous, now, candidates, processed + skipped, failed)
        result.checkpoint_after = checkpoint
        if processed or not candidates:
            synced = synced_at_or_after(checkpoint, already_synced, processed)
            try:
                await self.state_repo.upsert_checkpoint(job_id, checkpoint, synced)
            except SQLAlchemyError as e:
                logger.error(f"Failed to update checkpoint for {job_id}: {e}", exc_info=True)
                await self.session.rollback()
                result.checkpoint_after = previous
                raise CheckpointWriteError(str(e), result) from e

        logger.info(
            f"Sync run {run_id} finished: {result.processed}/{result.candidates} tenants synced",
            extra={
                "job_id": job_id,
                "processed": result.processed,
                "failed": len(result.failed_ids),
                "opportunity_failed": len(result.opportunity_failed_ids),
                "checkpoint": checkpoint.isoformat(),
            },
        )
        return result

    def build_contact(self, record: SourceRecord, primary_phone: str) -> dict[str, Any]:
        """Contact fields for the upsert call."""
        contact: dict[str, Any] = {
            "email": record.tenant_email,
            "firstName": record.first_name,
            "lastName": record.last_name,
        }
        if primary_phone:
            contact["phone"] = primary_phone
        owner = self.config.owners.get(record.user_id or "")
        if owner:
            contact["assignedTo"] = owner
        return contact

    def build_custom_fields(self, record: SourceRecord, secondary_phone: str | None) -> dict[str, Any]:
        """Custom fields that do not depend on the existing contact."""
        ids = self.config.custom_fields
        fields: dict[str, Any] = {}
        if ids.tenant_id:
            fields[ids.tenant_id] = str(record.id)
        if ids.secondary_phone and secondary_phone:
            fields[ids.secondary_phone] = secondary_phone
        if ids.rental_address and record.rental_address:
            fields[ids.rental_address] = record.rental_address
        if ids.unit_number and record.unit_number:
            fields[ids.unit_number] = record.unit_number
        if ids.owner_name and record.unit_owner:
            fields[ids.owner_name] = record.unit_owner
        if ids.owner_phones and record.owner_phone:
            fields[ids.owner_phones] = json.dumps(record.owner_phone)
        return fields

    async def add_rent_totals(
        self,
        record: SourceRecord,
        primary_phone: str,
        fields: dict[str, Any],
    ) -> None:
        """Merge this row's rent into the contact's stored yearly totals."""
        ids = self.config.custom_fields
        year = record.check_in_year
        amount = record.rent_amount
        if amount <= 0 or not year or not ids.yearly_rent_totals:
            return

        existing: RemoteContact | None = await self.resolver.resolve(record, primary_phone)
        stored = existing.custom_fields.get(ids.yearly_rent_totals) if existing else None
        totals, lifetime = accumulate(parse_yearly_totals(stored), year, amount)

        fields[ids.yearly_rent_totals] = serialize_yearly_totals(totals)
        if ids.total_lifetime_rent:
            fields[ids.total_lifetime_rent] = str(lifetime)

    async def sync_record(self, record: SourceRecord, current_year: int, result: SyncResult) -> bool:
        """Push one tenant to the CRM.

        Returns:
            True when the contact was stored (even if the opportunity failed)
        """
        primary, secondary = normalize_tenant_phones(record.tenant_phone)
        contact = self.build_contact(record, primary)
        fields = self.build_custom_fields(record, secondary)
        await self.add_rent_totals(record, primary, fields)

        try:
            stored = await self.crm.upsert_contact(contact, fields)
        except RemoteCallFailed as e:
            logger.error(
                f"Contact upsert failed for tenant {record.id}: {e}",
                extra={"tenant_id": record.id, "status": e.status},
            )
            return False
        if stored is None or not stored.id:
            logger.error(f"Contact upsert for tenant {record.id} returned no id")
            return False

        year = record.check_in_year
        if not year:
            logger.info(f"Tenant {record.id} has no check-in year, skipping opportunity")
            return True

        stage_id = select_stage(year, record.status, self.config.stages, current_year)
        try:
            await self.sync_opportunity(record, stored.id, stage_id)
        except RemoteCallFailed as e:
            logger.error(
                f"Opportunity sync failed for tenant {record.id}: {e}",
                extra={"tenant_id": record.id, "contact_id": stored.id, "status": e.status},
            )
            result.opportunity_failed_ids.append(record.id)
        return True

    async def sync_opportunity(self, record: SourceRecord, contact_id: str, stage_id: str) -> None:
        """Update the tenant's opportunity when it exists, otherwise create it."""
        payload: dict[str, Any] = {
            "pipelineId": self.config.pipeline_id,
            "pipelineStageId": stage_id,
            "name": record.opportunity_name,
            "status": "open",
            "monetaryValue": to_number(record.rent_amount),
        }
        existing = await self.resolver.resolve_opportunity(
            contact_id, record.opportunity_reference, self.config.pipeline_id
        )
        if existing is not None:
            await self.crm.update_opportunity(existing.id, payload)
            logger.info(f"Updated opportunity {existing.id} for tenant {record.id}")
            return

        payload.update({
            "locationId": self.config.location_id,
            "contactId": contact_id,
            "externalId": record.opportunity_reference,
        })
        created = await self.crm.create_opportunity(payload)
        logger.info(f"Created opportunity {created.id} for tenant {record.id}")
