"""Repository for sync checkpoints."""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from lease_sync.domain.models.source_record import as_utc
from lease_sync.persistence.models.sync_state import SyncState
from lease_sync.persistence.repositories.base import BaseRepository


class SyncStateRepository(BaseRepository[SyncState]):
    """Repository for the single-row-per-job checkpoint table."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(SyncState, session)

    async def get_checkpoint(self, job_id: str) -> datetime | None:
        """Get the stored watermark for a job, or None before the first run."""
        state = await self.get_by_id(job_id)
        if state is None:
            return None
        return as_utc(state.last_run_at)

    async def get_synced_rows(self, job_id: str) -> dict[str, str]:
        """Rows already synced at or after the watermark, as {tenant id: change timestamp}."""
        state = await self.get_by_id(job_id)
        if state is None or not state.synced_rows:
            return {}
        return dict(state.synced_rows)

    async def upsert_checkpoint(
        self,
        job_id: str,
        last_run_at: datetime,
        synced_rows: dict[str, str] | None = None,
    ) -> SyncState:
        """Create or update the watermark for a job."""
        state = await self.get_by_id(job_id)
        if state is None:
            state = SyncState(id=job_id, last_run_at=last_run_at, synced_rows=synced_rows or {})
            self.session.add(state)
        else:
            state.last_run_at = last_run_at
            state.synced_rows = synced_rows or {}
        await self.session.commit()
        await self.session.refresh(state)
        return state
