"""Checkpoint storage for incremental sync jobs."""

from sqlalchemy import JSON, Column, DateTime, String

from lease_sync.persistence.database import Base


class SyncState(Base):
    """Last successful run watermark, one row per sync job."""

    __tablename__ = "sync_state"

    id = Column(String(100), primary_key=True)
    last_run_at = Column(DateTime(timezone=True), nullable=False)
    # {tenant id: change timestamp} of rows already synced at or after last_run_at
    synced_rows = Column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<SyncState(id={self.id}, last_run_at={self.last_run_at})>"
