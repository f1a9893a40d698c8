"""Outcome of one sync run."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class SyncResult:
    """Counts and checkpoint movement of a sync run."""

    candidates: int = 0
    processed_ids: list[int] = field(default_factory=list)
    failed_ids: list[int] = field(default_factory=list)
    opportunity_failed_ids: list[int] = field(default_factory=list)
    checkpoint_before: datetime | None = None
    checkpoint_after: datetime | None = None

    @property
    def processed(self) -> int:
        return len(self.processed_ids)

    @property
    def checkpoint_advanced(self) -> bool:
        return self.checkpoint_after is not None and self.checkpoint_after != self.checkpoint_before

    @property
    def message(self) -> str:
        """Plain-text status line returned to the trigger caller."""
        if self.candidates == 0:
            return "No new tenants"
        if self.processed == 0:
            return "Processed 0 tenants successfully"
        return f"Synced {self.processed} tenants"
