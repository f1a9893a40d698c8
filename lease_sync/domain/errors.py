"""Sync error taxonomy."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lease_sync.domain.models.sync_result import SyncResult


class SyncError(Exception):
    """Base class for run-level sync failures."""


class ConfigurationError(SyncError):
    """Required configuration is missing. Fatal before any row is processed."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing required configuration: {', '.join(missing)}")


class SourceReadError(SyncError):
    """The checkpoint or the changed tenant rows could not be read."""


class CheckpointWriteError(SyncError):
    """Rows were synced but the new checkpoint could not be stored."""

    def __init__(self, message: str, result: "SyncResult") -> None:
        self.result = result
        super().__init__(message)
