"""Database models."""

from lease_sync.persistence.models.sync_state import SyncState
from lease_sync.persistence.models.tenant import Tenant

__all__ = ["SyncState", "Tenant"]
