"""Domain value types."""

from lease_sync.domain.models.remote import RemoteContact, RemoteOpportunity
from lease_sync.domain.models.source_record import SourceRecord
from lease_sync.domain.models.sync_result import SyncResult

__all__ = ["RemoteContact", "RemoteOpportunity", "SourceRecord", "SyncResult"]
