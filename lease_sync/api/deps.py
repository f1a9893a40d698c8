"""FastAPI dependencies for the sync trigger."""

from collections.abc import AsyncIterator

from lease_sync.core.sync_config import SyncConfig
from lease_sync.infrastructure.lead_connector import LeadConnectorApi
from lease_sync.settings import settings


def get_sync_config() -> SyncConfig:
    """Validated sync configuration.

    Raises:
        ConfigurationError: If a required setting is missing
    """
    return SyncConfig.from_settings(settings)


async def get_crm_api() -> AsyncIterator[LeadConnectorApi]:
    """CRM client for the duration of one request."""
    crm = LeadConnectorApi.from_settings(settings)
    try:
        yield crm
    finally:
        await crm.aclose()
