"""Trigger endpoint for the tenant -> CRM sync."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from lease_sync.api.deps import get_crm_api, get_sync_config
from lease_sync.core.sync_config import SyncConfig
from lease_sync.domain.errors import CheckpointWriteError, SourceReadError
from lease_sync.domain.services.lease_sync_service import LeaseSyncService
from lease_sync.infrastructure.lead_connector import LeadConnectorApi
from lease_sync.persistence.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/sync", response_class=PlainTextResponse)
async def run_sync(
    config: Annotated[SyncConfig, Depends(get_sync_config)],
    db: Annotated[AsyncSession, Depends(get_db)],
    crm: Annotated[LeadConnectorApi, Depends(get_crm_api)],
) -> PlainTextResponse:
    """Run one incremental sync pass.

    Called by the scheduler without a body. Answers in plain text.
    """
    service = LeaseSyncService(db, crm, config)
    try:
        result = await service.run()
    except SourceReadError as e:
        return PlainTextResponse(
            f"Database read failed: {e}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    except CheckpointWriteError as e:
        return PlainTextResponse(
            f"Synced {e.result.processed} tenants but failed to update checkpoint: {e}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return PlainTextResponse(result.message)
