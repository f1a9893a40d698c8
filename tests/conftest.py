"""Pytest configuration and fixtures."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from lease_sync.core.stages import StageIds
from lease_sync.core.sync_config import CustomFieldIds, SyncConfig
from lease_sync.persistence.database import Base
from lease_sync.persistence.models import *  # noqa: F401, F403


@pytest.fixture
async def db_session():
    """Create a test database session."""
    # Use in-memory SQLite for testing
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def stage_ids():
    """Distinct stage ids for each pipeline stage."""
    return StageIds(
        new_inquiry="stage-new",
        needs_search="stage-needs-search",
        search_sent="stage-search-sent",
        booked_current_year="stage-booked-current",
        booked_next_year="stage-booked-next",
        past_guest="stage-past",
    )


@pytest.fixture
def sync_config(stage_ids):
    """Sync configuration with every custom field slot configured."""
    return SyncConfig(
        pipeline_id="pipe-1",
        stages=stage_ids,
        location_id="loc-1",
        custom_fields=CustomFieldIds(
            tenant_id="cf-tenant-id",
            secondary_phone="cf-secondary-phone",
            yearly_rent_totals="cf-yearly",
            total_lifetime_rent="cf-lifetime",
            rental_address="cf-address",
            unit_number="cf-unit",
            owner_name="cf-owner-name",
            owner_phones="cf-owner-phones",
        ),
        owners={"agent-a": "crm-user-a"},
        current_year=2025,
    )
