"""Application settings using Pydantic BaseSettings."""

import os
import re

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_async_database_url(url: str | None = None) -> str:
    """Get database URL converted for asyncpg driver."""
    if url is None:
        url = os.environ.get("DATABASE_URL", "")
    # Convert postgres:// to postgresql+asyncpg:// for SQLAlchemy async
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://") and "+asyncpg" not in url:
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    # asyncpg doesn't support sslmode, it uses ssl parameter
    if "+asyncpg" in url and "sslmode=" in url:
        url = re.sub(r'[?&]sslmode=[^&]*', '', url)
        url = url.rstrip('?&')
    return url


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Source database (Postgres)
    database_url: str = ""
    database_password: str | None = None

    # GoHighLevel / LeadConnector
    ghl_api_key: str = ""  # generation 1 (rest.gohighlevel.com)
    ghl_api_v2_key: str = ""  # generation 2 (services.leadconnectorhq.com)
    ghl_location_id: str = ""
    ghl_base_url: str = "https://services.leadconnectorhq.com"
    ghl_legacy_base_url: str = "https://rest.gohighlevel.com/v1"
    ghl_api_version: str = "2021-07-28"
    ghl_timeout_seconds: float = 30.0

    # Opportunity pipeline and stages
    ghl_pipeline_id: str = ""
    stage_new_inquiry_id: str = ""
    stage_needs_search_id: str = ""
    stage_search_sent_id: str = ""
    stage_booked_current_year_id: str = ""
    stage_booked_next_year_id: str = ""
    stage_past_guest_id: str = ""

    # Contact custom field ids (optional, a blank id disables the field)
    cf_tenant_id: str = ""
    cf_secondary_phone: str = ""
    cf_yearly_rent_totals: str = ""
    cf_total_lifetime_rent: str = ""
    cf_rental_address: str = ""
    cf_unit_number: str = ""
    cf_owner_name: str = ""
    cf_owner_phones: str = ""

    # Source user -> CRM agent assignment
    agent_1_source_user_id: str = ""
    agent_1_crm_user_id: str = ""
    agent_2_source_user_id: str = ""
    agent_2_crm_user_id: str = ""

    # Sync job
    sync_job_id: str = "ghl_lease_sync"
    sync_current_year: int | None = None  # None = wall-clock year of the run

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
