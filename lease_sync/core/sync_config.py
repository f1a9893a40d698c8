"""Immutable sync configuration built once from settings."""

from dataclasses import dataclass, field

from lease_sync.core.stages import StageIds
from lease_sync.domain.errors import ConfigurationError
from lease_sync.settings import Settings


@dataclass(frozen=True)
class CustomFieldIds:
    """Contact custom field ids. A blank id means the field is not written."""

    tenant_id: str = ""
    secondary_phone: str = ""
    yearly_rent_totals: str = ""
    total_lifetime_rent: str = ""
    rental_address: str = ""
    unit_number: str = ""
    owner_name: str = ""
    owner_phones: str = ""


@dataclass(frozen=True)
class SyncConfig:
    """Everything the sync run needs to know about the CRM account."""

    pipeline_id: str
    stages: StageIds
    location_id: str
    custom_fields: CustomFieldIds = field(default_factory=CustomFieldIds)
    owners: dict[str, str] = field(default_factory=dict)
    job_id: str = "ghl_lease_sync"
    current_year: int | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SyncConfig":
        """Build the sync configuration, validating required keys.

        Raises:
            ConfigurationError: If any required setting is blank
        """
        required = {
            "DATABASE_URL": settings.database_url,
            "GHL_API_KEY": settings.ghl_api_key,
            "GHL_API_V2_KEY": settings.ghl_api_v2_key,
            "GHL_LOCATION_ID": settings.ghl_location_id,
            "GHL_PIPELINE_ID": settings.ghl_pipeline_id,
            "STAGE_NEW_INQUIRY_ID": settings.stage_new_inquiry_id,
            "STAGE_NEEDS_SEARCH_ID": settings.stage_needs_search_id,
            "STAGE_SEARCH_SENT_ID": settings.stage_search_sent_id,
            "STAGE_BOOKED_CURRENT_YEAR_ID": settings.stage_booked_current_year_id,
            "STAGE_BOOKED_NEXT_YEAR_ID": settings.stage_booked_next_year_id,
            "STAGE_PAST_GUEST_ID": settings.stage_past_guest_id,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigurationError(missing)

        owners = {}
        for source_user, crm_user in (
            (settings.agent_1_source_user_id, settings.agent_1_crm_user_id),
            (settings.agent_2_source_user_id, settings.agent_2_crm_user_id),
        ):
            if source_user and crm_user:
                owners[source_user] = crm_user

        return cls(
            pipeline_id=settings.ghl_pipeline_id,
            stages=StageIds(
                new_inquiry=settings.stage_new_inquiry_id,
                needs_search=settings.stage_needs_search_id,
                search_sent=settings.stage_search_sent_id,
                booked_current_year=settings.stage_booked_current_year_id,
                booked_next_year=settings.stage_booked_next_year_id,
                past_guest=settings.stage_past_guest_id,
            ),
            location_id=settings.ghl_location_id,
            custom_fields=CustomFieldIds(
                tenant_id=settings.cf_tenant_id,
                secondary_phone=settings.cf_secondary_phone,
                yearly_rent_totals=settings.cf_yearly_rent_totals,
                total_lifetime_rent=settings.cf_total_lifetime_rent,
                rental_address=settings.cf_rental_address,
                unit_number=settings.cf_unit_number,
                owner_name=settings.cf_owner_name,
                owner_phones=settings.cf_owner_phones,
            ),
            owners=owners,
            job_id=settings.sync_job_id,
            current_year=settings.sync_current_year,
        )
