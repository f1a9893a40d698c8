"""List the location's contact custom fields and their ids.

Usage:
    python scripts/list_custom_fields.py

Use the printed ids to fill in the CF_* settings.
"""

import asyncio
import logging

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


async def main() -> None:
    from lease_sync.infrastructure.crm_client import RemoteCallFailed
    from lease_sync.infrastructure.lead_connector import LegacyCrmApi
    from lease_sync.settings import settings

    if not settings.ghl_api_key or not settings.ghl_location_id:
        logger.error("GHL_API_KEY and GHL_LOCATION_ID must be set")
        return

    crm = LegacyCrmApi.from_settings(settings)
    try:
        fields = await crm.list_custom_fields()
    except RemoteCallFailed as e:
        logger.error(f"Failed to list custom fields: {e}")
        return
    finally:
        await crm.aclose()

    logger.info(f"Found {len(fields)} custom fields")
    for field in sorted(fields, key=lambda f: str(f.get("name", ""))):
        print(f"{field.get('id', ''):<30} {field.get('fieldKey', ''):<40} {field.get('name', '')}")


if __name__ == "__main__":
    asyncio.run(main())
