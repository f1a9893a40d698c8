"""GoHighLevel contact and opportunity endpoints for both API generations."""

from typing import Any

from lease_sync.core.custom_fields import CustomFieldSet, to_remote_array
from lease_sync.domain.models.remote import RemoteContact, RemoteOpportunity
from lease_sync.infrastructure.crm_client import ApiGeneration, CrmClient
from lease_sync.settings import Settings


def _first_contact(data: Any) -> RemoteContact | None:
    if not isinstance(data, dict):
        return None
    contacts = data.get("contacts") or []
    if not contacts:
        return None
    return RemoteContact.from_api(contacts[0])


def _as_dict(data: Any) -> dict[str, Any]:
    return data if isinstance(data, dict) else {}


def _unwrap(data: Any, key: str) -> dict[str, Any]:
    """Responses wrap the entity ({"contact": {...}}) or return it bare."""
    data = _as_dict(data)
    if isinstance(data.get(key), dict):
        return data[key]
    return data


class LeadConnectorApi:
    """Generation 2 (LeadConnector) endpoints used by the sync."""

    def __init__(self, client: CrmClient) -> None:
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings, **client_kwargs) -> "LeadConnectorApi":
        return cls(CrmClient(
            api_key=settings.ghl_api_v2_key,
            location_id=settings.ghl_location_id,
            base_url=settings.ghl_base_url,
            generation=ApiGeneration.V2,
            api_version=settings.ghl_api_version,
            timeout=settings.ghl_timeout_seconds,
            **client_kwargs,
        ))

    async def aclose(self) -> None:
        await self.client.aclose()

    async def lookup_contact_by_email(self, email: str) -> RemoteContact | None:
        data = await self.client.request("GET", "/contacts/lookup", params={"email": email})
        return _first_contact(data)

    async def lookup_contact_by_phone(self, phone: str) -> RemoteContact | None:
        data = await self.client.request("GET", "/contacts/lookup", params={"phone": phone})
        return _first_contact(data)

    async def query_contacts(self, query: str) -> RemoteContact | None:
        """Free-text contact search, returning the best match."""
        data = await self.client.request("GET", "/contacts/", params={"query": query})
        return _first_contact(data)

    async def get_contact(self, contact_id: str) -> RemoteContact | None:
        data = await self.client.request("GET", f"/contacts/{contact_id}")
        payload = _unwrap(data, "contact")
        return RemoteContact.from_api(payload) if payload else None

    async def upsert_contact(
        self,
        contact: dict[str, Any],
        custom_fields: CustomFieldSet | None = None,
    ) -> RemoteContact | None:
        """Create or update a contact. Matching is done by the CRM.

        Args:
            contact: Contact fields (email, firstName, lastName, phone, assignedTo)
            custom_fields: Custom fields in either shape

        Returns:
            The stored contact, or None when the response carried no id
        """
        body = {k: v for k, v in contact.items() if k not in ("customField", "customFields")}
        body["customFields"] = to_remote_array(custom_fields)
        data = await self.client.request("POST", "/contacts/upsert", body=body)
        payload = _unwrap(data, "contact")
        if not payload.get("id"):
            return None
        return RemoteContact.from_api(payload)

    async def update_contact_custom_fields(
        self,
        contact_id: str,
        custom_fields: CustomFieldSet,
    ) -> RemoteContact:
        data = await self.client.request(
            "PUT",
            f"/contacts/{contact_id}",
            body={"customFields": to_remote_array(custom_fields)},
        )
        return RemoteContact.from_api(_unwrap(data, "contact") or {"id": contact_id})

    async def search_opportunities(
        self,
        contact_id: str,
        pipeline_id: str | None = None,
    ) -> list[RemoteOpportunity]:
        params = {"locationId": self.client.location_id, "contact_id": contact_id}
        if pipeline_id:
            params["pipeline_id"] = pipeline_id
        data = await self.client.request("GET", "/opportunities/search", params=params)
        return [RemoteOpportunity.from_api(o) for o in _as_dict(data).get("opportunities") or []]

    async def create_opportunity(self, payload: dict[str, Any]) -> RemoteOpportunity:
        data = await self.client.request("POST", "/opportunities/", body=payload)
        return RemoteOpportunity.from_api(_unwrap(data, "opportunity"))

    async def update_opportunity(self, opportunity_id: str, payload: dict[str, Any]) -> RemoteOpportunity:
        data = await self.client.request("PUT", f"/opportunities/{opportunity_id}", body=payload)
        return RemoteOpportunity.from_api(_unwrap(data, "opportunity") or {"id": opportunity_id})


class LegacyCrmApi:
    """Generation 1 (rest.gohighlevel.com/v1) endpoints.

    Custom fields travel as a nested ``customField`` {field_id: value} object.
    """

    def __init__(self, client: CrmClient) -> None:
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings, **client_kwargs) -> "LegacyCrmApi":
        return cls(CrmClient(
            api_key=settings.ghl_api_key,
            location_id=settings.ghl_location_id,
            base_url=settings.ghl_legacy_base_url,
            generation=ApiGeneration.V1,
            timeout=settings.ghl_timeout_seconds,
            **client_kwargs,
        ))

    async def aclose(self) -> None:
        await self.client.aclose()

    async def list_custom_fields(self) -> list[dict[str, Any]]:
        data = await self.client.request("GET", "/custom-fields")
        return list(_as_dict(data).get("customFields") or [])
