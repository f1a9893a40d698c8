"""CRM entities as seen by the sync."""

from dataclasses import dataclass, field
from typing import Any

from lease_sync.core.custom_fields import from_remote_array


@dataclass
class RemoteContact:
    """A CRM contact with custom fields normalized to a {field_id: value} map."""

    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    custom_fields: dict[str, Any] = field(default_factory=dict)
    assigned_to: str | None = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "RemoteContact":
        """Build from either API generation's contact payload."""
        # generation 2 uses a customFields array, generation 1 a customField object
        raw_fields = payload.get("customFields")
        if raw_fields is None:
            raw_fields = payload.get("customField")
        return cls(
            id=str(payload.get("id") or payload.get("_id") or ""),
            email=payload.get("email"),
            first_name=payload.get("firstName"),
            last_name=payload.get("lastName"),
            phone=payload.get("phone"),
            custom_fields=from_remote_array(raw_fields),
            assigned_to=payload.get("assignedTo"),
        )


@dataclass
class RemoteOpportunity:
    """A CRM pipeline opportunity linked to a contact."""

    id: str
    contact_id: str | None = None
    pipeline_id: str | None = None
    stage_id: str | None = None
    monetary_value: float | int | None = None
    external_id: str | None = None
    name: str | None = None
    status: str | None = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "RemoteOpportunity":
        return cls(
            id=str(payload.get("id") or ""),
            contact_id=payload.get("contactId") or (payload.get("contact") or {}).get("id"),
            pipeline_id=payload.get("pipelineId"),
            stage_id=payload.get("pipelineStageId") or payload.get("stageId"),
            monetary_value=payload.get("monetaryValue"),
            external_id=payload.get("externalId"),
            name=payload.get("name"),
            status=payload.get("status"),
        )
