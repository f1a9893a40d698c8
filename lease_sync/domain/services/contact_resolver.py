"""Find the CRM contact (and opportunity) that already represents a tenant.

The CRM has no reliable "upsert by external key" across its API generations,
so an existing contact is found with a cascade of best-effort lookups, tried
in order until one returns a match:

    email -> phone -> confirmation number query -> tenant id query

A failing lookup is logged and treated as "no match".
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from lease_sync.domain.models.remote import RemoteContact, RemoteOpportunity
from lease_sync.domain.models.source_record import SourceRecord
from lease_sync.infrastructure.crm_client import RemoteCallFailed
from lease_sync.infrastructure.lead_connector import LeadConnectorApi

logger = logging.getLogger(__name__)

LookupFn = Callable[[SourceRecord, str], Awaitable[RemoteContact | None]]


@dataclass(frozen=True)
class LookupStrategy:
    """A named contact lookup step."""

    name: str
    lookup: LookupFn


async def first_match(
    strategies: Sequence[LookupStrategy],
    record: SourceRecord,
    phone: str,
) -> tuple[RemoteContact | None, str | None]:
    """Run strategies in order and return the first contact found.

    Returns:
        Tuple of (contact or None, name of the strategy that matched)
    """
    for strategy in strategies:
        try:
            contact = await strategy.lookup(record, phone)
        except RemoteCallFailed as e:
            logger.warning(
                f"Contact lookup by {strategy.name} failed for tenant {record.id}: {e}",
                extra={"tenant_id": record.id, "strategy": strategy.name, "status": e.status},
            )
            continue
        if contact is not None:
            return contact, strategy.name
    return None, None


class ContactResolver:
    """Resolves tenants to existing CRM contacts and opportunities."""

    def __init__(self, crm: LeadConnectorApi) -> None:
        self.crm = crm
        self.strategies: list[LookupStrategy] = [
            LookupStrategy("email", self._by_email),
            LookupStrategy("phone", self._by_phone),
            LookupStrategy("confirmation_number", self._by_confirmation_number),
            LookupStrategy("tenant_id", self._by_tenant_id),
        ]

    async def _by_email(self, record: SourceRecord, phone: str) -> RemoteContact | None:
        if not record.tenant_email:
            return None
        return await self.crm.lookup_contact_by_email(record.tenant_email)

    async def _by_phone(self, record: SourceRecord, phone: str) -> RemoteContact | None:
        if not phone:
            return None
        return await self.crm.lookup_contact_by_phone(phone)

    async def _by_confirmation_number(self, record: SourceRecord, phone: str) -> RemoteContact | None:
        if not record.confirmation_number:
            return None
        return await self.crm.query_contacts(record.confirmation_number)

    async def _by_tenant_id(self, record: SourceRecord, phone: str) -> RemoteContact | None:
        # Only matches contacts that carry the tenant id custom field
        return await self.crm.query_contacts(str(record.id))

    async def resolve(self, record: SourceRecord, normalized_phone: str) -> RemoteContact | None:
        """Find the existing contact for a tenant.

        Args:
            record: Source tenant row
            normalized_phone: Primary phone in E.164 ("" if none)

        Returns:
            Existing contact, or None when every lookup came up empty
        """
        contact, matched_by = await first_match(self.strategies, record, normalized_phone)
        if contact is None:
            logger.info(f"No existing contact for tenant {record.id}")
        else:
            logger.info(
                f"Found contact {contact.id} for tenant {record.id} by {matched_by}",
                extra={"tenant_id": record.id, "contact_id": contact.id, "matched_by": matched_by},
            )
        return contact

    async def resolve_opportunity(
        self,
        contact_id: str,
        external_id: str,
        pipeline_id: str,
    ) -> RemoteOpportunity | None:
        """Find the contact's opportunity carrying an external reference.

        A failed search is treated as "not found".
        """
        try:
            opportunities = await self.crm.search_opportunities(contact_id, pipeline_id)
        except RemoteCallFailed as e:
            logger.warning(f"Opportunity search failed for contact {contact_id}: {e}")
            return None
        for opportunity in opportunities:
            if external_id in (opportunity.external_id, opportunity.name):
                return opportunity
        return None
