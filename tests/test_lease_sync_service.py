"""Tests for the incremental tenant -> CRM sync run."""

import json
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from lease_sync.core.run_context import get_run_context
from lease_sync.domain.errors import CheckpointWriteError, SourceReadError
from lease_sync.domain.models.remote import RemoteContact, RemoteOpportunity
from lease_sync.domain.services.lease_sync_service import LeaseSyncService
from lease_sync.infrastructure.crm_client import RemoteCallFailed
from lease_sync.persistence.models import SyncState, Tenant
from lease_sync.persistence.repositories.sync_state_repository import SyncStateRepository

NOW = datetime(2025, 6, 10, 12, 0, tzinfo=timezone.utc)
STEP = timedelta(microseconds=1)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def crm():
    """CRM facade that finds nothing and stores everything."""
    api = AsyncMock()
    api.lookup_contact_by_email.return_value = None
    api.lookup_contact_by_phone.return_value = None
    api.query_contacts.return_value = None
    api.upsert_contact.return_value = RemoteContact(id="contact-1")
    api.search_opportunities.return_value = []
    api.create_opportunity.return_value = RemoteOpportunity(id="opp-1")
    api.update_opportunity.return_value = RemoteOpportunity(id="opp-1")
    return api


@pytest.fixture
def service(db_session, crm, sync_config):
    return LeaseSyncService(db_session, crm, sync_config)


async def add_tenant(session, **overrides) -> Tenant:
    data = {
        "id": 42,
        "tenant_email": "ana@example.com",
        "first_name": "Ana",
        "last_name": "Reyes",
        "tenant_phone": ["(203) 671-8335"],
        "check_in_date": date(2025, 7, 1),
        "rent": Decimal("1200"),
        "created_at": utc(2025, 6, 1),
    }
    data.update(overrides)
    tenant = Tenant(**data)
    session.add(tenant)
    await session.commit()
    return tenant


async def set_checkpoint(session, value: datetime) -> None:
    session.add(SyncState(id="ghl_lease_sync", last_run_at=value))
    await session.commit()


async def stored_checkpoint(session) -> datetime | None:
    return await SyncStateRepository(session).get_checkpoint("ghl_lease_sync")


def remember_contacts(crm, fail_once: set[str] | None = None) -> dict[str, RemoteContact]:
    """Make the CRM mock keep upserted contacts so later lookups by email see them."""
    contacts: dict[str, RemoteContact] = {}
    failing = set(fail_once or ())

    async def upsert(contact, fields):
        email = contact["email"]
        if email in failing:
            failing.discard(email)
            raise RemoteCallFailed(500, "down")
        stored = RemoteContact(id=f"contact-{email}", email=email, custom_fields=dict(fields))
        contacts[email] = stored
        return stored

    async def lookup(email):
        return contacts.get(email)

    crm.upsert_contact.side_effect = upsert
    crm.lookup_contact_by_email.side_effect = lookup
    return contacts


class TestSyncRecord:
    """Tests for what one tenant row turns into on the CRM side."""

    async def test_new_tenant_end_to_end(self, db_session, service, crm):
        await add_tenant(db_session)

        result = await service.run(now=NOW)

        assert result.processed_ids == [42]
        assert result.message == "Synced 1 tenants"

        contact, fields = crm.upsert_contact.await_args.args
        assert contact == {
            "email": "ana@example.com",
            "firstName": "Ana",
            "lastName": "Reyes",
            "phone": "+12036718335",
        }
        assert fields["cf-tenant-id"] == "42"
        assert json.loads(fields["cf-yearly"]) == {"2025": 1200}
        assert fields["cf-lifetime"] == "1200"

        payload = crm.create_opportunity.await_args.args[0]
        assert payload["pipelineStageId"] == "stage-booked-current"
        assert payload["monetaryValue"] == 1200
        assert payload["contactId"] == "contact-1"
        assert payload["externalId"] == "tenant-42"
        assert payload["name"] == "Tenant 42"
        assert payload["status"] == "open"
        assert payload["pipelineId"] == "pipe-1"

    async def test_existing_totals_are_merged(self, db_session, service, crm):
        await add_tenant(db_session)
        crm.lookup_contact_by_email.return_value = RemoteContact(
            id="contact-1", custom_fields={"cf-yearly": '{"2024": 500}'}
        )

        await service.run(now=NOW)

        fields = crm.upsert_contact.await_args.args[1]
        assert json.loads(fields["cf-yearly"]) == {"2024": 500, "2025": 1200}
        assert fields["cf-lifetime"] == "1700"

    async def test_zero_rent_skips_totals_and_lookup(self, db_session, service, crm):
        await add_tenant(db_session, rent=None)

        await service.run(now=NOW)

        fields = crm.upsert_contact.await_args.args[1]
        assert "cf-yearly" not in fields
        assert "cf-lifetime" not in fields
        crm.lookup_contact_by_email.assert_not_called()

    async def test_secondary_phone_owner_and_rental_metadata(self, db_session, service, crm):
        await add_tenant(
            db_session,
            tenant_phone=["8567805758 / 6097744077"],
            user_id="agent-a",
            rental_address="12 Dune Rd",
            unit_number="4B",
            unit_owner="Pat Owner",
            owner_phone=["5551234567"],
            confirmation_number="CONF-42",
        )

        await service.run(now=NOW)

        contact, fields = crm.upsert_contact.await_args.args
        assert contact["phone"] == "+18567805758"
        assert contact["assignedTo"] == "crm-user-a"
        assert fields["cf-secondary-phone"] == "+16097744077"
        assert fields["cf-address"] == "12 Dune Rd"
        assert fields["cf-unit"] == "4B"
        assert fields["cf-owner-name"] == "Pat Owner"
        assert json.loads(fields["cf-owner-phones"]) == ["5551234567"]

        payload = crm.create_opportunity.await_args.args[0]
        assert payload["externalId"] == "CONF-42"
        assert payload["name"] == "CONF-42"

    async def test_unmapped_owner_is_not_assigned(self, db_session, service, crm):
        await add_tenant(db_session, user_id="someone-else")

        await service.run(now=NOW)

        assert "assignedTo" not in crm.upsert_contact.await_args.args[0]

    async def test_existing_opportunity_is_updated(self, db_session, service, crm):
        await add_tenant(db_session, confirmation_number="CONF-42", check_in_date=date(2026, 1, 5))
        crm.search_opportunities.return_value = [RemoteOpportunity(id="opp-9", external_id="CONF-42")]

        await service.run(now=NOW)

        crm.create_opportunity.assert_not_called()
        opportunity_id, payload = crm.update_opportunity.await_args.args
        assert opportunity_id == "opp-9"
        assert payload["pipelineStageId"] == "stage-booked-next"

    async def test_no_check_in_year_skips_opportunity(self, db_session, service, crm):
        await add_tenant(db_session, check_in_date=None)

        result = await service.run(now=NOW)

        assert result.processed_ids == [42]
        crm.search_opportunities.assert_not_called()
        crm.create_opportunity.assert_not_called()

    async def test_configured_current_year_drives_stage(self, db_session, crm, sync_config):
        from dataclasses import replace

        await add_tenant(db_session, check_in_date=date(2025, 7, 1))
        service = LeaseSyncService(db_session, crm, replace(sync_config, current_year=2026))

        await service.run(now=NOW)

        assert crm.create_opportunity.await_args.args[0]["pipelineStageId"] == "stage-past"


class TestFailureIsolation:
    """Tests that one bad row never aborts the run."""

    async def test_upsert_failure_skips_row_and_continues(self, db_session, service, crm):
        await add_tenant(db_session, id=1, created_at=utc(2025, 6, 1))
        await add_tenant(db_session, id=2, tenant_email="bo@example.com", created_at=utc(2025, 6, 2))
        crm.upsert_contact.side_effect = [
            RemoteCallFailed(422, "invalid phone", "POST", "/contacts/upsert"),
            RemoteContact(id="contact-2"),
        ]

        result = await service.run(now=NOW)

        assert result.processed_ids == [2]
        assert result.failed_ids == [1]
        assert crm.create_opportunity.await_count == 1

    async def test_upsert_without_id_counts_as_failure(self, db_session, service, crm):
        await add_tenant(db_session)
        crm.upsert_contact.return_value = None

        result = await service.run(now=NOW)

        assert result.failed_ids == [42]
        assert result.message == "Processed 0 tenants successfully"

    async def test_unexpected_error_is_contained(self, db_session, service, crm):
        await add_tenant(db_session, id=1, created_at=utc(2025, 6, 1))
        await add_tenant(db_session, id=2, created_at=utc(2025, 6, 2))
        crm.upsert_contact.side_effect = [ValueError("boom"), RemoteContact(id="contact-2")]

        result = await service.run(now=NOW)

        assert result.failed_ids == [1]
        assert result.processed_ids == [2]

    async def test_opportunity_failure_still_counts_as_processed(self, db_session, service, crm):
        await add_tenant(db_session)
        crm.create_opportunity.side_effect = RemoteCallFailed(400, "bad stage")

        result = await service.run(now=NOW)

        assert result.processed_ids == [42]
        assert result.opportunity_failed_ids == [42]
        assert result.checkpoint_after == utc(2025, 6, 1) + STEP


class TestCheckpoint:
    """Tests for checkpoint movement."""

    async def test_no_candidates_advances_to_now(self, db_session, service):
        result = await service.run(now=NOW)

        assert result.candidates == 0
        assert result.message == "No new tenants"
        assert await stored_checkpoint(db_session) == NOW

    async def test_first_run_uses_fallback_checkpoint(self, db_session, service, crm):
        await add_tenant(db_session, created_at=utc(2001, 3, 4))

        result = await service.run(now=NOW)

        assert result.checkpoint_before == utc(2000, 1, 1)
        assert result.processed_ids == [42]

    async def test_advances_to_latest_processed_change(self, db_session, service):
        await add_tenant(db_session, id=1, created_at=utc(2025, 6, 1))
        await add_tenant(db_session, id=2, created_at=utc(2025, 6, 2), last_scraped_at=utc(2025, 6, 5))

        result = await service.run(now=NOW)

        assert result.checkpoint_after == utc(2025, 6, 5) + STEP
        assert await stored_checkpoint(db_session) == utc(2025, 6, 5) + STEP

    async def test_does_not_pass_earliest_failed_row(self, db_session, service, crm):
        await add_tenant(db_session, id=1, created_at=utc(2025, 6, 1))
        await add_tenant(db_session, id=2, created_at=utc(2025, 6, 3))
        crm.upsert_contact.side_effect = [RemoteCallFailed(500, "down"), RemoteContact(id="contact-2")]

        await service.run(now=NOW)

        assert await stored_checkpoint(db_session) == utc(2025, 6, 1)

    async def test_nothing_processed_leaves_checkpoint(self, db_session, service, crm):
        await set_checkpoint(db_session, utc(2025, 5, 1))
        await add_tenant(db_session, created_at=utc(2025, 6, 1))
        crm.upsert_contact.side_effect = RemoteCallFailed(0, "timeout")

        result = await service.run(now=NOW)

        assert result.processed == 0
        assert not result.checkpoint_advanced
        assert await stored_checkpoint(db_session) == utc(2025, 5, 1)

    async def test_never_moves_backwards(self, db_session, service, crm):
        previous = utc(2025, 6, 5)
        await set_checkpoint(db_session, previous)
        # Both rows are selected through last_scraped_at; the failed one sits on the checkpoint
        await add_tenant(db_session, id=1, created_at=utc(2025, 1, 1), last_scraped_at=previous)
        await add_tenant(db_session, id=2, created_at=utc(2025, 1, 2), last_scraped_at=utc(2025, 6, 8))
        crm.upsert_contact.side_effect = [RemoteCallFailed(500, "down"), RemoteContact(id="contact-2")]

        result = await service.run(now=NOW)

        assert result.candidates == 2
        assert result.checkpoint_after >= previous
        assert await stored_checkpoint(db_session) >= previous

    async def test_unchanged_rows_are_not_selected(self, db_session, service, crm):
        await set_checkpoint(db_session, utc(2025, 6, 5))
        await add_tenant(db_session, created_at=utc(2025, 6, 1))

        result = await service.run(now=NOW)

        assert result.candidates == 0
        crm.upsert_contact.assert_not_called()

    async def test_second_run_without_changes_adds_nothing(self, db_session, service, crm):
        await add_tenant(db_session)
        contacts = remember_contacts(crm)

        first = await service.run(now=NOW)
        second = await service.run(now=NOW + timedelta(hours=1))

        assert first.processed_ids == [42]
        assert second.candidates == 0
        assert second.message == "No new tenants"
        assert crm.upsert_contact.await_count == 1
        assert json.loads(contacts["ana@example.com"].custom_fields["cf-yearly"]) == {"2025": 1200}
        assert contacts["ana@example.com"].custom_fields["cf-lifetime"] == "1200"

    async def test_rows_after_a_failed_row_are_not_synced_twice(self, db_session, service, crm):
        await add_tenant(db_session, id=1, created_at=utc(2025, 6, 1))
        await add_tenant(db_session, id=2, tenant_email="bo@example.com", created_at=utc(2025, 6, 3))
        contacts = remember_contacts(crm, fail_once={"ana@example.com"})

        first = await service.run(now=NOW)
        second = await service.run(now=NOW + timedelta(hours=1))
        third = await service.run(now=NOW + timedelta(hours=2))

        assert first.failed_ids == [1]
        assert first.checkpoint_after == utc(2025, 6, 1)
        assert second.candidates == 1
        assert second.processed_ids == [1]
        assert second.checkpoint_after == utc(2025, 6, 3) + STEP
        assert third.message == "No new tenants"
        assert json.loads(contacts["bo@example.com"].custom_fields["cf-yearly"]) == {"2025": 1200}
        assert json.loads(contacts["ana@example.com"].custom_fields["cf-yearly"]) == {"2025": 1200}

    async def test_rescraped_row_is_synced_again(self, db_session, service, crm):
        await add_tenant(db_session, id=1, created_at=utc(2025, 6, 1))
        tenant = await add_tenant(db_session, id=2, tenant_email="bo@example.com", created_at=utc(2025, 6, 3))
        remember_contacts(crm, fail_once={"ana@example.com"})
        await service.run(now=NOW)

        tenant.last_scraped_at = utc(2025, 6, 9)
        await db_session.commit()
        result = await service.run(now=NOW + timedelta(hours=1))

        assert result.processed_ids == [1, 2]
        assert result.checkpoint_after == utc(2025, 6, 9) + STEP


class TestRunErrors:
    """Tests for run-level failures."""

    async def test_source_read_failure(self, service):
        with patch.object(service.tenant_repo, "list_changed_since", side_effect=SQLAlchemyError("down")):
            with pytest.raises(SourceReadError):
                await service.run(now=NOW)

    async def test_checkpoint_read_failure(self, service):
        with patch.object(service.state_repo, "get_checkpoint", side_effect=SQLAlchemyError("down")):
            with pytest.raises(SourceReadError):
                await service.run(now=NOW)

    async def test_checkpoint_write_failure_reports_synced_rows(self, db_session, service):
        await add_tenant(db_session)

        with patch.object(service.state_repo, "upsert_checkpoint", side_effect=SQLAlchemyError("locked")):
            with pytest.raises(CheckpointWriteError) as exc_info:
                await service.run(now=NOW)

        assert exc_info.value.result.processed == 1

    async def test_run_context_is_cleared(self, db_session, service):
        await service.run(now=NOW)

        assert get_run_context() is None
