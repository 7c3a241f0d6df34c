"""Tests for HubSpot deal sync and the deal pipeline table.

The repository is real (SQLite); the HubSpot client is an AsyncMock.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from src.registrar.attendees.schemas import (
    AttendeeCreate,
    EventType,
    ForumSettingsData,
    OutcomeType,
)
from src.registrar.errors import CRMConfigurationError, ProviderError, ValidationError
from src.registrar.integrations.hubspot.deal_sync import DealSyncService
from src.registrar.integrations.hubspot.pipelines import (
    DEAL_STAGE_TABLE,
    FORUM_PIPELINE,
    load_deal_stage_table,
    owner_id_for,
    resolve_deal_stage,
)


# ── Pipeline Table ──────────────────────────────────────────────────────────


class TestDealStageTable:
    def test_forum_rows(self):
        assert resolve_deal_stage(
            DEAL_STAGE_TABLE, OutcomeType.APPROVED, EventType.FORUM
        ).stage_id == "166990866"
        assert resolve_deal_stage(
            DEAL_STAGE_TABLE, OutcomeType.DENIED, EventType.FORUM
        ).stage_id == "166990871"
        assert resolve_deal_stage(
            DEAL_STAGE_TABLE, OutcomeType.WAITLISTED, EventType.FORUM
        ).stage_id == "166990868"
        assert {s.pipeline_id for s in DEAL_STAGE_TABLE.values()} == {FORUM_PIPELINE}

    def test_unconfigured_pair_raises(self):
        with pytest.raises(CRMConfigurationError, match="event_type=dinner"):
            resolve_deal_stage(DEAL_STAGE_TABLE, OutcomeType.APPROVED, EventType.DINNER)

    def test_configured_rows_extend_table(self):
        table = load_deal_stage_table(
            json.dumps(
                [
                    {
                        "outcome": "approved",
                        "event_type": "dinner",
                        "pipeline_id": "p-dinner",
                        "stage_id": "s-approved",
                    },
                    {
                        "outcome": "denied",
                        "event_type": "virtual_roundtable",
                        "pipeline_id": "p-vrt",
                        "stage_id": "s-denied",
                        "deal_type": "VRT Attendee",
                    },
                ]
            )
        )

        dinner = resolve_deal_stage(table, OutcomeType.APPROVED, EventType.DINNER)
        assert dinner.pipeline_id == "p-dinner"
        assert dinner.deal_type == "Dinner Attendee"
        vrt = resolve_deal_stage(table, OutcomeType.DENIED, EventType.VIRTUAL_ROUNDTABLE)
        assert vrt.deal_type == "VRT Attendee"
        assert (OutcomeType.APPROVED, EventType.FORUM) in table

    def test_empty_configuration_is_builtin_table(self):
        assert load_deal_stage_table("  ") == DEAL_STAGE_TABLE

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            '{"outcome": "approved"}',
            '[{"outcome": "in_queue", "event_type": "forum", "pipeline_id": "p", "stage_id": "s"}]',
            '[{"outcome": "approved", "event_type": "gala", "pipeline_id": "p", "stage_id": "s"}]',
        ],
    )
    def test_invalid_configuration_raises(self, raw):
        with pytest.raises(CRMConfigurationError):
            load_deal_stage_table(raw)

    def test_owner_lookup(self):
        assert owner_id_for("Trevor") == "680535117"
        assert owner_id_for(" Amir ") == "752490040"
        assert owner_id_for("Nobody") is None
        assert owner_id_for("") is None


# ── DealSyncService ─────────────────────────────────────────────────────────


class TestDealSyncService:
    @pytest.fixture
    def hubspot(self):
        client = AsyncMock()
        client.search_contact_by_email.return_value = {"id": "501"}
        client.create_contact.return_value = {"id": "777"}
        client.create_deal.return_value = {"id": "9001"}
        client.associate_deal_with_contact.return_value = None
        return client

    @pytest.fixture
    def service(self, repository, hubspot):
        return DealSyncService(repository, hubspot)

    async def test_existing_contact(self, service, hubspot, repository, forum_settings, attendee):
        result = await service.sync(attendee.id, OutcomeType.APPROVED)

        assert result.deal_id == "9001"
        assert result.contact_id == "501"
        assert result.contact_created is False
        assert result.pipeline_id == FORUM_PIPELINE
        assert result.stage_id == "166990866"
        hubspot.create_contact.assert_not_awaited()
        hubspot.associate_deal_with_contact.assert_awaited_once_with("9001", "501")

        properties = hubspot.create_deal.await_args.args[0]
        assert properties["dealname"] == "DAL25"
        assert properties["dealstage"] == "166990866"
        assert properties["pipeline"] == FORUM_PIPELINE
        assert properties["contact_email"] == attendee.email
        assert properties["contact_name"] == "Jane Doe"
        assert properties["company_name"] == "Acme Corp"
        assert properties["sinc_deal_type"] == "Forum Attendee"
        assert properties["hubspot_owner_id"] == "680535117"
        assert properties["closedate"]

        stored = await repository.get_attendee(attendee.id)
        assert stored.hubspot_deal_id == "9001"

    async def test_contact_created_when_absent(self, service, hubspot, attendee):
        hubspot.search_contact_by_email.return_value = None

        result = await service.sync(attendee.id, "denied")

        assert result.contact_created is True
        assert result.contact_id == "777"
        assert result.stage_id == "166990871"
        created = hubspot.create_contact.await_args.args[0]
        assert created["email"] == attendee.email
        assert created["firstname"] == "Jane"
        assert created["jobtitle"] == "CIO"

    async def test_deal_name_without_deal_code(self, service, hubspot, attendee):
        await service.sync(attendee.id, OutcomeType.WAITLISTED)

        properties = hubspot.create_deal.await_args.args[0]
        assert properties["dealname"] == f"{attendee.forum_id}-{attendee.id[:8]}"

    async def test_every_sync_creates_a_new_deal(self, service, hubspot, repository, attendee):
        await service.sync(attendee.id, OutcomeType.APPROVED)
        hubspot.create_deal.return_value = {"id": "9002"}

        await service.sync(attendee.id, OutcomeType.APPROVED)

        assert hubspot.create_deal.await_count == 2
        assert (await repository.get_attendee(attendee.id)).hubspot_deal_id == "9002"

    async def test_unknown_rep_has_no_owner(self, service, hubspot, repository, forum):
        other = await repository.create_attendee(
            forum.id, AttendeeCreate(email="rep@x.com", sales_rep="Someone")
        )

        await service.sync(other.id, OutcomeType.APPROVED)

        assert "hubspot_owner_id" not in hubspot.create_deal.await_args.args[0]

    async def test_unconfigured_event_type_fails_before_any_call(
        self, service, hubspot, repository, forum, attendee
    ):
        await repository.upsert_forum_settings(
            forum.id, ForumSettingsData(event_type=EventType.DINNER)
        )

        with pytest.raises(CRMConfigurationError):
            await service.sync(attendee.id, OutcomeType.APPROVED)
        hubspot.search_contact_by_email.assert_not_awaited()
        hubspot.create_deal.assert_not_awaited()

    async def test_configured_event_type_uses_its_pipeline(
        self, repository, hubspot, forum, attendee
    ):
        table = load_deal_stage_table(
            '[{"outcome": "approved", "event_type": "veb", '
            '"pipeline_id": "p-veb", "stage_id": "s-veb"}]'
        )
        await repository.upsert_forum_settings(forum.id, ForumSettingsData(event_type="veb"))

        result = await DealSyncService(repository, hubspot, stage_table=table).sync(
            attendee.id, OutcomeType.APPROVED
        )

        assert result.pipeline_id == "p-veb"
        assert hubspot.create_deal.await_args.args[0]["sinc_deal_type"] == "Veb Attendee"

    async def test_non_outcome_rejected(self, service, attendee):
        with pytest.raises(ValidationError):
            await service.sync(attendee.id, "preliminary_approved")

    async def test_failed_association_leaves_deal_id_unset(
        self, service, hubspot, repository, attendee
    ):
        hubspot.associate_deal_with_contact.side_effect = ProviderError(
            "hubspot", "HubSpot API error: 500 - oops", status_code=500
        )

        with pytest.raises(ProviderError):
            await service.sync(attendee.id, OutcomeType.APPROVED)
        assert (await repository.get_attendee(attendee.id)).hubspot_deal_id is None

    async def test_missing_deal_id_is_provider_error(self, service, hubspot, attendee):
        hubspot.create_deal.return_value = {}

        with pytest.raises(ProviderError, match="no id for deal"):
            await service.sync(attendee.id, OutcomeType.APPROVED)
