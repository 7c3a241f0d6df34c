"""Attendee outcome -> HubSpot deal sync.

Policy: every sync creates a new deal. The id of the newest deal is stored
on the attendee, overwriting any earlier one; earlier deals stay in HubSpot
untouched.

Steps run in order and the first failure aborts the sync:
1. Resolve the (pipeline, stage) pair for (outcome, forum event type)
2. Find the contact by exact email, creating it when absent
3. Create the deal
4. Associate the deal with the contact
5. Persist the deal id on the attendee
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog

from src.registrar.attendees.repository import AttendeeRepository
from src.registrar.attendees.schemas import (
    AttendeeRead,
    DealSyncResult,
    EventType,
    OutcomeType,
)
from src.registrar.core.monitoring import deal_syncs_total
from src.registrar.errors import ProviderError, ValidationError
from src.registrar.integrations.hubspot.client import HubSpotClient
from src.registrar.integrations.hubspot.pipelines import (
    DealStage,
    DealStageTable,
    load_deal_stage_table,
    owner_id_for,
    resolve_deal_stage,
)

logger = structlog.get_logger(__name__)


def _require_id(payload: dict[str, Any] | None, what: str) -> str:
    object_id = (payload or {}).get("id")
    if not object_id:
        raise ProviderError("hubspot", f"HubSpot returned no id for {what}")
    return str(object_id)


class DealSyncService:
    """Creates HubSpot deals for attendee outcomes.

    Args:
        repository: AttendeeRepository for attendee and forum settings reads.
        hubspot: HubSpotClient for CRM calls.
        stage_table: Deal stage table; defaults to the built-in forum rows.
        deal_type_property: HubSpot deal property carrying the deal type label.
    """

    def __init__(
        self,
        repository: AttendeeRepository,
        hubspot: HubSpotClient,
        stage_table: DealStageTable | None = None,
        deal_type_property: str = "sinc_deal_type",
    ) -> None:
        self._repository = repository
        self._hubspot = hubspot
        self._stage_table = stage_table if stage_table is not None else load_deal_stage_table()
        self._deal_type_property = deal_type_property

    async def sync(self, attendee_id: str, outcome: OutcomeType | str) -> DealSyncResult:
        try:
            outcome = OutcomeType(outcome)
        except ValueError:
            raise ValidationError(f"Not an outcome stage: {outcome}") from None

        attendee = await self._repository.require_attendee(attendee_id)
        forum_settings = await self._repository.get_forum_settings(attendee.forum_id)
        event_type = forum_settings.event_type if forum_settings else EventType.FORUM
        deal_code = forum_settings.deal_code if forum_settings else None

        deal_stage = resolve_deal_stage(self._stage_table, outcome, event_type)

        contact_id, contact_created = await self._resolve_contact(attendee)

        deal = await self._hubspot.create_deal(
            self._deal_properties(attendee, deal_stage, deal_code)
        )
        deal_id = _require_id(deal, "deal")

        await self._hubspot.associate_deal_with_contact(deal_id, contact_id)
        await self._repository.set_hubspot_deal_id(attendee.id, deal_id)

        deal_syncs_total.labels(
            outcome=outcome.value, event_type=EventType(event_type).value
        ).inc()
        logger.info(
            "deal_sync.complete",
            attendee_id=attendee.id,
            outcome=outcome.value,
            event_type=EventType(event_type).value,
            deal_id=deal_id,
            contact_id=contact_id,
            contact_created=contact_created,
        )

        return DealSyncResult(
            attendee_id=attendee.id,
            outcome=outcome,
            deal_id=deal_id,
            contact_id=contact_id,
            contact_created=contact_created,
            pipeline_id=deal_stage.pipeline_id,
            stage_id=deal_stage.stage_id,
        )

    async def _resolve_contact(self, attendee: AttendeeRead) -> tuple[str, bool]:
        existing = await self._hubspot.search_contact_by_email(attendee.email)
        if existing is not None:
            return _require_id(existing, "contact"), False

        created = await self._hubspot.create_contact(
            {
                "email": attendee.email,
                "firstname": attendee.first_name,
                "lastname": attendee.last_name,
                "company": attendee.company,
                "jobtitle": attendee.title,
                "industry": attendee.industry,
            }
        )
        return _require_id(created, "contact"), True

    def _deal_properties(
        self, attendee: AttendeeRead, deal_stage: DealStage, deal_code: str | None
    ) -> dict[str, Any]:
        properties: dict[str, Any] = {
            "dealname": deal_code or f"{attendee.forum_id}-{attendee.id[:8]}",
            "dealstage": deal_stage.stage_id,
            "pipeline": deal_stage.pipeline_id,
            "closedate": datetime.now(timezone.utc).isoformat(),
            "company_name": attendee.company,
            "contact_email": attendee.email,
            "contact_name": f"{attendee.first_name} {attendee.last_name}".strip(),
            "industry": attendee.industry,
            self._deal_type_property: deal_stage.deal_type,
        }
        owner_id = owner_id_for(attendee.sales_rep)
        if owner_id:
            properties["hubspot_owner_id"] = owner_id
        return properties
