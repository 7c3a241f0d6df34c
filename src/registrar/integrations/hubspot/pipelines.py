"""HubSpot deal pipeline configuration.

One canonical table maps (outcome, event type) to the pipeline and deal stage
a synced deal is created in. The forum pipeline ships built in; pipelines of
the other event formats are supplied through the ``HUBSPOT_DEAL_PIPELINES``
setting, a JSON list such as::

    [{"outcome": "approved", "event_type": "dinner",
      "pipeline_id": "...", "stage_id": "...", "deal_type": "Dinner Attendee"}]

Rows from the setting override built-in rows with the same key.
"""

from __future__ import annotations

import json

from pydantic import BaseModel, ValidationError as PydanticValidationError

from src.registrar.attendees.schemas import EventType, OutcomeType
from src.registrar.errors import CRMConfigurationError

FORUM_PIPELINE = "90169477"


class DealStage(BaseModel):
    """Where a deal for one (outcome, event type) pair lands in HubSpot."""

    pipeline_id: str
    stage_id: str
    deal_type: str


class DealStageRow(DealStage):
    outcome: OutcomeType
    event_type: EventType
    deal_type: str = ""


DealStageTable = dict[tuple[OutcomeType, EventType], DealStage]

DEAL_STAGE_TABLE: DealStageTable = {
    (OutcomeType.APPROVED, EventType.FORUM): DealStage(
        pipeline_id=FORUM_PIPELINE, stage_id="166990866", deal_type="Forum Attendee"
    ),
    (OutcomeType.DENIED, EventType.FORUM): DealStage(
        pipeline_id=FORUM_PIPELINE, stage_id="166990871", deal_type="Forum Attendee"
    ),
    (OutcomeType.WAITLISTED, EventType.FORUM): DealStage(
        pipeline_id=FORUM_PIPELINE, stage_id="166990868", deal_type="Forum Attendee"
    ),
}

# Sales rep name -> HubSpot owner id
SALES_REP_OWNER_IDS: dict[str, str] = {
    "Trevor": "680535117",
    "Jillian": "254155041",
    "Raven": "1268435101",
    "Julia": "76699261",
    "Kim": "246749077",
    "Dante": "465765582",
    "Tucker": "75919879",
    "Elisabeth": "1562201038",
    "Kaylee": "83333527",
    "Katherine": "859404638",
    "Joe": "1112781027",
    "Mariana": "1740878928",
    "Samara": "477103320",
    "Beau": "80655731",
    "Ross": "1267850482",
    "Amir": "752490040",
}


def owner_id_for(sales_rep: str) -> str | None:
    """HubSpot owner id of a sales rep, None for an unknown or empty name."""
    return SALES_REP_OWNER_IDS.get(sales_rep.strip()) if sales_rep else None


def _default_deal_type(event_type: EventType) -> str:
    return f"{event_type.value.replace('_', ' ').title()} Attendee"


def load_deal_stage_table(raw: str = "") -> DealStageTable:
    """Built-in table merged with the JSON rows from configuration.

    Raises:
        CRMConfigurationError: ``raw`` is not a JSON list of valid rows.
    """
    table: DealStageTable = dict(DEAL_STAGE_TABLE)
    if not raw.strip():
        return table

    try:
        rows = json.loads(raw)
        if not isinstance(rows, list):
            raise ValueError("expected a JSON list")
        parsed = [DealStageRow.model_validate(row) for row in rows]
    except (ValueError, PydanticValidationError) as exc:
        raise CRMConfigurationError(f"Invalid HUBSPOT_DEAL_PIPELINES: {exc}") from exc

    for row in parsed:
        table[(row.outcome, row.event_type)] = DealStage(
            pipeline_id=row.pipeline_id,
            stage_id=row.stage_id,
            deal_type=row.deal_type or _default_deal_type(row.event_type),
        )
    return table


def resolve_deal_stage(
    table: DealStageTable, outcome: OutcomeType, event_type: EventType
) -> DealStage:
    """Look up the deal stage for a pair, raising when it is not configured."""
    try:
        return table[(OutcomeType(outcome), EventType(event_type))]
    except KeyError:
        raise CRMConfigurationError(
            f"No HubSpot pipeline configured for outcome={OutcomeType(outcome).value} "
            f"event_type={EventType(event_type).value}"
        ) from None
