"""REST API endpoint for pushing an attendee outcome to HubSpot as a deal."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel

from src.registrar.api.deps import get_deal_sync
from src.registrar.attendees.schemas import DealSyncResult, OutcomeType

router = APIRouter(tags=["crm"])


class DealSyncRequest(BaseModel):
    outcome: OutcomeType


@router.post("/attendees/{attendee_id}/crm-sync", response_model=DealSyncResult)
async def sync_deal(attendee_id: str, body: DealSyncRequest, request: Request) -> DealSyncResult:
    """Create a HubSpot deal for the attendee's outcome.

    Every call creates a new deal; the newest deal id is stored on the attendee.
    """
    deal_sync = get_deal_sync(request)
    return await deal_sync.sync(attendee_id, body.outcome)
