"""REST API endpoints for attendees and their stage transitions.

Stage changes go through the transition machine: ``POST .../stage`` either
commits or answers with ``pending_confirmation``; the client then calls
``POST .../stage/confirm`` with the user's answer. Errors raised by the
services are mapped to HTTP status codes by the handlers in main.py.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, Field

from src.registrar.api.deps import get_ledger, get_repository, get_transitions
from src.registrar.attendees.schemas import (
    AttendeeCreate,
    AttendeeRead,
    AttendeeStage,
    AttendeeUpdate,
    EmailAuditEntry,
    OutcomeType,
    TransitionResult,
)

router = APIRouter(tags=["attendees"])


# ── Request / Response Schemas ───────────────────────────────────────────────


class StageChangeRequest(BaseModel):
    """Request body for a stage change."""

    stage: AttendeeStage


class StageConfirmRequest(BaseModel):
    """The user's answer to an email confirmation prompt."""

    stage: AttendeeStage
    confirmed: bool


class DenialReasonRequest(BaseModel):
    reason: str


class EmailHistoryResponse(BaseModel):
    """Ledger entries (newest first) plus the per-outcome sent map."""

    entries: list[EmailAuditEntry] = Field(default_factory=list)
    sent: dict[OutcomeType, bool] = Field(default_factory=dict)


# ── Attendee CRUD ────────────────────────────────────────────────────────────


@router.get("/forums/{forum_id}/attendees", response_model=list[AttendeeRead])
async def list_attendees(
    forum_id: str,
    request: Request,
    stage: AttendeeStage | None = Query(default=None),
) -> list[AttendeeRead]:
    """List a forum's attendees, optionally filtered by stage."""
    repo = get_repository(request)
    return await repo.list_attendees(forum_id, stage)


@router.post(
    "/forums/{forum_id}/attendees",
    response_model=AttendeeRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_attendee(forum_id: str, body: AttendeeCreate, request: Request) -> AttendeeRead:
    """Manually add an attendee. New attendees always start in the queue."""
    repo = get_repository(request)
    email = body.email.strip()
    if not email:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail="Email is required"
        )
    if await repo.find_by_email(forum_id, email) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{email} is already registered for this forum",
        )
    return await repo.create_attendee(forum_id, body.model_copy(update={"email": email}))


@router.get("/attendees/{attendee_id}", response_model=AttendeeRead)
async def get_attendee(attendee_id: str, request: Request) -> AttendeeRead:
    repo = get_repository(request)
    return await repo.require_attendee(attendee_id)


@router.patch("/attendees/{attendee_id}", response_model=AttendeeRead)
async def update_attendee(attendee_id: str, body: AttendeeUpdate, request: Request) -> AttendeeRead:
    """Edit profile fields. The stage can only change through /stage."""
    repo = get_repository(request)
    return await repo.update_profile(attendee_id, body)


@router.delete("/attendees/{attendee_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_attendee(attendee_id: str, request: Request) -> Response:
    repo = get_repository(request)
    if not await repo.delete_attendee(attendee_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Attendee not found: {attendee_id}",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Stage Transitions ────────────────────────────────────────────────────────


@router.post("/attendees/{attendee_id}/stage", response_model=TransitionResult)
async def request_stage_change(
    attendee_id: str, body: StageChangeRequest, request: Request
) -> TransitionResult:
    transitions = get_transitions(request)
    return await transitions.request(attendee_id, body.stage)


@router.post("/attendees/{attendee_id}/stage/confirm", response_model=TransitionResult)
async def confirm_stage_change(
    attendee_id: str, body: StageConfirmRequest, request: Request
) -> TransitionResult:
    transitions = get_transitions(request)
    return await transitions.resolve(attendee_id, body.stage, body.confirmed)


@router.post("/attendees/{attendee_id}/denial-reason", response_model=AttendeeRead)
async def submit_denial_reason(
    attendee_id: str, body: DenialReasonRequest, request: Request
) -> AttendeeRead:
    transitions = get_transitions(request)
    return await transitions.submit_denial_reason(attendee_id, body.reason)


# ── Email History ────────────────────────────────────────────────────────────


@router.get("/attendees/{attendee_id}/emails", response_model=EmailHistoryResponse)
async def email_history(attendee_id: str, request: Request) -> EmailHistoryResponse:
    repo = get_repository(request)
    ledger = get_ledger(request)
    attendee = await repo.require_attendee(attendee_id)
    return EmailHistoryResponse(
        entries=await ledger.list_entries(attendee.id),
        sent=await ledger.sent_outcomes(attendee.id),
    )
