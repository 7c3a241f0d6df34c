"""Pydantic schemas for the attendee lifecycle.

Defines all structured types shared by storage, intake and integrations:
- Enums: AttendeeStage, OutcomeType, EventType, EmailStatus, SaveAction, ImportKind
- Attendee: ProfileQuestion, AttendeeProfile, AttendeeCreate/Update/Read
- Forum mirror: ForumRead, ForumSettingsData/Read
- Ledger: EmailAuditEntry
- Intake: SubmissionField, RawSubmission, NormalizedRecord, SavedAttendee,
  SaveError, SaveResults, EnrichmentResults, DuplicatePreview, ImportResult
- Transitions: TransitionResult
- CRM: DealSyncResult
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field


# ── Enums ───────────────────────────────────────────────────────────────────


class AttendeeStage(str, Enum):
    """The five legal attendee stages."""

    IN_QUEUE = "in_queue"
    PRELIMINARY_APPROVED = "preliminary_approved"
    APPROVED = "approved"
    DENIED = "denied"
    WAITLISTED = "waitlisted"


class OutcomeType(str, Enum):
    """Stages whose entry triggers an outcome email offer."""

    APPROVED = "approved"
    DENIED = "denied"
    WAITLISTED = "waitlisted"

    @property
    def stage(self) -> AttendeeStage:
        return AttendeeStage(self.value)

    @classmethod
    def from_stage(cls, stage: AttendeeStage) -> OutcomeType | None:
        """Return the outcome for an emailable stage, None otherwise."""
        try:
            return cls(stage.value)
        except ValueError:
            return None


class EventType(str, Enum):
    """Event formats, each with its own CRM deal pipeline."""

    FORUM = "forum"
    DINNER = "dinner"
    VEB = "veb"
    VIRTUAL_ROUNDTABLE = "virtual_roundtable"


class EmailStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    PENDING = "pending"


class SaveAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


class ImportKind(str, Enum):
    """Which HubSpot form a submission batch comes from."""

    INITIAL_REGISTRATION = "initial_registration"
    EXECUTIVE_PROFILE = "executive_profile"


# ── Attendee Schemas ────────────────────────────────────────────────────────

Answer = Union[str, list[str]]


class ProfileQuestion(BaseModel):
    """One (question, answer) pair of an executive profile."""

    question: str
    answer: Answer


class AttendeeProfile(BaseModel):
    """Mutable profile attributes shared by create/update/read."""

    first_name: str = ""
    last_name: str = ""
    company: str = ""
    title: str = ""
    industry: str = ""
    cellphone: str = ""
    company_size: str = ""
    management_level: str = ""
    sales_rep: str = ""
    airport: str = ""
    hotel: str = ""
    gender: str = ""
    dietary_notes: str = ""
    notes: str = ""


PROFILE_FIELDS: frozenset[str] = frozenset(AttendeeProfile.model_fields)


class AttendeeCreate(AttendeeProfile):
    """Schema for inserting an attendee. Stage always starts at in_queue."""

    email: str
    executive_profile_received: bool = False
    executive_profile_data: list[ProfileQuestion] | None = None


class AttendeeUpdate(BaseModel):
    """Partial profile update (all fields optional)."""

    first_name: str | None = None
    last_name: str | None = None
    company: str | None = None
    title: str | None = None
    industry: str | None = None
    cellphone: str | None = None
    company_size: str | None = None
    management_level: str | None = None
    sales_rep: str | None = None
    airport: str | None = None
    hotel: str | None = None
    gender: str | None = None
    dietary_notes: str | None = None
    notes: str | None = None


class AttendeeRead(AttendeeProfile):
    """Schema for reading an attendee (includes all persisted fields)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    forum_id: str
    email: str
    stage: AttendeeStage = AttendeeStage.IN_QUEUE
    denial_reason: str | None = None
    executive_profile_received: bool = False
    executive_profile_data: list[ProfileQuestion] | None = None
    executive_profile_enriched_at: datetime | None = None
    hubspot_deal_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# ── Forum Mirror ────────────────────────────────────────────────────────────


class ForumRead(BaseModel):
    """Locally mirrored forum record (owned by the external forums source)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    brand: str = ""
    date: str = ""
    city: str = ""
    venue: str = ""
    updated_at: datetime | None = None


class ForumSettingsData(BaseModel):
    """Per-forum configuration written by forum admins."""

    initial_registration_form_id: str | None = None
    executive_profile_form_id: str | None = None
    deal_code: str | None = None
    event_type: EventType = EventType.FORUM
    approved_email_template_id: str | None = None
    denied_email_template_id: str | None = None
    waitlisted_email_template_id: str | None = None


class ForumSettingsRead(ForumSettingsData):
    model_config = ConfigDict(from_attributes=True)

    forum_id: str
    updated_at: datetime | None = None


# ── Ledger ──────────────────────────────────────────────────────────────────


class EmailAuditEntry(BaseModel):
    """Immutable record of one outcome email send."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    attendee_id: str
    email_type: OutcomeType
    recipient_email: str
    recipient_name: str = ""
    status: EmailStatus
    sent_at: datetime
    created_at: datetime | None = None


# ── Intake ──────────────────────────────────────────────────────────────────


class SubmissionField(BaseModel):
    name: str
    value: str = ""


class RawSubmission(BaseModel):
    """A HubSpot form submission as returned by the submissions API."""

    model_config = ConfigDict(populate_by_name=True)

    submitted_at: Any = Field(default=None, alias="submittedAt")
    values: list[SubmissionField] = Field(default_factory=list)
    page_url: str | None = Field(default=None, alias="pageUrl")
    page_name: str | None = Field(default=None, alias="pageName")


class NormalizedRecord(BaseModel):
    """A submission reduced to an email plus canonical attendee attributes."""

    email: str
    name: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    submission: str = ""


class SavedAttendee(BaseModel):
    email: str
    name: str
    action: SaveAction


class SaveError(BaseModel):
    submission: str
    error: str


class SaveResults(BaseModel):
    saved_attendees: list[SavedAttendee] = Field(default_factory=list)
    errors: list[SaveError] = Field(default_factory=list)

    @property
    def created(self) -> int:
        return sum(1 for s in self.saved_attendees if s.action == SaveAction.CREATED)

    @property
    def updated(self) -> int:
        return sum(1 for s in self.saved_attendees if s.action == SaveAction.UPDATED)


class EnrichmentResults(BaseModel):
    enriched: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)


class DuplicatePreview(BaseModel):
    """Dry-run count of which candidate emails already exist for a forum."""

    total: int = 0
    new: int = 0
    duplicates: int = 0
    duplicate_emails: list[str] = Field(default_factory=list)


class PageInfo(BaseModel):
    """Per-page bookkeeping from a paginated submission fetch."""

    page: int
    results_count: int
    total_so_far: int
    next_after: str | None = None


class ImportResult(BaseModel):
    form_id: str
    kind: ImportKind
    total_submissions: int = 0
    submissions: list[dict[str, Any]] = Field(default_factory=list)
    save_results: SaveResults | None = None
    enrichment_results: EnrichmentResults | None = None
    duplicate_preview: DuplicatePreview | None = None
    pagination: list[PageInfo] = Field(default_factory=list)


# ── Transitions ─────────────────────────────────────────────────────────────


class TransitionResult(BaseModel):
    """Outcome of a stage transition request or confirmation.

    ``committed`` is False only when the stage was left untouched: either the
    request is held for confirmation (``pending_confirmation`` set) or the
    target equals the current stage.
    """

    attendee_id: str
    from_stage: AttendeeStage
    target_stage: AttendeeStage
    committed: bool = False
    pending_confirmation: OutcomeType | None = None
    email_sent: bool = False
    email_error: str | None = None
    requires_denial_reason: bool = False
    chat_notified: bool | None = None


# ── CRM ─────────────────────────────────────────────────────────────────────


class DealSyncResult(BaseModel):
    attendee_id: str
    outcome: OutcomeType
    deal_id: str
    contact_id: str
    contact_created: bool = False
    pipeline_id: str
    stage_id: str
