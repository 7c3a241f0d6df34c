"""Attendee lifecycle persistence models.

Four SQLAlchemy models on the shared declarative Base:
- ForumModel: Local mirror of externally owned forum records
- ForumSettingsModel: Per-forum form ids, deal code, template overrides
- AttendeeModel: One registrant per (forum, email) with stage and profile
- EmailAuditLogModel: Append-only ledger of outcome emails

Column types are dialect-neutral (generic Uuid/JSON) so the same models run
on PostgreSQL in production and SQLite in tests.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.registrar.attendees.schemas import AttendeeStage, EmailStatus, OutcomeType
from src.registrar.core.database import Base


def _enum_check(column: str, values: list[str], name: str) -> CheckConstraint:
    allowed = ", ".join(f"'{v}'" for v in values)
    return CheckConstraint(f"{column} IN ({allowed})", name=name)


class ForumModel(Base):
    """Forum record mirrored from the external forums source.

    Written only by ForumSync; the registrar never originates forum data.
    """

    __tablename__ = "forums"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    brand: Mapped[str] = mapped_column(String(200), default="", server_default=text("''"))
    date: Mapped[str] = mapped_column(String(50), default="", server_default=text("''"))
    city: Mapped[str] = mapped_column(String(200), default="", server_default=text("''"))
    venue: Mapped[str] = mapped_column(String(300), default="", server_default=text("''"))
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=True,
    )


class ForumSettingsModel(Base):
    """Per-forum configuration: HubSpot form ids, deal code, email templates."""

    __tablename__ = "forum_settings"

    forum_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    initial_registration_form_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    executive_profile_form_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    deal_code: Mapped[str | None] = mapped_column(String(200), nullable=True)
    event_type: Mapped[str] = mapped_column(
        String(50), default="forum", server_default=text("'forum'")
    )
    approved_email_template_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    denied_email_template_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    waitlisted_email_template_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )


class AttendeeModel(Base):
    """A registrant for one forum.

    One row per (forum_id, email), enforced by unique constraint. The stage
    column is restricted to the AttendeeStage values at the database level.
    """

    __tablename__ = "attendees"
    __table_args__ = (
        UniqueConstraint("forum_id", "email", name="uq_attendee_forum_email"),
        _enum_check("stage", [s.value for s in AttendeeStage], "ck_attendee_stage"),
        Index("ix_attendees_forum_stage", "forum_id", "stage"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    forum_id: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    stage: Mapped[str] = mapped_column(
        String(50), default="in_queue", server_default=text("'in_queue'")
    )
    first_name: Mapped[str] = mapped_column(String(200), default="", server_default=text("''"))
    last_name: Mapped[str] = mapped_column(String(200), default="", server_default=text("''"))
    company: Mapped[str] = mapped_column(String(300), default="", server_default=text("''"))
    title: Mapped[str] = mapped_column(String(300), default="", server_default=text("''"))
    industry: Mapped[str] = mapped_column(String(200), default="", server_default=text("''"))
    cellphone: Mapped[str] = mapped_column(String(100), default="", server_default=text("''"))
    company_size: Mapped[str] = mapped_column(String(100), default="", server_default=text("''"))
    management_level: Mapped[str] = mapped_column(
        String(100), default="", server_default=text("''")
    )
    sales_rep: Mapped[str] = mapped_column(String(100), default="", server_default=text("''"))
    airport: Mapped[str] = mapped_column(String(200), default="", server_default=text("''"))
    hotel: Mapped[str] = mapped_column(String(100), default="", server_default=text("''"))
    gender: Mapped[str] = mapped_column(String(50), default="", server_default=text("''"))
    dietary_notes: Mapped[str] = mapped_column(Text, default="", server_default=text("''"))
    notes: Mapped[str] = mapped_column(Text, default="", server_default=text("''"))
    denial_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    executive_profile_received: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false")
    )
    executive_profile_data: Mapped[list | None] = mapped_column(
        JSON(none_as_null=True), nullable=True
    )
    executive_profile_enriched_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    hubspot_deal_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )


class EmailAuditLogModel(Base):
    """Append-only record of an outcome email.

    The registrar inserts rows and reads them; nothing updates or deletes them.
    """

    __tablename__ = "email_audit_log"
    __table_args__ = (
        _enum_check("email_type", [o.value for o in OutcomeType], "ck_email_audit_type"),
        _enum_check("status", [s.value for s in EmailStatus], "ck_email_audit_status"),
        Index("ix_email_audit_attendee_type", "attendee_id", "email_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    attendee_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    email_type: Mapped[str] = mapped_column(String(50), nullable=False)
    recipient_email: Mapped[str] = mapped_column(String(255), nullable=False)
    recipient_name: Mapped[str] = mapped_column(
        String(400), default="", server_default=text("''")
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
