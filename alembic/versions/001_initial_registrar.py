"""Initial registrar schema: forums, forum settings, attendees, email audit log.

Revision ID: 001_initial_registrar
Revises:
Create Date: 2026-10-19

Creates four tables:
- forums: Local mirror of the external forums source
- forum_settings: Per-forum HubSpot form ids, deal code, template overrides
- attendees: One row per (forum_id, email), stage constrained to the five stages
- email_audit_log: Append-only ledger of outcome emails

No foreign key constraints (application-level referential integrity via the
repository).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial_registrar"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

STAGES = ("in_queue", "preliminary_approved", "approved", "denied", "waitlisted")
OUTCOMES = ("approved", "denied", "waitlisted")
EMAIL_STATUSES = ("sent", "failed", "pending")


def _in(column: str, values: Sequence[str]) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


def upgrade() -> None:
    # ── forums ──────────────────────────────────────────────────────────

    op.create_table(
        "forums",
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("name", sa.String(300), nullable=False),
        sa.Column("brand", sa.String(200), server_default=sa.text("''"), nullable=False),
        sa.Column("date", sa.String(50), server_default=sa.text("''"), nullable=False),
        sa.Column("city", sa.String(200), server_default=sa.text("''"), nullable=False),
        sa.Column("venue", sa.String(300), server_default=sa.text("''"), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=True,
        ),
    )

    # ── forum_settings ──────────────────────────────────────────────────

    op.create_table(
        "forum_settings",
        sa.Column("forum_id", sa.String(100), primary_key=True),
        sa.Column("initial_registration_form_id", sa.String(100), nullable=True),
        sa.Column("executive_profile_form_id", sa.String(100), nullable=True),
        sa.Column("deal_code", sa.String(200), nullable=True),
        sa.Column(
            "event_type",
            sa.String(50),
            server_default=sa.text("'forum'"),
            nullable=False,
        ),
        sa.Column("approved_email_template_id", sa.String(100), nullable=True),
        sa.Column("denied_email_template_id", sa.String(100), nullable=True),
        sa.Column("waitlisted_email_template_id", sa.String(100), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    # ── attendees ───────────────────────────────────────────────────────

    op.create_table(
        "attendees",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("forum_id", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column(
            "stage",
            sa.String(50),
            server_default=sa.text("'in_queue'"),
            nullable=False,
        ),
        sa.Column("first_name", sa.String(200), server_default=sa.text("''"), nullable=False),
        sa.Column("last_name", sa.String(200), server_default=sa.text("''"), nullable=False),
        sa.Column("company", sa.String(300), server_default=sa.text("''"), nullable=False),
        sa.Column("title", sa.String(300), server_default=sa.text("''"), nullable=False),
        sa.Column("industry", sa.String(200), server_default=sa.text("''"), nullable=False),
        sa.Column("cellphone", sa.String(100), server_default=sa.text("''"), nullable=False),
        sa.Column("company_size", sa.String(100), server_default=sa.text("''"), nullable=False),
        sa.Column(
            "management_level",
            sa.String(100),
            server_default=sa.text("''"),
            nullable=False,
        ),
        sa.Column("sales_rep", sa.String(100), server_default=sa.text("''"), nullable=False),
        sa.Column("airport", sa.String(200), server_default=sa.text("''"), nullable=False),
        sa.Column("hotel", sa.String(100), server_default=sa.text("''"), nullable=False),
        sa.Column("gender", sa.String(50), server_default=sa.text("''"), nullable=False),
        sa.Column("dietary_notes", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("notes", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("denial_reason", sa.Text(), nullable=True),
        sa.Column(
            "executive_profile_received",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column("executive_profile_data", sa.JSON(), nullable=True),
        sa.Column("executive_profile_enriched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("hubspot_deal_id", sa.String(100), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("forum_id", "email", name="uq_attendee_forum_email"),
        sa.CheckConstraint(_in("stage", STAGES), name="ck_attendee_stage"),
    )
    op.create_index("ix_attendees_forum_stage", "attendees", ["forum_id", "stage"])

    # ── email_audit_log ─────────────────────────────────────────────────

    op.create_table(
        "email_audit_log",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("attendee_id", sa.Uuid(), nullable=False),
        sa.Column("email_type", sa.String(50), nullable=False),
        sa.Column("recipient_email", sa.String(255), nullable=False),
        sa.Column(
            "recipient_name",
            sa.String(400),
            server_default=sa.text("''"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint(_in("email_type", OUTCOMES), name="ck_email_audit_type"),
        sa.CheckConstraint(_in("status", EMAIL_STATUSES), name="ck_email_audit_status"),
    )
    op.create_index(
        "ix_email_audit_attendee_type",
        "email_audit_log",
        ["attendee_id", "email_type"],
    )


def downgrade() -> None:
    op.drop_index("ix_email_audit_attendee_type", table_name="email_audit_log")
    op.drop_table("email_audit_log")
    op.drop_index("ix_attendees_forum_stage", table_name="attendees")
    op.drop_table("attendees")
    op.drop_table("forum_settings")
    op.drop_table("forums")
