"""Attendee lifecycle -- models, schemas, repository, ledger and stage transitions.

Provides SQLAlchemy models (Forum, ForumSettings, Attendee, EmailAuditLog),
Pydantic schemas shared across the service, AttendeeRepository for async
CRUD, NotificationLedger over the email audit log, and the
StageTransitionMachine that couples stage commits to outcome emails.
"""
