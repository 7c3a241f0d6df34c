"""Error taxonomy for the registrar core.

Batch operations (submission import, profile enrichment) catch these per item
and report them in their result objects. Single-entity operations (stage
commits, CRM sync) let them propagate to the caller; the API layer maps them
onto HTTP status codes in ``src.registrar.main``.
"""

from __future__ import annotations


class RegistrarError(Exception):
    """Base class for all registrar errors."""


class MissingRequiredField(RegistrarError):
    """A submission lacks a field the import cannot proceed without."""

    def __init__(self, field_name: str, message: str | None = None) -> None:
        self.field_name = field_name
        super().__init__(message or f"Missing required field: {field_name}")


class MissingEmailField(MissingRequiredField):
    """No email could be resolved from a submission."""

    def __init__(self) -> None:
        super().__init__("email", "No email field found")


class AttendeeNotFound(RegistrarError):
    """Raised when an attendee id does not resolve to a stored row."""

    def __init__(self, attendee_id: str) -> None:
        self.attendee_id = attendee_id
        super().__init__(f"Attendee not found: {attendee_id}")


class ForumUnavailable(RegistrarError):
    """The owning forum could not be resolved locally or from the forums source."""

    def __init__(self, forum_id: str, reason: str = "Unable to load forum information") -> None:
        self.forum_id = forum_id
        super().__init__(f"{reason}: {forum_id}")


class ProviderError(RegistrarError):
    """A third-party provider call (HubSpot, SendGrid, Slack, forums) failed.

    Attributes:
        provider: Short provider name, e.g. ``"hubspot"``.
        status_code: HTTP status returned by the provider, if any.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        self.provider = provider
        self.status_code = status_code
        self.message = message
        super().__init__(message)


class ValidationError(RegistrarError):
    """Input rejected by a business rule (e.g. a denial reason that is too short)."""


class ConfigurationError(RegistrarError):
    """A required setting (API key, URL) is missing."""


class CRMConfigurationError(ConfigurationError):
    """No deal pipeline/stage is configured for an (outcome, event type) pair."""


class MalformedSubmission(ValidationError):
    """A form submission does not have the shape of a HubSpot submission."""
