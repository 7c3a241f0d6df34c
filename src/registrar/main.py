"""FastAPI application factory.

Creates the app with metrics and logging middleware, CORS, lifespan events for
database initialization, Sentry and service wiring, exception handlers for the
registrar error taxonomy, the v1 API router and the /metrics route.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.responses import Response

from src.registrar.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.registrar.api.v1.router import router as v1_router
from src.registrar.attendees.ledger import NotificationLedger
from src.registrar.attendees.repository import AttendeeRepository
from src.registrar.attendees.transitions import StageTransitionMachine
from src.registrar.config import Settings, get_settings
from src.registrar.core.database import close_db, get_session, init_db
from src.registrar.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.registrar.errors import (
    AttendeeNotFound,
    ConfigurationError,
    CRMConfigurationError,
    ForumUnavailable,
    MissingRequiredField,
    ProviderError,
    RegistrarError,
    ValidationError,
)
from src.registrar.intake.enrichment import ProfileEnricher
from src.registrar.intake.importer import SubmissionImporter
from src.registrar.intake.merge import AttendeeMergeEngine
from src.registrar.integrations.forums import ForumSync
from src.registrar.integrations.hubspot.client import HubSpotClient
from src.registrar.integrations.hubspot.deal_sync import DealSyncService
from src.registrar.integrations.hubspot.pipelines import load_deal_stage_table
from src.registrar.integrations.sendgrid import OutcomeEmailSender
from src.registrar.integrations.slack import SlackNotifier

logger = structlog.get_logger(__name__)


# ── Service Wiring ───────────────────────────────────────────────────────────


def build_services(
    settings: Settings,
    session_factory: Callable[..., Any] = get_session,
) -> dict[str, Any]:
    """Construct every registrar service from settings.

    Returns a mapping of ``app.state`` attribute name to service instance.
    The deal sync service is None when the deal pipeline configuration is
    invalid, so its endpoint answers 503 while the rest of the API works.
    """
    repository = AttendeeRepository(session_factory=session_factory)
    ledger = NotificationLedger(session_factory=session_factory)

    hubspot = HubSpotClient(
        api_key=settings.HUBSPOT_API_KEY,
        base_url=settings.HUBSPOT_BASE_URL,
        timeout=settings.HTTP_TIMEOUT,
        max_pages=settings.SUBMISSION_MAX_PAGES,
        page_size=settings.SUBMISSION_PAGE_SIZE,
        page_delay=settings.SUBMISSION_PAGE_DELAY_SECONDS,
    )
    email_sender = OutcomeEmailSender(
        api_key=settings.SENDGRID_API_KEY,
        ledger=ledger,
        from_email=settings.FROM_EMAIL,
        from_name=settings.FROM_NAME,
        base_url=settings.SENDGRID_BASE_URL,
        timeout=settings.HTTP_TIMEOUT,
    )
    notifier = (
        SlackNotifier(settings.SLACK_WEBHOOK_URL, timeout=settings.HTTP_TIMEOUT)
        if settings.SLACK_WEBHOOK_URL
        else None
    )
    forum_sync = ForumSync(
        repository,
        base_url=settings.EXTERNAL_FORUMS_URL,
        api_key=settings.EXTERNAL_FORUMS_API_KEY,
        timeout=settings.HTTP_TIMEOUT,
    )

    merge_engine = AttendeeMergeEngine(repository)
    enricher = ProfileEnricher(repository, hubspot)

    try:
        deal_sync: DealSyncService | None = DealSyncService(
            repository,
            hubspot,
            stage_table=load_deal_stage_table(settings.HUBSPOT_DEAL_PIPELINES),
            deal_type_property=settings.HUBSPOT_DEAL_TYPE_PROPERTY,
        )
    except CRMConfigurationError as exc:
        logger.warning("startup.deal_sync_disabled", error=str(exc))
        deal_sync = None

    return {
        "attendee_repository": repository,
        "notification_ledger": ledger,
        "hubspot_client": hubspot,
        "merge_engine": merge_engine,
        "profile_enricher": enricher,
        "submission_importer": SubmissionImporter(hubspot, merge_engine, enricher),
        "stage_transitions": StageTransitionMachine(
            repository,
            ledger,
            email_sender,
            notifier=notifier,
            forum_sync=forum_sync,
        ),
        "deal_sync": deal_sync,
        "forum_sync": forum_sync if forum_sync.configured else None,
    }


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: init DB and services on startup, close on shutdown."""
    settings = get_settings()
    configure_structlog()
    await init_db()

    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    for name, service in build_services(settings).items():
        setattr(app.state, name, service)

    logger.info("startup.services_initialized", environment=settings.ENVIRONMENT.value)

    yield

    await close_db()
    logger.info("shutdown.complete")


# ── Error Handlers ───────────────────────────────────────────────────────────

_STATUS_BY_ERROR: list[tuple[type[RegistrarError], int]] = [
    (AttendeeNotFound, status.HTTP_404_NOT_FOUND),
    (ForumUnavailable, status.HTTP_409_CONFLICT),
    (ProviderError, status.HTTP_502_BAD_GATEWAY),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (MissingRequiredField, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (CRMConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (ConfigurationError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def _status_for(exc: RegistrarError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def registrar_error_handler(request: Request, exc: RegistrarError) -> JSONResponse:
    """Map a registrar error onto an HTTP status with a JSON body."""
    status_code = _status_for(exc)
    content: dict[str, Any] = {"detail": str(exc), "error": type(exc).__name__}
    if isinstance(exc, ProviderError):
        content["provider"] = exc.provider
        content["provider_status"] = exc.status_code

    log_method = logger.error if status_code >= 500 else logger.warning
    log_method(
        "request.registrar_error",
        path=request.url.path,
        error=type(exc).__name__,
        status_code=status_code,
        detail=str(exc),
    )
    return JSONResponse(status_code=status_code, content=content)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Forum Registrar API",
        version="0.1.0",
        description="Event registration, attendee approval and HubSpot deal sync",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins() or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost, records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    app.add_exception_handler(RegistrarError, registrar_error_handler)

    app.include_router(v1_router, prefix="/api/v1")

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
