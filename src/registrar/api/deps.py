"""FastAPI accessors for the services wired onto ``app.state`` at startup.

Every accessor raises HTTPException(503) when its service was not
initialized, so endpoints never see a half-configured application.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request, status


def get_service(request: Request, service_name: str) -> Any:
    """Retrieve a service from app.state.

    Args:
        request: FastAPI request for app.state access.
        service_name: Attribute name on app.state.

    Raises:
        HTTPException(503): If the service is None or not set.
    """
    service = getattr(request.app.state, service_name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Service '{service_name}' is not available",
        )
    return service


def get_repository(request: Request) -> Any:
    return get_service(request, "attendee_repository")


def get_ledger(request: Request) -> Any:
    return get_service(request, "notification_ledger")


def get_transitions(request: Request) -> Any:
    return get_service(request, "stage_transitions")


def get_merge_engine(request: Request) -> Any:
    return get_service(request, "merge_engine")


def get_importer(request: Request) -> Any:
    return get_service(request, "submission_importer")


def get_enricher(request: Request) -> Any:
    return get_service(request, "profile_enricher")


def get_deal_sync(request: Request) -> Any:
    return get_service(request, "deal_sync")


def get_forum_sync(request: Request) -> Any:
    return get_service(request, "forum_sync")
