"""REST API endpoints for the forum mirror and per-forum settings."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request, status

from src.registrar.api.deps import get_forum_sync, get_repository
from src.registrar.attendees.schemas import ForumRead, ForumSettingsData, ForumSettingsRead

router = APIRouter(prefix="/forums/{forum_id}", tags=["forums"])


@router.get("", response_model=ForumRead)
async def get_forum(forum_id: str, request: Request) -> ForumRead:
    """Return the locally mirrored forum."""
    repo = get_repository(request)
    forum = await repo.get_forum(forum_id)
    if forum is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Forum not mirrored locally: {forum_id}",
        )
    return forum


@router.post("/sync", response_model=ForumRead)
async def sync_forum(forum_id: str, request: Request) -> ForumRead:
    """Refresh the local mirror from the external forums source."""
    forum_sync = get_forum_sync(request)
    return await forum_sync.sync(forum_id)


@router.get("/settings", response_model=ForumSettingsRead)
async def get_forum_settings(forum_id: str, request: Request) -> ForumSettingsRead:
    """Return the forum's settings, or the defaults when none are saved."""
    repo = get_repository(request)
    saved = await repo.get_forum_settings(forum_id)
    return saved or ForumSettingsRead(forum_id=forum_id)


@router.put("/settings", response_model=ForumSettingsRead)
async def put_forum_settings(
    forum_id: str, body: ForumSettingsData, request: Request
) -> ForumSettingsRead:
    repo = get_repository(request)
    return await repo.upsert_forum_settings(forum_id, body)
