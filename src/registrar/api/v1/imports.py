"""REST API endpoints for HubSpot submission imports and profile enrichment."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from src.registrar.api.deps import get_enricher, get_importer, get_merge_engine, get_repository
from src.registrar.attendees.schemas import (
    DuplicatePreview,
    EnrichmentResults,
    ImportKind,
    ImportResult,
)
from src.registrar.errors import ValidationError

router = APIRouter(prefix="/forums/{forum_id}", tags=["imports"])


class ImportRequest(BaseModel):
    """Request body for an import run.

    ``form_id`` defaults to the form configured in the forum's settings for
    the requested kind.
    """

    form_id: str | None = None
    persist: bool = False
    force_enrich: bool = False


class PreviewRequest(BaseModel):
    emails: list[str] = Field(default_factory=list)


class EnrichRequest(BaseModel):
    form_id: str | None = None
    force: bool = False


async def _configured_form_id(request: Request, forum_id: str, kind: ImportKind) -> str:
    repo = get_repository(request)
    forum_settings = await repo.get_forum_settings(forum_id)
    form_id = getattr(forum_settings, f"{kind.value}_form_id", None) if forum_settings else None
    if not form_id:
        raise ValidationError(f"No {kind.value.replace('_', ' ')} form configured for forum {forum_id}")
    return form_id


# preview is declared before /imports/{kind} so it is not parsed as a kind
@router.post("/imports/preview", response_model=DuplicatePreview)
async def preview_import(forum_id: str, body: PreviewRequest, request: Request) -> DuplicatePreview:
    """Dry-run duplicate check for a list of candidate emails."""
    merge_engine = get_merge_engine(request)
    return await merge_engine.preview(forum_id, body.emails)


@router.post("/imports/{kind}", response_model=ImportResult)
async def run_import(
    forum_id: str, kind: ImportKind, body: ImportRequest, request: Request
) -> ImportResult:
    importer = get_importer(request)
    form_id = body.form_id or await _configured_form_id(request, forum_id, kind)
    return await importer.run(
        kind,
        form_id,
        forum_id=forum_id,
        persist=body.persist,
        force_enrich=body.force_enrich,
    )


@router.post("/enrich", response_model=EnrichmentResults)
async def enrich_profiles(forum_id: str, body: EnrichRequest, request: Request) -> EnrichmentResults:
    """Re-run executive profile enrichment for a forum."""
    enricher = get_enricher(request)
    form_id = body.form_id or await _configured_form_id(
        request, forum_id, ImportKind.EXECUTIVE_PROFILE
    )
    return await enricher.enrich_forum(forum_id, form_id, force=body.force)
