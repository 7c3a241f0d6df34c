"""V1 API router -- aggregates all v1 endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.registrar.api.v1 import attendees, crm, forums, health, imports

router = APIRouter()

router.include_router(health.router)
router.include_router(forums.router)
router.include_router(attendees.router)
router.include_router(imports.router)
router.include_router(crm.router)
