"""V1 API router -- aggregates all v1 endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.tat_api.api.v1 import contacts, health, outreach

router = APIRouter()

router.include_router(health.router)
router.include_router(outreach.router)
router.include_router(contacts.router)
