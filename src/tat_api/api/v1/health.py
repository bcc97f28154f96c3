"""Liveness and readiness checks."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.tat_api.api.deps import get_container
from src.tat_api.config import get_settings
from src.tat_api.container import ServiceContainer

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Liveness only. No Salesforce or Firebase calls are made."""
    settings = get_settings()
    return {"status": "ok", "environment": settings.ENVIRONMENT.value}


@router.get("/health/ready")
async def readiness_check(container: ServiceContainer = Depends(get_container)):
    """Report the loaded Salesforce instance and the active contact cache backend.

    Reading the token from the store is enough to know startup loaded it; the
    token itself is never returned.
    """
    token = container.tokens.get_current_token()
    return {
        "status": "ready",
        "salesforceInstance": token.instance_url,
        "contactCacheBackend": container.cache.backend.name,
    }
