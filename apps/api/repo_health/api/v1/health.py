from fastapi import APIRouter

from repo_health.core.config import settings
from repo_health.services.llm.factory import provider_configured, resolve_provider

router = APIRouter(tags=["health"])

@router.get("/health")
async def health():
    return {
        "status": "ok",
        "llm_provider": resolve_provider(settings),
        "llm_configured": provider_configured(settings),
        "demo_mode": settings.DEMO_MODE,
    }
