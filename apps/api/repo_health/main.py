from fastapi import FastAPI
from repo_health.core.config import settings
from repo_health.core.logging import setup_logging
from repo_health.services.llm.factory import provider_configured, resolve_provider
from repo_health.services.retrieval.cache import ContentCache

from repo_health.api.v1.health import router as health_router
from repo_health.api.v1.analyze import router as analyze_router
from repo_health.api.v1.repos import router as repos_router

logger = setup_logging(settings.LOG_LEVEL)

def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME)
    app.state.content_cache = ContentCache(
        ttl_seconds=settings.CONTENT_CACHE_TTL_SECONDS,
        max_entries=settings.CONTENT_CACHE_MAX_ENTRIES,
    )

    @app.on_event("startup")
    async def _startup():
        provider = resolve_provider(settings)
        if not provider_configured(settings):
            if settings.DEMO_MODE:
                logger.warning(f"No API key for LLM provider {provider}; DEMO_MODE is on, results are sample data")
            else:
                logger.warning(f"No API key for LLM provider {provider}; analysis requests will fail")
        logger.info(f"{settings.APP_NAME} started (env={settings.ENV}, llm={provider})")

    app.include_router(health_router)
    app.include_router(analyze_router)
    app.include_router(repos_router)

    return app

app = create_app()
