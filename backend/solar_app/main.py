import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from solar_app.config import settings
from solar_app.api.v1 import analyze
from solar_app.core.deps import get_pipeline
from solar_app.core.logging import RequestLoggingMiddleware, setup_logging

logger = logging.getLogger(__name__)


def configured_providers() -> dict[str, bool]:
    return {
        "openai": bool(settings.openai_api_key),
        "gemini": bool(settings.gemini_api_key),
        "geocoding": bool(settings.geocode_api_key),
    }


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    setup_logging(json_format=settings.log_json)
    providers = configured_providers()
    logger.info(
        "Starting %s for region %s; inference routes %s; providers %s",
        settings.app_name,
        settings.region,
        settings.inference_routes,
        ", ".join(name for name, ok in providers.items() if ok) or "none",
    )
    if not (providers["openai"] or providers["gemini"]):
        logger.warning("No inference provider key set; every analysis will be exhausted")
    yield
    get_pipeline.cache_clear()


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(RequestLoggingMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    application.include_router(analyze.router, prefix="/api/v1", tags=["analysis"])

    @application.get("/health")
    async def health_check() -> dict:
        providers = configured_providers()
        return {
            "status": "ok" if providers["openai"] or providers["gemini"] else "degraded",
            "region": settings.region,
            "providers": providers,
        }

    return application


app = create_app()
