"""API test infrastructure: async httpx client around a scripted pipeline."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from solar_app.core.deps import get_pipeline
from solar_app.core.rate_limit import analyze_limiter
from solar_app.inference.orchestrator import InferenceOrchestrator, OrchestratorConfig
from solar_app.inference.providers import parse_routes
from solar_app.services.analysis_pipeline import AnalysisPipeline
from solar_app.services.geocoding import GeocodingService
from solar_app.services.irradiance_service import IrradianceService
from solar_app.services.narrative import NarrativeSummarizer

# ---------------------------------------------------------------------------
# Pipeline wiring
# ---------------------------------------------------------------------------

@pytest.fixture
def openai_provider(scripted_provider, roof_payload):
    """Default provider: validates, analyzes and narrates successfully."""
    return scripted_provider("openai", extract=[roof_payload()], text=["Solar suits this roof."])


@pytest.fixture
def max_upload_bytes() -> int:
    return 10 * 1024 * 1024


@pytest.fixture
def pipeline(openai_provider, region, max_upload_bytes) -> AnalysisPipeline:
    providers = {"openai": openai_provider}

    async def no_sleep(delay: float) -> None:
        return None

    async def fetcher(lat, lon):
        return {"20240115": 1.6, "20240415": 4.1, "20240715": 5.5, "20241015": 3.0}

    config = OrchestratorConfig(
        inference_routes=parse_routes("openai:gpt-4o"),
        validator_routes=parse_routes("openai:gpt-4o-mini"),
        max_attempts=2,
        timeout_seconds=1.0,
        validator_timeout_seconds=1.0,
    )
    return AnalysisPipeline(
        InferenceOrchestrator(providers, config, region, sleep=no_sleep),
        GeocodingService(None, "https://maps.example.test", region),
        IrradianceService(region, fetcher=fetcher),
        NarrativeSummarizer(providers, parse_routes("openai:gpt-4o-mini"), 1.0, region),
        region,
        max_upload_bytes=max_upload_bytes,
    )


# ---------------------------------------------------------------------------
# FastAPI app with overridden dependencies
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def app(pipeline):
    from solar_app.main import create_app

    application = create_app()
    application.dependency_overrides[get_pipeline] = lambda: pipeline

    # Reset rate limiter between tests
    analyze_limiter.reset()

    yield application

    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def address_form() -> dict[str, str]:
    return {
        "street": "165 Richmond St",
        "city": "Charlottetown",
        "postal_code": "C1A 1J1",
        "country": "Canada",
    }
