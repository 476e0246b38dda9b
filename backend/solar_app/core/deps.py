from functools import lru_cache

from solar_engine.regions import get_region

from solar_app.config import Settings, settings
from solar_app.inference.orchestrator import InferenceOrchestrator, OrchestratorConfig
from solar_app.inference.providers import build_providers, parse_routes
from solar_app.services.analysis_pipeline import AnalysisPipeline
from solar_app.services.geocoding import GeocodingService
from solar_app.services.irradiance_service import IrradianceService
from solar_app.services.narrative import NarrativeSummarizer


def build_pipeline(cfg: Settings) -> AnalysisPipeline:
    """Wire providers, collaborators and the orchestrator from settings."""
    region = get_region(cfg.region)
    providers = build_providers(cfg.openai_api_key, cfg.gemini_api_key)

    orchestrator = InferenceOrchestrator(providers, OrchestratorConfig.from_settings(cfg), region)
    geocoder = GeocodingService(
        cfg.geocode_api_key, cfg.geocode_url, region, timeout=cfg.collaborator_timeout_seconds
    )
    irradiance = IrradianceService(
        region,
        ttl_seconds=cfg.irradiance_cache_ttl_seconds,
        url=cfg.nasa_power_url,
        timeout=cfg.collaborator_timeout_seconds,
    )
    narrator = NarrativeSummarizer(
        providers, parse_routes(cfg.narrative_routes), cfg.narrative_timeout_seconds, region
    )

    return AnalysisPipeline(
        orchestrator,
        geocoder,
        irradiance,
        narrator,
        region,
        max_upload_bytes=cfg.max_upload_bytes,
        allowed_mime_types=cfg.allowed_mime_type_set,
        allow_degraded_estimate=cfg.allow_degraded_estimate,
        adjust_production=cfg.adjust_production,
    )


@lru_cache
def get_pipeline() -> AnalysisPipeline:
    return build_pipeline(settings)
