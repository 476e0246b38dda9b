from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "", "case_sensitive": False}

    # App
    app_name: str = "Solar Roof Advisor"
    cors_origins: str = "http://localhost:5173"
    log_json: bool = False

    # Provider credentials (a provider without a key is skipped)
    openai_api_key: str | None = None
    gemini_api_key: str | None = None
    geocode_api_key: str | None = None

    # Inference routes, "provider:model", tried in order
    inference_routes: str = (
        "openai:gpt-4o,openai:gpt-4o-mini,gemini:gemini-2.0-flash,gemini:gemini-1.5-flash"
    )
    validator_routes: str = "openai:gpt-4o,openai:gpt-4o-mini"
    # Preference order; a summary makes one call on the first keyed provider
    narrative_routes: str = "openai:gpt-4o-mini,gemini:gemini-2.0-flash"

    # Retry / timeout
    inference_max_attempts: int = 3
    inference_retry_delay_seconds: float = 2.0
    inference_timeout_seconds: float = 15.0
    validator_timeout_seconds: float = 12.0
    narrative_timeout_seconds: float = 15.0

    # Uploads
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_mime_types: str = "image/jpeg,image/png"

    # Region / collaborators
    region: str = "pei"
    allow_degraded_estimate: bool = False
    adjust_production: bool = False
    nasa_power_url: str = "https://power.larc.nasa.gov/api/temporal/daily/point"
    geocode_url: str = "https://maps.googleapis.com/maps/api/geocode/json"
    irradiance_cache_ttl_seconds: float = 86_400.0
    collaborator_timeout_seconds: float = 10.0

    # Rate limiting
    analyze_rate_limit: int = 10
    analyze_rate_window_seconds: int = 60

    @property
    def allowed_mime_type_set(self) -> frozenset[str]:
        return frozenset(m.strip().lower() for m in self.allowed_mime_types.split(",") if m.strip())


settings = Settings()
