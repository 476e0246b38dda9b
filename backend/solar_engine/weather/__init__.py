"""Weather data module (NASA POWER daily irradiance)."""

from .nasa_power import fetch_nasa_power_daily, summarize_daily_ghi

__all__ = [
    "fetch_nasa_power_daily",
    "summarize_daily_ghi",
]
