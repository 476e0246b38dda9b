"""Panel-count heuristics and production estimates."""

from .panels import MAX_PANELS, MIN_PANELS, panel_count_for_area, tier_cap
from .production import (
    annual_production_kwh,
    climate_factor,
    monthly_breakdown,
    tilt_factor,
)

__all__ = [
    "MAX_PANELS",
    "MIN_PANELS",
    "panel_count_for_area",
    "tier_cap",
    "annual_production_kwh",
    "climate_factor",
    "monthly_breakdown",
    "tilt_factor",
]
