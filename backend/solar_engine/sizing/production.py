"""Annual and monthly energy production estimates."""

from __future__ import annotations

import numpy as np

from solar_engine.roof.records import Orientation

# Production multiplier by roof orientation (northern hemisphere)
ORIENTATION_FACTORS: dict[Orientation, float] = {
    Orientation.SOUTH: 1.00,
    Orientation.FLAT: 0.92,
    Orientation.EAST: 0.85,
    Orientation.WEST: 0.85,
    Orientation.NORTH: 0.55,
}

SOUTH_ALIGNED_BONUS = 1.05
SOUTH_ALIGNED_MAX_DEVIATION = 4.0

# Seasonal snow cover loss by pitch (steeper roofs shed snow sooner)
_SNOW_LOSS_BY_PITCH: tuple[tuple[float, float], ...] = (
    (15.0, 0.08),
    (25.0, 0.06),
    (45.0, 0.04),
)
_SNOW_LOSS_STEEP = 0.01


def tilt_factor(pitch_deg: float, optimal_tilt_deg: float, orientation: Orientation) -> float:
    """Production multiplier for a panel plane's deviation from optimal.

    A south-facing roof within a few degrees of optimal earns a small
    bonus; otherwise the deviation band sets a base factor that is scaled
    by orientation.
    """
    deviation = abs(pitch_deg - optimal_tilt_deg)
    if orientation is Orientation.SOUTH and deviation <= SOUTH_ALIGNED_MAX_DEVIATION:
        return SOUTH_ALIGNED_BONUS
    if deviation <= 10:
        base = 1.0
    elif deviation <= 20:
        base = 0.95
    else:
        base = 0.90
    return base * ORIENTATION_FACTORS[orientation]


def snow_loss(pitch_deg: float) -> float:
    for upper, loss in _SNOW_LOSS_BY_PITCH:
        if pitch_deg < upper:
            return loss
    return _SNOW_LOSS_STEEP


def climate_factor(pitch_deg: float, temperature_coefficient: float) -> float:
    """Cold-climate efficiency gain net of seasonal snow loss."""
    return temperature_coefficient * (1.0 - snow_loss(pitch_deg))


def annual_production_kwh(
    system_kw: float,
    pv_potential_kwh_per_kwp: float,
    *,
    tilt: float = 1.0,
    climate: float = 1.0,
) -> float:
    """Annual AC production: installed kW x regional yield x adjustments."""
    return system_kw * pv_potential_kwh_per_kwp * tilt * climate


def monthly_breakdown(annual_kwh: float, monthly_weights: tuple[float, ...] | list[float]) -> list[float]:
    """Split annual production across 12 months by an irradiance profile.

    Returns 12 values (kWh, rounded to 0.1) whose sum equals
    ``annual_kwh`` up to rounding.
    """
    weights = np.asarray(monthly_weights, dtype=np.float64)
    if weights.shape != (12,) or np.any(weights < 0) or weights.sum() <= 0:
        raise ValueError("monthly_weights must be 12 non-negative values with a positive sum")
    share = weights / weights.sum()
    return [round(float(v), 1) for v in share * annual_kwh]
