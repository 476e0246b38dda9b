"""Roof suitability score (0-100).

Starts at 100 and subtracts fixed penalties for shading, roof complexity
and pitch deviation from the regional optimum; a small bonus is granted
for above-average irradiance.
"""
from __future__ import annotations

from solar_engine.roof.records import Complexity, RoofRecord, ShadingLevel

SHADING_PENALTY: dict[ShadingLevel, float] = {
    ShadingLevel.LOW: 0.0,
    ShadingLevel.MEDIUM: 15.0,
    ShadingLevel.HIGH: 35.0,
}

COMPLEXITY_PENALTY: dict[Complexity, float] = {
    Complexity.SIMPLE: 0.0,
    Complexity.MODERATE: 10.0,
    Complexity.COMPLEX: 20.0,
}

# Pitch deviation (degrees) tolerated before any penalty applies
PITCH_TOLERANCE_DEG = 10.0
PITCH_PENALTY_PER_DEG = 0.5
PITCH_PENALTY_MAX = 15.0

HIGH_IRRADIANCE_GHI = 1200.0  # kWh/m²/yr
HIGH_IRRADIANCE_BONUS = 3.0

# (lower bound, label) for score bands, descending
SCORE_BANDS: tuple[tuple[float, str], ...] = (
    (80.0, "excellent"),
    (60.0, "good"),
    (40.0, "moderate"),
    (0.0, "challenging"),
)


def pitch_penalty(pitch_deg: float, optimal_tilt_deg: float) -> float:
    deviation = abs(pitch_deg - optimal_tilt_deg)
    excess = max(0.0, deviation - PITCH_TOLERANCE_DEG)
    return min(excess * PITCH_PENALTY_PER_DEG, PITCH_PENALTY_MAX)


def suitability_score(
    roof: RoofRecord,
    optimal_tilt_deg: float,
    annual_ghi_kwh_m2: float | None = None,
) -> int:
    """Suitability of ``roof`` for a rooftop array, clamped to [0, 100]."""
    score = 100.0
    score -= SHADING_PENALTY[roof.shading]
    score -= COMPLEXITY_PENALTY[roof.complexity]
    score -= pitch_penalty(roof.pitch_deg, optimal_tilt_deg)
    if annual_ghi_kwh_m2 is not None and annual_ghi_kwh_m2 > HIGH_IRRADIANCE_GHI:
        score += HIGH_IRRADIANCE_BONUS
    return int(round(max(0.0, min(100.0, score))))


def score_band(score: float) -> str:
    for lower, label in SCORE_BANDS:
        if score >= lower:
            return label
    return SCORE_BANDS[-1][1]


def explain_score(score: float, region_name: str) -> str:
    """Plain-language explanation keyed to the score band."""
    band = score_band(score)
    if band == "excellent":
        return (
            f"Your roof is excellent for solar in {region_name}. Minimal shading, "
            "good orientation and a suitable pitch make it ideal for installation."
        )
    if band == "good":
        return (
            "Your roof is well suited to solar. A few minor factors may reduce "
            "efficiency slightly, but you can still expect strong returns."
        )
    if band == "moderate":
        return (
            "Your roof has moderate solar potential. Shading or orientation may "
            "reduce output; consider the optimisation suggestions below."
        )
    return (
        "Your roof faces challenges for solar. Significant shading or structural "
        "complexity may limit output; a site assessment is recommended."
    )
