"""
Deterministic recommendation for a new rooftop installation.

Turns a sanitized ``RoofRecord`` plus location irradiance into system
specs, a financial projection, suggestions and a suitability score.  Pure
arithmetic, no I/O.  The engine checks its own output against the
residential plausibility band and raises ``EngineInvariantViolation``
rather than emitting an impossible system.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from solar_engine.advisor.scoring import explain_score, suitability_score
from solar_engine.advisor.suggestions import layout_suggestion, roof_suggestions
from solar_engine.economics.projection import FinancialProjection, project_financials
from solar_engine.exceptions import EngineInvariantViolation
from solar_engine.regions import DEFAULT_REGION, RegionProfile
from solar_engine.roof.records import (
    Complexity,
    LocationIrradiance,
    Orientation,
    RoofRecord,
    ShadingLevel,
    Suggestion,
)
from solar_engine.sizing.panels import panel_count_for_area
from solar_engine.sizing.production import (
    annual_production_kwh,
    climate_factor,
    monthly_breakdown,
    tilt_factor,
)


# ---------------------------------------------------------------------------
# Residential plausibility band
# ---------------------------------------------------------------------------
PANEL_COUNT_BAND = (8, 30)
SYSTEM_KW_BAND = (3.2, 12.0)
PRODUCTION_KWH_BAND = (0.0, 25_000.0)

# Irradiance inputs are clamped before use
PV_POTENTIAL_BAND = (600.0, 1900.0)   # kWh/kWp/yr
PEAK_SUN_HOURS_BAND = (2.5, 5.5)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class SystemSpecs:
    panel_count: int
    system_kw: float
    roof_area_used_m2: float
    annual_production_kwh: float
    panel_wattage_w: float
    monthly_production_kwh: tuple[float, ...] = ()


@dataclass(frozen=True)
class Recommendation:
    specs: SystemSpecs
    financials: FinancialProjection
    suggestions: tuple[Suggestion, ...]
    suitability_score: int
    explanation: str
    layout: str
    irradiance: LocationIrradiance
    region_key: str = DEFAULT_REGION.key
    notes: tuple[str, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _clamp(value: float, band: tuple[float, float]) -> float:
    lo, hi = band
    return max(lo, min(hi, value))


def bounded_irradiance(irradiance: LocationIrradiance) -> LocationIrradiance:
    """Clamp collaborator irradiance into physically sensible ranges."""
    return LocationIrradiance(
        peak_sun_hours=_clamp(irradiance.peak_sun_hours, PEAK_SUN_HOURS_BAND),
        pv_potential_kwh_per_kwp=_clamp(irradiance.pv_potential_kwh_per_kwp, PV_POTENTIAL_BAND),
        annual_ghi_kwh_m2=irradiance.annual_ghi_kwh_m2,
        monthly_ghi=irradiance.monthly_ghi,
        source=irradiance.source,
    )


def check_plausibility(specs: SystemSpecs) -> None:
    """Raise ``EngineInvariantViolation`` if ``specs`` is not residential."""
    lo, hi = PANEL_COUNT_BAND
    if not lo <= specs.panel_count <= hi:
        raise EngineInvariantViolation("panel_count", specs.panel_count, PANEL_COUNT_BAND)
    lo, hi = SYSTEM_KW_BAND
    if not lo <= specs.system_kw <= hi:
        raise EngineInvariantViolation("system_kw", specs.system_kw, SYSTEM_KW_BAND)
    lo, hi = PRODUCTION_KWH_BAND
    if not lo < specs.annual_production_kwh <= hi:
        raise EngineInvariantViolation(
            "annual_production_kwh", specs.annual_production_kwh, PRODUCTION_KWH_BAND
        )


def default_roof_record(region: RegionProfile = DEFAULT_REGION) -> RoofRecord:
    """Typical regional roof used for degraded-mode estimates."""
    return RoofRecord(
        area_m2=region.typical_roof_area_m2,
        usable_pct=region.typical_usable_pct,
        shading=ShadingLevel.MEDIUM,
        pitch_deg=region.optimal_tilt_deg,
        complexity=Complexity.MODERATE,
        orientation=Orientation.SOUTH,
        obstacles=(),
        estimated_panel_count=18,
        optimal_tilt_deg=region.optimal_tilt_deg,
        confidence=0.0,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def size_system(
    roof: RoofRecord,
    irradiance: LocationIrradiance,
    region: RegionProfile = DEFAULT_REGION,
    adjust_production: bool = False,
) -> SystemSpecs:
    """Panel count, system size and production for ``roof``.

    With ``adjust_production`` the regional yield is multiplied by the tilt
    factor and the cold-climate/snow factor.
    """
    irradiance = bounded_irradiance(irradiance)
    panel_count = panel_count_for_area(roof.usable_area_m2, region.panel_area_m2)
    system_kw = round(panel_count * region.panel_kw, 2)

    tilt = climate = 1.0
    if adjust_production:
        tilt = tilt_factor(roof.pitch_deg, region.optimal_tilt_deg, roof.orientation)
        climate = climate_factor(roof.pitch_deg, region.temperature_coefficient)
    production = annual_production_kwh(
        system_kw, irradiance.pv_potential_kwh_per_kwp, tilt=tilt, climate=climate
    )

    weights = irradiance.monthly_ghi if len(irradiance.monthly_ghi) == 12 else region.monthly_peak_sun_hours

    specs = SystemSpecs(
        panel_count=panel_count,
        system_kw=system_kw,
        roof_area_used_m2=round(panel_count * region.panel_area_m2, 1),
        annual_production_kwh=round(production, 1),
        panel_wattage_w=region.panel_wattage_w,
        monthly_production_kwh=tuple(monthly_breakdown(production, weights)),
    )
    check_plausibility(specs)
    return specs


def size(
    roof: RoofRecord,
    irradiance: LocationIrradiance,
    monthly_bill: float | None = None,
    region: RegionProfile = DEFAULT_REGION,
    adjust_production: bool = False,
) -> Recommendation:
    """Full recommendation: specs, financials, suggestions and score.

    Raises
    ------
    EngineInvariantViolation
        If the computed system falls outside the residential band.
    ValueError
        If ``monthly_bill`` is given and not positive.
    """
    specs = size_system(roof, irradiance, region, adjust_production)
    financials = project_financials(
        specs.system_kw,
        specs.annual_production_kwh,
        region,
        monthly_bill=monthly_bill,
        panel_type=roof.panel_type,
        roof_material=roof.roof_material,
    )

    ghi = irradiance.annual_ghi_kwh_m2 if irradiance.annual_ghi_kwh_m2 is not None else region.annual_ghi_kwh_m2
    score = suitability_score(roof, region.optimal_tilt_deg, ghi)

    notes = []
    if financials.savings_capped:
        notes.append("Annual savings capped at your current annual electricity spend.")
    if irradiance.source == "default":
        notes.append(f"Regional average irradiance for {region.name} was used.")

    return Recommendation(
        specs=specs,
        financials=financials,
        suggestions=tuple(roof_suggestions(roof, region)),
        suitability_score=score,
        explanation=explain_score(score, region.name),
        layout=layout_suggestion(roof, specs.panel_count),
        irradiance=bounded_irradiance(irradiance),
        region_key=region.key,
        notes=tuple(notes),
    )
