"""Assessment of an existing rooftop installation."""

from __future__ import annotations

from dataclasses import dataclass

from solar_engine.regions import DEFAULT_REGION, RegionProfile
from solar_engine.roof.records import (
    ExistingInstallationRecord,
    LocationIrradiance,
    Suggestion,
)

# Expansion headroom reported above the current panel count
PANEL_RANGE_HEADROOM = 7


@dataclass(frozen=True)
class ImprovementAssessment:
    current_system_kw: float
    panel_range: tuple[int, int]
    system_kw_range: tuple[float, float]
    current_production_kwh: float
    potential_production_kwh: float
    additional_production_kwh: float
    additional_annual_savings: float
    improvement_cost: float
    payback_years: float | None
    suggestions: tuple[Suggestion, ...]


def _ordered(suggestions: tuple[Suggestion, ...]) -> tuple[Suggestion, ...]:
    """Sort by priority; the image-quality advisory, if present, stays first."""
    advisory = [s for s in suggestions if s.category == "image-quality"]
    rest = [s for s in suggestions if s.category != "image-quality"]
    return tuple(advisory + sorted(rest, key=lambda s: s.priority.rank))


def assess_existing_installation(
    record: ExistingInstallationRecord,
    irradiance: LocationIrradiance,
    region: RegionProfile = DEFAULT_REGION,
) -> ImprovementAssessment:
    """Current vs. potential output of an installed array.

    Production at a given efficiency is the nominal yield
    (panels x wattage x PV potential) scaled by that efficiency.
    """
    count = record.current_panel_count
    system_kw = round(count * region.panel_kw, 2)
    nominal = system_kw * irradiance.pv_potential_kwh_per_kwp

    current = nominal * record.current_efficiency_pct / 100.0
    potential = nominal * record.potential_efficiency_pct / 100.0
    additional = max(potential - current, 0.0)
    additional_savings = additional * region.electricity_rate

    cost = sum(s.estimated_cost or 0.0 for s in record.suggestions)
    payback = cost / additional_savings if additional_savings > 0 and cost > 0 else None

    high = count + PANEL_RANGE_HEADROOM
    return ImprovementAssessment(
        current_system_kw=system_kw,
        panel_range=(count, high),
        system_kw_range=(system_kw, round(high * region.panel_kw, 2)),
        current_production_kwh=round(current, 1),
        potential_production_kwh=round(potential, 1),
        additional_production_kwh=round(additional, 1),
        additional_annual_savings=round(additional_savings, 2),
        improvement_cost=round(cost, 2),
        payback_years=round(payback, 1) if payback is not None else None,
        suggestions=_ordered(record.suggestions),
    )
