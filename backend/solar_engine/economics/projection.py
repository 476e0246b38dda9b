"""25-year financial projection for a residential rooftop system.

Savings compound annually: production decays by the panel degradation
rate while the utility rate escalates. First-year savings are capped at
the homeowner's own annual spend when a monthly bill is known.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from solar_engine.regions import RegionProfile
from solar_engine.roof.records import PanelType, RoofMaterial

PROJECTION_YEARS = 25

# Installed-cost multipliers relative to the regional cost-per-watt
PANEL_TYPE_COST_FACTORS: dict[PanelType, float] = {
    PanelType.STANDARD: 0.93,
    PanelType.PREMIUM: 1.00,
    PanelType.HIGH_EFFICIENCY: 1.12,
}

ROOF_MATERIAL_COST_FACTORS: dict[RoofMaterial, float] = {
    RoofMaterial.SHINGLE: 1.00,
    RoofMaterial.METAL: 1.05,
    RoofMaterial.TILE: 1.15,
    RoofMaterial.MEMBRANE: 1.08,
    RoofMaterial.UNKNOWN: 1.00,
}


@dataclass(frozen=True)
class FinancialProjection:
    installed_cost: float
    cost_range_low: float
    cost_range_high: float
    annual_savings: float
    monthly_savings: float
    payback_years: float | None
    savings_25yr: float
    roi_pct: float
    annual_co2_offset_kg: float
    lifetime_co2_offset_kg: float
    tree_equivalent: float
    lifetime_production_kwh: float
    savings_capped: bool = False
    estimated_annual_consumption_kwh: float | None = None
    coverage_pct: float | None = None
    incentives: tuple[dict, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

def yearly_savings(
    first_year_savings: float,
    degradation: float,
    escalation: float,
    years: int = PROJECTION_YEARS,
) -> list[dict[str, float]]:
    """Year-by-year savings schedule.

    Year ``y`` (0-based) saves ``S * (1 - d)**y * (1 + r)**y``.
    Returns a list of dicts with keys: year, production_factor,
    rate_factor, savings, cumulative.
    """
    schedule = []
    cumulative = 0.0
    for y in range(years):
        production_factor = (1.0 - degradation) ** y
        rate_factor = (1.0 + escalation) ** y
        savings = first_year_savings * production_factor * rate_factor
        cumulative += savings
        schedule.append({
            "year": y + 1,
            "production_factor": production_factor,
            "rate_factor": rate_factor,
            "savings": savings,
            "cumulative": cumulative,
        })
    return schedule


def cumulative_savings(
    first_year_savings: float,
    degradation: float,
    escalation: float,
    years: int = PROJECTION_YEARS,
) -> float:
    """Total savings over ``years`` with degradation and rate escalation."""
    schedule = yearly_savings(first_year_savings, degradation, escalation, years)
    return schedule[-1]["cumulative"] if schedule else 0.0


def lifetime_production_kwh(
    annual_kwh: float,
    degradation: float,
    years: int = PROJECTION_YEARS,
) -> float:
    return sum(annual_kwh * (1.0 - degradation) ** y for y in range(years))


def installed_cost(
    system_kw: float,
    cost_per_watt: float,
    panel_type: PanelType = PanelType.PREMIUM,
    roof_material: RoofMaterial = RoofMaterial.UNKNOWN,
) -> float:
    """Installed cost = watts x cost-per-watt x panel tier x roof difficulty."""
    return (
        system_kw * 1000.0 * cost_per_watt
        * PANEL_TYPE_COST_FACTORS[panel_type]
        * ROOF_MATERIAL_COST_FACTORS[roof_material]
    )


def estimate_annual_consumption(monthly_bill: float, region: RegionProfile) -> float:
    """Annual kWh implied by a monthly bill, net of the fixed basic charge."""
    energy_spend = max(monthly_bill - region.monthly_basic_charge, 0.0)
    return energy_spend * 12.0 / region.electricity_rate


def available_incentives(region: RegionProfile, system_cost: float) -> list[dict]:
    """Incentive programmes; loan amounts are capped at the system cost."""
    result = []
    for inc in region.incentives:
        if not inc.available:
            continue
        amount = None
        if inc.max_amount is not None:
            amount = round(min(inc.max_amount, system_cost), 2)
        result.append({
            "name": inc.name,
            "description": inc.description,
            "amount": amount,
            "url": inc.url,
        })
    return result


# ---------------------------------------------------------------------------
# Full projection
# ---------------------------------------------------------------------------

def project_financials(
    system_kw: float,
    annual_production_kwh: float,
    region: RegionProfile,
    monthly_bill: float | None = None,
    panel_type: PanelType = PanelType.STANDARD,
    roof_material: RoofMaterial = RoofMaterial.UNKNOWN,
    years: int = PROJECTION_YEARS,
) -> FinancialProjection:
    """Compute the financial projection for a sized system.

    Parameters
    ----------
    system_kw : float
        Installed DC capacity.
    annual_production_kwh : float
        First-year production.
    region : RegionProfile
        Supplies the electricity rate, escalation, degradation, costs and
        environmental factors.
    monthly_bill : float or None
        Current monthly utility bill. When given, first-year savings are
        capped at 12x this amount. Must be positive.

    Returns
    -------
    FinancialProjection
        Money rounded to cents. ``roi_pct`` is negative when 25-year
        savings do not recover the installed cost.
    """
    if monthly_bill is not None and monthly_bill <= 0:
        raise ValueError("monthly_bill must be positive")

    cost = installed_cost(system_kw, region.cost_per_watt_mid, panel_type, roof_material)
    scale = cost / (system_kw * 1000.0 * region.cost_per_watt_mid) if system_kw > 0 else 1.0
    cost_low = system_kw * 1000.0 * region.cost_per_watt_low * scale
    cost_high = system_kw * 1000.0 * region.cost_per_watt_high * scale

    producible = annual_production_kwh * region.electricity_rate
    annual_savings = producible
    capped = False
    consumption = None
    coverage = None
    if monthly_bill is not None:
        annual_spend = monthly_bill * 12.0
        if producible > annual_spend:
            annual_savings = annual_spend
            capped = True
        consumption = estimate_annual_consumption(monthly_bill, region)
        if consumption > 0:
            coverage = min(annual_production_kwh / consumption * 100.0, 100.0)
        else:
            coverage = 100.0

    total_25 = cumulative_savings(
        annual_savings, region.annual_degradation, region.annual_rate_escalation, years
    )
    payback = cost / annual_savings if annual_savings > 0 else None
    roi = (total_25 - cost) / cost * 100.0 if cost > 0 else 0.0

    lifetime_kwh = lifetime_production_kwh(annual_production_kwh, region.annual_degradation, years)
    annual_co2 = annual_production_kwh * region.grid_emission_kg_per_kwh
    lifetime_co2 = lifetime_kwh * region.grid_emission_kg_per_kwh

    return FinancialProjection(
        installed_cost=round(cost, 2),
        cost_range_low=round(cost_low, 2),
        cost_range_high=round(cost_high, 2),
        annual_savings=round(annual_savings, 2),
        monthly_savings=round(annual_savings / 12.0, 2),
        payback_years=round(payback, 1) if payback is not None else None,
        savings_25yr=round(total_25, 2),
        roi_pct=round(roi, 1),
        annual_co2_offset_kg=round(annual_co2, 1),
        lifetime_co2_offset_kg=round(lifetime_co2, 1),
        tree_equivalent=round(annual_co2 / region.tree_co2_kg_per_year, 1),
        lifetime_production_kwh=round(lifetime_kwh, 1),
        savings_capped=capped,
        estimated_annual_consumption_kwh=round(consumption, 1) if consumption is not None else None,
        coverage_pct=round(coverage, 1) if coverage is not None else None,
        incentives=tuple(available_incentives(region, cost)),
    )
