"""Prompt templates for image validation, roof extraction and narration."""

from __future__ import annotations

from solar_engine.regions import RegionProfile
from solar_engine.sizing.panels import PANEL_TIERS

VALIDATION_PROMPT = """You are an image gatekeeper for a rooftop solar assessment tool.
Decide whether this image can be used to assess a roof for solar panels.

Answer INVALID if ANY of these apply:
1. The image is a collage, grid, split-screen or contains more than one photograph.
2. The main subject is not a building (people, animals, vehicles, landscapes, food, objects).
3. The image is a drawing, diagram, map, floor plan, rendering, screenshot or text document.
4. No building occupies a dominant portion of the frame.
5. The roof is not visible, or is too dark, blurred or obstructed to see.

Answer VALID only if it is a single, clear photograph of a house or building
with its roof plainly visible (street level, aerial or drone view are all fine).

Respond with JSON only:
{"status": "VALID" or "INVALID", "reason": "<short reason, e.g. collage, not a building, roof not visible>"}"""


def _tier_lines(region: RegionProfile) -> str:
    lines = []
    lower = 0.0
    for upper, cap in PANEL_TIERS:
        if upper == float("inf"):
            lines.append(f"- usable area {lower:.0f}+ m²: at most {cap} panels")
        else:
            lines.append(f"- usable area {lower:.0f}-{upper:.0f} m²: at most {cap} panels")
        lower = upper
    return "\n".join(lines)


def new_installation_prompt(region: RegionProfile) -> str:
    return f"""You are a professional solar installer assessing a residential roof in {region.name}.

REGIONAL CONTEXT
- Annual irradiance: {region.annual_ghi_kwh_m2:.0f} kWh/m²/yr, {region.peak_sun_hours} peak sun hours/day
- Optimal panel tilt: {region.optimal_tilt_deg:.0f} degrees, facing south
- Electricity rate: ${region.electricity_rate:.4f}/kWh ({region.utility_name})
- Panels: {region.panel_wattage_w:.0f} W, {region.panel_area_m2} m² each
- Typical residential systems: 8-30 panels (3-12 kW)
{_tier_lines(region)}

ESTIMATION RULES (be conservative)
- When uncertain, round the roof area DOWN. Typical homes have 80-150 m² of roof.
- Usable area is usually 55-75% after setbacks, vents and chimneys, not 85-95%.
- Lower your confidence when the roof is partly hidden, at an angle, or far away.
- If solar panels are ALREADY installed on this roof, set existing_panels_detected to true.
- If the image does not show a house or building roof, set is_house to false.

Respond with a single JSON object with exactly these fields:
{{
  "is_house": true,
  "existing_panels_detected": false,
  "roof_area_m2": <number, 50-300>,
  "usable_area_pct": <number, 30-95>,
  "shading": "low" | "medium" | "high",
  "pitch_deg": <number, 5-60>,
  "complexity": "simple" | "moderate" | "complex",
  "orientation": "north" | "south" | "east" | "west" | "flat",
  "obstacles": [<strings, e.g. "chimney", "skylight">],
  "estimated_panel_count": <integer>,
  "optimal_tilt_deg": <number, 20-60>,
  "panel_type": "standard" | "premium" | "high-efficiency",
  "roof_material": "shingle" | "metal" | "tile" | "membrane" | "unknown",
  "confidence": <number, 0-100>
}}"""


def existing_installation_prompt(region: RegionProfile) -> str:
    return f"""You are a solar maintenance specialist reviewing an EXISTING rooftop
solar installation in {region.name}.

REGIONAL CONTEXT
- Annual irradiance: {region.annual_ghi_kwh_m2:.0f} kWh/m²/yr; optimal tilt {region.optimal_tilt_deg:.0f} degrees
- Electricity rate: ${region.electricity_rate:.4f}/kWh ({region.utility_name})
- Typical panels: {region.panel_wattage_w:.0f} W, {region.panel_area_m2} m² each

TASKS
1. Count the installed panels. Only count panels you can actually see.
2. Estimate the roof area and the current efficiency of the array (dirt, snow,
   shading, damage, poor angle all lower it).
3. Suggest concrete improvements, each with a priority and an estimated gain.

If the image does not show a house or building roof, set is_house to false.
If you cannot see any solar panels, set current_panel_count to 0.

Respond with a single JSON object with exactly these fields:
{{
  "is_house": true,
  "roof_area_m2": <number, 50-300>,
  "usable_area_pct": <number, 30-95>,
  "shading": "low" | "medium" | "high",
  "pitch_deg": <number, 5-60>,
  "complexity": "simple" | "moderate" | "complex",
  "orientation": "north" | "south" | "east" | "west" | "flat",
  "obstacles": [<strings>],
  "current_panel_count": <integer, 0-100>,
  "estimated_system_kw": <number>,
  "current_efficiency_pct": <number, 0-100>,
  "potential_efficiency_pct": <number, 0-100>,
  "panel_condition": "excellent" | "good" | "fair" | "poor",
  "suggestions": [
    {{"category": "cleaning" | "shading" | "angle" | "expansion" | "maintenance" | "upgrade",
      "title": <string>, "description": <string>,
      "priority": "high" | "medium" | "low",
      "estimated_gain_pct": <number>, "estimated_cost": <number or null>}}
  ],
  "confidence": <number, 0-100>
}}"""


def narrative_prompt(
    *,
    location: str,
    region: RegionProfile,
    system_kw: float,
    panel_count: int,
    annual_production_kwh: float,
    installed_cost: float,
    annual_savings: float,
    payback_years: float | None,
    savings_25yr: float,
    roi_pct: float,
    co2_offset_kg: float,
    suitability_score: int,
) -> str:
    payback = f"{payback_years:.1f} years" if payback_years is not None else "not reached"
    return f"""Write a short, persuasive but strictly factual summary (under 120 words)
for a homeowner in {location} considering rooftop solar. Speak like a trusted
financial advisor. Use ONLY the figures below, exactly as given; do not compute,
round differently or invent any other number.

- System: {panel_count} panels, {system_kw:.1f} kW
- Annual production: {annual_production_kwh:,.0f} kWh
- Installed cost: ${installed_cost:,.0f}
- Annual savings: ${annual_savings:,.0f}
- Payback: {payback}
- 25-year savings: ${savings_25yr:,.0f} (ROI {roi_pct:.0f}%)
- CO2 avoided per year: {co2_offset_kg:,.0f} kg
- Roof suitability: {suitability_score}/100
- Utility: {region.utility_name}

Reply with the paragraph only."""
