"""Rule-based advisory suggestions for a new installation."""

from __future__ import annotations

from solar_engine.regions import RegionProfile
from solar_engine.roof.records import (
    Complexity,
    Orientation,
    Priority,
    RoofRecord,
    ShadingLevel,
    Suggestion,
)

# Pitch deviation above which adjustable tilt brackets are suggested
TILT_BRACKET_DEVIATION_DEG = 15.0


def roof_suggestions(roof: RoofRecord, region: RegionProfile) -> list[Suggestion]:
    """Map roof attributes to advisory suggestions, highest priority first."""
    out: list[Suggestion] = []

    if roof.shading is not ShadingLevel.LOW:
        out.append(Suggestion(
            category="shading",
            title="Trim nearby trees",
            description=(
                "Trimming trees or vegetation that shade the roof can raise "
                "production by 10-20%."
            ),
            priority=Priority.HIGH if roof.shading is ShadingLevel.HIGH else Priority.MEDIUM,
            estimated_gain_pct=20.0 if roof.shading is ShadingLevel.HIGH else 10.0,
            estimated_cost=500.0,
        ))

    if roof.complexity is Complexity.COMPLEX:
        out.append(Suggestion(
            category="equipment",
            title="Use microinverters",
            description=(
                "Microinverters let each panel on a multi-plane roof produce "
                "independently, avoiding string mismatch losses."
            ),
            priority=Priority.HIGH,
            estimated_gain_pct=8.0,
            estimated_cost=1500.0,
        ))
    else:
        out.append(Suggestion(
            category="equipment",
            title="String inverter is sufficient",
            description=(
                "A single string inverter keeps costs down on a simple roof "
                "with uniform exposure."
            ),
            priority=Priority.LOW,
        ))

    deviation = abs(roof.pitch_deg - region.optimal_tilt_deg)
    if deviation > TILT_BRACKET_DEVIATION_DEG:
        out.append(Suggestion(
            category="mounting",
            title="Consider tilt brackets",
            description=(
                f"Your roof pitch is {deviation:.0f} degrees from the optimal "
                f"{region.optimal_tilt_deg:.0f} degrees for {region.name}. "
                "Adjustable brackets can recover lost output."
            ),
            priority=Priority.MEDIUM,
            estimated_gain_pct=5.0,
            estimated_cost=800.0,
        ))

    if roof.orientation is not Orientation.SOUTH:
        out.append(Suggestion(
            category="layout",
            title="Prioritise the sunniest roof face",
            description=(
                "Place panels on the face closest to south first; east and west "
                "faces produce roughly 15% less."
            ),
            priority=Priority.MEDIUM,
        ))

    out.append(Suggestion(
        category="financial",
        title="Set up net metering",
        description=(
            f"Apply for {region.utility_name} net metering before installation so "
            "excess summer production earns bill credits."
        ),
        priority=Priority.HIGH,
    ))
    out.append(Suggestion(
        category="maintenance",
        title="Plan for winter snow",
        description=(
            "Snow can cover panels for days after a storm. A roof rake with a soft "
            "head clears panels safely from the ground."
        ),
        priority=Priority.MEDIUM,
        estimated_cost=100.0,
    ))
    out.append(Suggestion(
        category="maintenance",
        title="Annual cleaning and inspection",
        description="Clean panels each spring and check wiring and mounts for wear.",
        priority=Priority.LOW,
        estimated_gain_pct=2.0,
        estimated_cost=150.0,
    ))

    return sorted(out, key=lambda s: s.priority.rank)


def layout_suggestion(roof: RoofRecord, panel_count: int) -> str:
    if roof.complexity is Complexity.SIMPLE:
        return f"Single array of {panel_count} panels on the main roof face."
    if roof.complexity is Complexity.MODERATE:
        return (
            f"{panel_count} panels split across two arrays to work around "
            "roof features."
        )
    return (
        f"Custom layout of {panel_count} panels across multiple roof planes "
        "with microinverters."
    )
