"""Tiered panel-count heuristic.

A naive ``usable_area / panel_area`` overstates residential arrays by 2-3x
because it ignores edge setbacks, fire paths and row spacing. Each tier
below caps the count at what installers actually fit on a roof of that
usable area (roughly 5-6 m² of total roof per panel).
"""

from __future__ import annotations

import math

# Panel area multiplier for inter-panel spacing and racking
PANEL_SPACING_FACTOR = 1.2

# (usable area upper bound in m², panel cap), ascending
PANEL_TIERS: tuple[tuple[float, int], ...] = (
    (50.0, 12),
    (75.0, 18),
    (100.0, 25),
    (math.inf, 30),
)

MIN_PANELS = 8
MAX_PANELS = PANEL_TIERS[-1][1]


def tier_cap(usable_area_m2: float) -> int:
    """Panel cap for the tier containing ``usable_area_m2``."""
    for upper, cap in PANEL_TIERS:
        if usable_area_m2 < upper:
            return cap
    return MAX_PANELS


def panel_count_for_area(usable_area_m2: float, panel_area_m2: float) -> int:
    """Number of panels to recommend for a usable roof area.

    Non-decreasing in ``usable_area_m2``: both the spacing-limited count
    and the tier cap grow with area, and the floor is constant.
    """
    if panel_area_m2 <= 0:
        raise ValueError("panel_area_m2 must be positive")
    fit = math.floor(max(usable_area_m2, 0.0) / (panel_area_m2 * PANEL_SPACING_FACTOR))
    return max(MIN_PANELS, min(fit, tier_cap(usable_area_m2)))
