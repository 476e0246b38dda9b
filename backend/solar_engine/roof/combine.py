"""Merge roof records read from several photos of the same roof.

Measurements are averaged with each record's confidence as its weight.
Shading takes the worst reading, complexity the rounded mean, and the
categorical fields come from the most confident record.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from solar_engine.roof.records import Complexity, RoofRecord, ShadingLevel
from solar_engine.roof.sanitize import MAX_OBSTACLES

_SHADING_ORDER = (ShadingLevel.LOW, ShadingLevel.MEDIUM, ShadingLevel.HIGH)
_COMPLEXITY_ORDER = (Complexity.SIMPLE, Complexity.MODERATE, Complexity.COMPLEX)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def combine_roof_records(records: Sequence[RoofRecord]) -> RoofRecord:
    if not records:
        raise ValueError("at least one roof record is required")
    if len(records) == 1:
        return records[0]

    # Zero-confidence records still count, just barely
    weights = [max(r.confidence, 1.0) for r in records]
    total = sum(weights)

    def weighted(field: str) -> float:
        return round(sum(getattr(r, field) * w for r, w in zip(records, weights)) / total, 2)

    primary = max(records, key=lambda r: r.confidence)
    shading = max((r.shading for r in records), key=_SHADING_ORDER.index)
    complexity_index = _round_half_up(
        sum(_COMPLEXITY_ORDER.index(r.complexity) for r in records) / len(records)
    )

    obstacles: list[str] = []
    for record in (primary, *records):
        for item in record.obstacles:
            if item not in obstacles:
                obstacles.append(item)

    return RoofRecord(
        area_m2=weighted("area_m2"),
        usable_pct=weighted("usable_pct"),
        shading=shading,
        pitch_deg=weighted("pitch_deg"),
        complexity=_COMPLEXITY_ORDER[complexity_index],
        orientation=primary.orientation,
        obstacles=tuple(obstacles[:MAX_OBSTACLES]),
        estimated_panel_count=_round_half_up(weighted("estimated_panel_count")),
        optimal_tilt_deg=primary.optimal_tilt_deg,
        confidence=float(_round_half_up(sum(r.confidence for r in records) / len(records))),
        panel_type=primary.panel_type,
        roof_material=primary.roof_material,
    )
