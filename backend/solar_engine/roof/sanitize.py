"""Turn untrusted inference payloads into bounded roof records.

Inference providers reply with loosely-typed JSON. Nothing in that payload
is trusted: every numeric field is coerced and clamped into a physically
plausible band, enums fall back to conservative defaults, and free-form
lists are filtered. A payload that is not a JSON object, or whose core
measurements are missing or not numbers, raises ``MalformedPayloadError``.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from enum import Enum
from typing import Any, TypeVar

from solar_engine.exceptions import MalformedPayloadError
from solar_engine.regions import DEFAULT_REGION, RegionProfile
from solar_engine.roof.records import (
    Complexity,
    ExistingInstallationRecord,
    Orientation,
    PanelCondition,
    PanelType,
    Priority,
    RoofMaterial,
    RoofRecord,
    ShadingLevel,
    Suggestion,
)

E = TypeVar("E", bound=Enum)


# ---------------------------------------------------------------------------
# Plausibility bands: (low, high, default)
# ---------------------------------------------------------------------------
AREA_BOUNDS = (50.0, 300.0, 100.0)            # m²
USABLE_PCT_BOUNDS = (30.0, 95.0, 70.0)        # %
PITCH_BOUNDS = (5.0, 60.0, 30.0)              # degrees
OPTIMAL_TILT_BOUNDS = (20.0, 60.0, 44.0)      # degrees
CONFIDENCE_BOUNDS = (0.0, 100.0, 50.0)
PANEL_COUNT_BOUNDS = (5, 50, 18)
CURRENT_PANEL_COUNT_BOUNDS = (0, 100, 12)
CURRENT_EFFICIENCY_BOUNDS = (0.0, 100.0, 70.0)
POTENTIAL_EFFICIENCY_DEFAULT = 85.0

MAX_OBSTACLES = 20
MAX_SUGGESTIONS = 10

REQUIRED_ROOF_KEYS = ("roof_area_m2", "usable_area_pct", "confidence")
REQUIRED_EXISTING_KEYS = REQUIRED_ROOF_KEYS + ("current_panel_count",)

# Confidence lost when the reported panel count cannot physically fit
DENSITY_CONFIDENCE_PENALTY = 20.0
# Existing-installation confidence below which an advisory is prepended
LOW_CONFIDENCE_ADVISORY = 60.0


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def coerce_number(value: Any, default: float) -> float:
    """Return ``value`` as a finite float, or ``default``.

    Accepts ints, floats and numeric strings; booleans, NaN and infinities
    are rejected.
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%"))
        except ValueError:
            return default
    if not isinstance(value, (int, float)):
        return default
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        return default
    return value


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def bounded(value: Any, bounds: tuple[float, float, float]) -> float:
    lo, hi, default = bounds
    return clamp(coerce_number(value, default), lo, hi)


def bounded_int(value: Any, bounds: tuple[int, int, int]) -> int:
    lo, hi, default = bounds
    return int(clamp(round(coerce_number(value, default)), lo, hi))


def coerce_enum(enum_cls: type[E], value: Any, default: E) -> E:
    """Map a free-form string onto ``enum_cls``.

    Exact matches win; otherwise the first member whose value prefixes the
    input is used (``"south-facing"`` -> ``SOUTH``).
    """
    if not isinstance(value, str):
        return default
    text = value.strip().lower().replace("_", "-")
    for member in enum_cls:
        if member.value == text:
            return member
    for member in enum_cls:
        if text.startswith(member.value):
            return member
    return default


def coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "yes", "1"):
            return True
        if text in ("false", "no", "0"):
            return False
    return default


def _optional_nonneg(value: Any, upper: float | None = None) -> float | None:
    number = coerce_number(value, math.nan)
    if math.isnan(number):
        return None
    number = max(0.0, number)
    if upper is not None:
        number = min(upper, number)
    return number


def _string_list(value: Any, limit: int) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    items = [str(v).strip() for v in value if isinstance(v, (str, int, float))]
    return tuple(item for item in items if item)[:limit]


def _require(payload: Any, keys: tuple[str, ...]) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise MalformedPayloadError(
            f"expected a JSON object, got {type(payload).__name__}"
        )
    missing = [k for k in keys if k not in payload]
    if missing:
        raise MalformedPayloadError(f"missing required fields: {', '.join(missing)}")
    non_numeric = [k for k in keys if math.isnan(coerce_number(payload[k], math.nan))]
    if non_numeric:
        raise MalformedPayloadError(f"non-numeric required fields: {', '.join(non_numeric)}")
    return payload


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

def sanitize_roof_payload(payload: Any) -> RoofRecord:
    """Build a bounded ``RoofRecord`` from a raw structured-analysis payload."""
    data = _require(payload, REQUIRED_ROOF_KEYS)
    return _roof_from(data)


def _roof_from(data: Mapping[str, Any], confidence_penalty: float = 0.0) -> RoofRecord:
    lo, hi, _ = CONFIDENCE_BOUNDS
    confidence = clamp(bounded(data.get("confidence"), CONFIDENCE_BOUNDS) - confidence_penalty, lo, hi)
    return RoofRecord(
        area_m2=bounded(data.get("roof_area_m2"), AREA_BOUNDS),
        usable_pct=bounded(data.get("usable_area_pct"), USABLE_PCT_BOUNDS),
        shading=coerce_enum(ShadingLevel, data.get("shading"), ShadingLevel.MEDIUM),
        pitch_deg=bounded(data.get("pitch_deg"), PITCH_BOUNDS),
        complexity=coerce_enum(Complexity, data.get("complexity"), Complexity.MODERATE),
        orientation=coerce_enum(Orientation, data.get("orientation"), Orientation.SOUTH),
        obstacles=_string_list(data.get("obstacles"), MAX_OBSTACLES),
        estimated_panel_count=bounded_int(data.get("estimated_panel_count"), PANEL_COUNT_BOUNDS),
        optimal_tilt_deg=bounded(data.get("optimal_tilt_deg"), OPTIMAL_TILT_BOUNDS),
        confidence=confidence,
        panel_type=coerce_enum(PanelType, data.get("panel_type"), PanelType.STANDARD),
        roof_material=coerce_enum(RoofMaterial, data.get("roof_material"), RoofMaterial.UNKNOWN),
    )


def sanitize_suggestions(value: Any) -> tuple[Suggestion, ...]:
    """Filter a raw suggestion list; entries without a title are dropped."""
    if not isinstance(value, (list, tuple)):
        return ()
    suggestions: list[Suggestion] = []
    for raw in value:
        if not isinstance(raw, Mapping):
            continue
        title = raw.get("title")
        if not isinstance(title, str) or not title.strip():
            continue
        description = raw.get("description")
        category = raw.get("category") or raw.get("type")
        suggestions.append(
            Suggestion(
                category=category.strip().lower() if isinstance(category, str) and category.strip() else "maintenance",
                title=title.strip(),
                description=description.strip() if isinstance(description, str) else "",
                priority=coerce_enum(Priority, raw.get("priority"), Priority.MEDIUM),
                estimated_gain_pct=_optional_nonneg(raw.get("estimated_gain_pct"), upper=100.0),
                estimated_cost=_optional_nonneg(raw.get("estimated_cost")),
            )
        )
        if len(suggestions) >= MAX_SUGGESTIONS:
            break
    return tuple(suggestions)


def low_confidence_advisory(confidence: float) -> Suggestion:
    return Suggestion(
        category="image-quality",
        title="Low analysis confidence",
        description=(
            f"The photo could only be analysed with {confidence:.0f}% confidence. "
            "Upload a clearer, closer photo of the panels for more accurate advice."
        ),
        priority=Priority.HIGH,
    )


def max_panels_for_area(area_m2: float, region: RegionProfile = DEFAULT_REGION) -> int:
    """Physical ceiling on panels that fit on ``area_m2`` of roof."""
    return int(area_m2 // region.panel_area_m2)


def sanitize_existing_payload(
    payload: Any,
    region: RegionProfile = DEFAULT_REGION,
) -> ExistingInstallationRecord:
    """Build a bounded ``ExistingInstallationRecord``.

    The reported panel count is cross-checked against the roof area: a
    count that cannot physically fit is truncated to the ceiling and the
    record's confidence drops by ``DENSITY_CONFIDENCE_PENALTY``. When the
    final confidence is below ``LOW_CONFIDENCE_ADVISORY`` an image-quality
    advisory is placed first in the suggestion list.
    """
    data = _require(payload, REQUIRED_EXISTING_KEYS)

    area = bounded(data.get("roof_area_m2"), AREA_BOUNDS)
    count = bounded_int(data.get("current_panel_count"), CURRENT_PANEL_COUNT_BOUNDS)
    ceiling = max_panels_for_area(area, region)
    truncated = count > ceiling
    if truncated:
        count = ceiling

    roof = _roof_from(data, DENSITY_CONFIDENCE_PENALTY if truncated else 0.0)

    nominal_kw = count * region.panel_kw
    system_kw = clamp(
        coerce_number(data.get("estimated_system_kw"), nominal_kw),
        0.0,
        count * region.panel_kw * 1.5,
    )

    current_eff = bounded(data.get("current_efficiency_pct"), CURRENT_EFFICIENCY_BOUNDS)
    potential_eff = clamp(
        coerce_number(data.get("potential_efficiency_pct"), max(POTENTIAL_EFFICIENCY_DEFAULT, current_eff)),
        current_eff,
        100.0,
    )

    suggestions = sanitize_suggestions(data.get("suggestions"))
    if roof.confidence < LOW_CONFIDENCE_ADVISORY:
        suggestions = (low_confidence_advisory(roof.confidence),) + suggestions

    return ExistingInstallationRecord(
        roof=roof,
        current_panel_count=count,
        estimated_system_kw=round(system_kw, 2),
        current_efficiency_pct=current_eff,
        potential_efficiency_pct=potential_eff,
        panel_condition=coerce_enum(PanelCondition, data.get("panel_condition"), PanelCondition.GOOD),
        suggestions=suggestions,
        density_truncated=truncated,
    )
