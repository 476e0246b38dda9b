"""Immutable value records describing a rooftop and its irradiance."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ShadingLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Complexity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


class Orientation(str, Enum):
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"
    FLAT = "flat"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort key: high first."""
        return {"high": 0, "medium": 1, "low": 2}[self.value]


class AnalysisMode(str, Enum):
    NEW = "new"
    EXISTING = "existing"


class PanelType(str, Enum):
    STANDARD = "standard"
    PREMIUM = "premium"
    HIGH_EFFICIENCY = "high-efficiency"


class RoofMaterial(str, Enum):
    SHINGLE = "shingle"
    METAL = "metal"
    TILE = "tile"
    MEMBRANE = "membrane"
    UNKNOWN = "unknown"


class PanelCondition(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


@dataclass(frozen=True)
class Suggestion:
    category: str
    title: str
    description: str
    priority: Priority
    estimated_gain_pct: float | None = None
    estimated_cost: float | None = None


@dataclass(frozen=True)
class RoofRecord:
    """Sanitized structural facts about a roof.

    Every numeric field has already been clamped into its plausible band
    (see ``solar_engine.roof.sanitize``).
    """

    area_m2: float
    usable_pct: float
    shading: ShadingLevel
    pitch_deg: float
    complexity: Complexity
    orientation: Orientation
    obstacles: tuple[str, ...]
    estimated_panel_count: int
    optimal_tilt_deg: float
    confidence: float
    panel_type: PanelType = PanelType.STANDARD
    roof_material: RoofMaterial = RoofMaterial.UNKNOWN

    @property
    def usable_area_m2(self) -> float:
        return self.area_m2 * self.usable_pct / 100.0


@dataclass(frozen=True)
class ExistingInstallationRecord:
    roof: RoofRecord
    current_panel_count: int
    estimated_system_kw: float
    current_efficiency_pct: float
    potential_efficiency_pct: float
    panel_condition: PanelCondition
    suggestions: tuple[Suggestion, ...] = ()
    density_truncated: bool = False

    @property
    def confidence(self) -> float:
        return self.roof.confidence


@dataclass(frozen=True)
class LocationIrradiance:
    """Irradiance inputs for one location.

    ``pv_potential_kwh_per_kwp`` is the annual yield of 1 kW installed;
    ``source`` is one of ``nasa``, ``cached`` or ``default``.
    """

    peak_sun_hours: float
    pv_potential_kwh_per_kwp: float
    annual_ghi_kwh_m2: float | None = None
    monthly_ghi: tuple[float, ...] = field(default_factory=tuple)
    source: str = "default"
