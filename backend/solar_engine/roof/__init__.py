"""Roof records and payload sanitization."""

from .records import (
    AnalysisMode,
    Complexity,
    ExistingInstallationRecord,
    LocationIrradiance,
    Orientation,
    PanelCondition,
    PanelType,
    Priority,
    RoofMaterial,
    RoofRecord,
    ShadingLevel,
    Suggestion,
)
from .sanitize import sanitize_existing_payload, sanitize_roof_payload

__all__ = [
    "AnalysisMode",
    "Complexity",
    "ExistingInstallationRecord",
    "LocationIrradiance",
    "Orientation",
    "PanelCondition",
    "PanelType",
    "Priority",
    "RoofMaterial",
    "RoofRecord",
    "ShadingLevel",
    "Suggestion",
    "sanitize_existing_payload",
    "sanitize_roof_payload",
]
