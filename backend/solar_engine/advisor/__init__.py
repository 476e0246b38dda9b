"""Recommendation, scoring and improvement advice."""

from .improvements import ImprovementAssessment, assess_existing_installation
from .recommend import (
    Recommendation,
    SystemSpecs,
    check_plausibility,
    default_roof_record,
    size,
    size_system,
)
from .scoring import suitability_score

__all__ = [
    "ImprovementAssessment",
    "assess_existing_installation",
    "Recommendation",
    "SystemSpecs",
    "check_plausibility",
    "default_roof_record",
    "size",
    "size_system",
    "suitability_score",
]
