"""Typed outcomes of the inference stage and the failure taxonomy."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from solar_engine.roof.records import ExistingInstallationRecord, RoofRecord

from solar_app.inference.providers import Route

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    INVALID_IMAGE = "INVALID_IMAGE"
    LOW_CONFIDENCE = "LOW_CONFIDENCE"
    EXISTING_PANELS_DETECTED = "EXISTING_PANELS_DETECTED"
    NO_PANELS_DETECTED = "NO_PANELS_DETECTED"
    PROVIDER_EXHAUSTED = "PROVIDER_EXHAUSTED"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    UNSUPPORTED_MEDIA = "UNSUPPORTED_MEDIA"
    ENGINE_INVARIANT_VIOLATION = "ENGINE_INVARIANT_VIOLATION"

    @property
    def is_business_rejection(self) -> bool:
        return self in _BUSINESS_REJECTIONS


_BUSINESS_REJECTIONS = frozenset({
    FailureKind.INVALID_IMAGE,
    FailureKind.LOW_CONFIDENCE,
    FailureKind.EXISTING_PANELS_DETECTED,
    FailureKind.NO_PANELS_DETECTED,
})


USER_MESSAGES: dict[FailureKind, str] = {
    FailureKind.INVALID_IMAGE: (
        "This image doesn't show a roof we can assess. Upload a single, clear "
        "photo of the house with the roof plainly visible."
    ),
    FailureKind.LOW_CONFIDENCE: (
        "Visual clarity error: we couldn't see the roof clearly enough. Upload a "
        "clearer, direct photo of the roof taken in daylight."
    ),
    FailureKind.EXISTING_PANELS_DETECTED: (
        "This roof already has solar panels. Switch to the existing-installation "
        "analysis to get improvement advice."
    ),
    FailureKind.NO_PANELS_DETECTED: (
        "We couldn't find any solar panels on this roof. Use the new-installation "
        "analysis instead, or upload a photo where the panels are visible."
    ),
    FailureKind.PROVIDER_EXHAUSTED: (
        "Our image analysis service is temporarily unavailable. Please try again "
        "in a few minutes."
    ),
    FailureKind.MALFORMED_RESPONSE: (
        "We couldn't read the analysis of this photo. Please try again, or upload "
        "a different photo of the roof."
    ),
    FailureKind.UNSUPPORTED_MEDIA: (
        "Unsupported file. Upload a JPEG or PNG photo no larger than 10 MB."
    ),
    FailureKind.ENGINE_INVARIANT_VIOLATION: (
        "We couldn't produce a reliable recommendation for this roof. Our team has "
        "been notified."
    ),
}


@dataclass(frozen=True)
class Attempt:
    """One provider call made while serving a request."""

    stage: str            # "validate" | "analyze" | "narrate"
    route: Route | None
    attempt: int
    outcome: str          # "ok" | "rejected" | "skipped" | error class name
    detail: str = ""


@dataclass(frozen=True)
class Succeeded:
    record: RoofRecord | ExistingInstallationRecord
    route: Route
    attempts: tuple[Attempt, ...] = ()


@dataclass(frozen=True)
class Rejected:
    kind: FailureKind
    reason: str
    attempts: tuple[Attempt, ...] = ()

    @property
    def message(self) -> str:
        return USER_MESSAGES[self.kind]


@dataclass(frozen=True)
class Exhausted:
    kind: FailureKind
    last_error: str | None
    attempts: tuple[Attempt, ...] = ()

    @property
    def message(self) -> str:
        return USER_MESSAGES[self.kind]


OrchestratorResult = Succeeded | Rejected | Exhausted


def record_attempt(
    history: list[Attempt],
    attempt: Attempt,
    level: int = logging.INFO,
) -> None:
    """Append ``attempt`` to ``history`` and log it."""
    history.append(attempt)
    logger.log(
        level,
        "%s via %s attempt %d: %s%s",
        attempt.stage,
        attempt.route,
        attempt.attempt,
        attempt.outcome,
        f" ({attempt.detail})" if attempt.detail else "",
        extra={
            "stage": attempt.stage,
            "route": str(attempt.route) if attempt.route else None,
            "attempt": attempt.attempt,
            "outcome": attempt.outcome,
        },
    )
