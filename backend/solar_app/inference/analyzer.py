"""Structured roof / installation extraction from a single provider call."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from solar_engine.regions import DEFAULT_REGION, RegionProfile
from solar_engine.roof.records import AnalysisMode, ExistingInstallationRecord, RoofRecord
from solar_engine.roof.sanitize import (
    coerce_bool,
    sanitize_existing_payload,
    sanitize_roof_payload,
)

from solar_app.inference.outcomes import FailureKind
from solar_app.inference.payloads import parse_json_payload
from solar_app.inference.prompts import existing_installation_prompt, new_installation_prompt
from solar_app.inference.providers import InferenceProvider, Route, resolve

logger = logging.getLogger(__name__)

CONFIDENCE_FLOOR = 30.0


@dataclass(frozen=True)
class AnalysisRejection:
    """A parsed reply that fails a business check. Never retried."""

    kind: FailureKind
    reason: str


AnalyzerResult = RoofRecord | ExistingInstallationRecord | AnalysisRejection


class StructuredAnalyzer:
    """Extracts a sanitized record from one (provider, model) call.

    Provider failures propagate as ``ProviderError``/``TimeoutError`` and
    unparseable replies as ``MalformedPayloadError``; the orchestrator
    decides whether to retry. Business rejections are returned.
    """

    def __init__(
        self,
        providers: Mapping[str, InferenceProvider],
        region: RegionProfile = DEFAULT_REGION,
    ):
        self._providers = providers
        self._region = region
        self._prompts = {
            AnalysisMode.NEW: new_installation_prompt(region),
            AnalysisMode.EXISTING: existing_installation_prompt(region),
        }

    async def analyze(
        self,
        route: Route,
        image: bytes,
        mime_type: str,
        mode: AnalysisMode,
    ) -> AnalyzerResult:
        provider = resolve(self._providers, route)
        reply = await provider.extract_structured(route.model, image, mime_type, self._prompts[mode])
        payload = parse_json_payload(reply)
        return self.interpret(payload, mode)

    def interpret(self, payload: Mapping[str, Any], mode: AnalysisMode) -> AnalyzerResult:
        """Sanitize ``payload`` and apply the business rejection rules."""
        if mode is AnalysisMode.EXISTING:
            existing = sanitize_existing_payload(payload, self._region)
            rejection = self._common_checks(payload, existing.roof)
            if rejection is not None:
                return rejection
            if existing.current_panel_count == 0:
                return AnalysisRejection(FailureKind.NO_PANELS_DETECTED, "no panels visible")
            return existing

        roof = sanitize_roof_payload(payload)
        rejection = self._common_checks(payload, roof)
        if rejection is not None:
            return rejection
        if coerce_bool(payload.get("existing_panels_detected"), False):
            return AnalysisRejection(
                FailureKind.EXISTING_PANELS_DETECTED, "solar panels already installed"
            )
        return roof

    @staticmethod
    def _common_checks(payload: Mapping[str, Any], roof: RoofRecord) -> AnalysisRejection | None:
        if not coerce_bool(payload.get("is_house"), True):
            return AnalysisRejection(FailureKind.INVALID_IMAGE, "not a house")
        if roof.confidence < CONFIDENCE_FLOOR:
            return AnalysisRejection(
                FailureKind.LOW_CONFIDENCE,
                f"confidence {roof.confidence:.0f} below {CONFIDENCE_FLOOR:.0f}",
            )
        return None
