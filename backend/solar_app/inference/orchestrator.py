"""Inference orchestrator: validate, then analyze across an ordered route list.

Per request::

    Idle -> Validating -> Analyzing -> Succeeded | Rejected | Exhausted

Validation always completes before analysis starts, and an ``Invalid``
verdict ends the request without any analysis call. Analysis walks the
configured routes strictly in order, one call at a time:

- timeout, transport error, empty reply, unparseable payload or any
  other SDK exception: failed attempt, retried after a fixed delay up to
  ``max_attempts``
- model not found or rate limited: move to the next route immediately
- provider without credentials: route skipped without a call
- business rejection (invalid image, low confidence, panels present or
  absent): returned as ``Rejected`` at once, never retried
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum

from solar_engine.exceptions import MalformedPayloadError
from solar_engine.regions import DEFAULT_REGION, RegionProfile
from solar_engine.roof.records import AnalysisMode

from solar_app.inference.analyzer import AnalysisRejection, StructuredAnalyzer
from solar_app.inference.errors import (
    ModelNotFoundError,
    ProviderError,
    ProviderNotConfiguredError,
    RateLimitedError,
)
from solar_app.inference.outcomes import (
    Attempt,
    Exhausted,
    FailureKind,
    OrchestratorResult,
    Rejected,
    Succeeded,
    record_attempt,
)
from solar_app.inference.providers import InferenceProvider, Route, parse_routes
from solar_app.inference.validator import ImageValidator, Invalid, Unvalidated

logger = logging.getLogger(__name__)


class OrchestratorState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    ANALYZING = "analyzing"
    SUCCEEDED = "succeeded"
    REJECTED = "rejected"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class OrchestratorConfig:
    """Retry, timeout and routing policy, fixed at construction."""

    inference_routes: tuple[Route, ...]
    validator_routes: tuple[Route, ...]
    max_attempts: int = 3
    retry_delay_seconds: float = 2.0
    timeout_seconds: float = 15.0
    validator_timeout_seconds: float = 12.0

    def __post_init__(self) -> None:
        if not self.inference_routes:
            raise ValueError("at least one inference route is required")
        if not self.validator_routes:
            raise ValueError("at least one validator route is required")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @classmethod
    def from_settings(cls, settings) -> OrchestratorConfig:
        return cls(
            inference_routes=parse_routes(settings.inference_routes),
            validator_routes=parse_routes(settings.validator_routes),
            max_attempts=settings.inference_max_attempts,
            retry_delay_seconds=settings.inference_retry_delay_seconds,
            timeout_seconds=settings.inference_timeout_seconds,
            validator_timeout_seconds=settings.validator_timeout_seconds,
        )


class InferenceOrchestrator:
    def __init__(
        self,
        providers: Mapping[str, InferenceProvider],
        config: OrchestratorConfig,
        region: RegionProfile = DEFAULT_REGION,
        *,
        validator: ImageValidator | None = None,
        analyzer: StructuredAnalyzer | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._providers = providers
        self.config = config
        self.validator = validator or ImageValidator(
            providers, config.validator_routes, config.validator_timeout_seconds
        )
        self.analyzer = analyzer or StructuredAnalyzer(providers, region)
        self._sleep = sleep

    @staticmethod
    def _enter(state: OrchestratorState, request: str) -> None:
        logger.debug("[%s] -> %s", request, state.value)

    async def analyze(
        self,
        image: bytes,
        mime_type: str,
        mode: AnalysisMode = AnalysisMode.NEW,
        request: str = "",
    ) -> OrchestratorResult:
        attempts: list[Attempt] = []
        self._enter(OrchestratorState.IDLE, request)

        self._enter(OrchestratorState.VALIDATING, request)
        verdict = await self.validator.validate(image, mime_type, attempts)
        if isinstance(verdict, Invalid):
            self._enter(OrchestratorState.REJECTED, request)
            return Rejected(FailureKind.INVALID_IMAGE, verdict.reason, tuple(attempts))
        if isinstance(verdict, Unvalidated):
            self._enter(OrchestratorState.EXHAUSTED, request)
            logger.error("Unable to validate image: %s", verdict.last_error)
            return Exhausted(
                FailureKind.PROVIDER_EXHAUSTED,
                f"unable to validate: {verdict.last_error}",
                tuple(attempts),
            )

        self._enter(OrchestratorState.ANALYZING, request)
        return await self._analyze(image, mime_type, mode, attempts, request)

    async def _analyze(
        self,
        image: bytes,
        mime_type: str,
        mode: AnalysisMode,
        attempts: list[Attempt],
        request: str,
    ) -> OrchestratorResult:
        cfg = self.config
        last_error: str | None = None
        called = False
        malformed_only = True

        for route in cfg.inference_routes:
            provider = self._providers.get(route.provider)
            if provider is None or not provider.configured:
                record_attempt(attempts, Attempt("analyze", route, 0, "skipped", "provider not configured"))
                continue

            for n in range(1, cfg.max_attempts + 1):
                called = True
                try:
                    result = await asyncio.wait_for(
                        self.analyzer.analyze(route, image, mime_type, mode),
                        timeout=cfg.timeout_seconds,
                    )
                except (ModelNotFoundError, RateLimitedError, ProviderNotConfiguredError) as exc:
                    # next route
                    malformed_only = False
                    last_error = f"{type(exc).__name__}: {exc}"
                    record_attempt(attempts, Attempt("analyze", route, n, type(exc).__name__, str(exc)), logging.WARNING)
                    break
                except MalformedPayloadError as exc:
                    last_error = f"MalformedPayloadError: {exc}"
                    record_attempt(attempts, Attempt("analyze", route, n, "MalformedPayloadError", str(exc)), logging.WARNING)
                except (ProviderError, TimeoutError) as exc:
                    malformed_only = False
                    last_error = f"{type(exc).__name__}: {exc}"
                    record_attempt(attempts, Attempt("analyze", route, n, type(exc).__name__, str(exc)), logging.WARNING)
                except Exception as exc:
                    # SDK error outside the provider hierarchy
                    logger.exception("Unexpected error from %s on attempt %d", route, n)
                    malformed_only = False
                    last_error = f"{type(exc).__name__}: {exc}"
                    record_attempt(attempts, Attempt("analyze", route, n, type(exc).__name__, str(exc)), logging.WARNING)
                else:
                    if isinstance(result, AnalysisRejection):
                        record_attempt(attempts, Attempt("analyze", route, n, "rejected", result.reason))
                        self._enter(OrchestratorState.REJECTED, request)
                        return Rejected(result.kind, result.reason, tuple(attempts))
                    record_attempt(attempts, Attempt("analyze", route, n, "ok"))
                    self._enter(OrchestratorState.SUCCEEDED, request)
                    return Succeeded(result, route, tuple(attempts))

                if n < cfg.max_attempts:
                    await self._sleep(cfg.retry_delay_seconds)

        kind = (
            FailureKind.MALFORMED_RESPONSE
            if called and malformed_only
            else FailureKind.PROVIDER_EXHAUSTED
        )
        self._enter(OrchestratorState.EXHAUSTED, request)
        logger.error("All inference routes exhausted (%s): %s", kind.value, last_error)
        return Exhausted(kind, last_error or "no configured inference provider", tuple(attempts))
