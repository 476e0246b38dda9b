"""Cheap binary image gate run before structured analysis.

One classification call on the primary route; on a transient failure
(timeout, transport, rate limit, unparseable reply) one fallback call on
the next route. If neither produces a verdict the image is reported as
``Unvalidated``, which callers must never treat as valid.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass

from solar_engine.exceptions import MalformedPayloadError

from solar_app.inference.errors import ProviderError
from solar_app.inference.outcomes import Attempt, record_attempt
from solar_app.inference.payloads import parse_json_payload
from solar_app.inference.prompts import VALIDATION_PROMPT
from solar_app.inference.providers import InferenceProvider, Route, resolve

logger = logging.getLogger(__name__)

# Plain-text reply that opens with the verdict as a whole word
_BARE_VERDICT = re.compile(r"^(INVALID|VALID)\b", re.IGNORECASE)


@dataclass(frozen=True)
class Valid:
    route: Route


@dataclass(frozen=True)
class Invalid:
    reason: str


@dataclass(frozen=True)
class Unvalidated:
    last_error: str


ValidationResult = Valid | Invalid | Unvalidated


def parse_verdict(text: str) -> Valid | Invalid | None:
    """Read a ``{"status": ..., "reason": ...}`` reply.

    Returns ``None`` when the reply carries no recognisable verdict. A
    ``Valid`` verdict has an empty route; the caller fills it in.
    """
    try:
        payload = parse_json_payload(text)
    except MalformedPayloadError:
        match = _BARE_VERDICT.match(text.strip())
        if match is None:
            return None
        if match.group(1).upper() == "INVALID":
            return Invalid(text.strip()[match.end():].strip(" :-") or "rejected")
        return Valid(Route("", ""))

    status = str(payload.get("status", "")).strip().upper()
    reason = payload.get("reason")
    reason = reason.strip() if isinstance(reason, str) and reason.strip() else "rejected"
    if status == "VALID":
        return Valid(Route("", ""))
    if status == "INVALID":
        return Invalid(reason)
    return None


class ImageValidator:
    def __init__(
        self,
        providers: Mapping[str, InferenceProvider],
        routes: tuple[Route, ...],
        timeout: float,
    ):
        if not routes:
            raise ValueError("ImageValidator needs at least one route")
        self._providers = providers
        # Primary plus a single fallback
        self._routes = routes[:2]
        self._timeout = timeout

    async def validate(
        self,
        image: bytes,
        mime_type: str,
        attempts: list[Attempt] | None = None,
    ) -> ValidationResult:
        history = attempts if attempts is not None else []
        last_error = "no validator route configured"

        for index, route in enumerate(self._routes, start=1):
            try:
                provider = resolve(self._providers, route)
                reply = await asyncio.wait_for(
                    provider.classify_image(route.model, image, mime_type, VALIDATION_PROMPT),
                    timeout=self._timeout,
                )
            except (ProviderError, TimeoutError) as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                record_attempt(history, Attempt("validate", route, index, type(exc).__name__, str(exc)), logging.WARNING)
                continue
            except Exception as exc:
                logger.exception("Unexpected error from validator route %s", route)
                last_error = f"{type(exc).__name__}: {exc}"
                record_attempt(history, Attempt("validate", route, index, type(exc).__name__, str(exc)), logging.WARNING)
                continue

            verdict = parse_verdict(reply)
            if verdict is None:
                last_error = "unparseable validator reply"
                record_attempt(history, Attempt("validate", route, index, "MalformedPayloadError", reply[:200]), logging.WARNING)
                continue

            if isinstance(verdict, Invalid):
                record_attempt(history, Attempt("validate", route, index, "rejected", verdict.reason))
                return verdict

            record_attempt(history, Attempt("validate", route, index, "ok"))
            return Valid(route)

        return Unvalidated(last_error)
