"""Parse loosely-formatted JSON replies from inference providers."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from solar_engine.exceptions import MalformedPayloadError

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^```(?:json)?", re.IGNORECASE | re.MULTILINE)
_FENCE_CLOSE = re.compile(r"```$", re.MULTILINE)
_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_TRAILING_COMMA = re.compile(r",\s*([\]\}])")


def parse_json_payload(raw_text: str | None) -> dict[str, Any]:
    """Extract the first JSON object from a model reply.

    Strips markdown code fences and tolerates trailing commas. Raises
    ``MalformedPayloadError`` when no object can be decoded.
    """
    if not raw_text or not raw_text.strip():
        raise MalformedPayloadError("empty reply")

    cleaned = _FENCE_OPEN.sub("", raw_text.strip())
    cleaned = _FENCE_CLOSE.sub("", cleaned.strip())

    match = _OBJECT.search(cleaned)
    if not match:
        raise MalformedPayloadError("no JSON object found in reply")

    json_str = match.group(0)
    try:
        payload = json.loads(json_str)
    except json.JSONDecodeError:
        try:
            payload = json.loads(_TRAILING_COMMA.sub(r"\1", json_str))
        except json.JSONDecodeError as exc:
            logger.debug("Unparseable reply: %.200s", json_str)
            raise MalformedPayloadError(f"invalid JSON: {exc.msg}") from exc

    if not isinstance(payload, dict):
        raise MalformedPayloadError("reply is not a JSON object")
    return payload
