"""Logging setup: request-scoped IDs, JSON output and access logging.

Every record emitted while a request is in flight carries that request's
ID, including the per-attempt inference records from the orchestrator,
so one analysis can be followed across validator, analyzer and
narrative calls.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from contextvars import ContextVar
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

ACCESS_LOGGER = "solar.access"

# Paths polled by load balancers; logged at DEBUG
QUIET_PATHS = frozenset({"/health"})

# Record attributes set through ``extra=`` that JSON output keeps
HTTP_FIELDS = ("method", "path", "status_code", "duration_ms", "client_ip")
INFERENCE_FIELDS = ("stage", "route", "attempt", "outcome", "failure_kind")

PLAIN_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(request_id)s%(message)s"


class RequestIDFilter(logging.Filter):
    """Stamp ``record.request_id`` from the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        rid = request_id_var.get("")
        record.request_id = f"({rid}) " if rid else ""
        record.rid = rid
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        rid = getattr(record, "rid", "")
        if rid:
            entry["request_id"] = rid
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)

        for key in HTTP_FIELDS + INFERENCE_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        return json.dumps(entry, default=str)


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Bind a request ID for the duration of the call and log its outcome."""

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        token = request_id_var.set(rid)
        start = time.perf_counter()
        try:
            response: Response = await call_next(request)
            elapsed = round((time.perf_counter() - start) * 1000, 1)
            response.headers["X-Request-ID"] = rid

            path = request.url.path
            if path in QUIET_PATHS:
                level = logging.DEBUG
            elif response.status_code >= 500:
                level = logging.WARNING
            else:
                level = logging.INFO
            logging.getLogger(ACCESS_LOGGER).log(
                level,
                "%s %s -> %d in %.1fms",
                request.method,
                path,
                response.status_code,
                elapsed,
                extra={
                    "method": request.method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": elapsed,
                    "client_ip": _client_ip(request),
                },
            )
            return response
        finally:
            request_id_var.reset(token)


def setup_logging(json_format: bool = False, level: int = logging.INFO) -> None:
    """Install a single stream handler on the root logger.

    ``json_format`` switches to one JSON object per line for log shipping.
    """
    handler = logging.StreamHandler()
    handler.addFilter(RequestIDFilter())
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # SDK and HTTP client chatter
    for name in ("uvicorn.access", "httpx", "httpcore", "openai", "google_genai"):
        logging.getLogger(name).setLevel(logging.WARNING)
