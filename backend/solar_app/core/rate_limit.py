"""Per-client throttle for the analyze endpoint.

Each analysis can cost several paid inference calls, so clients are held
to a small number of analyses per window. State is in-process only.
"""

from __future__ import annotations

import math
import time
from collections import defaultdict, deque
from collections.abc import Callable

from fastapi import HTTPException, Request, status

from solar_app.config import settings


def client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimiter:
    """Sliding window of request timestamps per client."""

    def __init__(
        self,
        max_requests: int = 5,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = defaultdict(deque)

    def check(self, request: Request) -> None:
        """Record a hit for the caller, or raise 429 with ``Retry-After``."""
        now = self._clock()
        hits = self._hits[client_key(request)]
        while hits and hits[0] <= now - self.window_seconds:
            hits.popleft()

        if len(hits) >= self.max_requests:
            retry_after = max(1, math.ceil(hits[0] + self.window_seconds - now))
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=(
                    f"Too many analyses. At most {self.max_requests} per "
                    f"{self.window_seconds:g} seconds; try again shortly."
                ),
                headers={"Retry-After": str(retry_after)},
            )
        hits.append(now)

    def reset(self) -> None:
        self._hits.clear()


analyze_limiter = RateLimiter(
    max_requests=settings.analyze_rate_limit,
    window_seconds=settings.analyze_rate_window_seconds,
)
