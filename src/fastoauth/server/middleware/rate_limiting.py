"""Per-endpoint, per-client rate limiting for the OAuth endpoints."""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass

import anyio
from starlette.requests import Request

from fastoauth.errors import TooManyRequestsError
from fastoauth.server.auth.settings import RateLimitConfig
from fastoauth.utilities.logging import get_logger

logger = get_logger(__name__)

ANONYMOUS_CLIENT = "anonymous"

# expired counters are pruned inline once this many are held
PRUNE_THRESHOLD = 10_000


@dataclass
class RateLimitCounter:
    count: int
    reset_time: float


def client_ip_identifier(request: Request) -> str:
    """Identify a caller by proxy headers, falling back to the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


class RateLimiter:
    """Fixed-window request counter keyed by ``(endpoint, client identity)``.

    A counter starts when the first request of a window arrives and is
    reinitialized once the current time passes its reset time. At most
    ``max_requests`` requests are accepted per window; further requests are
    rejected until the window resets.

    Args:
        limits: window configuration per endpoint path; paths without an
            entry are never limited
        clock: returns the current time in seconds
        get_client_id: derives the client identity from a request; all
            callers share one counter when omitted
    """

    def __init__(
        self,
        limits: Mapping[str, RateLimitConfig],
        clock: Callable[[], float] = time.time,
        get_client_id: Callable[[Request], str] | None = None,
    ):
        self.limits = dict(limits)
        self.clock = clock
        self.get_client_id = get_client_id
        self.counters: dict[tuple[str, str], RateLimitCounter] = {}
        self._lock = anyio.Lock()

    def _get_client_identifier(self, request: Request) -> str:
        if self.get_client_id:
            return self.get_client_id(request)
        return ANONYMOUS_CLIENT

    async def hit(self, endpoint: str, identity: str) -> float | None:
        """Count one request.

        Returns:
            None if the request is allowed, otherwise the number of seconds
            until the window resets.
        """
        config = self.limits.get(endpoint)
        if config is None:
            return None

        async with self._lock:
            now = self.clock()
            key = (endpoint, identity)
            if len(self.counters) >= PRUNE_THRESHOLD:
                self._prune(now)
            counter = self.counters.get(key)
            if counter is None or now >= counter.reset_time:
                counter = RateLimitCounter(
                    count=0, reset_time=now + config.window_seconds
                )
                self.counters[key] = counter
            counter.count += 1

            if counter.count > config.max_requests:
                return counter.reset_time - now
            return None

    async def check(self, endpoint: str, request: Request) -> None:
        """Raise ``TooManyRequestsError`` if ``request`` exceeds its limit."""
        if endpoint not in self.limits:
            return
        identity = self._get_client_identifier(request)
        remaining = await self.hit(endpoint, identity)
        if remaining is not None:
            logger.debug("Rate limit exceeded on %s for %s", endpoint, identity)
            raise TooManyRequestsError(
                "Rate limit exceeded", retry_after=max(1, math.ceil(remaining))
            )

    async def cleanup(self) -> int:
        """Drop counters whose window has passed. Returns the number removed."""
        async with self._lock:
            return self._prune(self.clock())

    def _prune(self, now: float) -> int:
        expired = [k for k, c in self.counters.items() if now >= c.reset_time]
        for key in expired:
            del self.counters[key]
        return len(expired)
