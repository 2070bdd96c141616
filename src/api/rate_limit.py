"""Sliding-window request limiting, injected into routes as a dependency."""

from __future__ import annotations

import math
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import HTTPException, Request

# Prune idle keys once the table grows past this
MAX_TRACKED_KEYS = 10_000


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_in: float


class SlidingWindowRateLimiter:
    """Allow at most *max_requests* per key within any *window_seconds* span.

    State is in-process and unlocked, so ``check`` must only be called from
    the event loop. Swap in another object with the same ``check``
    method to share limits across workers.
    """

    def __init__(
        self,
        max_requests: int = 20,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}

    def _prune(self, now: float) -> None:
        cutoff = now - self.window_seconds
        for key in [k for k, hits in self._hits.items() if not hits or hits[-1] <= cutoff]:
            del self._hits[key]

    def check(self, key: str) -> RateLimitDecision:
        """Record a request for *key* if allowed and report the outcome."""
        now = self._clock()
        if len(self._hits) > MAX_TRACKED_KEYS:
            self._prune(now)

        hits = self._hits.setdefault(key, deque())
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

        if len(hits) >= self.max_requests:
            return RateLimitDecision(
                allowed=False,
                remaining=0,
                reset_in=hits[0] + self.window_seconds - now,
            )

        hits.append(now)
        return RateLimitDecision(
            allowed=True,
            remaining=self.max_requests - len(hits),
            reset_in=hits[0] + self.window_seconds - now,
        )

    def __len__(self) -> int:
        return len(self._hits)


def client_ip(request: Request) -> str:
    """Best-effort client address behind proxies."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency: raise 429 when the caller is over its limit.

    Async so that it runs on the event loop, which serialises every
    ``check`` call.
    """
    limiter: SlidingWindowRateLimiter = request.app.state.rate_limiter
    decision = limiter.check(client_ip(request))
    if not decision.allowed:
        raise HTTPException(
            status_code=429,
            detail="Too many requests. Please slow down.",
            headers={"Retry-After": str(max(1, math.ceil(decision.reset_in)))},
        )
