"""Tests for the sliding-window rate limiter."""

from __future__ import annotations

from collections import deque
from unittest.mock import MagicMock

from src.api.rate_limit import SlidingWindowRateLimiter, client_ip


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestSlidingWindowRateLimiter:
    def test_allows_up_to_limit(self) -> None:
        limiter = SlidingWindowRateLimiter(max_requests=3, window_seconds=60, clock=FakeClock())
        decisions = [limiter.check("1.2.3.4") for _ in range(4)]
        assert [d.allowed for d in decisions] == [True, True, True, False]
        assert [d.remaining for d in decisions] == [2, 1, 0, 0]

    def test_window_slides(self) -> None:
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(max_requests=2, window_seconds=60, clock=clock)
        limiter.check("a")
        clock.now += 30
        limiter.check("a")

        denied = limiter.check("a")
        assert not denied.allowed
        assert denied.reset_in == 30

        clock.now += 31
        assert limiter.check("a").allowed

    def test_keys_are_independent(self) -> None:
        limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        assert limiter.check("a").allowed
        assert limiter.check("b").allowed
        assert not limiter.check("a").allowed

    def test_denied_requests_not_counted(self) -> None:
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=10, clock=clock)
        limiter.check("a")
        clock.now += 5
        limiter.check("a")
        clock.now += 6
        assert limiter.check("a").allowed

    def test_idle_keys_pruned(self) -> None:
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter(max_requests=5, window_seconds=10, clock=clock)
        limiter._hits = {str(i): deque([clock.now]) for i in range(10_001)}
        clock.now += 11
        limiter.check("fresh")
        assert len(limiter) == 1


class TestClientIp:
    def _request(self, headers: dict[str, str], host: str | None = "10.0.0.1") -> MagicMock:
        request = MagicMock()
        request.headers = headers
        request.client = MagicMock(host=host) if host else None
        return request

    def test_forwarded_for_first_hop(self) -> None:
        assert client_ip(self._request({"x-forwarded-for": "1.1.1.1, 2.2.2.2"})) == "1.1.1.1"

    def test_real_ip(self) -> None:
        assert client_ip(self._request({"x-real-ip": "3.3.3.3"})) == "3.3.3.3"

    def test_direct_client(self) -> None:
        assert client_ip(self._request({})) == "10.0.0.1"

    def test_unknown(self) -> None:
        assert client_ip(self._request({}, host=None)) == "unknown"
