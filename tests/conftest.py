"""Shared fixtures: an in-memory store double and an API client."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_store
from src.api.main import app
from src.api.rate_limit import SlidingWindowRateLimiter
from tests.fakes import FakeStore


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def client(fake_store: FakeStore) -> Iterator[TestClient]:
    """TestClient wired to ``fake_store`` with a fresh, generous rate limiter."""
    app.dependency_overrides[get_store] = lambda: fake_store
    previous = app.state.rate_limiter
    app.state.rate_limiter = SlidingWindowRateLimiter(max_requests=1000, window_seconds=60)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        app.state.rate_limiter = previous
