"""Shared pytest fixtures for elicznik-bridge tests."""

from __future__ import annotations

from typing import Generator

import pytest

from elicznik_bridge.clients.tauron import ClientConfig, MemorySessionStore, RateLimiter
from elicznik_bridge.config import reset_settings
from portal_fakes import FakePortalClient


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def clean_env(monkeypatch) -> None:
    """Remove all bridge env vars for isolated testing."""
    env_vars = [
        "TAURON_LOGIN_URL",
        "TAURON_SERVICE_URL",
        "TAURON_USER_AGENT",
        "TAURON_CONNECT_TIMEOUT",
        "TAURON_READ_TIMEOUT",
        "TAURON_THROTTLE_SECONDS",
        "TAURON_TIMEZONE",
        "TAURON_USERNAME",
        "TAURON_PASSWORD",
        "TAURON_METER",
        "BRIDGE_COOKIE_DIR",
        "BRIDGE_OUTPUT_DIR",
        "BRIDGE_COOKIE_SALT",
    ]
    for var in env_vars:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def portal() -> FakePortalClient:
    return FakePortalClient()


@pytest.fixture
def client_config() -> ClientConfig:
    """Production endpoints without throttling."""
    return ClientConfig(throttle_seconds=0.0)


@pytest.fixture
def memory_store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def no_throttle() -> RateLimiter:
    return RateLimiter(0)


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset settings cache between tests to ensure isolation."""
    reset_settings()
    yield
    reset_settings()
