"""Pytest configuration and fixtures for the EMS client core.

All boundaries (auth provider, profile store, notifier, clocks) are
in-memory fakes from tests.fakes; no network access.
"""

import pytest

from ems.application.services.session_resolver import SessionResolver
from ems.core.config import Settings, get_settings
from ems.infrastructure.cache.memory_cache import MemoryCache
from tests.fakes import (
    NOW,
    FakeAuthProvider,
    FakeClock,
    FakeNotifier,
    FakeProfileRepository,
    FakeSleep,
)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Each test sees settings built from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings independent of any local .env file."""
    return Settings(_env_file=None, supabase_url="https://proj.supabase.co")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> MemoryCache:
    return MemoryCache(lifetime_seconds=1800, clock=clock)


@pytest.fixture
def auth() -> FakeAuthProvider:
    return FakeAuthProvider()


@pytest.fixture
def profiles() -> FakeProfileRepository:
    return FakeProfileRepository()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
async def resolver(auth, profiles, notifier, settings, sleep):
    """Unstarted resolver wired to fakes; stopped after the test."""
    r = SessionResolver(auth, profiles, notifier, settings, sleep=sleep, now=lambda: NOW)
    yield r
    await r.stop()
