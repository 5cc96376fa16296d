"""Settings validation and environment loading."""

import pytest
from pydantic import ValidationError

from ems.core.config import Settings, get_settings


def test_defaults() -> None:
    s = Settings(_env_file=None)
    assert s.cache_lifetime_seconds == 1800
    assert s.profile_not_found_retries == 3
    assert s.notification_backend == "email"
    assert s.supabase_anon_key.get_secret_value() == ""


def test_reads_prefixed_environment(monkeypatch) -> None:
    monkeypatch.setenv("EMS_SUPABASE_URL", "https://proj.supabase.co")
    monkeypatch.setenv("EMS_SUPABASE_ANON_KEY", "anon")
    monkeypatch.setenv("EMS_CACHE_LIFETIME_SECONDS", "60")
    s = get_settings()
    assert s.supabase_url == "https://proj.supabase.co"
    assert s.supabase_anon_key.get_secret_value() == "anon"
    assert s.cache_lifetime_seconds == 60
    assert get_settings() is s


@pytest.mark.parametrize(
    "overrides",
    [
        {"cache_lifetime_seconds": 0},
        {"profile_fetch_delay_seconds": -1},
        {"profile_not_found_retries": -1},
        {"notification_backend": "sms"},
        {"supabase_url": "proj.supabase.co"},
    ],
)
def test_invalid_values_rejected(overrides) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)
