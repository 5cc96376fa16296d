"""Client configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Cross-field rules (non-negative delays, notification
backend) are validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment and .env.

    Supabase connection values default to empty so the library can be
    constructed with injected fakes in tests; the Supabase adapters refuse
    to build without them (see SupabaseRESTClient.from_settings).
    """

    # App
    app_name: str = "ems"
    app_version: str = "1.0.0"
    app_display_name: str = "EMS-GUB"
    debug: bool = False

    # Supabase (auth, PostgREST tables, edge functions)
    supabase_url: str = ""
    supabase_anon_key: SecretStr = SecretStr("")
    http_timeout_seconds: float = 30.0

    # OAuth sign-in
    oauth_provider: str = "google"
    oauth_redirect_url: str = "http://localhost:5173/dashboard"

    # Client-side cache: one window for the whole store (30 minutes)
    cache_lifetime_seconds: float = 30 * 60

    # Profile resolution. New sign-ups get their profile row from a backend
    # trigger with some lag, so the first fetch waits and "no row" is retried.
    profile_fetch_delay_seconds: float = 1.0
    profile_not_found_retries: int = 3
    profile_retry_delay_seconds: float = 1.0
    new_identity_window_seconds: float = 300.0

    # Notifications: "email" (edge function + optional API fallback) or "log"
    notifications_enabled: bool = True
    notification_backend: str = "email"
    email_function_name: str = "send-email"
    email_api_url: str | None = None

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_prefix="EMS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_timings_and_backends(self) -> "Settings":
        """Validate timing values and notification backend.

        - Cache lifetime must be positive.
        - Profile delays, retry count and identity window must not be negative.
        - notification_backend must be 'email' or 'log'.
        """
        if self.cache_lifetime_seconds <= 0:
            raise ValueError(
                f"cache_lifetime_seconds must be positive, got: {self.cache_lifetime_seconds!r}"
            )
        for name in (
            "profile_fetch_delay_seconds",
            "profile_retry_delay_seconds",
            "new_identity_window_seconds",
            "profile_not_found_retries",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.notification_backend not in ("email", "log"):
            raise ValueError(
                f"notification_backend must be 'email' or 'log', got: {self.notification_backend!r}"
            )
        if self.supabase_url and not self.supabase_url.startswith(("http://", "https://")):
            raise ValueError(
                "EMS_SUPABASE_URL must be an http(s) URL, e.g. https://<project>.supabase.co"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached client settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
