"""Client session lifespan: wiring, startup and shutdown.

Single place for all startup/shutdown logic (SRP). No business logic
here, only wiring of infrastructure (HTTP client, Supabase adapters,
cache, telemetry) into the resolver and services.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, AsyncIterator

import httpx

from ems.application.interfaces.repositories import (
    IEventRepository,
    IParticipantRepository,
    IProfileRepository,
)
from ems.application.interfaces.services import IAuthProvider, INotificationService
from ems.application.services.catalog_service import EventCatalogService
from ems.application.services.session_resolver import SessionResolver
from ems.application.services.user_admin_service import UserAdminService
from ems.core.config import Settings, get_settings
from ems.infrastructure.cache.memory_cache import MemoryCache
from ems.shared.telemetry.logging import get_logger, setup_logging

if TYPE_CHECKING:
    from ems.infrastructure.supabase._rest_client import SupabaseRESTClient

logger = get_logger(__name__)


@dataclass
class ClientSession:
    """Everything one signed-in client needs, sharing one cache."""

    settings: Settings
    cache: MemoryCache
    resolver: SessionResolver
    catalog: EventCatalogService
    users: UserAdminService

    async def reset(self) -> None:
        """Drop cached data, restart the cache window and re-resolve the session."""
        logger.info("Client session reset")
        self.cache.reset()
        await self.resolver.reset()

    async def ensure_fresh(self) -> bool:
        """Reset when the cache window has elapsed; return True if a reset ran."""
        if not self.cache.is_expired():
            return False
        logger.info("Cache window of %ss elapsed", self.cache.lifetime_seconds)
        await self.reset()
        return True

    async def sign_out(self) -> None:
        """Sign out, then clear cached data. Raises AuthProviderException on failure."""
        await self.resolver.sign_out()
        self.cache.clear()


def _build_notifications(
    settings: Settings, rest: SupabaseRESTClient | None
) -> INotificationService | None:
    if not settings.notifications_enabled:
        return None
    from ems.infrastructure.external.email import (
        EmailNotificationService,
        LogOnlyNotificationService,
    )

    if settings.notification_backend == "log" or rest is None:
        return LogOnlyNotificationService(app_name=settings.app_display_name)
    return EmailNotificationService(
        rest,
        function_name=settings.email_function_name,
        api_url=settings.email_api_url,
        app_name=settings.app_display_name,
    )


@asynccontextmanager
async def create_client_session(
    settings: Settings | None = None,
    *,
    auth: IAuthProvider | None = None,
    profiles: IProfileRepository | None = None,
    events: IEventRepository | None = None,
    participants: IParticipantRepository | None = None,
    notifications: INotificationService | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncIterator[ClientSession]:
    """Build and start a client session; on exit stop it and release resources.

    Any boundary passed in is used as is; the rest are Supabase adapters
    built from settings (which then require EMS_SUPABASE_URL and
    EMS_SUPABASE_ANON_KEY).

    Startup order: logging, telemetry (if enabled), HTTP client, adapters, resolver
    start. Shutdown order: resolver stop, HTTP client close, telemetry shutdown.
    """
    settings = settings or get_settings()

    # ---- Startup ----
    setup_logging(settings)
    if settings.telemetry_enabled:
        from ems.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

        telemetry = TelemetryConfig(
            service_name=settings.app_name,
            service_version=settings.app_version,
            enabled=True,
            environment=settings.telemetry_environment,
        )
        telemetry.setup_telemetry(
            exporter_type=settings.telemetry_exporter,
            otlp_endpoint=settings.telemetry_otlp_endpoint,
            sample_rate=settings.telemetry_sample_rate,
        )
        set_telemetry(telemetry)
        logger.info("Telemetry initialized")

    rest = None
    needs_email = (
        notifications is None
        and settings.notifications_enabled
        and settings.notification_backend == "email"
    )
    if needs_email or None in (auth, profiles, events, participants):
        from ems.infrastructure.supabase import (
            SupabaseAuthClient,
            SupabaseEventRepository,
            SupabaseParticipantRepository,
            SupabaseProfileRepository,
            SupabaseRESTClient,
        )

        rest = SupabaseRESTClient.from_settings(settings, http_client=http_client)
        auth = auth or SupabaseAuthClient(rest)
        profiles = profiles or SupabaseProfileRepository(rest)
        events = events or SupabaseEventRepository(rest)
        participants = participants or SupabaseParticipantRepository(rest)
    if notifications is None:
        notifications = _build_notifications(settings, rest)

    cache = MemoryCache(lifetime_seconds=settings.cache_lifetime_seconds)
    resolver = SessionResolver(auth, profiles, notifications, settings)
    session = ClientSession(
        settings=settings,
        cache=cache,
        resolver=resolver,
        catalog=EventCatalogService(events, participants, cache),
        users=UserAdminService(profiles, cache),
    )
    try:
        await resolver.start()
        logger.info("Client session started (status=%s)", resolver.status.value)
        yield session
    finally:
        # ---- Shutdown ----
        await resolver.stop()
        if rest is not None:
            await rest.aclose()
            logger.info("Supabase HTTP client closed")
        from ems.shared.telemetry.telemetry import get_telemetry, set_telemetry

        telemetry_instance = get_telemetry()
        if telemetry_instance is not None:
            telemetry_instance.shutdown()
            set_telemetry(None)
            logger.info("Telemetry shutdown complete")
