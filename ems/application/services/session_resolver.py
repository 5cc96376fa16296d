"""Session/profile resolver: who is logged in and what their role is.

Reconciles the auth provider's asynchronous event stream with the
application profile. Events are published onto one ordered channel
(asyncio.Queue) and handled by a single consumer task, so identity
transitions happen strictly in arrival order. Profile fetches run as
separate tasks (one per identity, de-duplicated) and are applied only if
the resolution they were started for is still the current one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from ems.application.dtos.auth import AuthIdentity, AuthStateEvent
from ems.application.dtos.session import SessionSnapshot
from ems.application.interfaces.repositories import IProfileRepository
from ems.application.interfaces.services import (
    IAuthProvider,
    INotificationService,
    Unsubscribe,
)
from ems.application.services.authorization import SELF_SERVICE_ROLES, check_role
from ems.core.config import Settings, get_settings
from ems.domain.entities.profile import Profile
from ems.domain.enums import AuthEventType, Role, SessionStatus
from ems.domain.exceptions import (
    AuthProviderException,
    AuthorizationException,
    EMSException,
    NotAuthenticatedException,
    PersistenceException,
    ProfileNotFoundException,
    ValidationException,
)
from ems.schemas.profile import ProfileUpdate
from ems.shared.telemetry.tracing import add_span_event, traced
from ems.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionSnapshot], None]

# Events that may start a profile resolution for an identity already held
# without a profile (e.g. after a failed fetch).
_RESOLVE_TRIGGERS = frozenset({AuthEventType.SIGNED_IN, AuthEventType.USER_UPDATED})


@dataclass
class _SessionLookup:
    """Channel item asking the consumer to (re)read the provider's session."""

    done: asyncio.Future[None] = field(
        default_factory=lambda: asyncio.get_running_loop().create_future()
    )


class SessionResolver:
    """Maintains the current identity and profile for one client session.

    Readers get snapshots (get_current_identity, get_current_profile,
    snapshot); all mutation goes through update_profile_role,
    update_profile_fields and sign_out.
    """

    def __init__(
        self,
        auth: IAuthProvider,
        profiles: IProfileRepository,
        notifications: INotificationService | None = None,
        settings: Settings | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the resolver in UNINITIALIZED state.

        Args:
            auth: Auth provider boundary (session lookup, event stream, sign-out).
            profiles: Profile data boundary.
            notifications: Optional welcome/login notification sender.
            settings: Timing settings; defaults to get_settings().
            sleep: Awaitable sleep; injectable for tests.
            now: UTC clock; injectable for tests.
        """
        self._auth = auth
        self._profiles = profiles
        self._notifications = notifications
        self._settings = settings or get_settings()
        self._sleep = sleep
        self._now = now

        self._status = SessionStatus.UNINITIALIZED
        self._identity: AuthIdentity | None = None
        self._profile: Profile | None = None
        self._error: EMSException | None = None
        # Bumped on every identity transition; fetch results from an older
        # generation are stale and discarded.
        self._generation = 0

        self._channel: asyncio.Queue[AuthStateEvent | _SessionLookup] = asyncio.Queue()
        self._consumer: asyncio.Task[None] | None = None
        self._unsubscribe: Unsubscribe | None = None
        self._inflight: dict[str, asyncio.Task[Profile | None]] = {}
        self._background: set[asyncio.Task[Any]] = set()
        self._listeners: list[SessionListener] = []

    # ---- Read side ----

    @property
    def status(self) -> SessionStatus:
        return self._status

    def get_current_identity(self) -> AuthIdentity | None:
        return self._identity

    def get_current_profile(self) -> Profile | None:
        return self._profile

    def snapshot(self) -> SessionSnapshot:
        """Return an immutable view of the current state."""
        return SessionSnapshot(
            status=self._status,
            identity=self._identity,
            profile=self._profile,
            error=self._error,
        )

    def has_role(self, *roles: Role) -> bool:
        """Return True if an authenticated profile holds one of roles."""
        return check_role(self._profile, *roles)

    def subscribe(self, listener: SessionListener) -> Unsubscribe:
        """Call listener with a snapshot after every state change; return unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---- Lifecycle ----

    async def start(self) -> SessionSnapshot:
        """Subscribe to auth events and resolve the existing session.

        Returns once the session lookup is done; the profile may still be
        resolving (status RESOLVING_PROFILE).
        """
        if self._consumer is not None:
            return self.snapshot()
        lookup = _SessionLookup()
        self._channel.put_nowait(lookup)
        self._unsubscribe = self._auth.on_auth_state_change(self._channel.put_nowait)
        self._consumer = asyncio.create_task(self._consume(), name="ems-auth-events")
        await lookup.done
        return self.snapshot()

    async def reset(self) -> SessionSnapshot:
        """Discard identity and profile and resolve the session again from the provider."""
        if self._consumer is None:
            return await self.start()
        lookup = _SessionLookup()
        self._channel.put_nowait(lookup)
        await lookup.done
        return self.snapshot()

    async def stop(self) -> None:
        """Unsubscribe from the provider and cancel all resolver tasks."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        tasks = [*self._background, *self._inflight.values()]
        if self._consumer is not None:
            tasks.append(self._consumer)
            self._consumer = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._background.clear()
        self._inflight.clear()

    async def wait_until_settled(self) -> SessionSnapshot:
        """Wait until queued events, profile resolutions and notifications are done."""
        while True:
            if self._consumer is not None:
                await self._channel.join()
            pending = list(self._background)
            if not pending and (self._consumer is None or self._channel.empty()):
                return self.snapshot()
            await asyncio.gather(*pending, return_exceptions=True)

    # ---- Channel consumer ----

    async def _consume(self) -> None:
        while True:
            item = await self._channel.get()
            try:
                if isinstance(item, _SessionLookup):
                    await self._lookup_session(item)
                else:
                    self._handle_event(item)
            except Exception:
                logger.exception("Failed to process auth item %r", item)
            finally:
                self._channel.task_done()

    async def _lookup_session(self, lookup: _SessionLookup) -> None:
        try:
            self._generation += 1
            self._identity = None
            self._profile = None
            self._error = None
            self._set_status(SessionStatus.RESOLVING_SESSION)
            try:
                session = await self._auth.get_session()
            except EMSException as e:
                logger.error("Session lookup failed: %s", e.message)
                self._fail(e)
                return
            except Exception as e:
                logger.error("Session lookup failed: %s", e)
                self._fail(AuthProviderException("get_session", str(e) or e.__class__.__name__))
                return
            if session is None:
                logger.info("No existing session")
                self._set_status(SessionStatus.UNAUTHENTICATED)
                return
            self._begin_identity(
                session.identity,
                tolerate_missing=self._is_recent(session.identity),
                delay=0.0,
                notify=False,
            )
        finally:
            if not lookup.done.done():
                lookup.done.set_result(None)

    def _handle_event(self, event: AuthStateEvent) -> None:
        identity = event.identity
        logger.info(
            "Auth state changed: event=%s user=%s",
            event.type.value,
            identity.subject_id if identity else None,
        )
        if event.type == AuthEventType.SIGNED_OUT or identity is None:
            if self._identity is not None or self._status != SessionStatus.UNAUTHENTICATED:
                self._clear_identity()
            return

        current = self._identity
        if current is not None and current.subject_id == identity.subject_id:
            # Same login: token refresh or an overlapping duplicate notification.
            self._identity = identity
            if (
                self._profile is not None
                or self._status == SessionStatus.RESOLVING_PROFILE
                or identity.subject_id in self._inflight
            ):
                return
            if event.type not in _RESOLVE_TRIGGERS:
                return

        signed_in = event.type == AuthEventType.SIGNED_IN
        self._begin_identity(
            identity,
            tolerate_missing=signed_in or self._is_recent(identity),
            delay=self._settings.profile_fetch_delay_seconds if signed_in else 0.0,
            notify=signed_in,
        )

    # ---- Transitions ----

    def _begin_identity(
        self,
        identity: AuthIdentity,
        *,
        tolerate_missing: bool,
        delay: float,
        notify: bool,
    ) -> None:
        self._generation += 1
        self._identity = identity
        self._profile = None
        self._error = None
        self._set_status(SessionStatus.RESOLVING_PROFILE)
        self._spawn(
            self._resolve_and_apply(
                identity,
                self._generation,
                tolerate_missing=tolerate_missing,
                delay=delay,
                notify=notify,
            ),
            name=f"ems-resolve-{identity.subject_id}",
        )

    def _clear_identity(self) -> None:
        self._generation += 1
        self._identity = None
        self._profile = None
        self._error = None
        self._set_status(SessionStatus.UNAUTHENTICATED)

    def _fail(self, error: EMSException) -> None:
        self._error = error
        self._profile = None
        self._set_status(SessionStatus.ERROR)

    def _set_status(self, status: SessionStatus) -> None:
        previous = self._status
        self._status = status
        if previous != status:
            logger.info("Session state: %s -> %s", previous.value, status.value)
            add_span_event(
                "session.transition", {"from": previous.value, "to": status.value}
            )
        self._notify_listeners()

    def _notify_listeners(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener failed")

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and self._identity is not None

    def _is_recent(self, identity: AuthIdentity) -> bool:
        if identity.created_at is None:
            return False
        age = (self._now() - identity.created_at).total_seconds()
        return age <= self._settings.new_identity_window_seconds

    # ---- Profile resolution ----

    @traced("session.resolve_profile")
    async def resolve_profile(
        self,
        identity: AuthIdentity,
        *,
        tolerate_missing: bool = False,
        delay: float = 0.0,
    ) -> Profile | None:
        """Fetch the profile for identity, sharing any fetch already in flight.

        Args:
            identity: Identity whose profile to fetch.
            tolerate_missing: Retry while no row exists yet (new sign-up race).
            delay: Seconds to wait before the first fetch.

        Returns:
            The profile, or None if the identity was superseded while waiting
            for its row to appear.

        Raises:
            ProfileNotFoundException: No row (after retries, when tolerated).
            PersistenceException: The fetch failed.
        """
        task = self._inflight.get(identity.subject_id)
        if task is None:
            task = asyncio.ensure_future(
                self._fetch_profile(identity, tolerate_missing=tolerate_missing, delay=delay)
            )
            self._inflight[identity.subject_id] = task
            task.add_done_callback(
                lambda done: self._forget_fetch(identity.subject_id, done)
            )
        else:
            logger.debug("Joining in-flight profile fetch for %s", identity.subject_id)
        return await asyncio.shield(task)

    def _forget_fetch(self, subject_id: str, task: asyncio.Task[Profile | None]) -> None:
        if self._inflight.get(subject_id) is task:
            del self._inflight[subject_id]

    async def _fetch_profile(
        self, identity: AuthIdentity, *, tolerate_missing: bool, delay: float
    ) -> Profile | None:
        if delay > 0:
            await self._sleep(delay)
        attempts = 1 + (self._settings.profile_not_found_retries if tolerate_missing else 0)
        for attempt in range(1, attempts + 1):
            logger.debug("Fetching profile for user %s (attempt %d)", identity.subject_id, attempt)
            profile = await self._profiles.fetch_by_auth_id(identity.subject_id)
            if profile is not None:
                return profile
            if attempt == attempts:
                break
            logger.info(
                "Profile for %s not created yet; retrying in %ss (%d/%d)",
                identity.subject_id,
                self._settings.profile_retry_delay_seconds,
                attempt,
                attempts - 1,
            )
            await self._sleep(self._settings.profile_retry_delay_seconds)
            if self._identity is None or self._identity.subject_id != identity.subject_id:
                return None
        raise ProfileNotFoundException(identity.subject_id, recoverable=tolerate_missing)

    async def _resolve_and_apply(
        self,
        identity: AuthIdentity,
        generation: int,
        *,
        tolerate_missing: bool,
        delay: float,
        notify: bool,
    ) -> None:
        try:
            profile = await self.resolve_profile(
                identity, tolerate_missing=tolerate_missing, delay=delay
            )
        except Exception as e:
            error = (
                e if isinstance(e, EMSException)
                else PersistenceException("fetch_profile", str(e))
            )
            if self._is_current(generation):
                logger.error("Could not load profile for %s: %s", identity.subject_id, error.message)
                self._fail(error)
            else:
                logger.debug("Discarding failed fetch for superseded user %s", identity.subject_id)
            return

        if profile is None or not self._is_current(generation):
            logger.debug("Discarding stale profile for user %s", identity.subject_id)
            return
        if not profile.belongs_to(identity.subject_id):
            self._fail(ProfileNotFoundException(identity.subject_id))
            return
        self._profile = profile
        self._set_status(SessionStatus.AUTHENTICATED)
        if notify:
            self._spawn(
                self._record_sign_in(profile, generation),
                name=f"ems-sign-in-notice-{identity.subject_id}",
            )

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _record_sign_in(self, profile: Profile, generation: int) -> None:
        """Send the welcome or login notice, then persist last_login_at.

        Fire-and-forget: failures are logged and never reach the caller.
        """
        if self._notifications is not None and self._settings.notifications_enabled:
            try:
                if profile.is_first_login():
                    await self._notifications.send_welcome_notification(
                        profile.email, profile.display_name
                    )
                else:
                    await self._notifications.send_login_notification(
                        profile.email, profile.display_name
                    )
            except Exception:
                logger.exception("Sign-in notification failed for user %s", profile.auth_id)

        logged_in_at = self._now()
        try:
            await self._profiles.update(
                profile.auth_id, {"last_login_at": logged_in_at.isoformat()}
            )
        except Exception:
            logger.exception("Could not record login time for user %s", profile.auth_id)
            return
        if self._is_current(generation) and self._profile is not None:
            self._profile = self._profile.with_changes(last_login_at=logged_in_at)
            self._notify_listeners()

    # ---- Write side ----

    def _require_profile(self) -> tuple[AuthIdentity, Profile]:
        if (
            self._status != SessionStatus.AUTHENTICATED
            or self._identity is None
            or self._profile is None
        ):
            raise NotAuthenticatedException()
        return self._identity, self._profile

    async def _write_profile(self, operation: str, fields: dict[str, Any]) -> bool:
        """Persist fields for the current profile; return True if still current afterwards."""
        identity, _ = self._require_profile()
        generation = self._generation
        try:
            await self._profiles.update(identity.subject_id, fields)
        except PersistenceException:
            logger.warning("%s failed for user %s", operation, identity.subject_id)
            raise
        except Exception as e:
            logger.warning("%s failed for user %s: %s", operation, identity.subject_id, e)
            raise PersistenceException(operation, str(e)) from e
        return self._is_current(generation) and self._profile is not None

    @traced("session.update_profile_role")
    async def update_profile_role(self, role: Role | str) -> None:
        """Persist a role change, then update the local profile.

        Non-admins may only switch between organizer and visitor.

        Raises:
            ValidationException: role is not one of the closed set.
            NotAuthenticatedException: No authenticated profile.
            AuthorizationException: Role not open to self-service for the caller.
            PersistenceException: The write failed; local role unchanged.
        """
        try:
            new_role = Role(role)
        except ValueError:
            raise ValidationException(f"Unknown role: {role!r}", field="role") from None
        _, profile = self._require_profile()
        if new_role not in SELF_SERVICE_ROLES and not profile.has_role(Role.ADMIN):
            raise AuthorizationException(action="update_profile_role", role=profile.role.value)
        if await self._write_profile("update_profile_role", {"role": new_role.value}):
            self._profile = self._profile.with_changes(role=new_role)
            logger.info("Role for user %s set to %s", self._profile.auth_id, new_role.value)
            self._notify_listeners()

    @traced("session.update_profile_fields")
    async def update_profile_fields(self, update: ProfileUpdate | dict[str, Any]) -> None:
        """Persist editable profile fields, then update the local profile.

        Raises:
            ValidationException: Fields fail validation (unknown field, too long).
            NotAuthenticatedException: No authenticated profile.
            PersistenceException: The write failed; local profile unchanged.
        """
        if not isinstance(update, ProfileUpdate):
            try:
                update = ProfileUpdate.model_validate(update)
            except ValidationError as e:
                first = e.errors()[0]
                field_name = ".".join(str(p) for p in first.get("loc", ()))
                raise ValidationException(
                    first.get("msg", "Invalid profile fields"), field=field_name or None
                ) from e
        changes = update.changes()
        if not changes:
            self._require_profile()
            return
        if await self._write_profile("update_profile_fields", changes):
            self._profile = self._profile.with_changes(**changes)
            self._notify_listeners()

    @traced("session.sign_out")
    async def sign_out(self) -> None:
        """Ask the provider to end the session, then clear identity and profile.

        On failure the current identity and profile are left as they were.

        Raises:
            AuthProviderException: The provider could not sign out.
        """
        try:
            await self._auth.sign_out()
        except AuthProviderException:
            logger.warning("Sign-out failed; keeping current session")
            raise
        except Exception as e:
            logger.warning("Sign-out failed; keeping current session: %s", e)
            raise AuthProviderException("sign_out", str(e)) from e
        self._clear_identity()

    async def sign_in_with_oauth(
        self, provider: str | None = None, redirect_to: str | None = None
    ) -> str:
        """Start the OAuth redirect flow; return the authorize URL.

        The session appears later as a SIGNED_IN event on the channel.
        """
        return await self._auth.sign_in_with_oauth(
            provider or self._settings.oauth_provider,
            redirect_to or self._settings.oauth_redirect_url,
            {"access_type": "offline", "prompt": "consent"},
        )
