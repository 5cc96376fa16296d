"""SessionResolver: ordered auth events, shared fetches, stale results and writes."""

import asyncio
from datetime import timedelta

import pytest

from ems.domain.enums import AuthEventType, Role, SessionStatus
from ems.domain.exceptions import (
    AuthProviderException,
    AuthorizationException,
    NotAuthenticatedException,
    PersistenceException,
    ProfileNotFoundException,
    ValidationException,
)
from tests.fakes import NOW, make_identity, make_profile, make_session


async def _spin(times: int = 20) -> None:
    for _ in range(times):
        await asyncio.sleep(0)


class TestStartup:
    @pytest.mark.asyncio
    async def test_no_session_is_unauthenticated(self, resolver) -> None:
        snap = await resolver.start()
        assert snap.status == SessionStatus.UNAUTHENTICATED
        assert resolver.get_current_identity() is None
        assert resolver.get_current_profile() is None

    @pytest.mark.asyncio
    async def test_existing_session_resolves_profile_without_notice(
        self, resolver, auth, profiles, notifier
    ) -> None:
        auth.session = make_session()
        profiles.profiles["auth-1"] = make_profile(role=Role.ORGANIZER)
        snap = await resolver.start()
        assert snap.status == SessionStatus.RESOLVING_PROFILE
        assert snap.identity.subject_id == "auth-1"

        snap = await resolver.wait_until_settled()
        assert snap.is_authenticated
        assert snap.role == Role.ORGANIZER
        assert resolver.has_role(Role.ORGANIZER, Role.ADMIN)
        assert notifier.welcome == [] and notifier.login == []

    @pytest.mark.asyncio
    async def test_session_lookup_failure_is_error_state(self, resolver, auth) -> None:
        auth.session_error = AuthProviderException("get_session", "offline")
        snap = await resolver.start()
        assert snap.status == SessionStatus.ERROR
        assert snap.error.error_code == "AUTH_PROVIDER_ERROR"

    @pytest.mark.asyncio
    async def test_unexpected_lookup_error_is_error_state(self, resolver, auth) -> None:
        auth.session_error = RuntimeError("connection refused")
        await resolver.start()
        snap = await resolver.wait_until_settled()
        assert snap.status == SessionStatus.ERROR
        assert isinstance(snap.error, AuthProviderException)
        assert "connection refused" in snap.error.message
        assert snap.identity is None and snap.profile is None

    @pytest.mark.asyncio
    async def test_fetch_failure_is_error_state(self, resolver, auth, profiles) -> None:
        auth.session = make_session()
        profiles.fetch_error = RuntimeError("connection reset")
        await resolver.start()
        snap = await resolver.wait_until_settled()
        assert snap.status == SessionStatus.ERROR
        assert isinstance(snap.error, PersistenceException)
        assert snap.identity is not None and snap.profile is None


class TestSharedFetch:
    @pytest.mark.asyncio
    async def test_concurrent_resolutions_share_one_fetch(self, resolver, profiles) -> None:
        profiles.profiles["auth-1"] = make_profile()
        gate = profiles.block("auth-1")
        identity = make_identity()
        first = asyncio.create_task(resolver.resolve_profile(identity))
        second = asyncio.create_task(resolver.resolve_profile(identity))
        await _spin()
        gate.set()
        assert await first == await second
        assert profiles.fetch_calls["auth-1"] == 1

    @pytest.mark.asyncio
    async def test_duplicate_events_for_same_user_fetch_once(
        self, resolver, auth, profiles
    ) -> None:
        profiles.profiles["auth-1"] = make_profile()
        gate = profiles.block("auth-1")
        await resolver.start()
        session = make_session()
        auth.emit(AuthEventType.SIGNED_IN, session)
        auth.emit(AuthEventType.SIGNED_IN, session)
        auth.emit(AuthEventType.TOKEN_REFRESHED, session)
        await _spin()
        gate.set()
        snap = await resolver.wait_until_settled()
        assert snap.status == SessionStatus.AUTHENTICATED
        assert profiles.fetch_calls["auth-1"] == 1


class TestStaleResults:
    @pytest.mark.asyncio
    async def test_result_for_replaced_identity_is_discarded(
        self, resolver, auth, profiles, notifier
    ) -> None:
        profiles.profiles["auth-a"] = make_profile("auth-a", Role.ADMIN)
        profiles.profiles["auth-b"] = make_profile("auth-b", Role.VISITOR)
        gate_a = profiles.block("auth-a")
        await resolver.start()

        auth.emit(AuthEventType.SIGNED_IN, make_session(make_identity("auth-a")))
        await _spin()
        auth.emit(AuthEventType.SIGNED_OUT)
        auth.emit(AuthEventType.SIGNED_IN, make_session(make_identity("auth-b")))
        await _spin()
        assert resolver.get_current_profile().auth_id == "auth-b"

        gate_a.set()
        snap = await resolver.wait_until_settled()
        assert snap.profile.auth_id == "auth-b"
        assert snap.role == Role.VISITOR
        assert [email for email, _ in notifier.login] == ["auth-b@example.com"]

    @pytest.mark.asyncio
    async def test_result_after_sign_out_is_discarded(self, resolver, auth, profiles) -> None:
        profiles.profiles["auth-1"] = make_profile()
        gate = profiles.block("auth-1")
        await resolver.start()
        auth.emit(AuthEventType.SIGNED_IN, make_session())
        await _spin()
        auth.emit(AuthEventType.SIGNED_OUT)
        await _spin()
        gate.set()
        snap = await resolver.wait_until_settled()
        assert snap.status == SessionStatus.UNAUTHENTICATED
        assert snap.profile is None


class TestNewIdentityRace:
    @pytest.mark.asyncio
    async def test_sign_in_retries_until_row_appears(
        self, resolver, auth, profiles, sleep
    ) -> None:
        profiles.profiles["auth-1"] = make_profile(last_login_at=None)
        profiles.missing_for["auth-1"] = 2
        await resolver.start()
        auth.emit(AuthEventType.SIGNED_IN, make_session())
        snap = await resolver.wait_until_settled()
        assert snap.status == SessionStatus.AUTHENTICATED
        assert profiles.fetch_calls["auth-1"] == 3
        assert sleep.calls == [1.0, 1.0, 1.0]

    @pytest.mark.asyncio
    async def test_retries_exhausted_is_recoverable_not_found(
        self, resolver, auth, profiles
    ) -> None:
        profiles.missing_for["auth-1"] = 99
        await resolver.start()
        auth.emit(AuthEventType.SIGNED_IN, make_session())
        snap = await resolver.wait_until_settled()
        assert snap.status == SessionStatus.ERROR
        assert isinstance(snap.error, ProfileNotFoundException)
        assert snap.error.recoverable
        assert profiles.fetch_calls["auth-1"] == 4

    @pytest.mark.asyncio
    async def test_old_identity_without_row_fails_immediately(
        self, resolver, auth, profiles
    ) -> None:
        auth.session = make_session()
        await resolver.start()
        snap = await resolver.wait_until_settled()
        assert snap.status == SessionStatus.ERROR
        assert not snap.error.recoverable
        assert profiles.fetch_calls["auth-1"] == 1

    @pytest.mark.asyncio
    async def test_recently_created_identity_is_tolerated_on_startup(
        self, resolver, auth, profiles
    ) -> None:
        identity = make_identity(created_at=NOW - timedelta(seconds=20))
        auth.session = make_session(identity)
        profiles.profiles["auth-1"] = make_profile()
        profiles.missing_for["auth-1"] = 1
        await resolver.start()
        snap = await resolver.wait_until_settled()
        assert snap.status == SessionStatus.AUTHENTICATED
        assert profiles.fetch_calls["auth-1"] == 2


class TestSignInNotices:
    @pytest.mark.asyncio
    async def test_first_login_sends_welcome_and_records_login(
        self, resolver, auth, profiles, notifier
    ) -> None:
        profiles.profiles["auth-1"] = make_profile(full_name="Alice", last_login_at=None)
        await resolver.start()
        auth.emit(AuthEventType.SIGNED_IN, make_session())
        snap = await resolver.wait_until_settled()
        assert notifier.welcome == [("auth-1@example.com", "Alice")]
        assert notifier.login == []
        assert profiles.updates[-1] == ("auth-1", {"last_login_at": NOW.isoformat()})
        assert snap.profile.last_login_at == NOW

    @pytest.mark.asyncio
    async def test_returning_user_gets_login_notice(
        self, resolver, auth, profiles, notifier
    ) -> None:
        profiles.profiles["auth-1"] = make_profile()
        await resolver.start()
        auth.emit(AuthEventType.SIGNED_IN, make_session())
        await resolver.wait_until_settled()
        assert len(notifier.login) == 1
        assert notifier.welcome == []

    @pytest.mark.asyncio
    async def test_notifier_failure_is_swallowed(
        self, resolver, auth, profiles, notifier
    ) -> None:
        profiles.profiles["auth-1"] = make_profile()
        notifier.error = RuntimeError("smtp down")
        await resolver.start()
        auth.emit(AuthEventType.SIGNED_IN, make_session())
        snap = await resolver.wait_until_settled()
        assert snap.status == SessionStatus.AUTHENTICATED
        assert profiles.updates


class TestProfileWrites:
    @pytest.mark.asyncio
    async def test_role_update_applies_after_write(self, resolver, auth, profiles) -> None:
        auth.session = make_session()
        profiles.profiles["auth-1"] = make_profile(role=Role.VISITOR)
        await resolver.start()
        await resolver.wait_until_settled()
        await resolver.update_profile_role("organizer")
        assert resolver.get_current_profile().role == Role.ORGANIZER
        assert profiles.updates[-1] == ("auth-1", {"role": "organizer"})

    @pytest.mark.asyncio
    async def test_role_update_failure_leaves_profile_unchanged(
        self, resolver, auth, profiles
    ) -> None:
        auth.session = make_session()
        profiles.profiles["auth-1"] = make_profile(role=Role.VISITOR)
        await resolver.start()
        await resolver.wait_until_settled()
        profiles.update_error = PersistenceException("update profile", "timeout")
        with pytest.raises(PersistenceException):
            await resolver.update_profile_role(Role.ORGANIZER)
        assert resolver.get_current_profile().role == Role.VISITOR
        assert resolver.status == SessionStatus.AUTHENTICATED

    @pytest.mark.asyncio
    async def test_non_admin_cannot_self_promote_to_admin(
        self, resolver, auth, profiles
    ) -> None:
        auth.session = make_session()
        profiles.profiles["auth-1"] = make_profile(role=Role.ORGANIZER)
        await resolver.start()
        await resolver.wait_until_settled()
        with pytest.raises(AuthorizationException) as exc_info:
            await resolver.update_profile_role(Role.ADMIN)
        assert exc_info.value.details == {"action": "update_profile_role", "role": "organizer"}
        assert profiles.updates == []
        assert resolver.get_current_profile().role == Role.ORGANIZER

    @pytest.mark.asyncio
    async def test_admin_may_switch_to_any_role(self, resolver, auth, profiles) -> None:
        auth.session = make_session()
        profiles.profiles["auth-1"] = make_profile(role=Role.ADMIN)
        await resolver.start()
        await resolver.wait_until_settled()
        await resolver.update_profile_role("visitor")
        assert resolver.get_current_profile().role == Role.VISITOR
        with pytest.raises(AuthorizationException):
            await resolver.update_profile_role(Role.ADMIN)

    @pytest.mark.asyncio
    async def test_unknown_role_rejected(self, resolver, auth, profiles) -> None:
        auth.session = make_session()
        profiles.profiles["auth-1"] = make_profile()
        await resolver.start()
        await resolver.wait_until_settled()
        with pytest.raises(ValidationException) as exc_info:
            await resolver.update_profile_role("superuser")
        assert exc_info.value.details == {"field": "role"}
        assert profiles.updates == []

    @pytest.mark.asyncio
    async def test_write_without_profile_raises(self, resolver) -> None:
        await resolver.start()
        with pytest.raises(NotAuthenticatedException):
            await resolver.update_profile_role(Role.ADMIN)

    @pytest.mark.asyncio
    async def test_update_fields(self, resolver, auth, profiles) -> None:
        auth.session = make_session()
        profiles.profiles["auth-1"] = make_profile()
        await resolver.start()
        await resolver.wait_until_settled()
        await resolver.update_profile_fields({"full_name": "Alice Smith", "phone": "017"})
        profile = resolver.get_current_profile()
        assert profile.full_name == "Alice Smith"
        assert profile.phone == "017"

    @pytest.mark.asyncio
    async def test_update_fields_rejects_unknown_field(self, resolver, auth, profiles) -> None:
        auth.session = make_session()
        profiles.profiles["auth-1"] = make_profile()
        await resolver.start()
        await resolver.wait_until_settled()
        with pytest.raises(ValidationException):
            await resolver.update_profile_fields({"role": "admin"})
        assert profiles.updates == []


class TestSignOut:
    @pytest.mark.asyncio
    async def test_sign_out_clears_state(self, resolver, auth, profiles) -> None:
        auth.session = make_session()
        profiles.profiles["auth-1"] = make_profile()
        await resolver.start()
        await resolver.wait_until_settled()
        await resolver.sign_out()
        assert resolver.status == SessionStatus.UNAUTHENTICATED
        assert resolver.get_current_identity() is None
        assert resolver.get_current_profile() is None

    @pytest.mark.asyncio
    async def test_sign_out_failure_keeps_state(self, resolver, auth, profiles) -> None:
        auth.session = make_session()
        profiles.profiles["auth-1"] = make_profile()
        await resolver.start()
        await resolver.wait_until_settled()
        auth.sign_out_error = RuntimeError("network down")
        with pytest.raises(AuthProviderException):
            await resolver.sign_out()
        assert resolver.status == SessionStatus.AUTHENTICATED
        assert resolver.get_current_profile().auth_id == "auth-1"


class TestListenersAndReset:
    @pytest.mark.asyncio
    async def test_listener_sees_transitions_until_unsubscribed(
        self, resolver, auth, profiles
    ) -> None:
        seen = []
        unsubscribe = resolver.subscribe(lambda snap: seen.append(snap.status))
        profiles.profiles["auth-1"] = make_profile()
        await resolver.start()
        auth.emit(AuthEventType.SIGNED_IN, make_session())
        await resolver.wait_until_settled()
        assert seen[0] == SessionStatus.RESOLVING_SESSION
        assert SessionStatus.AUTHENTICATED in seen
        unsubscribe()
        count = len(seen)
        auth.emit(AuthEventType.SIGNED_OUT)
        await resolver.wait_until_settled()
        assert len(seen) == count

    @pytest.mark.asyncio
    async def test_reset_resolves_again(self, resolver, auth, profiles) -> None:
        auth.session = make_session()
        profiles.profiles["auth-1"] = make_profile(role=Role.VISITOR)
        await resolver.start()
        await resolver.wait_until_settled()
        profiles.profiles["auth-1"] = make_profile(role=Role.ADMIN)
        await resolver.reset()
        snap = await resolver.wait_until_settled()
        assert snap.role == Role.ADMIN
        assert profiles.fetch_calls["auth-1"] == 2

    @pytest.mark.asyncio
    async def test_sign_in_with_oauth_uses_settings(self, resolver, auth, settings) -> None:
        url = await resolver.sign_in_with_oauth()
        assert url.startswith("https://auth.example.com/")
        provider, redirect_to, params = auth.oauth_calls[0]
        assert provider == settings.oauth_provider
        assert redirect_to == settings.oauth_redirect_url
        assert params == {"access_type": "offline", "prompt": "consent"}
