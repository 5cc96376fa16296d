"""Supabase Auth (GoTrue) client over REST.

Holds the current session in memory and fans auth state events out to
listeners synchronously, in emission order. The OAuth flow is two-step:
sign_in_with_oauth returns the authorize URL to open, and the tokens the
provider redirects back with are handed to exchange_redirect.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from ems.application.dtos.auth import AuthSession, AuthStateEvent
from ems.application.interfaces.services import AuthStateListener, Unsubscribe
from ems.domain.enums import AuthEventType
from ems.domain.exceptions import AuthProviderException
from ems.infrastructure.supabase._rest_client import SupabaseRESTClient
from ems.schemas.auth import AuthTokenResponse, AuthUserResponse
from ems.shared.telemetry.tracing import traced
from ems.shared.utils.datetime import from_timestamp_utc, utc_now

logger = logging.getLogger(__name__)

_AUTH_PATH = "/auth/v1"


class SupabaseAuthClient:
    """IAuthProvider implementation backed by the GoTrue REST API."""

    def __init__(self, rest: SupabaseRESTClient, session: AuthSession | None = None) -> None:
        self._rest = rest
        self._session = session
        self._listeners: list[AuthStateListener] = []
        rest.use_access_token(self.access_token)

    def access_token(self) -> str | None:
        """Bearer token of the held session, if any."""
        return self._session.access_token if self._session else None

    def _url(self, path: str) -> str:
        return f"{self._rest.base_url}{_AUTH_PATH}{path}"

    def _headers(self, token: str | None = None) -> dict[str, str]:
        return {
            "apikey": self._rest.anon_key,
            "Authorization": f"Bearer {token or self._rest.anon_key}",
            "Content-Type": "application/json",
        }

    async def _call(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        token: str | None = None,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        try:
            resp = await self._rest.http.request(
                method, self._url(path), headers=self._headers(token), params=params, json=body
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise AuthProviderException(
                operation, f"HTTP {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise AuthProviderException(operation, str(e) or e.__class__.__name__) from e
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise AuthProviderException(operation, f"invalid JSON response: {e}") from e

    def _emit(self, event_type: AuthEventType) -> None:
        event = AuthStateEvent(type=event_type, session=self._session)
        logger.info("Auth event %s", event_type.value)
        for listener in list(self._listeners):
            listener(event)

    def on_auth_state_change(self, callback: AuthStateListener) -> Unsubscribe:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def get_session(self) -> AuthSession | None:
        """Return the held session, refreshing it first when its token has expired."""
        session = self._session
        if session is None:
            return None
        if session.is_expired(utc_now()):
            if not session.refresh_token:
                logger.info("Session expired without refresh token; dropping it")
                self._session = None
                return None
            return await self.refresh_session()
        return session

    @traced("auth.refresh_session")
    async def refresh_session(self) -> AuthSession:
        """Trade the refresh token for a new session and emit TOKEN_REFRESHED."""
        if self._session is None or not self._session.refresh_token:
            raise AuthProviderException("refresh session", "no refresh token")
        data = await self._call(
            "refresh session",
            "POST",
            "/token",
            params={"grant_type": "refresh_token"},
            body={"refresh_token": self._session.refresh_token},
        )
        self._session = self._parse_tokens(data)
        self._emit(AuthEventType.TOKEN_REFRESHED)
        return self._session

    @traced("auth.exchange_redirect")
    async def exchange_redirect(
        self,
        access_token: str,
        refresh_token: str | None = None,
        expires_in: int | None = None,
        expires_at: int | None = None,
    ) -> AuthSession:
        """Adopt the tokens from an OAuth redirect and emit SIGNED_IN.

        Args:
            access_token: Token from the redirect fragment.
            refresh_token: Refresh token from the redirect fragment.
            expires_in: Lifetime in seconds, if given.
            expires_at: Absolute expiry (epoch seconds), if given.

        Returns:
            The new session.
        """
        user = await self._call("fetch user", "GET", "/user", token=access_token)
        try:
            identity = AuthUserResponse.model_validate(user).to_identity()
        except ValidationError as e:
            raise AuthProviderException("fetch user", "malformed user response") from e
        if expires_at is not None:
            expires = from_timestamp_utc(expires_at)
        elif expires_in is not None:
            expires = from_timestamp_utc(utc_now().timestamp() + expires_in)
        else:
            expires = None
        self._session = AuthSession(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires,
            identity=identity,
        )
        self._emit(AuthEventType.SIGNED_IN)
        return self._session

    async def sign_in_with_oauth(
        self,
        provider: str,
        redirect_to: str,
        query_params: dict[str, str] | None = None,
    ) -> str:
        params = {"provider": provider, "redirect_to": redirect_to, **(query_params or {})}
        url = f"{self._url('/authorize')}?{urlencode(params)}"
        logger.info("OAuth sign-in started with %s", provider)
        return url

    @traced("auth.sign_out")
    async def sign_out(self) -> None:
        """Revoke the session server-side, then drop it and emit SIGNED_OUT.

        On failure the session is kept and AuthProviderException propagates.
        """
        if self._session is not None:
            await self._call(
                "sign out", "POST", "/logout", token=self._session.access_token
            )
        self._session = None
        self._emit(AuthEventType.SIGNED_OUT)

    def _parse_tokens(self, data: Any) -> AuthSession:
        try:
            return AuthTokenResponse.model_validate(data).to_session()
        except ValidationError as e:
            raise AuthProviderException("refresh session", "malformed token response") from e
