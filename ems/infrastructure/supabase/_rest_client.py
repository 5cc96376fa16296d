"""Thin Supabase REST client (PostgREST tables and edge functions).

Uses httpx.AsyncClient so no call blocks the event loop. Every request
carries the project's anon key as apikey and, once a user is signed in,
the user's access token as bearer so row-level security applies.
Transport and status failures surface as PersistenceException.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import httpx

from ems.core.config import Settings
from ems.domain.exceptions import ConfigurationException, PersistenceException

logger = logging.getLogger(__name__)

_REST_PATH = "/rest/v1"
_FUNCTIONS_PATH = "/functions/v1"


def eq(value: Any) -> str:
    """PostgREST equality filter value."""
    return f"eq.{value}"


async def _request_async(
    client: httpx.AsyncClient,
    url: str,
    operation: str,
    method: str = "GET",
    *,
    headers: dict[str, str],
    params: dict[str, str] | None = None,
    body: Any = None,
) -> Any:
    """Perform an async request and decode JSON. Empty bodies return None."""
    try:
        resp = await client.request(method, url, headers=headers, params=params, json=body)
        resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise PersistenceException(
            operation, f"HTTP {e.response.status_code}: {e.response.text[:200]}"
        ) from e
    except httpx.HTTPError as e:
        raise PersistenceException(operation, str(e) or e.__class__.__name__) from e
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError as e:
        raise PersistenceException(operation, f"invalid JSON response: {e}") from e


class SupabaseRESTClient:
    """Lightweight Supabase data client over REST (no supabase-py)."""

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        access_token: Callable[[], str | None] | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Project URL, e.g. https://<project>.supabase.co.
            anon_key: Public anon key sent as apikey.
            http_client: Optional shared client; closed only if we created it.
            timeout: Timeout for a client we create.
            access_token: Returns the signed-in user's token, if any.
        """
        self.base_url = base_url.rstrip("/")
        self._anon_key = anon_key
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=timeout)
        self._owns_http = http_client is None
        self._access_token = access_token or (lambda: None)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient | None = None,
        access_token: Callable[[], str | None] | None = None,
    ) -> SupabaseRESTClient:
        """Build from settings; raise ConfigurationException if URL or key is missing."""
        if not settings.supabase_url:
            raise ConfigurationException("EMS_SUPABASE_URL")
        anon_key = settings.supabase_anon_key.get_secret_value()
        if not anon_key:
            raise ConfigurationException("EMS_SUPABASE_ANON_KEY")
        return cls(
            settings.supabase_url,
            anon_key,
            http_client=http_client,
            timeout=settings.http_timeout_seconds,
            access_token=access_token,
        )

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http

    @property
    def anon_key(self) -> str:
        return self._anon_key

    def use_access_token(self, provider: Callable[[], str | None]) -> None:
        """Attach the source of the user's bearer token (the auth client)."""
        self._access_token = provider

    async def aclose(self) -> None:
        """Close the HTTP client only if we created it (do not close injected client)."""
        if self._owns_http:
            await self._http.aclose()

    def headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        token = self._access_token() or self._anon_key
        headers = {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    async def select(
        self,
        table: str,
        *,
        filters: dict[str, str] | None = None,
        order: str | None = None,
        columns: str = "*",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """GET rows from table. filters use PostgREST syntax (see eq)."""
        params = {"select": columns, **(filters or {})}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        rows = await _request_async(
            self._http,
            f"{self.base_url}{_REST_PATH}/{table}",
            f"select {table}",
            headers=self.headers(),
            params=params,
        )
        return rows or []

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """POST one row and return it as stored."""
        rows = await _request_async(
            self._http,
            f"{self.base_url}{_REST_PATH}/{table}",
            f"insert into {table}",
            "POST",
            headers=self.headers({"Prefer": "return=representation"}),
            body=row,
        )
        if not rows:
            raise PersistenceException(f"insert into {table}", "no row returned")
        return rows[0] if isinstance(rows, list) else rows

    async def update(
        self, table: str, fields: dict[str, Any], *, filters: dict[str, str]
    ) -> int:
        """PATCH matching rows; return how many were updated."""
        rows = await _request_async(
            self._http,
            f"{self.base_url}{_REST_PATH}/{table}",
            f"update {table}",
            "PATCH",
            headers=self.headers({"Prefer": "return=representation"}),
            params=filters,
            body=fields,
        )
        return len(rows or [])

    async def delete(self, table: str, *, filters: dict[str, str]) -> int:
        """DELETE matching rows; return how many were removed."""
        rows = await _request_async(
            self._http,
            f"{self.base_url}{_REST_PATH}/{table}",
            f"delete from {table}",
            "DELETE",
            headers=self.headers({"Prefer": "return=representation"}),
            params=filters,
        )
        return len(rows or [])

    async def invoke_function(self, name: str, body: dict[str, Any]) -> Any:
        """POST to an edge function and return its JSON reply."""
        logger.debug("Invoking edge function %s", name)
        return await _request_async(
            self._http,
            f"{self.base_url}{_FUNCTIONS_PATH}/{name}",
            f"invoke function {name}",
            "POST",
            headers=self.headers(),
            body=body,
        )
