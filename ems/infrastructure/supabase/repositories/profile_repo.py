"""Supabase-backed profile repository (implements IProfileRepository)."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from ems.core.constants import TABLE_USERS
from ems.domain.entities.profile import Profile
from ems.domain.enums import Role
from ems.domain.exceptions import PersistenceException
from ems.infrastructure.supabase._rest_client import SupabaseRESTClient, eq
from ems.schemas.profile import ProfileRow
from ems.shared.telemetry.tracing import traced
from ems.shared.utils.datetime import utc_now


def _to_entity(row: dict[str, Any]) -> Profile:
    try:
        return ProfileRow.model_validate(row).to_entity()
    except ValidationError as e:
        raise PersistenceException("read profile", f"malformed row: {e.error_count()} errors") from e


class SupabaseProfileRepository:
    """Profile repository over the users table."""

    def __init__(self, client: SupabaseRESTClient) -> None:
        self._client = client

    @traced("profiles.fetch_by_auth_id")
    async def fetch_by_auth_id(self, auth_id: str) -> Profile | None:
        """Return the profile for auth_id, or None when the row does not exist yet."""
        rows = await self._client.select(
            TABLE_USERS, filters={"auth_id": eq(auth_id)}, limit=1
        )
        if not rows:
            return None
        return _to_entity(rows[0])

    async def fetch_by_user_id(self, user_id: str) -> Profile | None:
        rows = await self._client.select(
            TABLE_USERS, filters={"user_id": eq(user_id)}, limit=1
        )
        return _to_entity(rows[0]) if rows else None

    @traced("profiles.update")
    async def update(self, auth_id: str, fields: dict[str, Any]) -> None:
        """Write partial fields; raise PersistenceException if no row matched."""
        payload = {**fields, "updated_at": utc_now().isoformat()}
        updated = await self._client.update(
            TABLE_USERS, payload, filters={"auth_id": eq(auth_id)}
        )
        if not updated:
            raise PersistenceException("update profile", f"no profile for {auth_id}")

    async def list_profiles(self, role: Role | None = None) -> list[Profile]:
        filters = {"role": eq(role.value)} if role else None
        rows = await self._client.select(
            TABLE_USERS, filters=filters, order="created_at.desc"
        )
        return [_to_entity(row) for row in rows]

    @traced("profiles.update_role")
    async def update_role(
        self, user_id: str, role: Role, organizer_code: str | None = None
    ) -> None:
        fields = {"role": role.value, "updated_at": utc_now().isoformat()}
        if organizer_code:
            fields["organizer_code"] = organizer_code
        updated = await self._client.update(
            TABLE_USERS,
            fields,
            filters={"user_id": eq(user_id)},
        )
        if not updated:
            raise PersistenceException("update role", f"no profile with id {user_id}")
