"""Supabase-backed participant repository (implements IParticipantRepository)."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from ems.core.constants import TABLE_PARTICIPANTS
from ems.domain.entities.participant import Participant
from ems.domain.exceptions import PersistenceException
from ems.infrastructure.supabase._rest_client import SupabaseRESTClient, eq
from ems.schemas.participant import ParticipantCreate, ParticipantRow
from ems.shared.telemetry.tracing import traced


class SupabaseParticipantRepository:
    """Registration repository over the participants table."""

    def __init__(self, client: SupabaseRESTClient) -> None:
        self._client = client

    def _to_entity(self, row: dict[str, Any]) -> Participant:
        try:
            return ParticipantRow.model_validate(row).to_entity()
        except ValidationError as e:
            raise PersistenceException(
                "read participant", f"malformed row: {e.error_count()} errors"
            ) from e

    async def _select(self, filters: dict[str, str], limit: int | None = None) -> list[Participant]:
        rows = await self._client.select(
            TABLE_PARTICIPANTS, filters=filters, order="created_at.desc", limit=limit
        )
        return [self._to_entity(row) for row in rows]

    async def list_by_user(self, user_id: str) -> list[Participant]:
        return await self._select({"user_id": eq(user_id)})

    async def list_by_event(self, event_id: str) -> list[Participant]:
        return await self._select({"event_id": eq(event_id)})

    async def find(self, event_id: str, user_id: str) -> Participant | None:
        """Return the registration of user_id for event_id, if any."""
        found = await self._select(
            {"event_id": eq(event_id), "user_id": eq(user_id)}, limit=1
        )
        return found[0] if found else None

    @traced("participants.create")
    async def create(
        self, event_id: str, user_id: str, data: ParticipantCreate
    ) -> Participant:
        row = await self._client.insert(TABLE_PARTICIPANTS, data.to_row(event_id, user_id))
        return self._to_entity(row)
