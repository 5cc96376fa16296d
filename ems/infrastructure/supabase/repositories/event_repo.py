"""Supabase-backed event repository (implements IEventRepository)."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from ems.core.constants import TABLE_EVENT_DETAILS, TABLE_EVENTS
from ems.domain.entities.event import Event
from ems.domain.exceptions import PersistenceException
from ems.infrastructure.supabase._rest_client import SupabaseRESTClient, eq
from ems.schemas.event import EventCreate, EventRow
from ems.shared.telemetry.tracing import traced

logger = logging.getLogger(__name__)

_NEWEST_FIRST = "created_at.desc"


class SupabaseEventRepository:
    """Event repository over the events table."""

    def __init__(self, client: SupabaseRESTClient) -> None:
        self._client = client

    def _to_entity(self, row: dict[str, Any]) -> Event:
        try:
            return EventRow.model_validate(row).to_entity()
        except ValidationError as e:
            raise PersistenceException("read event", f"malformed row: {e.error_count()} errors") from e

    async def list_all(self) -> list[Event]:
        rows = await self._client.select(TABLE_EVENTS, order=_NEWEST_FIRST)
        return [self._to_entity(row) for row in rows]

    async def list_by_creator(self, user_id: str) -> list[Event]:
        rows = await self._client.select(
            TABLE_EVENTS, filters={"created_by": eq(user_id)}, order=_NEWEST_FIRST
        )
        return [self._to_entity(row) for row in rows]

    async def get_by_id(self, event_id: str) -> Event | None:
        """Return event by ID."""
        rows = await self._client.select(
            TABLE_EVENTS, filters={"event_id": eq(event_id)}, limit=1
        )
        return self._to_entity(rows[0]) if rows else None

    @traced("events.create")
    async def create(self, data: EventCreate, created_by: str) -> Event:
        """Insert the event (and its details row, if any) and return the event.

        If the details insert fails the event row is deleted again, so no
        event is left without the details its creator submitted.

        Raises:
            PersistenceException: Either insert failed.
        """
        row = await self._client.insert(TABLE_EVENTS, data.to_row(created_by))
        event = self._to_entity(row)
        if data.details is None:
            return event
        try:
            await self._client.insert(TABLE_EVENT_DETAILS, data.details.to_row(event.event_id))
        except PersistenceException:
            logger.warning("Details insert failed for event %s; removing event", event.event_id)
            try:
                await self._client.delete(TABLE_EVENTS, filters={"event_id": eq(event.event_id)})
            except PersistenceException as cleanup:
                logger.error("Rollback of event %s failed: %s", event.event_id, cleanup.message)
            raise
        return event
