"""Event catalog: cached event and participant reads, event creation and registration.

Every list read goes through the client cache under a structured key.
Writes invalidate exactly the key families they affect.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from ems.application.dtos.catalog import EventListItem
from ems.application.interfaces.repositories import IEventRepository, IParticipantRepository
from ems.application.services.authorization import EVENT_MANAGER_ROLES, require_role
from ems.domain.entities.event import Event
from ems.domain.entities.participant import Participant
from ems.domain.entities.profile import Profile
from ems.domain.enums import CacheEntity
from ems.domain.exceptions import (
    AlreadyRegisteredException,
    NotAuthenticatedException,
    RegistrationClosedException,
    ResourceNotFoundException,
    VenueUnavailableException,
)
from ems.infrastructure.cache.cache_protocol import CacheProtocol
from ems.infrastructure.cache.keys import (
    all_events_key,
    available_events_key,
    event_participants_key,
    organizer_events_key,
    participants_key,
)
from ems.schemas.event import EventCreate
from ems.schemas.participant import ParticipantCreate
from ems.shared.telemetry.tracing import add_span_attributes, traced
from ems.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)


def _conflicts(
    events: list[Event],
    start_date: datetime,
    end_date: datetime,
    start_time: str,
    end_time: str,
) -> list[Event]:
    return [
        e for e in events
        if e.venue and e.overlaps(start_date, end_date, start_time, end_time)
    ]


class EventCatalogService:
    """Cached read-through access to events and registrations."""

    def __init__(
        self,
        events: IEventRepository,
        participants: IParticipantRepository,
        cache: CacheProtocol,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self.events = events
        self.participants = participants
        self.cache = cache
        self._now = now

    def _with_status(self, events: list[Event]) -> list[EventListItem]:
        now = self._now()
        return [EventListItem(event=e, status=e.status(now)) for e in events]

    async def list_all_events(self, *, max_age: float | None = None) -> list[EventListItem]:
        """Return all events (newest first) with their current status."""
        events = await self.cache.get_or_load(
            all_events_key(), self.events.list_all, max_age=max_age
        )
        return self._with_status(events)

    async def list_organizer_events(
        self, profile: Profile | None, *, max_age: float | None = None
    ) -> list[EventListItem]:
        """Return events created by the organizer (organizer/admin only)."""
        profile = require_role(profile, "list_organizer_events", *EVENT_MANAGER_ROLES)
        events = await self.cache.get_or_load(
            organizer_events_key(profile.user_id),
            lambda: self.events.list_by_creator(profile.user_id),
            max_age=max_age,
        )
        return self._with_status(events)

    async def list_my_registrations(
        self, profile: Profile | None, *, max_age: float | None = None
    ) -> list[Participant]:
        """Return the current user's registrations."""
        if profile is None:
            raise NotAuthenticatedException()
        return await self.cache.get_or_load(
            participants_key(profile.user_id),
            lambda: self.participants.list_by_user(profile.user_id),
            max_age=max_age,
        )

    async def list_available_events(
        self, profile: Profile | None, *, max_age: float | None = None
    ) -> list[EventListItem]:
        """Return events the user has not registered for yet (soonest first)."""
        if profile is None:
            raise NotAuthenticatedException()

        async def load() -> list[Event]:
            events = await self.list_all_events()
            registered = {
                p.event_id for p in await self.participants.list_by_user(profile.user_id)
            }
            available = [item.event for item in events if item.event_id not in registered]
            return sorted(available, key=lambda e: e.start_date)

        events = await self.cache.get_or_load(
            available_events_key(profile.user_id), load, max_age=max_age
        )
        return self._with_status(events)

    async def list_event_participants(
        self, profile: Profile | None, event_id: str, *, max_age: float | None = None
    ) -> list[Participant]:
        """Return registrations for one event (organizer/admin only)."""
        require_role(profile, "list_event_participants", *EVENT_MANAGER_ROLES)
        return await self.cache.get_or_load(
            event_participants_key(event_id),
            lambda: self.participants.list_by_event(event_id),
            max_age=max_age,
        )

    async def occupied_venues(
        self,
        start_date: datetime,
        end_date: datetime,
        start_time: str,
        end_time: str,
        *,
        exclude_event_id: str | None = None,
        max_age: float | None = None,
    ) -> set[str]:
        """Return venues already booked by events overlapping the given slot.

        Args:
            start_date: First day of the slot.
            end_date: Last day of the slot.
            start_time: Daily start, "HH:MM".
            end_time: Daily end, "HH:MM".
            exclude_event_id: Event being edited, ignored in the check.
            max_age: Optional per-read freshness bound for the cached event list.
        """
        events = [item.event for item in await self.list_all_events(max_age=max_age)]
        return {
            e.venue
            for e in _conflicts(events, start_date, end_date, start_time, end_time)
            if e.event_id != exclude_event_id
        }

    @traced("catalog.create_event")
    async def create_event(self, profile: Profile | None, data: EventCreate) -> Event:
        """Create an event (organizer/admin only) and invalidate event lists.

        When both daily times are given, the venue is checked against fresh
        event data before anything is written.

        Raises:
            NotAuthenticatedException: No profile.
            AuthorizationException: Caller is not an organizer or admin.
            VenueUnavailableException: The venue is booked for an overlapping slot.
            PersistenceException: The write failed; nothing is left behind.
        """
        profile = require_role(profile, "create_event", *EVENT_MANAGER_ROLES)
        if data.start_time and data.end_time:
            clashes = [
                e.event_id
                for e in _conflicts(
                    await self.events.list_all(),
                    data.start_date,
                    data.end_date,
                    data.start_time,
                    data.end_time,
                )
                if e.venue == data.venue
            ]
            if clashes:
                raise VenueUnavailableException(data.venue, clashes)
        event = await self.events.create(data, created_by=profile.user_id)
        self.cache.invalidate(all_events_key())
        self.cache.invalidate(organizer_events_key(profile.user_id))
        self.cache.invalidate_matching(entity=CacheEntity.AVAILABLE_EVENTS)
        logger.info("Event %s created by %s", event.event_id, profile.user_id)
        return event

    @traced("catalog.register_for_event")
    async def register_for_event(
        self, profile: Profile | None, event_id: str, data: ParticipantCreate
    ) -> Participant:
        """Register the current user for an event.

        Raises:
            NotAuthenticatedException: No profile.
            ResourceNotFoundException: Event does not exist.
            RegistrationClosedException: Event already ended.
            AlreadyRegisteredException: User already registered.
        """
        add_span_attributes(event_id=event_id)
        if profile is None:
            raise NotAuthenticatedException("You must be logged in to register for events")
        event = await self.events.get_by_id(event_id)
        if event is None:
            raise ResourceNotFoundException("event", event_id)
        if not event.is_registration_open(self._now()):
            raise RegistrationClosedException(event_id)
        if await self.participants.find(event_id, profile.user_id) is not None:
            raise AlreadyRegisteredException(event_id, profile.user_id)

        participant = await self.participants.create(event_id, profile.user_id, data)
        self.cache.invalidate(participants_key(profile.user_id))
        self.cache.invalidate(available_events_key(profile.user_id))
        self.cache.invalidate(event_participants_key(event_id))
        logger.info("User %s registered for event %s", profile.user_id, event_id)
        return participant
