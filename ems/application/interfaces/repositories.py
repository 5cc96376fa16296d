"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference domain entities or schemas only; no infrastructure imports.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from ems.domain.enums import Role

if TYPE_CHECKING:
    from ems.domain.entities.event import Event
    from ems.domain.entities.participant import Participant
    from ems.domain.entities.profile import Profile
    from ems.schemas.event import EventCreate
    from ems.schemas.participant import ParticipantCreate


class IProfileRepository(Protocol):
    """Protocol for the profile data boundary (users table)."""

    async def fetch_by_auth_id(self, auth_id: str) -> Profile | None:
        """Return the profile for an auth subject id, or None when no row exists."""

    async def fetch_by_user_id(self, user_id: str) -> Profile | None:
        """Return the profile with the given user_id, or None."""

    async def update(self, auth_id: str, fields: dict[str, Any]) -> None:
        """Write partial fields for the profile of auth_id. Raises PersistenceException."""

    async def list_profiles(self, role: Role | None = None) -> list[Profile]:
        """Return all profiles (optionally one role), newest first."""

    async def update_role(
        self, user_id: str, role: Role, organizer_code: str | None = None
    ) -> None:
        """Set the role (and organizer_code when given) of user_id. Raises PersistenceException."""


class IEventRepository(Protocol):
    """Protocol for the events table."""

    async def list_all(self) -> list[Event]:
        """Return all events, newest first."""

    async def list_by_creator(self, user_id: str) -> list[Event]:
        """Return events created by user_id, newest first."""

    async def get_by_id(self, event_id: str) -> Event | None:
        """Return event by ID."""

    async def create(self, data: EventCreate, created_by: str) -> Event:
        """Insert an event (and its details row) and return it; no event remains if either write fails."""


class IParticipantRepository(Protocol):
    """Protocol for the participants table."""

    async def list_by_user(self, user_id: str) -> list[Participant]:
        """Return registrations of a user."""

    async def list_by_event(self, event_id: str) -> list[Participant]:
        """Return registrations for an event."""

    async def find(self, event_id: str, user_id: str) -> Participant | None:
        """Return the registration of user_id for event_id, if any."""

    async def create(
        self, event_id: str, user_id: str, data: ParticipantCreate
    ) -> Participant:
        """Insert a registration and return it."""
