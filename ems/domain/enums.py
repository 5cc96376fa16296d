"""Domain enumerations for the EMS client core.

Enums represent fixed sets of domain values (roles, session states,
auth event types, event and participant status).
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class Role(_ValuesMixin, str, Enum):
    """Application role stored on the profile. Controls which views are permitted."""

    ORGANIZER = "organizer"
    VISITOR = "visitor"
    ADMIN = "admin"


class SessionStatus(_ValuesMixin, str, Enum):
    """Session/profile resolver state.

    AUTHENTICATED and UNAUTHENTICATED are the stable resting states;
    the RESOLVING_* states are transient.
    """

    UNINITIALIZED = "uninitialized"
    RESOLVING_SESSION = "resolving_session"
    UNAUTHENTICATED = "unauthenticated"
    RESOLVING_PROFILE = "resolving_profile"
    AUTHENTICATED = "authenticated"
    ERROR = "error"


class AuthEventType(_ValuesMixin, str, Enum):
    """Auth state change notifications published by the auth provider."""

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


class EventStatus(_ValuesMixin, str, Enum):
    """Event status derived from its start/end dates."""

    UPCOMING = "upcoming"
    RUNNING = "running"
    ENDED = "ended"


class ParticipantStatus(_ValuesMixin, str, Enum):
    """Registration status of a participant."""

    REGISTERED = "registered"
    ATTENDED = "attended"
    CANCELLED = "cancelled"


class CacheEntity(_ValuesMixin, str, Enum):
    """Entity namespace of a cache key (first half of the composite key)."""

    ALL_EVENTS = "all_events"
    ORGANIZER_EVENTS = "organizer_events"
    AVAILABLE_EVENTS = "available_events"
    PARTICIPANTS = "participants"
    EVENT_PARTICIPANTS = "event_participants"
    USERS = "users"
