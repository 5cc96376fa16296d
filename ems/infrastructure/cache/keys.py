"""Cache key builders. Single place for key format (DRY).

Keys are structured (entity, owner_id) pairs rather than free-form strings,
so two features cannot collide by picking the same string. Owner components
must be non-blank and must not contain CACHE_KEY_SEP, so the rendered form
stays unambiguous in logs.
"""

from typing import NamedTuple

from ems.core.constants import CACHE_KEY_SEP, CACHE_OWNER_ALL
from ems.domain.enums import CacheEntity, Role


class CacheKey(NamedTuple):
    """Composite cache key: entity namespace plus owner (user, event, or 'all')."""

    entity: CacheEntity
    owner_id: str

    def __str__(self) -> str:
        return f"{self.entity.value}{CACHE_KEY_SEP}{self.owner_id}"


def _validate_key_component(value: str, name: str) -> None:
    """Raise ValueError if value is blank or contains the cache key separator.

    Args:
        value: String component used in a cache key.
        name: Name of the component (for error message).

    Raises:
        ValueError: If value is empty/blank or contains CACHE_KEY_SEP.
    """
    if not value or not value.strip():
        raise ValueError(f"Cache key component {name!r} must not be empty")
    if CACHE_KEY_SEP in value:
        raise ValueError(
            f"Cache key component {name!r} must not contain separator {CACHE_KEY_SEP!r}"
        )


def make_key(entity: CacheEntity, owner_id: str) -> CacheKey:
    """Build a validated key for any entity namespace."""
    if not isinstance(entity, CacheEntity):
        raise ValueError(f"Unknown cache entity: {entity!r}")
    _validate_key_component(owner_id, "owner_id")
    return CacheKey(entity, owner_id)


def all_events_key() -> CacheKey:
    """Cache key for the full event list."""
    return CacheKey(CacheEntity.ALL_EVENTS, CACHE_OWNER_ALL)


def organizer_events_key(user_id: str) -> CacheKey:
    """Cache key for events created by an organizer."""
    return make_key(CacheEntity.ORGANIZER_EVENTS, user_id)


def available_events_key(user_id: str) -> CacheKey:
    """Cache key for events a user has not registered for yet."""
    return make_key(CacheEntity.AVAILABLE_EVENTS, user_id)


def participants_key(user_id: str) -> CacheKey:
    """Cache key for a user's own registrations."""
    return make_key(CacheEntity.PARTICIPANTS, user_id)


def event_participants_key(event_id: str) -> CacheKey:
    """Cache key for the participant list of one event."""
    return make_key(CacheEntity.EVENT_PARTICIPANTS, event_id)


def users_key(role: Role | None = None) -> CacheKey:
    """Cache key for the admin user list, optionally filtered by role."""
    return CacheKey(CacheEntity.USERS, role.value if role else CACHE_OWNER_ALL)
