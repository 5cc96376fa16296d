"""Cache: in-memory client store and structured cache key builders.

Used by the catalog and user-administration services to avoid redundant
reads of slow-changing list data. Key format lives in keys.py (DRY).
"""

from ems.infrastructure.cache.cache_protocol import CacheProtocol
from ems.infrastructure.cache.keys import (
    CacheKey,
    all_events_key,
    available_events_key,
    event_participants_key,
    make_key,
    organizer_events_key,
    participants_key,
    users_key,
)
from ems.infrastructure.cache.memory_cache import CacheEntry, MemoryCache

__all__ = [
    "CacheEntry",
    "CacheKey",
    "CacheProtocol",
    "MemoryCache",
    "all_events_key",
    "available_events_key",
    "event_participants_key",
    "make_key",
    "organizer_events_key",
    "participants_key",
    "users_key",
]
