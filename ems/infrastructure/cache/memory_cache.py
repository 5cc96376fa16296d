"""In-memory client cache with one global expiration window.

Caches slow-changing list data (events, participants, users) across
component lifetimes within one client session. The window is measured
from store initialization, not per entry: once it elapses the whole
session is stale and the owner performs a session reset (see
ems.core.lifespan.ClientSession.reset) instead of expiring keys one by one.
Callers may layer a shorter per-read freshness bound with max_age.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from ems.domain.enums import CacheEntity
from ems.infrastructure.cache.keys import CacheKey

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING: Any = object()


@dataclass(slots=True)
class CacheEntry:
    """One stored value and the clock reading at insertion."""

    value: Any
    stored_at: float


class MemoryCache:
    """Key/value store bounded by a single expiration window.

    Not thread-safe: all access happens on the client's event loop, so no
    locking is needed. Owned by the client session and injected into
    consumers; there is no module-level instance.
    """

    def __init__(
        self,
        lifetime_seconds: float = 30 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty store and start its window.

        Args:
            lifetime_seconds: Global expiration window in seconds.
            clock: Monotonic clock; injectable for tests.
        """
        if lifetime_seconds <= 0:
            raise ValueError("lifetime_seconds must be positive")
        self.lifetime_seconds = lifetime_seconds
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._loading: dict[CacheKey, asyncio.Task[Any]] = {}
        self.started_at = clock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return self.get(key, _MISSING) is not _MISSING  # type: ignore[arg-type]

    def is_expired(self) -> bool:
        """Return True once the global window has elapsed since initialization or reset."""
        return self._clock() - self.started_at >= self.lifetime_seconds

    def get(self, key: CacheKey, default: Any = None, *, max_age: float | None = None) -> Any:
        """Return the cached value, or default when absent or stale.

        Args:
            key: Structured key (use ems.infrastructure.cache.keys builders).
            default: Returned on a miss; pass a sentinel to cache None values.
            max_age: Optional per-read freshness bound in seconds.

        Returns:
            Cached value or default.
        """
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Cache MISS: %s", key)
            return default
        if self.is_expired():
            logger.debug("Cache STALE (window elapsed): %s", key)
            return default
        if max_age is not None and self._clock() - entry.stored_at > max_age:
            logger.debug("Cache STALE (older than %ss): %s", max_age, key)
            return default
        logger.debug("Cache HIT: %s", key)
        return entry.value

    def set(self, key: CacheKey, value: Any) -> None:
        """Store or overwrite value under key, stamping the current time."""
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock())
        logger.debug("Cache SET: %s", key)

    def invalidate(self, key: CacheKey) -> None:
        """Remove one entry regardless of age. Idempotent.

        A load in flight for the key is detached so its result is not stored.
        """
        self._loading.pop(key, None)
        if self._entries.pop(key, None) is not None:
            logger.debug("Cache DELETE: %s", key)

    def invalidate_matching(
        self, entity: CacheEntity | None = None, owner_id: str | None = None
    ) -> int:
        """Remove every entry whose key matches the given parts.

        Args:
            entity: Entity namespace to match, or None for any.
            owner_id: Owner to match, or None for any.

        Returns:
            Number of entries removed.
        """
        def matches(key: CacheKey) -> bool:
            return (entity is None or key.entity == entity) and (
                owner_id is None or key.owner_id == owner_id
            )

        matched = [key for key in self._entries if matches(key)]
        for key in matched:
            del self._entries[key]
        for key in [key for key in self._loading if matches(key)]:
            del self._loading[key]
        if matched:
            logger.info(
                "Cache INVALIDATE: entity=%s owner=%s (%s keys)",
                entity.value if entity else "*",
                owner_id or "*",
                len(matched),
            )
        return len(matched)

    def clear(self) -> None:
        """Remove all entries. The window keeps running."""
        self._entries.clear()
        self._loading.clear()
        logger.info("Cache CLEARED: all keys deleted")

    def reset(self) -> None:
        """Clear all entries and restart the expiration window."""
        self.clear()
        self.started_at = self._clock()

    async def get_or_load(
        self,
        key: CacheKey,
        loader: Callable[[], Awaitable[T]],
        *,
        max_age: float | None = None,
    ) -> T:
        """Return the cached value, or run loader once and cache its result.

        Concurrent callers for the same key share one in-flight load. A
        failing load is not cached and its exception reaches every waiter.

        Args:
            key: Structured key.
            loader: Zero-argument coroutine function fetching the value.
            max_age: Optional per-read freshness bound in seconds.

        Returns:
            Cached or freshly loaded value.
        """
        value = self.get(key, _MISSING, max_age=max_age)
        if value is not _MISSING:
            return value
        task = self._loading.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(key, loader))
            self._loading[key] = task
            task.add_done_callback(lambda done: self._forget_load(key, done))
        else:
            logger.debug("Cache JOIN in-flight load: %s", key)
        return await asyncio.shield(task)

    async def _load(self, key: CacheKey, loader: Callable[[], Awaitable[T]]) -> T:
        value = await loader()
        # Skip the store when the key was invalidated while loading.
        if self._loading.get(key) is asyncio.current_task():
            self.set(key, value)
        return value

    def _forget_load(self, key: CacheKey, task: asyncio.Task[Any]) -> None:
        if self._loading.get(key) is task:
            del self._loading[key]
