"""Cache protocol for services that read through the client-side cache (DIP)."""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeVar

from ems.infrastructure.cache.keys import CacheKey

T = TypeVar("T")


class CacheProtocol(Protocol):
    """Protocol for the in-memory client cache. Used by cached services."""

    def get(self, key: CacheKey, default: Any = None, *, max_age: float | None = None) -> Any:
        """Return cached value, or default if absent or stale."""
        ...

    def set(self, key: CacheKey, value: Any) -> None:
        """Store value under key, stamping the current time."""
        ...

    def invalidate(self, key: CacheKey) -> None:
        """Remove key from cache. No-op when absent."""
        ...

    def invalidate_matching(self, entity: Any = None, owner_id: str | None = None) -> int:
        """Remove every key matching the given parts; return how many were removed."""
        ...

    def clear(self) -> None:
        """Remove all entries."""
        ...

    async def get_or_load(
        self,
        key: CacheKey,
        loader: Callable[[], Awaitable[T]],
        *,
        max_age: float | None = None,
    ) -> T:
        """Return cached value or await loader once and cache its result."""
        ...
