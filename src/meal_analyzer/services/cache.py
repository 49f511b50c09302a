"""Response caches for analyses and nutrition API payloads."""

import logging
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

_logger = logging.getLogger(__name__)


class Cache(Protocol):
    """Cache interface for serialized string values."""

    async def get(self, key: str) -> str | None:
        """Return a cached value if present and not expired."""

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a cached value with a TTL in seconds."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class InMemoryCache(Cache):
    """Process-local TTL cache holding at most ``max_entries`` values.

    Writes for the same key overwrite. When the cache is full, expired
    entries are purged first, then the oldest write is evicted.
    """

    max_entries: int = 2048
    now: Callable[[], datetime] = _utc_now
    _entries: OrderedDict[str, tuple[str, datetime]] = field(
        default_factory=OrderedDict
    )

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.now() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries.pop(key, None)
        if len(self._entries) >= self.max_entries:
            self.purge_expired()
        while self._entries and len(self._entries) >= self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            _logger.debug("Evicted cache entry %s", evicted)
        expires_at = self.now() + timedelta(seconds=ttl_seconds)
        self._entries[key] = (value, expires_at)

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        current = self.now()
        expired = [
            key
            for key, (_, expires_at) in self._entries.items()
            if current >= expires_at
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)
