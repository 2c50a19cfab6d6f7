"""Time-bounded in-memory cache for enrichment lookups."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CacheEntry:
    value: Any
    fetched_at: datetime
    ttl: timedelta

    def is_expired(self, now: datetime) -> bool:
        return now - self.fetched_at >= self.ttl


class TTLCache:
    """
    Cache whose entries expire a fixed time after they were stored.

    The clock is injectable so expiry can be tested without sleeping.
    When ``max_entries`` is exceeded the oldest entries are evicted.
    """

    def __init__(
        self,
        ttl: timedelta = timedelta(hours=24),
        max_entries: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock or _utc_now
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def get(self, key: str) -> Any | None:
        """Return a fresh value, or None when missing or expired.

        Expired entries stay in place until ``purge_expired`` so callers can
        still fall back to them with ``get_stale``.
        """
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry.value

    def get_stale(self, key: str) -> Any | None:
        """Return a value even if it has expired."""
        entry = self._entries.get(key)
        return entry.value if entry else None

    def get_entry(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def set(self, key: str, value: Any, ttl: timedelta | None = None) -> None:
        self._entries[key] = CacheEntry(
            value=value, fetched_at=self._clock(), ttl=ttl or self.ttl
        )
        self._enforce_max_entries()

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def _enforce_max_entries(self) -> None:
        if self.max_entries is None or len(self._entries) <= self.max_entries:
            return
        oldest_first = sorted(self._entries.items(), key=lambda item: item[1].fetched_at)
        for key, _ in oldest_first[: len(self._entries) - self.max_entries]:
            del self._entries[key]
