"""
In-process TTL cache for raw IGDB responses.

The cache is a load-reduction mechanism against a rate-limited upstream,
not a source of truth: any read may be stale by up to one TTL window.
Entries leave only by expiring or by ``clear()``; the key space is the set
of distinct queries issued, which stays small in practice.

All operations are synchronous dict manipulations, so concurrent asyncio
tasks cannot interleave inside one. Two tasks missing on the same key at
once both fetch and the later write wins, which is harmless.
"""
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

_WHITESPACE = re.compile(r"\s+")


def normalize_query(query: str) -> str:
    """Collapse whitespace so formatting differences share a cache entry."""
    return _WHITESPACE.sub(" ", query).strip()


def make_cache_key(endpoint: str, query: str) -> str:
    """Deterministic signature of a catalog request."""
    return f"{endpoint}:{normalize_query(query)}"


@dataclass
class CacheEntry:
    key: str
    value: Any
    inserted_at: float
    ttl: float

    def age(self, now: float) -> float:
        return now - self.inserted_at

    def is_valid(self, now: float) -> bool:
        return self.age(now) < self.ttl


class ResponseCache:
    """
    Key/value cache with a per-entry time-to-live.

    Args:
        default_ttl: Seconds an entry stays valid unless ``set`` overrides it
        clock: Monotonic time source, injectable for tests
    """

    def __init__(self, default_ttl: float, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_valid(self._clock()):
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store ``value``, replacing any existing entry for ``key``."""
        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            inserted_at=self._clock(),
            ttl=self.default_ttl if ttl is None else ttl,
        )

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        """
        Snapshot for the admin cache endpoint.

        Expired-but-unread entries are included; they are dropped lazily on
        the next ``get``.
        """
        now = self._clock()
        return {
            "size": len(self._entries),
            "entries": [
                {
                    "key": entry.key,
                    "age_seconds": round(entry.age(now), 1),
                    "ttl_seconds": entry.ttl,
                    "expired": not entry.is_valid(now),
                }
                for entry in self._entries.values()
            ],
        }
