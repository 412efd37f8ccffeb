"""
Short-lived cache for generated interviewer replies.

Keyed by scheduling state so a recurring state (for example a client retry)
reuses the reply instead of paying for another generation.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass
class _CacheEntry:
    value: str
    expires_at: float


class QuestionCache:
    """A small TTL cache owned by one session."""

    def __init__(self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}

    @staticmethod
    def make_key(*parts: object) -> str:
        """Build a normalized cache key from scheduling parts."""
        raw = "_".join(str(getattr(p, "value", p)) for p in parts)
        return "_".join(raw.split()).lower()

    def get(self, key: str) -> str | None:
        """Return a live entry, dropping it if expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: str) -> None:
        self._entries[key] = _CacheEntry(value=value, expires_at=self._clock() + self._ttl)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
