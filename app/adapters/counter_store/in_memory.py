"""In-memory counter store with lazy TTL expiry.

Notes:
- Per-process only: running multiple workers gives each worker its own
  counters, so the effective limit is multiplied. Use Redis for shared state.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.counter_store.base import (
    TTL_MISSING,
    TTL_NO_EXPIRY,
    AbstractCounterStore,
)

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: int
    expires_at: float | None = None


class InMemoryCounterStore(AbstractCounterStore):
    """Counter store keeping values in a process-local dict.

    Expired entries are dropped lazily on access, so an expired counter reads
    exactly like one that was never written. Keys that are never read again
    are purged by a periodic sweep run from ``increment``.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        sweep_interval_seconds: float = 60.0,
    ) -> None:
        """Initialize the store.

        Args:
            clock: Time source function returning UNIX time in seconds.
            sweep_interval_seconds: Minimum time between full expiry sweeps.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}
        self._sweep_interval = sweep_interval_seconds
        self._next_sweep_at = clock() + sweep_interval_seconds

    @property
    def size(self) -> int:
        """Number of stored entries, including expired ones not yet purged."""
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryCounterStore(size={len(self._entries)})"

    def _live_entry(self, key: str) -> _Entry | None:
        """Return the entry for key, evicting it first if it has expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            del self._entries[key]
            logger.debug("counter_store.expired", extra={"store_key": key})
            return None
        return entry

    def _purge_expired(self) -> None:
        """Drop every expired entry, at most once per sweep interval."""
        now = self._clock()
        if now < self._next_sweep_at:
            return
        self._next_sweep_at = now + self._sweep_interval
        expired = [
            key
            for key, entry in self._entries.items()
            if entry.expires_at is not None and entry.expires_at <= now
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("counter_store.swept", extra={"expired_keys": len(expired)})

    async def increment(self, key: str) -> int:
        with self._lock:
            self._purge_expired()
            entry = self._live_entry(key)
            if entry is None:
                entry = _Entry(value=0)
                self._entries[key] = entry
            entry.value += 1
            return entry.value

    async def expire(self, key: str, seconds: int) -> bool:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return False
            if seconds <= 0:
                del self._entries[key]
                return True
            entry.expires_at = self._clock() + seconds
            return True

    async def get(self, key: str) -> int | None:
        with self._lock:
            entry = self._live_entry(key)
            return entry.value if entry is not None else None

    async def ttl(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return TTL_MISSING
            if entry.expires_at is None:
                return TTL_NO_EXPIRY
            return max(0, int(math.ceil(entry.expires_at - self._clock())))

    async def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                if self._live_entry(key) is not None:
                    del self._entries[key]
                    removed += 1
        return removed

    async def ping(self) -> bool:
        return True
