"""Counter store interface.

Limiters depend on this abstraction (not the concrete implementation) so the
backing store can be Redis in production and an in-process dict in tests.
Every operation is a coroutine: callers suspend while the store works.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

# Sentinels returned by ``ttl`` (same values Redis uses).
TTL_NO_EXPIRY = -1
TTL_MISSING = -2


class AbstractCounterStore(ABC):
    """Interface for shared counter stores.

    Implementations must make ``increment`` atomic per key. Expired keys must
    be indistinguishable from keys that were never written.
    """

    @abstractmethod
    async def increment(self, key: str) -> int:
        """Atomically add one to the counter, creating it at 0 when absent.

        Args:
            key: Counter key.

        Returns:
            The post-increment value.

        Raises:
            StoreUnavailableError: If the store cannot be reached.
        """
        raise NotImplementedError

    @abstractmethod
    async def expire(self, key: str, seconds: int) -> bool:
        """Set the time-to-live of ``key``.

        Returns:
            True if the key exists and the expiry was set.
        """
        raise NotImplementedError

    @abstractmethod
    async def get(self, key: str) -> int | None:
        """Return the counter value, or None when absent/expired."""
        raise NotImplementedError

    @abstractmethod
    async def ttl(self, key: str) -> int:
        """Return remaining lifetime in seconds.

        Returns:
            Seconds remaining, ``TTL_NO_EXPIRY`` when the key has no expiry or
            ``TTL_MISSING`` when it does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys and return how many existed."""
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """Check store connectivity."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release connections held by the store (no-op by default)."""
