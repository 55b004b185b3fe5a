"""Redis-backed counter store.

Redis gives us what the limiters need from a shared store: ``INCR`` is atomic
per key and keys self-expire via ``EXPIRE``. Any client-side Redis failure
(connection refused, timeout, protocol error) is translated into
``StoreUnavailableError`` and never retried here.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.adapters.counter_store.base import AbstractCounterStore
from app.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RedisCounterStore(AbstractCounterStore):
    """Counter store using an asyncio Redis client."""

    def __init__(self, client: redis.Redis) -> None:
        """Wrap an existing client.

        Args:
            client: ``redis.asyncio.Redis`` instance. Responses may be bytes or
                str; both are accepted.
        """
        self._client = client

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        socket_timeout: float = 1.0,
        connect_timeout: float = 1.0,
    ) -> "RedisCounterStore":
        """Create a store with a client connected lazily to ``url``."""
        client = redis.Redis.from_url(
            url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=connect_timeout,
            decode_responses=True,
        )
        return cls(client)

    async def _call(self, operation: str, func: Callable[..., Awaitable[T]], *args: Any) -> T:
        """Run a Redis command, mapping client errors to StoreUnavailableError."""
        try:
            return await func(*args)
        except RedisError as exc:
            logger.error(
                "counter_store.error",
                extra={
                    "operation": operation,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            raise StoreUnavailableError(
                code="store_unavailable",
                message="Rate limit store is unavailable",
                details={"operation": operation, "backend": "redis"},
            ) from exc

    async def increment(self, key: str) -> int:
        return int(await self._call("increment", self._client.incr, key))

    async def expire(self, key: str, seconds: int) -> bool:
        return bool(await self._call("expire", self._client.expire, key, seconds))

    async def get(self, key: str) -> int | None:
        value = await self._call("get", self._client.get, key)
        if value is None:
            return None
        return int(value)

    async def ttl(self, key: str) -> int:
        return int(await self._call("ttl", self._client.ttl, key))

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._call("delete", self._client.delete, *keys))

    async def ping(self) -> bool:
        return bool(await self._call("ping", self._client.ping))

    async def close(self) -> None:
        await self._client.aclose()
