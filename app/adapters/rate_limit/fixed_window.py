"""Fixed-window rate limiter backed by a shared counter store.

The window is not aligned to the clock: it starts with the first request for
an identity (when the counter is created) and ends when the counter's TTL
expires. All workers sharing the store enforce one common budget.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from app.adapters.counter_store.base import TTL_NO_EXPIRY, AbstractCounterStore
from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    LimitSpec,
    RateLimitResult,
    UsageSnapshot,
)
from app.adapters.rate_limit.decision import clamp_remaining, decide
from app.adapters.rate_limit.keys import WindowKey

logger = logging.getLogger(__name__)


class FixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests per identity within a TTL-bound window.

    Denied requests report the full window size as their retry hint unless
    ``retry_after_from_ttl`` is enabled, in which case the remaining TTL of
    the counter is used.
    """

    algorithm = "fixed_window"

    def __init__(
        self,
        store: AbstractCounterStore,
        *,
        key_prefix: str = "ratelimit",
        retry_after_from_ttl: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Shared counter store.
            key_prefix: Namespace prefix for counter keys.
            retry_after_from_ttl: Report the remaining TTL instead of the
                window size as the retry hint.
            clock: Time source function returning UNIX time in seconds.
        """
        self._store = store
        self._key_prefix = key_prefix
        self._retry_after_from_ttl = retry_after_from_ttl
        self._clock = clock

    def window_key(self, identity: str, spec: LimitSpec) -> WindowKey:
        return WindowKey(
            identity=identity,
            algorithm=self.algorithm,
            window_seconds=spec.window_seconds,
            prefix=self._key_prefix,
        )

    async def _remaining_ttl(self, key: str, spec: LimitSpec) -> int:
        """Return the counter's TTL, restoring the expiry if it was lost."""
        ttl = await self._store.ttl(key)
        if ttl == TTL_NO_EXPIRY:
            # A counter without expiry would block the identity forever.
            await self._store.expire(key, spec.window_seconds)
            logger.warning("rate_limit.expiry_restored", extra={"algorithm": self.algorithm})
            return spec.window_seconds
        if ttl < 0:
            return spec.window_seconds
        return ttl

    async def admit(self, identity: str, spec: LimitSpec) -> RateLimitResult:
        """Count one request against the identity's current window.

        Args:
            identity: Client identity.
            spec: Limit to enforce.

        Returns:
            RateLimitResult with allowance decision and metadata.
        """
        key = self.window_key(identity, spec).render()
        now = int(self._clock())

        count = await self._store.increment(key)
        if count == 1:
            # First request in a fresh window. Concurrent first requests may
            # both get here; setting the same expiry twice is harmless.
            await self._store.expire(key, spec.window_seconds)
            ttl = spec.window_seconds
        else:
            ttl = await self._remaining_ttl(key, spec)

        retry_after = ttl if self._retry_after_from_ttl else spec.window_seconds
        return decide(spec, count, reset_at=now + ttl, retry_after_seconds=retry_after)

    async def usage(self, identity: str, spec: LimitSpec) -> UsageSnapshot:
        key = self.window_key(identity, spec).render()
        count = await self._store.get(key) or 0
        ttl = await self._store.ttl(key)
        return UsageSnapshot(
            algorithm=self.algorithm,
            limit=spec.limit,
            window_seconds=spec.window_seconds,
            current_count=count,
            previous_count=0,
            estimated_total=float(count),
            remaining=clamp_remaining(spec.limit, count),
            ttl_seconds=ttl if ttl >= 0 else None,
        )

    async def reset(self, identity: str, spec: LimitSpec) -> int:
        return await self._store.delete(self.window_key(identity, spec).render())
