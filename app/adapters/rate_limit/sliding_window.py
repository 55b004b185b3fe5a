"""Weighted sliding-window rate limiter backed by a shared counter store.

Approximates a rolling window without storing request timestamps. Buckets are
aligned to absolute time (``floor(now / window) * window``) so every client and
every instance agrees on bucket boundaries. The estimate blends the current
bucket with the previous one, whose contribution decays linearly as the
current bucket fills:

    weight = (window - elapsed) / window
    estimate = current + previous * weight

Reading the previous bucket is not atomic with incrementing the current one,
so concurrent decisions are estimates rather than exact counts.
"""

from __future__ import annotations

import logging
import time
from fractions import Fraction
from typing import Callable

from app.adapters.counter_store.base import AbstractCounterStore
from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    LimitSpec,
    RateLimitResult,
    UsageSnapshot,
)
from app.adapters.rate_limit.decision import clamp_remaining, decide
from app.adapters.rate_limit.keys import WindowKey

logger = logging.getLogger(__name__)


def window_start_for(now: int, window_seconds: int) -> int:
    """Start of the epoch-aligned bucket containing ``now``."""
    return (now // window_seconds) * window_seconds


def previous_weight(elapsed: int, window_seconds: int) -> Fraction:
    """Share of the previous bucket still inside the rolling window.

    Returns 1 at the bucket boundary and decreases linearly towards 0 as
    ``elapsed`` approaches ``window_seconds``.
    """
    return Fraction(window_seconds - elapsed, window_seconds)


def estimate_sliding_total(
    current_count: int,
    previous_count: int,
    elapsed: int,
    window_seconds: int,
) -> Fraction:
    """Estimated number of requests in the rolling window ending now.

    Exact rational arithmetic keeps ``estimate <= limit`` free of float
    rounding at the boundary.
    """
    return current_count + previous_count * previous_weight(elapsed, window_seconds)


class SlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter blending the current and previous fixed buckets."""

    algorithm = "sliding_window"

    def __init__(
        self,
        store: AbstractCounterStore,
        *,
        key_prefix: str = "ratelimit",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Shared counter store.
            key_prefix: Namespace prefix for counter keys.
            clock: Time source function returning UNIX time in seconds.
        """
        self._store = store
        self._key_prefix = key_prefix
        self._clock = clock

    def window_key(self, identity: str, spec: LimitSpec, window_start: int) -> WindowKey:
        return WindowKey(
            identity=identity,
            algorithm=self.algorithm,
            window_seconds=spec.window_seconds,
            window_start=window_start,
            prefix=self._key_prefix,
        )

    def _bucket(self, identity: str, spec: LimitSpec) -> tuple[int, int, WindowKey]:
        """Return (now, window_start, current bucket key) for the clock's time."""
        now = int(self._clock())
        window_start = window_start_for(now, spec.window_seconds)
        return now, window_start, self.window_key(identity, spec, window_start)

    async def admit(self, identity: str, spec: LimitSpec) -> RateLimitResult:
        """Count one request in the current bucket and decide on the blend.

        Args:
            identity: Client identity.
            spec: Limit to enforce.

        Returns:
            RateLimitResult with allowance decision and metadata.
        """
        now, window_start, current_key = self._bucket(identity, spec)
        current = current_key.render()

        current_count = await self._store.increment(current)
        if current_count == 1:
            # Keep the bucket alive long enough to serve as the previous one.
            await self._store.expire(current, 2 * spec.window_seconds)
        previous_count = await self._store.get(current_key.previous().render()) or 0

        elapsed = now - window_start
        estimate = estimate_sliding_total(
            current_count, previous_count, elapsed, spec.window_seconds
        )
        reset_at = window_start + spec.window_seconds
        result = decide(
            spec,
            estimate,
            reset_at=reset_at,
            retry_after_seconds=reset_at - now,
        )
        logger.debug(
            "rate_limit.sliding_estimate",
            extra={
                "current_count": current_count,
                "previous_count": previous_count,
                "elapsed_s": elapsed,
                "estimate": float(estimate),
                "allowed": result.allowed,
            },
        )
        return result

    async def usage(self, identity: str, spec: LimitSpec) -> UsageSnapshot:
        now, window_start, current_key = self._bucket(identity, spec)
        current = current_key.render()

        current_count = await self._store.get(current) or 0
        previous_count = await self._store.get(current_key.previous().render()) or 0
        ttl = await self._store.ttl(current)

        estimate = estimate_sliding_total(
            current_count, previous_count, now - window_start, spec.window_seconds
        )
        return UsageSnapshot(
            algorithm=self.algorithm,
            limit=spec.limit,
            window_seconds=spec.window_seconds,
            current_count=current_count,
            previous_count=previous_count,
            estimated_total=float(estimate),
            remaining=clamp_remaining(spec.limit, estimate),
            ttl_seconds=ttl if ttl >= 0 else None,
        )

    async def reset(self, identity: str, spec: LimitSpec) -> int:
        _, _, current_key = self._bucket(identity, spec)
        return await self._store.delete(
            current_key.render(), current_key.previous().render()
        )
