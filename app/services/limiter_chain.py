"""Limiter chain service.

Composes limiters as sequential gates in front of a protected operation:

- Limiters are evaluated in order; the first denial short-circuits the rest
  and its metadata is what the caller surfaces.
- When every limiter admits, the most restrictive result is surfaced (lowest
  remaining quota, then earliest reset).
- Store failures follow an explicit fail mode: ``closed`` propagates
  ``StoreUnavailableError`` so the request is rejected; ``open`` skips the
  failing limiter and admits the request.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Literal

from app.adapters.counter_store.base import AbstractCounterStore
from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    LimitSpec,
    RateLimitResult,
    UsageSnapshot,
)
from app.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from app.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter
from app.core.config import RateLimitSettings
from app.core.errors import InvalidConfigurationError, StoreUnavailableError

logger = logging.getLogger(__name__)

FailMode = Literal["closed", "open"]


@dataclass(frozen=True)
class ChainEntry:
    """One gate of the chain: a limiter and the limit it enforces."""

    limiter: AbstractRateLimiter
    spec: LimitSpec


def _most_restrictive(results: list[RateLimitResult]) -> RateLimitResult:
    return min(results, key=lambda r: (r.remaining, r.reset_at))


class LimiterChain:
    """Ordered sequence of (limiter, LimitSpec) gates.

    An empty chain admits everything.
    """

    def __init__(
        self,
        entries: Iterable[ChainEntry],
        *,
        fail_mode: FailMode = "closed",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if fail_mode not in ("closed", "open"):
            raise InvalidConfigurationError(
                code="invalid_fail_mode",
                message="fail_mode must be 'closed' or 'open'",
                details={"field": "fail_mode", "value": str(fail_mode)},
            )
        self._entries = list(entries)
        self._fail_mode = fail_mode
        self._clock = clock

    @property
    def entries(self) -> list[ChainEntry]:
        return list(self._entries)

    @property
    def fail_mode(self) -> FailMode:
        return self._fail_mode

    def _admitted_without_store(self, spec: LimitSpec) -> RateLimitResult:
        now = int(self._clock())
        return RateLimitResult(
            allowed=True,
            limit=spec.limit,
            remaining=spec.limit,
            reset_at=now + spec.window_seconds,
            retry_after_seconds=None,
        )

    async def check(self, identity: str) -> RateLimitResult | None:
        """Run the request for ``identity`` through every gate.

        Args:
            identity: Client identity.

        Returns:
            The denying result, the most restrictive admitting result, or None
            when the chain is empty.

        Raises:
            StoreUnavailableError: If the store fails and fail mode is closed.
        """
        passed: list[RateLimitResult] = []

        for entry in self._entries:
            try:
                result = await entry.limiter.admit(identity, entry.spec)
            except StoreUnavailableError as exc:
                if self._fail_mode == "closed":
                    logger.error(
                        "rate_limit.store_unavailable",
                        extra={
                            "algorithm": entry.limiter.algorithm,
                            "limit_spec": str(entry.spec),
                            "fail_mode": self._fail_mode,
                            "error_code": exc.code,
                        },
                    )
                    raise
                logger.warning(
                    "rate_limit.fail_open",
                    extra={
                        "algorithm": entry.limiter.algorithm,
                        "limit_spec": str(entry.spec),
                        "error_code": exc.code,
                    },
                )
                passed.append(self._admitted_without_store(entry.spec))
                continue

            if not result.allowed:
                return result
            passed.append(result)

        if not passed:
            return None
        return _most_restrictive(passed)

    async def usage(self, identity: str) -> list[UsageSnapshot]:
        """Report usage for every gate without counting a request."""
        return [await entry.limiter.usage(identity, entry.spec) for entry in self._entries]

    async def reset(self, identity: str) -> int:
        """Delete the identity's counters for every gate."""
        removed = 0
        for entry in self._entries:
            removed += await entry.limiter.reset(identity, entry.spec)
        return removed


def parse_limits(definition: str) -> list[LimitSpec]:
    """Parse ``"5/1,100/60"`` into LimitSpecs, ignoring empty items.

    Every gate of a chain shares one limiter, and counter keys are scoped by
    window size, so each window size may appear only once.

    Raises:
        InvalidConfigurationError: If any item is malformed or two items use
            the same window size.
    """
    specs = [LimitSpec.parse(item) for item in definition.split(",") if item.strip()]
    seen: set[int] = set()
    for spec in specs:
        if spec.window_seconds in seen:
            raise InvalidConfigurationError(
                code="duplicate_window",
                message=f"Limits share the window size {spec.window_seconds}s",
                details={"field": "limits", "value": definition},
            )
        seen.add(spec.window_seconds)
    return specs


def create_rate_limiter(
    algorithm: str,
    store: AbstractCounterStore,
    *,
    key_prefix: str = "ratelimit",
    retry_after_from_ttl: bool = False,
    clock: Callable[[], float] = time.time,
) -> AbstractRateLimiter:
    """Create a limiter for the named algorithm.

    Raises:
        InvalidConfigurationError: If the algorithm is unknown.
    """
    if algorithm == FixedWindowRateLimiter.algorithm:
        return FixedWindowRateLimiter(
            store,
            key_prefix=key_prefix,
            retry_after_from_ttl=retry_after_from_ttl,
            clock=clock,
        )
    if algorithm == SlidingWindowRateLimiter.algorithm:
        return SlidingWindowRateLimiter(store, key_prefix=key_prefix, clock=clock)

    raise InvalidConfigurationError(
        code="unknown_algorithm",
        message=f"Unknown rate limit algorithm: {algorithm}",
        details={"field": "algorithm", "value": algorithm},
    )


def build_limiter_chain(
    rate_limit_settings: RateLimitSettings,
    store: AbstractCounterStore,
    *,
    clock: Callable[[], float] = time.time,
) -> LimiterChain:
    """Build the chain described by configuration.

    Args:
        rate_limit_settings: Rate limit settings.
        store: Shared counter store.
        clock: Time source function returning UNIX time in seconds.

    Returns:
        LimiterChain with one gate per configured limit.
    """
    cfg = rate_limit_settings
    specs = parse_limits(cfg.limits) or [
        LimitSpec(limit=cfg.requests, window_seconds=cfg.window_seconds)
    ]
    limiter = create_rate_limiter(
        cfg.algorithm,
        store,
        key_prefix=cfg.key_prefix,
        retry_after_from_ttl=cfg.retry_after_from_ttl,
        clock=clock,
    )
    logger.info(
        "rate_limit.chain_configured",
        extra={
            "algorithm": cfg.algorithm,
            "limits": [str(spec) for spec in specs],
            "fail_mode": cfg.fail_mode,
        },
    )
    return LimiterChain(
        [ChainEntry(limiter=limiter, spec=spec) for spec in specs],
        fail_mode=cfg.fail_mode,
        clock=clock,
    )
