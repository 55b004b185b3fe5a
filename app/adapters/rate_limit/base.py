"""Rate limiter interfaces.

The API should depend on this abstraction (not the concrete implementation)
so the counting strategy can be swapped through configuration. Limiters are
stateless with respect to request history: all counters live in the shared
counter store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from app.core.errors import InvalidConfigurationError


@dataclass(frozen=True)
class LimitSpec:
    """Immutable limit definition: at most ``limit`` requests per window.

    Raises:
        InvalidConfigurationError: If limit or window_seconds is not positive.
    """

    limit: int
    window_seconds: int

    def __post_init__(self) -> None:
        if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 1:
            raise InvalidConfigurationError(
                code="invalid_limit",
                message="limit must be a positive integer",
                details={"field": "limit", "value": str(self.limit)},
            )
        if (
            isinstance(self.window_seconds, bool)
            or not isinstance(self.window_seconds, int)
            or self.window_seconds < 1
        ):
            raise InvalidConfigurationError(
                code="invalid_window",
                message="window_seconds must be a positive integer",
                details={"field": "window_seconds", "value": str(self.window_seconds)},
            )

    @classmethod
    def parse(cls, text: str) -> "LimitSpec":
        """Parse a ``"limit/window_seconds"`` definition such as ``"100/60"``.

        Raises:
            InvalidConfigurationError: If the text is malformed or not positive.
        """
        limit_part, sep, window_part = text.strip().partition("/")
        try:
            if not sep:
                raise ValueError(text)
            limit = int(limit_part)
            window_seconds = int(window_part)
        except ValueError as exc:
            raise InvalidConfigurationError(
                code="invalid_limit_definition",
                message="Limit definitions must look like 'limit/window_seconds'",
                details={"value": text},
            ) from exc
        return cls(limit=limit, window_seconds=window_seconds)

    def __str__(self) -> str:
        return f"{self.limit}/{self.window_seconds}"


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit admission check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the current window resets.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


@dataclass(frozen=True)
class UsageSnapshot:
    """Read-only view of one limiter's counters for an identity.

    Attributes:
        algorithm: Limiter namespace (``fixed_window`` or ``sliding_window``).
        limit: Max requests per window.
        window_seconds: Window size in seconds.
        current_count: Requests counted in the current window/bucket.
        previous_count: Requests counted in the previous bucket (sliding only).
        estimated_total: Count the admission decision would compare to limit.
        remaining: Remaining quota derived from ``estimated_total``.
        ttl_seconds: Remaining lifetime of the current counter, None if absent.
    """

    algorithm: str
    limit: int
    window_seconds: int
    current_count: int
    previous_count: int
    estimated_total: float
    remaining: int
    ttl_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    #: Key namespace for this algorithm; distinct algorithms never share keys.
    algorithm: str = ""

    @abstractmethod
    async def admit(self, identity: str, spec: LimitSpec) -> RateLimitResult:
        """Count one request for ``identity`` and decide whether it may pass.

        Args:
            identity: Client identity (e.g., IP address).
            spec: Limit to enforce.

        Returns:
            RateLimitResult describing whether it was allowed.

        Raises:
            StoreUnavailableError: If the counter store cannot be reached.
        """
        raise NotImplementedError

    @abstractmethod
    async def usage(self, identity: str, spec: LimitSpec) -> UsageSnapshot:
        """Report current usage without counting a request."""
        raise NotImplementedError

    @abstractmethod
    async def reset(self, identity: str, spec: LimitSpec) -> int:
        """Delete the identity's counters and return how many keys were removed."""
        raise NotImplementedError
