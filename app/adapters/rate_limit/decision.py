"""Admission decision and response metadata.

Pure functions turning a limiter's raw count (or estimate) into the
``RateLimitResult`` surfaced to clients. Remaining quota is always clamped to
``[0, limit]`` so negative counts never leak into headers.
"""

from __future__ import annotations

import math

from app.adapters.rate_limit.base import LimitSpec, RateLimitResult


def clamp_remaining(limit: int, used: float) -> int:
    """Return ``floor(limit - used)`` clamped to ``[0, limit]``."""
    return min(limit, max(0, math.floor(limit - used)))


def decide(
    spec: LimitSpec,
    used: float,
    *,
    reset_at: int,
    retry_after_seconds: int,
) -> RateLimitResult:
    """Build the admission result for a request counted as ``used``.

    Args:
        spec: Limit being enforced.
        used: Post-increment count or estimated total, including this request.
        reset_at: UNIX epoch seconds when the window resets.
        retry_after_seconds: Hint reported only when the request is denied.

    Returns:
        RateLimitResult with allowed iff ``used <= spec.limit``.
    """
    allowed = used <= spec.limit
    return RateLimitResult(
        allowed=allowed,
        limit=spec.limit,
        remaining=clamp_remaining(spec.limit, used),
        reset_at=int(reset_at),
        retry_after_seconds=None if allowed else max(1, int(retry_after_seconds)),
    )


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Headers advertising the quota state of ``result``."""
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_at),
    }
    if not result.allowed and result.retry_after_seconds is not None:
        headers["Retry-After"] = str(result.retry_after_seconds)
    return headers
