"""Administrative endpoints for inspecting and resetting client counters.

The identity in the path is operator-supplied, so these endpoints can query
any client, and they never count a request against the limits themselves.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from app.core.auth import verify_admin_key
from app.core.logging import hash_identity
from app.core.rate_limit import get_limiter_chain
from app.schemas.rate_limit import LimiterUsage, ResetResponse, UsageResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin"], dependencies=[Depends(verify_admin_key)])


@router.get("/rate-limit/{identity}", response_model=UsageResponse)
async def get_usage(identity: str) -> UsageResponse:
    """Report current counters for ``identity`` across the chain.

    Read-only: calling it repeatedly does not change any counter.
    """

    snapshots = await get_limiter_chain().usage(identity)
    return UsageResponse(
        identity=identity,
        limiters=[
            LimiterUsage(
                algorithm=s.algorithm,
                limit=s.limit,
                window_seconds=s.window_seconds,
                current_count=s.current_count,
                previous_count=s.previous_count,
                estimated_total=s.estimated_total,
                remaining=s.remaining,
                ttl_seconds=s.ttl_seconds,
            )
            for s in snapshots
        ],
    )


@router.delete("/rate-limit/{identity}", response_model=ResetResponse)
async def reset_usage(identity: str) -> ResetResponse:
    """Delete every counter of ``identity``.

    The identity's next request starts a fresh window.
    """

    removed = await get_limiter_chain().reset(identity)
    logger.info(
        "rate_limit.reset",
        extra={"identity_hash": hash_identity(identity), "keys_removed": removed},
    )
    return ResetResponse(identity=identity, keys_removed=removed)
