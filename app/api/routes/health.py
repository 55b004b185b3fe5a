from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.rate_limit import get_limiter_chain, ping_counter_store
from app.schemas.rate_limit import StatusResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check endpoint.

    Returns a simple status response to verify the API process is up. Does
    not touch the counter store; use ``/status`` for readiness.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get(
    "/status",
    response_model=StatusResponse,
    responses={503: {"model": StatusResponse, "description": "Counter store unreachable"}},
)
async def status_check(request: Request) -> JSONResponse:
    """Readiness check: pings the counter store and reports limiter config.

    Returns:
        JSONResponse: 200 when the store answers, 503 otherwise.
    """

    chain = get_limiter_chain()
    store_up = await ping_counter_store()

    if not store_up:
        logger.warning("status.store_down", extra={"backend": settings.store.backend})

    counter = getattr(request.app.state, "request_counter", None)
    body = StatusResponse(
        status="ok" if store_up else "degraded",
        store="up" if store_up else "down",
        algorithm=settings.rate_limit.algorithm,
        limits=[str(entry.spec) for entry in chain.entries],
        fail_mode=chain.fail_mode,
        total_requests=counter.value if counter is not None else 0,
    )
    return JSONResponse(status_code=200 if store_up else 503, content=body.model_dump())
