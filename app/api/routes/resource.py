from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends

from app.core.rate_limit import enforce_rate_limit
from app.schemas.rate_limit import EchoResponse, ResourceResponse

router = APIRouter(tags=["Protected"], dependencies=[Depends(enforce_rate_limit)])


@router.get("/resource", response_model=ResourceResponse)
async def get_resource() -> ResourceResponse:
    """Protected resource gated by the limiter chain.

    Responses carry X-RateLimit-Limit, X-RateLimit-Remaining and
    X-RateLimit-Reset; over-limit clients get 429 with Retry-After.
    """

    return ResourceResponse(message="Hello!!!")


@router.post("/echo", response_model=EchoResponse)
async def echo(payload: Annotated[Any, Body()]) -> EchoResponse:
    """Return the submitted JSON body unchanged (gated by the limiter chain)."""

    return EchoResponse(echo=payload)
