"""Pydantic response models for status and admin endpoints."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class StatusResponse(BaseModel):
    """Readiness report including counter store connectivity."""

    status: Literal["ok", "degraded"]
    store: Literal["up", "down"]
    algorithm: str
    limits: list[str] = Field(..., description="Chain limits as 'limit/window_seconds'")
    fail_mode: Literal["closed", "open"]
    total_requests: int = Field(..., description="Requests seen by this process", ge=0)


class LimiterUsage(BaseModel):
    """Usage of one limiter in the chain for an identity."""

    algorithm: str
    limit: int
    window_seconds: int
    current_count: int = Field(..., ge=0)
    previous_count: int = Field(..., ge=0)
    estimated_total: float = Field(..., ge=0)
    remaining: int = Field(..., ge=0)
    ttl_seconds: int | None = Field(None, description="Lifetime of the current counter")


class UsageResponse(BaseModel):
    """Current usage for an identity across the whole chain."""

    identity: str
    limiters: list[LimiterUsage]


class ResetResponse(BaseModel):
    """Result of an administrative counter reset."""

    identity: str
    keys_removed: int = Field(..., ge=0)


class ResourceResponse(BaseModel):
    """Payload of the protected demo resource."""

    message: str


class EchoResponse(BaseModel):
    """Echo of the submitted JSON body."""

    echo: Any
