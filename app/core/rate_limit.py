"""Rate limiting dependency for FastAPI routes.

This module wires the limiter chain into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Shared state: counters live in the counter store, so every worker and
  instance enforces the same budget per client.
- Explicit failure policy: store outages follow ``RATE_LIMIT_FAIL_MODE``.

Identity: the client's source address, or the first ``X-Forwarded-For`` hop
when ``APP_TRUST_FORWARDED_FOR`` is enabled behind a trusted proxy.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request, Response, status

from app.adapters.counter_store.base import AbstractCounterStore
from app.adapters.counter_store.factory import create_counter_store
from app.adapters.rate_limit.decision import rate_limit_headers
from app.core.config import settings
from app.core.errors import StoreUnavailableError
from app.core.logging import hash_identity
from app.services.limiter_chain import LimiterChain, build_limiter_chain

logger = logging.getLogger(__name__)


_store: AbstractCounterStore | None = None
_store_config: tuple | None = None
_chain: LimiterChain | None = None
_chain_config: tuple | None = None


def get_counter_store() -> AbstractCounterStore:
    """Return the process-wide counter store.

    The instance is cached in-module so connections are reused across
    requests. If configuration changes (primarily in tests), it is rebuilt.

    Returns:
        AbstractCounterStore: Configured store instance.
    """

    global _store, _store_config

    config = (
        settings.store.backend,
        settings.store.url,
        settings.store.socket_timeout_seconds,
        settings.store.connect_timeout_seconds,
    )

    if _store is None or _store_config != config:
        _store = create_counter_store(settings.store)
        _store_config = config

    return _store


def get_limiter_chain() -> LimiterChain:
    """Return the process-wide limiter chain.

    Rebuilt when rate limit configuration or the store changes.

    Returns:
        LimiterChain: Configured chain.

    Raises:
        InvalidConfigurationError: If the configured limits are invalid.
    """

    global _chain, _chain_config

    store = get_counter_store()
    cfg = settings.rate_limit
    config = (
        id(store),
        cfg.algorithm,
        cfg.limits,
        cfg.requests,
        cfg.window_seconds,
        cfg.fail_mode,
        cfg.retry_after_from_ttl,
        cfg.key_prefix,
    )

    if _chain is None or _chain_config != config:
        _chain = build_limiter_chain(cfg, store)
        _chain_config = config

    return _chain


async def ping_counter_store() -> bool:
    """Return whether the counter store answers a ping."""

    try:
        return await get_counter_store().ping()
    except StoreUnavailableError:
        return False


async def close_counter_store() -> None:
    """Close the cached store and forget cached instances."""

    global _store, _store_config, _chain, _chain_config

    if _store is not None:
        await _store.close()
    _store = None
    _store_config = None
    _chain = None
    _chain_config = None


def get_client_identity(request: Request) -> str:
    """Derive the rate limit identity for the current request.

    Args:
        request: FastAPI request.

    Returns:
        str: Client address (not a security boundary; it can be spoofed).
    """

    if settings.app.trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    return request.client.host if request.client else "unknown"


async def enforce_rate_limit(request: Request, response: Response) -> None:
    """FastAPI dependency enforcing the limiter chain.

    When enabled, counts the request against every configured limit. Allowed
    requests get X-RateLimit-* headers; denied requests raise HTTP 429 with
    those headers plus Retry-After. Store failures propagate as
    StoreUnavailableError (rendered as 503) unless fail mode is ``open``.

    Args:
        request: FastAPI request.
        response: Response whose headers receive the quota metadata.

    Raises:
        HTTPException: 429 Too Many Requests when a limit is exceeded.
    """

    if not settings.rate_limit.enabled:
        return

    chain = get_limiter_chain()
    identity = get_client_identity(request)
    identity_hash = hash_identity(identity)

    result = await chain.check(identity)
    if result is None:
        return

    headers = rate_limit_headers(result) if settings.rate_limit.include_headers else {}

    if result.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "identity_hash": identity_hash,
                "limit": result.limit,
                "remaining": result.remaining,
                "reset_at": result.reset_at,
            },
        )
        response.headers.update(headers)
        return

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "identity_hash": identity_hash,
            "limit": result.limit,
            "remaining": result.remaining,
            "reset_at": result.reset_at,
            "retry_after_s": result.retry_after_seconds,
        },
    )

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Rate limit exceeded. Try again later.",
        headers=headers or None,
    )
