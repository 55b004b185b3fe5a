"""Factory for creating the configured counter store."""

from __future__ import annotations

import logging

from app.adapters.counter_store.base import AbstractCounterStore
from app.adapters.counter_store.in_memory import InMemoryCounterStore
from app.adapters.counter_store.redis_store import RedisCounterStore
from app.core.config import StoreSettings, settings

logger = logging.getLogger(__name__)


def create_counter_store(store_settings: StoreSettings | None = None) -> AbstractCounterStore:
    """Create a counter store based on configuration.

    Args:
        store_settings: Optional store settings; defaults to global settings.

    Returns:
        AbstractCounterStore: Configured store instance.
    """
    cfg = store_settings or settings.store

    if cfg.backend == "memory":
        logger.warning(
            "counter_store.memory_backend",
            extra={"hint": "limits are enforced per process only"},
        )
        return InMemoryCounterStore()

    logger.info("counter_store.redis_backend", extra={"socket_timeout_s": cfg.socket_timeout_seconds})
    return RedisCounterStore.from_url(
        cfg.url,
        socket_timeout=cfg.socket_timeout_seconds,
        connect_timeout=cfg.connect_timeout_seconds,
    )
