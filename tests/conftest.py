"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set before any app import because
``app.core.config.settings`` is evaluated at import time.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("APP_ADMIN_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_ADMIN_API_KEYS", "test-admin-key-123,test-admin-key-456")
os.environ.setdefault("RATE_LIMIT_ALGORITHM", "fixed_window")
os.environ.setdefault("RATE_LIMIT_REQUESTS", "5")
os.environ.setdefault("RATE_LIMIT_WINDOW_SECONDS", "60")

from unittest.mock import Mock

import pytest

from app.core import rate_limit as rate_limit_module


@pytest.fixture(autouse=True)
def fresh_rate_limit_state(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test with no cached store/chain (fresh in-memory counters)."""
    monkeypatch.setattr(rate_limit_module, "_store", None)
    monkeypatch.setattr(rate_limit_module, "_store_config", None)
    monkeypatch.setattr(rate_limit_module, "_chain", None)
    monkeypatch.setattr(rate_limit_module, "_chain_config", None)


@pytest.fixture
def clock() -> Mock:
    """Controllable time source starting at a bucket-aligned epoch second."""
    return Mock(return_value=1_000_020.0)
