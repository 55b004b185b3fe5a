"""Tests for structured counter keys."""

from __future__ import annotations

import pytest

from app.adapters.rate_limit.keys import WindowKey


def test_render_ttl_managed_window() -> None:
    key = WindowKey(identity="10.0.0.1", algorithm="fixed_window", window_seconds=60)

    assert key.render() == "ratelimit:fixed_window:60:current:10.0.0.1"


def test_render_aligned_bucket() -> None:
    key = WindowKey(
        identity="10.0.0.1",
        algorithm="sliding_window",
        window_seconds=30,
        window_start=990,
        prefix="rl",
    )

    assert str(key) == "rl:sliding_window:30:990:10.0.0.1"


def test_previous_bucket() -> None:
    key = WindowKey(identity="x", algorithm="sliding_window", window_seconds=30, window_start=990)

    assert key.previous().window_start == 960
    assert key.previous().identity == "x"


def test_previous_requires_aligned_bucket() -> None:
    key = WindowKey(identity="x", algorithm="fixed_window", window_seconds=30)

    with pytest.raises(ValueError):
        key.previous()


def test_distinct_windows_never_share_a_slot() -> None:
    base = dict(identity="x", algorithm="sliding_window")
    rendered = {
        WindowKey(window_seconds=60, window_start=0, **base).render(),
        WindowKey(window_seconds=60, window_start=60, **base).render(),
        WindowKey(window_seconds=30, window_start=60, **base).render(),
        WindowKey(identity="x", algorithm="fixed_window", window_seconds=60).render(),
    }

    assert len(rendered) == 4


def test_ipv6_identity_is_rendered_last() -> None:
    key = WindowKey(identity="2001:db8::1", algorithm="sliding_window", window_seconds=60, window_start=120)

    assert key.render() == "ratelimit:sliding_window:60:120:2001:db8::1"
