"""Tests for admission decision and response metadata."""

from __future__ import annotations

from fractions import Fraction

import pytest

from app.adapters.rate_limit.base import LimitSpec
from app.adapters.rate_limit.decision import clamp_remaining, decide, rate_limit_headers
from app.core.errors import InvalidConfigurationError


@pytest.mark.parametrize(
    ("limit", "used", "expected"),
    [(5, 0, 5), (5, 3, 2), (5, 5, 0), (5, 9, 0), (10, Fraction(25, 3), 1), (5, -2, 5)],
)
def test_clamp_remaining_stays_in_range(limit, used, expected) -> None:
    assert clamp_remaining(limit, used) == expected


def test_allowed_result_has_no_retry_hint() -> None:
    result = decide(LimitSpec(limit=5, window_seconds=60), 5, reset_at=1060, retry_after_seconds=60)

    assert result.allowed is True
    assert result.remaining == 0
    assert result.reset_at == 1060
    assert result.retry_after_seconds is None


def test_denied_result_carries_retry_hint() -> None:
    result = decide(LimitSpec(limit=5, window_seconds=60), 6, reset_at=1060, retry_after_seconds=60)

    assert result.allowed is False
    assert result.remaining == 0
    assert result.retry_after_seconds == 60


def test_headers_include_retry_after_only_when_denied() -> None:
    spec = LimitSpec(limit=5, window_seconds=60)
    allowed = decide(spec, 1, reset_at=1060, retry_after_seconds=60)
    denied = decide(spec, 6, reset_at=1060, retry_after_seconds=60)

    assert rate_limit_headers(allowed) == {
        "X-RateLimit-Limit": "5",
        "X-RateLimit-Remaining": "4",
        "X-RateLimit-Reset": "1060",
    }
    assert rate_limit_headers(denied)["Retry-After"] == "60"


class TestLimitSpec:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"limit": 0, "window_seconds": 60},
            {"limit": 1, "window_seconds": 0},
            {"limit": -3, "window_seconds": 60},
            {"limit": True, "window_seconds": 60},
        ],
    )
    def test_rejects_non_positive_values(self, kwargs: dict) -> None:
        with pytest.raises(InvalidConfigurationError):
            LimitSpec(**kwargs)

    def test_parse(self) -> None:
        assert LimitSpec.parse(" 100/60 ") == LimitSpec(limit=100, window_seconds=60)
        assert str(LimitSpec(limit=5, window_seconds=1)) == "5/1"

    @pytest.mark.parametrize("text", ["100", "a/60", "100/", "0/60", "10/-1"])
    def test_parse_rejects_bad_definitions(self, text: str) -> None:
        with pytest.raises(InvalidConfigurationError):
            LimitSpec.parse(text)
