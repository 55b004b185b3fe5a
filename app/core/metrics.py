"""Process-wide request tally.

The middleware increments a ``RequestCounter`` stored on ``app.state``; the
status endpoint reads it. The counter is per process: with several workers
each reports its own tally.
"""

from __future__ import annotations

import threading


class RequestCounter:
    """Thread-safe monotonically increasing counter."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value
