"""Structured counter keys.

Keys are rendered as ``prefix:algorithm:window_seconds:window_start:identity``.
The identity goes last because it is client-derived and may contain ``:``
(IPv6 addresses); every other segment is fixed-format, and the prefix is
restricted to letters, digits, ``_``, ``.`` and ``-`` by configuration.
"""

from __future__ import annotations

from dataclasses import dataclass

# Window-start segment for keys whose lifetime is managed by TTL alone.
CURRENT_WINDOW = "current"


@dataclass(frozen=True)
class WindowKey:
    """Composite key identifying one counter slot.

    Attributes:
        identity: Client identity.
        algorithm: Limiter namespace.
        window_seconds: Window size the counter belongs to.
        window_start: Epoch-aligned bucket start, or None for a TTL-managed
            window (fixed-window limiter).
        prefix: Global namespace for all rate limit keys.
    """

    identity: str
    algorithm: str
    window_seconds: int
    window_start: int | None = None
    prefix: str = "ratelimit"

    def render(self) -> str:
        start = CURRENT_WINDOW if self.window_start is None else str(self.window_start)
        return f"{self.prefix}:{self.algorithm}:{self.window_seconds}:{start}:{self.identity}"

    def previous(self) -> "WindowKey":
        """Key of the bucket immediately preceding this one."""
        if self.window_start is None:
            raise ValueError("TTL-managed windows have no previous bucket")
        return WindowKey(
            identity=self.identity,
            algorithm=self.algorithm,
            window_seconds=self.window_seconds,
            window_start=self.window_start - self.window_seconds,
            prefix=self.prefix,
        )

    def __str__(self) -> str:
        return self.render()
