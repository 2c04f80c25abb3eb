"""
Sliding-window throttle for player actions (uploads, reactions, notifications).

Process-local and reset on restart: it stops button spam within a
session, it is not a security control. HTTP-level limits are handled by
slowapi in flick.core.rate_limit.
"""

import time
from typing import Callable, Optional

from flick.core.config import get_settings
from flick.core.constants import RATE_LIMIT_KINDS


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class RateLimiter:
    """Admit at most max_requests calls in any window_ms interval."""

    def __init__(
        self,
        max_requests: int,
        window_ms: float,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._clock = clock or _monotonic_ms
        self._timestamps: list[float] = []

    def try_acquire(self) -> bool:
        """Record an attempt and return True if it fits in the window."""
        now = self._clock()
        window_start = now - self.window_ms

        self._timestamps = [ts for ts in self._timestamps if ts > window_start]

        if len(self._timestamps) < self.max_requests:
            self._timestamps.append(now)
            return True

        return False

    def get_time_until_reset(self) -> float:
        """Milliseconds until the oldest recorded attempt leaves the window."""
        if not self._timestamps:
            return 0

        reset_at = self._timestamps[0] + self.window_ms
        return max(0, reset_at - self._clock())

    def reset(self) -> None:
        self._timestamps = []

    @classmethod
    def create(
        cls,
        kind: str,
        max_requests: Optional[int] = None,
        window_ms: Optional[float] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> "RateLimiter":
        """Build a limiter from the configured preset for an action kind."""
        if kind not in RATE_LIMIT_KINDS:
            raise ValueError(f"Unknown rate limit kind: {kind}. Valid kinds: {RATE_LIMIT_KINDS}")

        preset_max, preset_window = get_settings().rate_limit_preset(kind)
        return cls(
            max_requests=max_requests if max_requests is not None else preset_max,
            window_ms=window_ms if window_ms is not None else preset_window,
            clock=clock,
        )
