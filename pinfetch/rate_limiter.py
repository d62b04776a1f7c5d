"""
Fixed-window request rate limiting, keyed by caller identity (client IP).

Counters live in process memory and reset when their window ends:

    limiter = FixedWindowRateLimiter(limit=30, window_seconds=60)
    decision = limiter.hit("203.0.113.7")
    # -> RateLimitDecision(allowed=True, limit=30, remaining=29, reset_after=60)
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int  # seconds until the current window ends

    def headers(self) -> Dict[str, str]:
        """RateLimit-* response headers (IETF draft names)."""
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_after),
        }


class FixedWindowRateLimiter:
    """
    Counts hits per key inside fixed windows of `window_seconds`.

    Windows start at the first hit of a key, not on clock boundaries.
    Expired keys are pruned lazily so memory tracks active callers only.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}  # key -> (window_start, count)

    def _prune(self, now: float) -> None:
        expired = [
            key for key, (start, _) in self._windows.items()
            if now - start >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]

    def hit(self, key: str) -> RateLimitDecision:
        """Record one request for `key` and decide whether it may proceed."""
        now = self._clock()
        self._prune(now)

        start, count = self._windows.get(key, (now, 0))
        count += 1
        self._windows[key] = (start, count)

        reset_after = max(0, int(round(start + self.window_seconds - now)))
        allowed = count <= self.limit
        if not allowed:
            logger.warning(f"🚦 Rate limit exceeded for {key} ({count}/{self.limit})")

        return RateLimitDecision(
            allowed=allowed,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            reset_after=reset_after,
        )

    def reset(self) -> None:
        self._windows.clear()
