"""Per-client request rate limiting."""

import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Mapping, Optional, Protocol


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds when the oldest counted request expires
    now: float = 0.0

    @property
    def retry_after(self) -> int:
        """Whole seconds until another request would be allowed."""
        if self.allowed:
            return 0
        return max(1, math.ceil(self.reset_at - self.now))

    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(math.ceil(self.reset_at))),
        }


class RateLimiter(Protocol):
    def check(self, identifier: str) -> RateLimitDecision:
        ...


class RateLimitExceeded(Exception):
    """Raised at request entry when the client is over its quota."""

    def __init__(self, decision: RateLimitDecision):
        super().__init__(f"Rate limit exceeded, retry after {decision.retry_after}s")
        self.decision = decision


class SlidingWindowRateLimiter:
    """
    Sliding-window log limiter held in process memory.

    Allows ``limit`` requests per ``window_seconds`` for each identifier.
    Identifiers with no request inside the window are swept once per window,
    so rotating client identifiers cannot grow memory without bound.
    """

    def __init__(
        self,
        limit: int = 100,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.time,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def check(self, identifier: str) -> RateLimitDecision:
        now = self._clock()
        cutoff = now - self.window_seconds

        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(cutoff)
                self._last_sweep = now

            hits = self._hits.setdefault(identifier, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()

            if len(hits) >= self.limit:
                return RateLimitDecision(
                    allowed=False,
                    limit=self.limit,
                    remaining=0,
                    reset_at=hits[0] + self.window_seconds,
                    now=now,
                )

            hits.append(now)
            return RateLimitDecision(
                allowed=True,
                limit=self.limit,
                remaining=self.limit - len(hits),
                reset_at=hits[0] + self.window_seconds,
                now=now,
            )

    def _sweep(self, cutoff: float):
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in stale:
            del self._hits[key]

    @property
    def tracked_identifiers(self) -> int:
        """Number of client identifiers currently held in memory."""
        with self._lock:
            return len(self._hits)

    def reset(self, identifier: Optional[str] = None):
        """Forget recorded hits for one identifier, or for everyone."""
        with self._lock:
            if identifier is None:
                self._hits.clear()
            else:
                self._hits.pop(identifier, None)


def get_client_ip(headers: Mapping[str, str], peer: Optional[str] = None) -> str:
    """
    Best-effort client identifier behind proxies and CDNs.

    x-forwarded-for may hold a chain of addresses; the first is the client.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    for header in ("x-real-ip", "cf-connecting-ip"):
        value = headers.get(header)
        if value:
            return value.strip()

    return peer or "anonymous"
