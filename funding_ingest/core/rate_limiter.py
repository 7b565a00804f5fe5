"""
Token-bucket rate limiting for outbound requests to one source.

The bucket holds at most ``requests_per_minute`` tokens and refills
continuously at ``requests_per_minute / 60`` tokens per second.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class TokenBucket:
    """Per-source token bucket shared by every request to that source."""
    requests_per_minute: int = 30
    clock: Callable[[], float] = time.monotonic
    tokens: float = field(init=False)
    last_refill: float = field(init=False)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def __post_init__(self) -> None:
        if self.requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be positive")
        self.tokens = float(self.requests_per_minute)
        self.last_refill = self.clock()

    @property
    def max_tokens(self) -> float:
        return float(self.requests_per_minute)

    @property
    def refill_rate(self) -> float:
        """Tokens added per second."""
        return self.requests_per_minute / 60.0

    def _refill(self) -> None:
        now = self.clock()
        elapsed = now - self.last_refill
        self.tokens = min(self.max_tokens, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    async def acquire(self) -> None:
        """Take one token, sleeping until one is available."""
        async with self.lock:
            self._refill()

            if self.tokens < 1:
                wait_time = (1 - self.tokens) / self.refill_rate
                logger.debug("rate_limit_wait", seconds=round(wait_time, 3))
                await asyncio.sleep(wait_time)
                self._refill()

            self.tokens = max(0.0, self.tokens - 1)

    @property
    def available(self) -> float:
        self._refill()
        return self.tokens


class RateLimiterRegistry:
    """One bucket per source id."""

    def __init__(self):
        self._buckets: dict[str, TokenBucket] = {}

    def get(self, source_id: str, requests_per_minute: int) -> TokenBucket:
        if source_id not in self._buckets:
            self._buckets[source_id] = TokenBucket(requests_per_minute=requests_per_minute)
        return self._buckets[source_id]
