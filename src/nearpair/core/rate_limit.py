"""
In-process request throttling for the geocoding client.

Hosted geocoders enforce per-minute quotas; a batch over a few thousand
addresses must stay under them.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable


@dataclass
class TokenBucketRateLimiter:
    """Token bucket limiter for N requests per minute."""

    max_per_minute: float
    burst: float | None = None
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def __post_init__(self) -> None:
        rpm = float(self.max_per_minute)
        if rpm <= 0:
            raise ValueError("max_per_minute must be > 0")
        self._capacity = float(self.burst) if self.burst is not None else rpm
        self._tokens = self._capacity
        self._refill_per_sec = rpm / 60.0
        self._last = self.clock()

    def _refill(self) -> None:
        now = self.clock()
        elapsed = now - self._last
        if elapsed <= 0:
            return
        self._tokens = min(self._capacity, self._tokens + elapsed * self._refill_per_sec)
        self._last = now

    def acquire(self, tokens: float = 1.0) -> None:
        """Block until `tokens` are available, then consume them."""
        need = float(tokens)
        if need <= 0:
            return
        if need > self._capacity:
            raise ValueError("cannot acquire more tokens than the bucket capacity")
        while True:
            self._refill()
            if self._tokens >= need:
                self._tokens -= need
                return
            missing = need - self._tokens
            self.sleep(min(1.0, max(0.05, missing / self._refill_per_sec)))
