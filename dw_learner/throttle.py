"""Pacing between external calls.

The pipeline calls `wait()` before each article. Clock and sleep are
injectable so the policies can be tested without real delays.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from .config import PipelineConfig


LOGGER = logging.getLogger(__name__)


class NoLimiter:
    def wait(self) -> None:
        return None


class FixedDelayLimiter:
    """Sleep a fixed delay between calls; the first call passes immediately."""

    def __init__(self, delay_sec: float, sleep: Callable[[float], None] = time.sleep) -> None:
        self.delay_sec = max(0.0, float(delay_sec))
        self._sleep = sleep
        self._first = True

    def wait(self) -> None:
        if self._first:
            self._first = False
            return
        if self.delay_sec > 0:
            LOGGER.info("Waiting %.1fs to avoid rate limits...", self.delay_sec)
            self._sleep(self.delay_sec)


class TokenBucketLimiter:
    """Allow `capacity` calls in a burst, refilling at `rate_per_sec`."""

    def __init__(
        self,
        rate_per_sec: float,
        capacity: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate_per_sec <= 0:
            raise ValueError("rate_per_sec must be positive")
        self.rate = float(rate_per_sec)
        self.capacity = max(1, int(capacity))
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(self.capacity)
        self._last = clock()

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = min(self.capacity, self._tokens + (now - self._last) * self.rate)
        self._last = now

    def wait(self) -> None:
        self._refill()
        if self._tokens < 1.0:
            delay = (1.0 - self._tokens) / self.rate
            LOGGER.info("Waiting %.1fs for rate limit token...", delay)
            self._sleep(delay)
            self._refill()
            # sleep may return early with a fake or coarse clock
            self._tokens = max(self._tokens, 1.0)
        self._tokens -= 1.0


def build_limiter(cfg: PipelineConfig, sleep: Callable[[float], None] = time.sleep):
    if cfg.limiter == "fixed":
        return FixedDelayLimiter(cfg.delay_sec, sleep=sleep)
    if cfg.limiter == "token_bucket":
        return TokenBucketLimiter(cfg.rate_per_sec, cfg.burst, sleep=sleep)
    if cfg.limiter == "none":
        return NoLimiter()
    raise ValueError(f"Unknown limiter: {cfg.limiter!r}")
