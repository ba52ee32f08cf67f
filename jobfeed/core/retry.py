"""Throttling and rate-limit retry for provider calls."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Tuple, Type, TypeVar

from jobfeed.core.errors import RateLimited

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 2
    base_delay: float = 6.0
    multiplier: float = 2.0
    max_delay: float = 300.0
    retryable: Tuple[Type[BaseException], ...] = (RateLimited,)

    def delays(self) -> Iterator[float]:
        """Backoff before attempt 2, 3, ... (one value per retry)."""
        for attempt in range(1, self.max_attempts):
            yield min(self.base_delay * (self.multiplier ** (attempt - 1)), self.max_delay)

    def run(
        self,
        fn: Callable[[], T],
        *,
        sleep: Callable[[float], None] = time.sleep,
        before_retry: Callable[[], None] | None = None,
        label: str = "call",
    ) -> T:
        """Call `fn`, retrying on `retryable` errors with exponential backoff.

        `before_retry` runs after the backoff and before the next attempt; it
        may raise to abandon the retry (e.g. when the budget is exhausted).
        The last retryable error is re-raised once attempts run out.
        """
        delays = self.delays()
        attempt = 1
        while True:
            try:
                return fn()
            except self.retryable as exc:
                delay = next(delays, None)
                if delay is None:
                    LOGGER.warning("%s failed after %d attempts: %s", label, attempt, exc)
                    raise
                retry_after = getattr(exc, "retry_after", None)
                if retry_after:
                    delay = max(delay, min(float(retry_after), self.max_delay))
                LOGGER.warning(
                    "%s attempt %d/%d failed (%s), retrying in %.1fs",
                    label, attempt, self.max_attempts, exc, delay,
                )
                sleep(delay)
                if before_retry is not None:
                    before_retry()
                attempt += 1


class Throttle:
    """Minimum spacing between request starts for one provider worker."""

    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_start: float | None = None
        self._lock = threading.Lock()

    def wait(self) -> float:
        """Sleep out the rest of the interval, mark a request start, return the wait."""
        with self._lock:
            waited = 0.0
            if self._last_start is not None:
                elapsed = self._clock() - self._last_start
                if elapsed < self.min_interval:
                    waited = self.min_interval - elapsed
                    LOGGER.debug("throttle waiting %.2fs", waited)
                    self._sleep(waited)
            self._last_start = self._clock()
            return waited
