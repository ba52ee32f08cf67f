from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable

from jobfeed.core.date_parse import utcnow

LOGGER = logging.getLogger(__name__)


@dataclass
class RequestBudget:
    daily_count: int = 0
    hourly_count: int = 0
    last_reset_day: date | None = None
    last_reset_hour: datetime | None = None


def _hour_bucket(now: datetime) -> datetime:
    return now.replace(minute=0, second=0, microsecond=0)


class BudgetManager:
    """Per-day / per-hour request ceilings for one provider credential.

    Boundaries are checked lazily on every call: crossing a calendar day
    resets the daily counter, crossing an hour bucket resets the hourly one.
    All state changes happen under one lock.
    """

    def __init__(
        self,
        daily_limit: int,
        hourly_limit: int,
        *,
        name: str = "default",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if daily_limit < 0 or hourly_limit < 0:
            raise ValueError("budget limits must be non-negative")
        self.name = name
        self.daily_limit = daily_limit
        self.hourly_limit = hourly_limit
        self._clock = clock
        self._state = RequestBudget()
        self._lock = threading.Lock()
        self.reset_if_boundary_crossed()

    def _reset_locked(self) -> None:
        now = self._clock()
        today = now.date()
        hour = _hour_bucket(now)
        state = self._state
        if state.last_reset_day != today:
            if state.last_reset_day is not None:
                LOGGER.info("budget-reset scope=daily provider=%s used=%s", self.name, state.daily_count)
            state.daily_count = 0
            state.last_reset_day = today
        if state.last_reset_hour != hour:
            if state.last_reset_hour is not None:
                LOGGER.debug("budget-reset scope=hourly provider=%s used=%s", self.name, state.hourly_count)
            state.hourly_count = 0
            state.last_reset_hour = hour

    def reset_if_boundary_crossed(self) -> None:
        with self._lock:
            self._reset_locked()

    def can_proceed(self) -> bool:
        with self._lock:
            self._reset_locked()
            return (
                self._state.daily_count < self.daily_limit
                and self._state.hourly_count < self.hourly_limit
            )

    def record_request(self) -> None:
        """Count one issued request. Callers gate with `can_proceed` first."""
        with self._lock:
            self._reset_locked()
            self._state.daily_count += 1
            self._state.hourly_count += 1
            daily, hourly = self._state.daily_count, self._state.hourly_count
        LOGGER.debug(
            "budget-usage provider=%s daily=%s/%s hourly=%s/%s",
            self.name, daily, self.daily_limit, hourly, self.hourly_limit,
        )

    @property
    def daily_count(self) -> int:
        with self._lock:
            self._reset_locked()
            return self._state.daily_count

    @property
    def hourly_count(self) -> int:
        with self._lock:
            self._reset_locked()
            return self._state.hourly_count

    def remaining(self) -> tuple[int, int]:
        with self._lock:
            self._reset_locked()
            return (
                max(self.daily_limit - self._state.daily_count, 0),
                max(self.hourly_limit - self._state.hourly_count, 0),
            )

    def snapshot(self) -> dict:
        with self._lock:
            self._reset_locked()
            daily, hourly = self._state.daily_count, self._state.hourly_count
        return {
            "provider": self.name,
            "daily_count": daily,
            "hourly_count": hourly,
            "daily_limit": self.daily_limit,
            "hourly_limit": self.hourly_limit,
            "daily_remaining": max(self.daily_limit - daily, 0),
            "hourly_remaining": max(self.hourly_limit - hourly, 0),
        }
