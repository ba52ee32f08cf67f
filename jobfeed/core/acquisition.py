"""Acquisition engine: budgeted, throttled search cycles against one provider."""
from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterator, Optional, Sequence

from jobfeed.core.budget import BudgetManager
from jobfeed.core.date_parse import parse_posted_at, utcnow
from jobfeed.core.dedupe import DedupCache
from jobfeed.core.errors import ProviderError, QuotaExceeded, RateLimited
from jobfeed.core.locations import LocationWeight, WeightedLocationSelector
from jobfeed.core.normalize import CandidateJob, build_candidate
from jobfeed.core.retry import RetryPolicy, Throttle
from jobfeed.core.taxonomy import classify_job

LOGGER = logging.getLogger(__name__)


@dataclass
class SearchPlan:
    """Query terms and locations for one cycle.

    With `rotate`, every query in every pass is one unit of work and the
    location comes from the weighted selector. Without it, units are the
    query x location cross product in input order.
    """
    queries: list[str]
    locations: list[LocationWeight] = field(default_factory=list)
    rotate: bool = True
    passes: int = 1

    def unit_count(self) -> int:
        per_pass = len(self.queries)
        if not self.rotate and self.locations:
            per_pass *= len(self.locations)
        return per_pass * max(self.passes, 0)

    def units(self) -> Iterator[tuple[str, Optional[LocationWeight]]]:
        """Yield (query, fixed location); the location is None when rotating."""
        for _ in range(max(self.passes, 0)):
            for query in self.queries:
                if self.rotate or not self.locations:
                    yield query, None
                else:
                    for loc in self.locations:
                        yield query, loc


@dataclass
class CycleMetrics:
    provider: str
    units_planned: int = 0
    units_attempted: int = 0
    requests_made: int = 0
    rate_limited: int = 0
    failures: int = 0
    raw_results: int = 0
    duplicates: int = 0
    invalid: int = 0
    new_jobs: int = 0
    ambiguous_tags: int = 0
    stopped_reason: str = "completed"
    started_at: datetime | None = None
    finished_at: datetime | None = None
    daily_remaining: int = 0
    hourly_remaining: int = 0
    location_usage: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


class AcquisitionEngine:
    """Runs search cycles for one provider credential.

    Owns its budget, throttle and retry policy; the dedup cache and location
    selector may be shared between engines (both serialise their own state).
    """

    def __init__(
        self,
        budget: BudgetManager,
        *,
        cache: DedupCache | None = None,
        selector: WeightedLocationSelector | None = None,
        throttle: Throttle | None = None,
        retry: RetryPolicy | None = None,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
        ultra_fresh_hours: float = 24,
        fresh_hours: float = 72,
    ) -> None:
        self.budget = budget
        self.cache = cache if cache is not None else DedupCache(clock=clock)
        self.selector = selector or WeightedLocationSelector()
        self.throttle = throttle or Throttle(3.0, sleep=sleep)
        self.retry = retry or RetryPolicy(base_delay=self.throttle.min_interval * 2)
        self._clock = clock
        self._sleep = sleep
        self.ultra_fresh_hours = ultra_fresh_hours
        self.fresh_hours = fresh_hours
        self._locations: Sequence[LocationWeight] = ()

    @classmethod
    def from_settings(cls, settings, provider: str, *, cache: DedupCache | None = None, **kwargs) -> "AcquisitionEngine":
        daily, hourly = settings.limits_for(provider)
        sleep = kwargs.pop("sleep", time.sleep)
        throttle = Throttle(settings.request_delay, sleep=sleep)
        retry = RetryPolicy(
            max_attempts=settings.retry_attempts,
            base_delay=settings.request_delay * 2,
            multiplier=settings.backoff_multiplier,
        )
        if cache is None:
            cache = DedupCache(timedelta(days=settings.seen_ttl_days))
        return cls(
            BudgetManager(daily, hourly, name=provider),
            cache=cache,
            throttle=throttle,
            retry=retry,
            sleep=sleep,
            ultra_fresh_hours=settings.ultra_fresh_hours,
            fresh_hours=settings.fresh_hours,
            **kwargs,
        )

    # --- cycle ---

    def run_cycle(self, adapter, plan: SearchPlan) -> tuple[list[CandidateJob], CycleMetrics]:
        """Run one search cycle; partial results are returned on early stop."""
        self._locations = plan.locations
        metrics = CycleMetrics(
            provider=adapter.name,
            units_planned=plan.unit_count(),
            started_at=self._clock(),
        )
        self.cache.sweep()
        jobs: list[CandidateJob] = []

        try:
            for query, fixed in plan.units():
                self._gate(adapter.name)
                loc = fixed
                if loc is None and plan.locations:
                    loc = self.selector.select_next(plan.locations)
                location = loc.query if loc is not None else ""
                metrics.units_attempted += 1

                try:
                    raw = self._search(adapter, query, location, metrics)
                except ProviderError as exc:
                    metrics.failures += 1
                    LOGGER.warning(
                        "acquisition-unit-failed provider=%s query=%r location=%r error=%s",
                        adapter.name, query, location, exc,
                    )
                    continue
                except QuotaExceeded:
                    raise
                except Exception:
                    metrics.failures += 1
                    LOGGER.exception(
                        "acquisition-unit-crashed provider=%s query=%r location=%r",
                        adapter.name, query, location,
                    )
                    continue

                self.budget.record_request()
                raw = raw or []
                metrics.raw_results += len(raw)
                for item in raw:
                    job = self._accept(adapter, item, metrics)
                    if job is not None:
                        jobs.append(job)
        except QuotaExceeded as exc:
            metrics.stopped_reason = "quota"
            LOGGER.info("acquisition-stopped provider=%s reason=quota detail=%s", adapter.name, exc)

        metrics.finished_at = self._clock()
        metrics.daily_remaining, metrics.hourly_remaining = self.budget.remaining()
        metrics.location_usage = WeightedLocationSelector.usage(plan.locations)
        LOGGER.info(
            "acquisition provider=%s units=%s/%s requests=%s new=%s duplicates=%s invalid=%s failures=%s stop=%s",
            metrics.provider, metrics.units_attempted, metrics.units_planned, metrics.requests_made,
            metrics.new_jobs, metrics.duplicates, metrics.invalid, metrics.failures, metrics.stopped_reason,
        )
        return jobs, metrics

    def _gate(self, provider: str) -> None:
        if not self.budget.can_proceed():
            LOGGER.debug("budget-refused provider=%s", provider)
            raise QuotaExceeded(self.budget.daily_count, self.budget.hourly_count)

    def _search(self, adapter, query: str, location: str, metrics: CycleMetrics) -> list:
        def attempt() -> list:
            self.throttle.wait()
            metrics.requests_made += 1
            try:
                return adapter.search(query, location)
            except RateLimited:
                metrics.rate_limited += 1
                raise

        return self.retry.run(
            attempt,
            sleep=self._sleep,
            before_retry=lambda: self._gate(adapter.name),
            label=f"{adapter.name} search q={query!r} loc={location!r}",
        )

    def _accept(self, adapter, item, metrics: CycleMetrics) -> CandidateJob | None:
        try:
            fields = adapter.to_fields(item)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            metrics.invalid += 1
            LOGGER.debug("acquisition-invalid provider=%s error=%s", adapter.name, exc)
            return None
        if not (fields.title and fields.company and fields.url):
            metrics.invalid += 1
            return None

        now = self._clock()
        job = build_candidate(
            title=fields.title,
            company=fields.company,
            url=fields.url,
            source=adapter.name,
            location=fields.location,
            description=fields.description,
            posted_at=parse_posted_at(fields.posted, now=now),
            now=now,
            ultra_fresh_hours=self.ultra_fresh_hours,
            fresh_hours=self.fresh_hours,
        )
        if not self.cache.record(job.fingerprint):
            metrics.duplicates += 1
            return None

        tag = classify_job(job.title, fields.categories)
        if tag.ambiguous:
            metrics.ambiguous_tags += 1
            LOGGER.debug("taxonomy-ambiguous title=%r %s", job.title, tag.diagnostic)
        job.career_path = tag.career_path
        metrics.new_jobs += 1
        return job

    # --- status ---

    def status(self) -> dict:
        return {
            "budget": self.budget.snapshot(),
            "dedup_cache_size": len(self.cache),
            "location_usage": WeightedLocationSelector.usage(self._locations),
        }
