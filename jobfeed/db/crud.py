from __future__ import annotations

import functools
import logging
from datetime import datetime, timedelta
from typing import Iterable, Sequence

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from jobfeed.core.acquisition import CycleMetrics
from jobfeed.core.date_parse import utcnow
from jobfeed.core.dedupe import deduplicate_jobs
from jobfeed.core.errors import ProfileNotFound, StoreUnavailable
from jobfeed.core.normalize import CandidateJob, freshness_tier
from jobfeed.core.taxonomy import UNKNOWN
from jobfeed.db.models import AcquisitionRun, Job, Subscriber
from jobfeed.filters.prefilter import SubscriberProfile

LOGGER = logging.getLogger(__name__)

_LOOKUP_CHUNK = 500


def _store_guard(fn):
    """Surface connectivity failures as StoreUnavailable after rolling back."""

    @functools.wraps(fn)
    def wrapper(session: Session, *args, **kwargs):
        try:
            return fn(session, *args, **kwargs)
        except OperationalError as exc:
            session.rollback()
            LOGGER.error("store-unavailable op=%s error=%s", fn.__name__, exc.orig)
            raise StoreUnavailable(str(exc.orig)) from exc

    return wrapper


def _job_row(job: CandidateJob, now: datetime) -> Job:
    return Job(
        fingerprint=job.fingerprint,
        source=job.source,
        title=job.title,
        company=job.company,
        location=job.location or None,
        city=job.city or None,
        country=job.country or None,
        is_remote=job.is_remote,
        url=job.url,
        description=job.description or None,
        posted_at=job.posted_at,
        career_path=job.career_path,
        experience_level=job.experience_level,
        languages=list(job.languages),
        active=True,
        first_seen_at=now,
        last_seen_at=now,
    )


@_store_guard
def upsert_jobs(session: Session, jobs: Iterable[CandidateJob], *, now: datetime | None = None) -> int:
    """Insert unseen fingerprints; refresh `last_seen_at` on the rest.

    Existing rows keep their content; only a missing `posted_at` is filled.
    Returns the number of inserted rows.
    """
    now = now or utcnow()
    batch = {j.fingerprint: j for j in deduplicate_jobs(jobs) if j.fingerprint}
    if not batch:
        return 0

    fingerprints = list(batch)
    existing: dict[str, Job] = {}
    for i in range(0, len(fingerprints), _LOOKUP_CHUNK):
        chunk = fingerprints[i:i + _LOOKUP_CHUNK]
        for row in session.execute(select(Job).where(Job.fingerprint.in_(chunk))).scalars():
            existing[row.fingerprint] = row

    inserted = 0
    for fp, job in batch.items():
        row = existing.get(fp)
        if row is None:
            session.add(_job_row(job, now))
            inserted += 1
            continue
        row.last_seen_at = now
        row.active = True
        if row.posted_at is None and job.posted_at is not None:
            row.posted_at = job.posted_at

    session.commit()
    LOGGER.info("upsert jobs=%s inserted=%s refreshed=%s", len(batch), inserted, len(batch) - inserted)
    return inserted


def to_candidate(
    row: Job,
    *,
    now: datetime | None = None,
    ultra_fresh_hours: float = 24,
    fresh_hours: float = 72,
) -> CandidateJob:
    return CandidateJob(
        title=row.title,
        company=row.company,
        url=row.url,
        source=row.source,
        location=row.location or "",
        city=row.city or "",
        country=row.country or "",
        description=row.description or "",
        posted_at=row.posted_at,
        freshness_tier=freshness_tier(
            row.posted_at, now=now, ultra_fresh_hours=ultra_fresh_hours, fresh_hours=fresh_hours
        ),
        experience_level=row.experience_level,
        languages=list(row.languages or []),
        career_path=row.career_path or UNKNOWN,
        is_remote=bool(row.is_remote),
        fingerprint=row.fingerprint,
    )


@_store_guard
def recent_jobs(
    session: Session,
    window_days: int = 30,
    *,
    now: datetime | None = None,
    ultra_fresh_hours: float = 24,
    fresh_hours: float = 72,
) -> list[CandidateJob]:
    """Active jobs seen or posted inside the window, newest sightings first."""
    now = now or utcnow()
    cutoff = now - timedelta(days=window_days)
    stmt = (
        select(Job)
        .where(Job.active.is_(True))
        .where(or_(Job.last_seen_at >= cutoff, Job.posted_at >= cutoff))
        .order_by(Job.last_seen_at.desc(), Job.id.desc())
    )
    rows = session.execute(stmt).scalars().all()
    return [
        to_candidate(r, now=now, ultra_fresh_hours=ultra_fresh_hours, fresh_hours=fresh_hours)
        for r in rows
    ]


@_store_guard
def get_profile(session: Session, subscriber_id: int) -> SubscriberProfile:
    sub = session.get(Subscriber, subscriber_id)
    if sub is None or not sub.active:
        raise ProfileNotFound(subscriber_id)
    return SubscriberProfile(
        target_cities=sub.target_cities or [],
        languages=sub.languages or [],
        entry_level_preference=sub.entry_level_preference,
        career_keywords=sub.career_keywords or [],
        career_paths=sub.career_paths or [],
        subscription_tier=sub.subscription_tier,
    )


@_store_guard
def create_subscriber(session: Session, email: str, profile: SubscriberProfile) -> Subscriber:
    sub = Subscriber(email=email.strip().lower(), **profile.model_dump())
    session.add(sub)
    session.commit()
    session.refresh(sub)
    return sub


@_store_guard
def record_run(session: Session, metrics: CycleMetrics, *, inserted: int = 0, notes: str | None = None) -> AcquisitionRun:
    run = AcquisitionRun(
        provider=metrics.provider,
        started_at=metrics.started_at or utcnow(),
        finished_at=metrics.finished_at,
        units_attempted=metrics.units_attempted,
        requests_made=metrics.requests_made,
        raw_results=metrics.raw_results,
        new_jobs=metrics.new_jobs,
        inserted=inserted,
        failures=metrics.failures,
        stopped_reason=metrics.stopped_reason,
        notes=notes,
    )
    session.add(run)
    session.commit()
    session.refresh(run)
    return run


@_store_guard
def recent_runs(session: Session, limit: int = 20) -> Sequence[AcquisitionRun]:
    stmt = select(AcquisitionRun).order_by(AcquisitionRun.id.desc()).limit(limit)
    return session.execute(stmt).scalars().all()


@_store_guard
def prune_jobs(session: Session, days: int, *, hard_delete: bool = False, now: datetime | None = None) -> int:
    """Deactivate (or delete) jobs not seen for `days` days; returns rows affected."""
    cutoff = (now or utcnow()) - timedelta(days=days)
    if hard_delete:
        result = session.execute(delete(Job).where(Job.last_seen_at < cutoff))
    else:
        result = session.execute(
            update(Job).where(Job.last_seen_at < cutoff, Job.active.is_(True)).values(active=False)
        )
    session.commit()
    affected = result.rowcount or 0
    LOGGER.info("prune days=%s hard_delete=%s affected=%s", days, hard_delete, affected)
    return affected
