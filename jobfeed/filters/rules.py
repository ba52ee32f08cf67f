from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, Sequence

from jobfeed.core.date_parse import utcnow
from jobfeed.core.normalize import CandidateJob
from jobfeed.core.taxonomy import UNSURE, normalize_career_path

LOGGER = logging.getLogger(__name__)

FREE_MAX_AGE_DAYS = 30

# Employers that earn the reputation bonus (substring match on the company name)
REPUTATION_ALLOW_LIST: tuple[str, ...] = (
    "google",
    "microsoft",
    "amazon",
    "apple",
    "meta",
    "netflix",
    "tesla",
    "uber",
    "airbnb",
    "spotify",
    "slack",
    "notion",
)

# Profile preference -> job experience signals it accepts
EXPERIENCE_LEVELS: dict[str, tuple[str, ...]] = {
    "entry-level": ("entry", "junior", "graduate"),
    "mid-level": ("mid", "intermediate"),
    "senior": ("senior", "lead", "principal"),
}


def is_reputable(company: str | None) -> bool:
    name = (company or "").lower()
    return bool(name) and any(tc in name for tc in REPUTATION_ALLOW_LIST)


def experience_matches(preference: str | None, signal: str | None) -> bool:
    """Whether a job's experience signal satisfies the profile preference.

    Known preferences accept a family of signals; anything else needs literal
    (case-insensitive) equality.
    """
    if not preference or not signal:
        return False
    pref = preference.strip().lower()
    sig = signal.strip().lower()
    accepted = EXPERIENCE_LEVELS.get(pref)
    if accepted is not None:
        return sig in accepted
    return pref == sig


def _lower_set(values: Iterable[str]) -> set[str]:
    return {v.strip().lower() for v in values if v and v.strip()}


def filter_by_language(jobs: Sequence[CandidateJob], spoken: Sequence[str]) -> list[CandidateJob]:
    """Keep jobs whose language signals intersect the spoken languages.

    No spoken languages: no filtering. Jobs without any language signal
    impose no requirement and are kept.
    """
    wanted = _lower_set(spoken)
    if not wanted:
        return list(jobs)
    kept = [j for j in jobs if not j.languages or _lower_set(j.languages) & wanted]
    LOGGER.debug("language-filter before=%s after=%s", len(jobs), len(kept))
    return kept


def is_too_old(job: CandidateJob, *, now: datetime, max_age_days: int) -> bool:
    # unknown posting date counts as new
    if job.posted_at is None:
        return False
    return now - job.posted_at > timedelta(days=max_age_days)


def filter_by_quality(
    jobs: Sequence[CandidateJob],
    *,
    subscription_tier: str = "free",
    experience_preference: str | None = None,
    now: datetime | None = None,
    free_max_age_days: int = FREE_MAX_AGE_DAYS,
) -> list[CandidateJob]:
    now = now or utcnow()
    kept: list[CandidateJob] = []
    dropped = {"incomplete": 0, "too_old": 0, "experience": 0}
    for job in jobs:
        if not (job.title and job.company and job.description):
            dropped["incomplete"] += 1
            continue
        if subscription_tier == "free" and is_too_old(job, now=now, max_age_days=free_max_age_days):
            dropped["too_old"] += 1
            continue
        if experience_preference and job.experience_level:
            if not experience_matches(experience_preference, job.experience_level):
                dropped["experience"] += 1
                continue
        kept.append(job)
    LOGGER.debug(
        "quality-filter before=%s after=%s incomplete=%s too_old=%s experience=%s",
        len(jobs), len(kept), dropped["incomplete"], dropped["too_old"], dropped["experience"],
    )
    return kept


def filter_by_career_path(jobs: Sequence[CandidateJob], career_paths: Sequence[str]) -> list[CandidateJob]:
    """Keep jobs tagged with one of the profile's career paths.

    Profile values go through the taxonomy first; a profile that is unsure
    (or names nothing recognisable) accepts every job.
    """
    if not career_paths:
        return list(jobs)
    wanted = {normalize_career_path(p) for p in career_paths}
    if UNSURE in wanted:
        return list(jobs)
    kept = [j for j in jobs if j.career_path in wanted]
    LOGGER.debug("career-path-filter paths=%s before=%s after=%s", sorted(wanted), len(jobs), len(kept))
    return kept
