"""Per-subscriber prefilter: location tiers, filters, scoring and source diversity.

Stateless; safe to call concurrently for independent subscribers.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal, NamedTuple, Optional, Sequence

from pydantic import BaseModel, field_validator

from jobfeed.core.date_parse import utcnow
from jobfeed.core.normalize import CandidateJob
from jobfeed.filters.location import BROAD_POOL, MatchLevel, match_by_location
from jobfeed.filters.rules import (
    FREE_MAX_AGE_DAYS,
    filter_by_career_path,
    filter_by_language,
    filter_by_quality,
)
from jobfeed.filters.scoring import DIVERSITY_CAP, SHORTLIST_CAP, enforce_diversity, score_job, source_distribution

LOGGER = logging.getLogger(__name__)


class SubscriberProfile(BaseModel):
    target_cities: list[str] = []
    languages: list[str] = []
    entry_level_preference: Optional[str] = None
    career_keywords: list[str] = []
    career_paths: list[str] = []
    subscription_tier: Literal["free", "premium"] = "free"

    @field_validator("target_cities", "languages", "career_keywords", "career_paths", mode="before")
    @classmethod
    def _split_csv(cls, value):
        # form submissions store these as comma-separated strings
        if value is None:
            return []
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        return value


class ScoredJob(BaseModel):
    job: CandidateJob
    prefilter_score: int
    match_level: MatchLevel


class Shortlist(NamedTuple):
    jobs: list[ScoredJob]
    match_level: MatchLevel

    def source_distribution(self) -> dict[str, int]:
        return source_distribution(s.job for s in self.jobs)


def shortlist(
    jobs: Sequence[CandidateJob],
    profile: SubscriberProfile,
    *,
    now: datetime | None = None,
    per_source: int = DIVERSITY_CAP,
    total: int = SHORTLIST_CAP,
    broad_pool: int = BROAD_POOL,
    free_max_age_days: int = FREE_MAX_AGE_DAYS,
) -> Shortlist:
    now = now or utcnow()
    pool, level = match_by_location(jobs, profile.target_cities, broad_pool=broad_pool)
    pool = filter_by_language(pool, profile.languages)
    pool = filter_by_career_path(pool, profile.career_paths)
    pool = filter_by_quality(
        pool,
        subscription_tier=profile.subscription_tier,
        experience_preference=profile.entry_level_preference,
        now=now,
        free_max_age_days=free_max_age_days,
    )

    scored = [
        ScoredJob(
            job=j,
            prefilter_score=score_job(
                j,
                level,
                experience_preference=profile.entry_level_preference,
                keywords=profile.career_keywords,
            ),
            match_level=level,
        )
        for j in pool
    ]
    # stable: equal scores keep pool order
    scored.sort(key=lambda s: s.prefilter_score, reverse=True)
    admitted = enforce_diversity(scored, per_source=per_source, total=total)

    LOGGER.info(
        "prefilter pool=%s candidates=%s admitted=%s match_level=%s",
        len(jobs), len(scored), len(admitted), level.value,
    )
    return Shortlist(admitted, level)
