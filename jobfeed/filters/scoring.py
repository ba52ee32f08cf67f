from __future__ import annotations

from collections import Counter
from typing import Iterable, Sequence, TypeVar

from jobfeed.core.normalize import CandidateJob, FreshnessTier
from jobfeed.filters.location import MatchLevel
from jobfeed.filters.rules import experience_matches, is_reputable

BASE_SCORE = 50
MAX_SCORE = 100
MATCH_LEVEL_BONUS = {MatchLevel.EXACT: 20, MatchLevel.NEARBY: 10, MatchLevel.BROAD: 0}
FRESHNESS_BONUS = {FreshnessTier.ULTRA_FRESH: 15, FreshnessTier.FRESH: 10, FreshnessTier.COMPREHENSIVE: 0}
REPUTATION_BONUS = 10
EXPERIENCE_BONUS = 15
KEYWORD_BONUS = 5

DIVERSITY_CAP = 3
SHORTLIST_CAP = 100

T = TypeVar("T")


def keyword_hits(description: str | None, keywords: Iterable[str]) -> int:
    text = (description or "").lower()
    if not text:
        return 0
    distinct = {k.strip().lower() for k in keywords if k and k.strip()}
    return sum(1 for k in distinct if k in text)


def raw_score(
    job: CandidateJob,
    match_level: MatchLevel,
    *,
    experience_preference: str | None = None,
    keywords: Sequence[str] = (),
) -> int:
    score = BASE_SCORE
    score += MATCH_LEVEL_BONUS.get(MatchLevel(match_level), 0)
    score += FRESHNESS_BONUS.get(job.freshness_tier, 0)
    if is_reputable(job.company):
        score += REPUTATION_BONUS
    if experience_matches(experience_preference, job.experience_level):
        score += EXPERIENCE_BONUS
    score += KEYWORD_BONUS * keyword_hits(job.description, keywords)
    return score


def score_job(job: CandidateJob, match_level: MatchLevel, **kwargs) -> int:
    """Prefilter score in [50, 100]."""
    return min(raw_score(job, match_level, **kwargs), MAX_SCORE)


def enforce_diversity(
    ranked: Sequence[T],
    *,
    source_of=lambda item: item.job.source,
    per_source: int = DIVERSITY_CAP,
    total: int = SHORTLIST_CAP,
) -> list[T]:
    """Admit items in order, at most `per_source` per source and `total` overall."""
    admitted: list[T] = []
    counts: Counter = Counter()
    for item in ranked:
        if len(admitted) >= total:
            break
        source = source_of(item) or "unknown"
        if counts[source] >= per_source:
            continue
        counts[source] += 1
        admitted.append(item)
    return admitted


def source_distribution(jobs: Iterable[CandidateJob]) -> dict[str, int]:
    return dict(Counter(j.source or "unknown" for j in jobs))
