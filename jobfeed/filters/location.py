from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, Sequence

from jobfeed.core.normalize import CandidateJob

LOGGER = logging.getLogger(__name__)

EXACT_MIN = 10
NEARBY_MIN = 5
BROAD_POOL = 50


class MatchLevel(str, Enum):
    EXACT = "exact"
    NEARBY = "nearby"
    BROAD = "broad"


# Native-language and alternate spellings, keyed by lower-cased English name
CITY_VARIANTS: dict[str, tuple[str, ...]] = {
    "vienna": ("wien",),
    "zurich": ("zürich", "zuerich"),
    "milan": ("milano",),
    "rome": ("roma",),
    "prague": ("praha",),
    "warsaw": ("warszawa",),
    "brussels": ("bruxelles", "brussel"),
    "munich": ("münchen", "muenchen"),
    "copenhagen": ("københavn",),
    "stockholm": ("stockholms län",),
    "helsinki": ("helsingfors",),
    "dublin": ("baile átha cliath",),
    "london": (
        "central london",
        "city of london",
        "east london",
        "north london",
        "south london",
        "west london",
    ),
}

CITY_COUNTRY: dict[str, str] = {
    "london": "united kingdom",
    "berlin": "germany",
    "munich": "germany",
    "vienna": "austria",
    "zurich": "switzerland",
    "milan": "italy",
    "rome": "italy",
    "prague": "czech republic",
    "warsaw": "poland",
    "brussels": "belgium",
    "copenhagen": "denmark",
    "stockholm": "sweden",
    "helsinki": "finland",
    "dublin": "ireland",
    "amsterdam": "netherlands",
    "paris": "france",
    "madrid": "spain",
    "barcelona": "spain",
}


def city_variations(target_cities: Iterable[str]) -> set[str]:
    out: set[str] = set()
    for city in target_cities:
        key = " ".join((city or "").lower().split())
        if not key:
            continue
        out.add(key)
        out.update(CITY_VARIANTS.get(key, ()))
    return out


def country_for_city(city: str) -> str | None:
    return CITY_COUNTRY.get(" ".join((city or "").lower().split()))


def is_exact_match(job: CandidateJob, variations: set[str]) -> bool:
    city = (job.city or "").lower()
    location = (job.location or "").lower()
    if city and city in variations:
        return True
    if location:
        return location in variations or any(v in location for v in variations)
    return False


def is_nearby_match(job: CandidateJob, target_cities: Sequence[str]) -> bool:
    country = (job.country or "").lower()
    city = (job.city or "").lower()
    for target in target_cities:
        target_country = country_for_city(target)
        if country and target_country and country == target_country:
            return True
        words = (target or "").lower().split()
        if city and words and words[0] in city:
            return True
    return False


def match_by_location(
    jobs: Sequence[CandidateJob],
    target_cities: Sequence[str],
    *,
    exact_min: int = EXACT_MIN,
    nearby_min: int = NEARBY_MIN,
    broad_pool: int = BROAD_POOL,
) -> tuple[list[CandidateJob], MatchLevel]:
    """Narrow a pool by the subscriber's cities, falling back exact -> nearby -> broad.

    The nearby tier is the union of exact, same-country and fuzzy city matches
    in pool order. Without target cities the whole pool is returned as broad.
    """
    cities = [c for c in target_cities if c and c.strip()]
    if not cities:
        return list(jobs), MatchLevel.BROAD

    variations = city_variations(cities)
    exact = [j for j in jobs if is_exact_match(j, variations)]
    if len(exact) >= exact_min:
        LOGGER.debug("location-tier level=exact matches=%s", len(exact))
        return exact, MatchLevel.EXACT

    nearby = [j for j in jobs if is_exact_match(j, variations) or is_nearby_match(j, cities)]
    if len(nearby) >= nearby_min:
        LOGGER.debug("location-tier level=nearby exact=%s matches=%s", len(exact), len(nearby))
        return nearby, MatchLevel.NEARBY

    LOGGER.debug("location-tier level=broad exact=%s nearby=%s pool=%s", len(exact), len(nearby), len(jobs))
    return list(jobs[:broad_pool]), MatchLevel.BROAD
