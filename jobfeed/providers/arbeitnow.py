"""Arbeitnow public job board adapter.

The board has no server-side search, so one page is fetched per unit of work
and filtered locally on query words and the location's city.
"""
from __future__ import annotations

import re

from jobfeed.core.errors import ProviderError
from jobfeed.core.normalize import parse_location
from jobfeed.providers.base import ListingProvider

BASE_URL = "https://www.arbeitnow.com/api/job-board-api"

_WORD = re.compile(r"\w+", re.UNICODE)


def _location(hit: dict) -> str:
    loc = str(hit.get("location") or "").strip()
    if hit.get("remote") and "remote" not in loc.lower():
        return f"{loc} (Remote)" if loc else "Remote"
    return loc


def _matches(hit: dict, words: list[str], city: str) -> bool:
    haystack = " ".join(
        [str(hit.get("title") or "")] + [str(t) for t in hit.get("tags") or []]
    ).lower()
    if words and not all(w in haystack for w in words):
        return False
    if city and city not in str(hit.get("location") or "").lower() and not hit.get("remote"):
        return False
    return True


class ArbeitnowProvider(ListingProvider):
    name = "arbeitnow"
    fields = {
        "title": ("title",),
        "company": ("company_name",),
        "location": _location,
        "description": ("description",),
        "url": ("url",),
        "posted": ("created_at",),
    }
    category_fields = ("tags",)

    def __init__(self, *, page: int = 1, **kwargs) -> None:
        super().__init__(**kwargs)
        self.page = page

    def search(self, query: str, location: str) -> list[dict]:
        data = self._get_json(BASE_URL, params={"page": self.page})
        if not isinstance(data, dict):
            raise ProviderError(self.name, "unexpected payload shape")
        words = [w.lower() for w in _WORD.findall(query or "")]
        city, _ = parse_location(location)
        hits = [h for h in data.get("data") or [] if isinstance(h, dict)]
        kept = [h for h in hits if _matches(h, words, city)]
        self._logger.debug("arbeitnow q=%r city=%r fetched=%s kept=%s", query, city, len(hits), len(kept))
        return kept
