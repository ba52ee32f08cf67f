"""SerpAPI Google Jobs adapter."""
from __future__ import annotations

import os

from jobfeed.core.errors import ProviderError, RateLimited
from jobfeed.providers.base import ListingProvider

BASE_URL = "https://serpapi.com/search"

# SerpAPI answers some quota conditions with HTTP 200 and an "error" body
_QUOTA_MARKERS = ("run out of searches", "rate limit", "too many requests")
_EMPTY_MARKERS = ("hasn't returned any results",)


def _apply_link(hit: dict) -> str:
    for key in ("apply_options", "related_links"):
        for opt in hit.get(key) or []:
            if isinstance(opt, dict) and opt.get("link"):
                return opt["link"]
    return hit.get("share_link") or hit.get("link") or ""


class SerpApiProvider(ListingProvider):
    name = "serpapi"
    fields = {
        "title": ("title",),
        "company": ("company_name",),
        "location": ("location",),
        "description": ("description",),
        "url": _apply_link,
        "posted": ("detected_extensions.posted_at", "extensions.0"),
    }

    def __init__(self, *, api_key: str | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key if api_key is not None else os.getenv("SERPAPI_API_KEY", "")

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def search(self, query: str, location: str) -> list[dict]:
        params = {"engine": "google_jobs", "q": query, "hl": "en", "api_key": self.api_key}
        if location:
            params["location"] = location
        data = self._get_json(BASE_URL, params=params)
        if not isinstance(data, dict):
            raise ProviderError(self.name, "unexpected payload shape")

        error = str(data.get("error") or "")
        if error:
            lowered = error.lower()
            if any(m in lowered for m in _EMPTY_MARKERS):
                return []
            if any(m in lowered for m in _QUOTA_MARKERS):
                raise RateLimited(self.name)
            raise ProviderError(self.name, error)

        hits = data.get("jobs_results") or []
        self._logger.debug("serpapi q=%r location=%r results=%s", query, location, len(hits))
        return [h for h in hits if isinstance(h, dict)]
