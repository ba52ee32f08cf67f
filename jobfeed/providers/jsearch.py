"""JSearch (RapidAPI) adapter."""
from __future__ import annotations

import os

from jobfeed.core.errors import ProviderError
from jobfeed.providers.base import ListingProvider

BASE_URL = "https://jsearch.p.rapidapi.com/search"
HOST = "jsearch.p.rapidapi.com"


def _location(hit: dict) -> str:
    parts = [hit.get("job_city"), hit.get("job_state"), hit.get("job_country")]
    text = ", ".join(str(p).strip() for p in parts if p and str(p).strip())
    if hit.get("job_is_remote") and "remote" not in text.lower():
        text = f"{text} (Remote)" if text else "Remote"
    return text


class JSearchProvider(ListingProvider):
    name = "jsearch"
    fields = {
        "title": ("job_title",),
        "company": ("employer_name",),
        "location": _location,
        "description": ("job_description",),
        "url": ("job_apply_link", "job_google_link"),
        "posted": ("job_posted_at_timestamp", "job_posted_at_datetime_utc"),
    }
    category_fields = ("job_occupational_categories",)

    def __init__(self, *, api_key: str | None = None, date_posted: str = "week", **kwargs) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key if api_key is not None else os.getenv("RAPIDAPI_KEY", "")
        self.date_posted = date_posted

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def search(self, query: str, location: str) -> list[dict]:
        q = f"{query} in {location}" if location else query
        data = self._get_json(
            BASE_URL,
            params={"query": q, "page": 1, "num_pages": 1, "date_posted": self.date_posted},
            headers={"X-RapidAPI-Key": self.api_key, "X-RapidAPI-Host": HOST},
        )
        if not isinstance(data, dict):
            raise ProviderError(self.name, "unexpected payload shape")
        hits = data.get("data") or []
        self._logger.debug("jsearch q=%r results=%s", q, len(hits))
        return [h for h in hits if isinstance(h, dict)]
