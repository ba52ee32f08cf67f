"""Adzuna adapter. The country endpoint is picked from the search location."""
from __future__ import annotations

import os

from jobfeed.core.errors import ProviderError
from jobfeed.core.normalize import canonical_country, parse_location
from jobfeed.providers.base import ListingProvider

BASE_URL = "https://api.adzuna.com/v1/api/jobs/{country}/search/1"

ADZUNA_COUNTRIES: dict[str, str] = {
    "united kingdom": "gb",
    "germany": "de",
    "france": "fr",
    "netherlands": "nl",
    "spain": "es",
    "italy": "it",
    "austria": "at",
    "switzerland": "ch",
    "poland": "pl",
    "belgium": "be",
    "united states": "us",
}

# Cities searched without a country suffix
CITY_COUNTRIES: dict[str, str] = {
    "london": "gb",
    "manchester": "gb",
    "berlin": "de",
    "munich": "de",
    "paris": "fr",
    "amsterdam": "nl",
    "madrid": "es",
    "barcelona": "es",
    "milan": "it",
    "vienna": "at",
    "zurich": "ch",
    "warsaw": "pl",
    "brussels": "be",
}


def country_code(location: str, default: str = "gb") -> str:
    city, country = parse_location(location)
    if country:
        code = ADZUNA_COUNTRIES.get(canonical_country(country))
        if code:
            return code
    return CITY_COUNTRIES.get(city, default)


class AdzunaProvider(ListingProvider):
    name = "adzuna"
    fields = {
        "title": ("title",),
        "company": ("company.display_name",),
        "location": ("location.display_name",),
        "description": ("description",),
        "url": ("redirect_url",),
        "posted": ("created",),
    }
    category_fields = ("category.label",)

    def __init__(
        self,
        *,
        app_id: str | None = None,
        app_key: str | None = None,
        results_per_page: int = 20,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.app_id = app_id if app_id is not None else os.getenv("ADZUNA_APP_ID", "")
        self.app_key = app_key if app_key is not None else os.getenv("ADZUNA_APP_KEY", "")
        self.results_per_page = results_per_page

    @property
    def configured(self) -> bool:
        return bool(self.app_id and self.app_key)

    def search(self, query: str, location: str) -> list[dict]:
        params = {
            "app_id": self.app_id,
            "app_key": self.app_key,
            "what": query,
            "results_per_page": self.results_per_page,
            "content-type": "application/json",
        }
        city, _ = parse_location(location)
        if city:
            params["where"] = city
        data = self._get_json(BASE_URL.format(country=country_code(location)), params=params)
        if not isinstance(data, dict):
            raise ProviderError(self.name, "unexpected payload shape")
        hits = data.get("results") or []
        self._logger.debug("adzuna q=%r where=%r results=%s", query, city, len(hits))
        return [h for h in hits if isinstance(h, dict)]
