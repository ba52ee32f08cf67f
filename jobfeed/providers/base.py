from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

import requests

from jobfeed.core.errors import ProviderError, RateLimited

UA = {
    "User-Agent": "Mozilla/5.0 (compatible; JobFeed/0.3; +https://example.invalid/jobfeed)",
    "Accept": "application/json",
}

# canonical field -> dotted paths tried in order, or a callable over the raw payload
FieldSpec = Union[tuple[str, ...], Callable[[dict], Any]]


@dataclass
class ListingFields:
    title: str = ""
    company: str = ""
    location: str = ""
    description: str = ""
    url: str = ""
    posted: Any = None
    categories: list[str] = field(default_factory=list)


def pluck(raw: Any, path: str) -> Any:
    """Follow a dotted path through dicts and lists ("apply_options.0.link")."""
    cur = raw
    for part in path.split("."):
        if isinstance(cur, Mapping):
            cur = cur.get(part)
        elif isinstance(cur, list) and part.isdigit():
            idx = int(part)
            cur = cur[idx] if idx < len(cur) else None
        else:
            return None
        if cur is None:
            return None
    return cur


def _retry_after(resp: requests.Response) -> Optional[float]:
    value = resp.headers.get("Retry-After")
    try:
        return float(value) if value else None
    except ValueError:
        return None


class ListingProvider:
    """Base adapter: HTTP plumbing plus a declarative field mapping.

    Subclasses set `name`, `fields` (and optionally `category_fields`) and
    implement `search(query, location)` returning the provider's raw listing
    dicts. `to_fields` turns one raw listing into `ListingFields` using the
    mapping table; the acquisition engine builds the CandidateJob from it.
    """

    name: str = "base"
    fields: Mapping[str, FieldSpec] = {}
    category_fields: tuple[str, ...] = ()

    def __init__(self, *, timeout: float = 20.0, session: requests.Session | None = None) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()
        self._logger = logging.getLogger(f"{__name__}.{self.name}")

    @property
    def configured(self) -> bool:
        """Whether credentials needed by the provider are present."""
        return True

    def search(self, query: str, location: str) -> list[dict]:
        raise NotImplementedError

    # --- HTTP ---

    def _get_json(self, url: str, *, params: dict | None = None, headers: dict | None = None) -> Any:
        try:
            resp = self.session.get(url, params=params, headers={**UA, **(headers or {})}, timeout=self.timeout)
        except requests.Timeout as exc:
            raise ProviderError(self.name, f"timeout after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise ProviderError(self.name, f"request failed: {exc}") from exc

        if resp.status_code == 429:
            raise RateLimited(self.name, retry_after=_retry_after(resp))
        if resp.status_code >= 400:
            raise ProviderError(self.name, f"HTTP {resp.status_code}", status=resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise ProviderError(self.name, "invalid JSON payload") from exc

    # --- mapping ---

    def _field(self, raw: dict, key: str) -> Any:
        spec = self.fields.get(key)
        if spec is None:
            return None
        if callable(spec):
            return spec(raw)
        for path in spec:
            value = pluck(raw, path)
            if value not in (None, ""):
                return value
        return None

    def _categories(self, raw: dict) -> list[str]:
        out: list[str] = []
        for path in self.category_fields:
            value = pluck(raw, path)
            if isinstance(value, str) and value.strip():
                out.append(value.strip())
            elif isinstance(value, list):
                out.extend(str(v).strip() for v in value if isinstance(v, str) and v.strip())
        return out

    def to_fields(self, raw: dict) -> ListingFields:
        def text(key: str) -> str:
            value = self._field(raw, key)
            return str(value).strip() if value is not None else ""

        return ListingFields(
            title=text("title"),
            company=text("company"),
            location=text("location"),
            description=text("description"),
            url=text("url"),
            posted=self._field(raw, "posted"),
            categories=self._categories(raw),
        )
