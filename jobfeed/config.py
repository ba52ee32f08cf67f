"""Runtime configuration.

Everything is read from the environment (optionally seeded from a `.env`
file; override its path with JOBFEED_DOTENV). Invalid numbers fall back to
the defaults. Search plans live in YAML/JSON files, see
`config/search_plan.yaml`.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Union

import yaml
from dotenv import load_dotenv

from jobfeed.core.acquisition import SearchPlan
from jobfeed.core.locations import LocationWeight

LOGGER = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./jobfeed.db"


def load_env() -> None:
    load_dotenv(dotenv_path=os.getenv("JOBFEED_DOTENV", ".env"))


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except ValueError:
        LOGGER.warning("config-invalid name=%s value=%r default=%s", name, raw, default)
        return default
    return value if value >= 0 else default


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw in (None, ""):
        return default
    try:
        value = float(raw)
    except ValueError:
        LOGGER.warning("config-invalid name=%s value=%r default=%s", name, raw, default)
        return default
    return value if value >= 0 else default


@dataclass(frozen=True)
class Settings:
    daily_limit: int = 167
    hourly_limit: int = 7
    provider_limits: dict[str, tuple[int, int]] = field(default_factory=dict)
    request_delay: float = 3.0
    provider_timeout: float = 20.0
    retry_attempts: int = 2
    backoff_multiplier: float = 2.0
    seen_ttl_days: int = 7
    sweep_interval_hours: float = 12.0
    ultra_fresh_hours: float = 24.0
    fresh_hours: float = 72.0
    free_max_age_days: int = 30
    diversity_cap: int = 3
    shortlist_cap: int = 100
    broad_pool: int = 50
    window_days: int = 30
    database_url: str = DEFAULT_DATABASE_URL
    admin_token: str = ""
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        if env is None:
            load_env()
            env = os.environ
        daily = _int(env, "JOBFEED_DAILY_LIMIT", cls.daily_limit)
        hourly = _int(env, "JOBFEED_HOURLY_LIMIT", cls.hourly_limit)

        overrides: dict[str, tuple[int, int]] = {}
        prefixes = ("JOBFEED_DAILY_LIMIT_", "JOBFEED_HOURLY_LIMIT_")
        for key in env:
            if key.startswith(prefixes):
                provider = key.rsplit("_LIMIT_", 1)[1].lower()
                overrides[provider] = (
                    _int(env, f"JOBFEED_DAILY_LIMIT_{provider.upper()}", daily),
                    _int(env, f"JOBFEED_HOURLY_LIMIT_{provider.upper()}", hourly),
                )

        return cls(
            daily_limit=daily,
            hourly_limit=hourly,
            provider_limits=overrides,
            request_delay=_float(env, "JOBFEED_REQUEST_DELAY", cls.request_delay),
            provider_timeout=_float(env, "JOBFEED_PROVIDER_TIMEOUT", cls.provider_timeout),
            retry_attempts=max(_int(env, "JOBFEED_RETRY_ATTEMPTS", cls.retry_attempts), 1),
            backoff_multiplier=_float(env, "JOBFEED_BACKOFF_MULTIPLIER", cls.backoff_multiplier),
            seen_ttl_days=_int(env, "JOBFEED_SEEN_TTL_DAYS", cls.seen_ttl_days),
            sweep_interval_hours=_float(env, "JOBFEED_SWEEP_INTERVAL_HOURS", cls.sweep_interval_hours),
            ultra_fresh_hours=_float(env, "JOBFEED_ULTRA_FRESH_HOURS", cls.ultra_fresh_hours),
            fresh_hours=_float(env, "JOBFEED_FRESH_HOURS", cls.fresh_hours),
            free_max_age_days=_int(env, "JOBFEED_FREE_MAX_AGE_DAYS", cls.free_max_age_days),
            diversity_cap=_int(env, "JOBFEED_DIVERSITY_CAP", cls.diversity_cap),
            shortlist_cap=_int(env, "JOBFEED_SHORTLIST_CAP", cls.shortlist_cap),
            broad_pool=_int(env, "JOBFEED_BROAD_POOL", cls.broad_pool),
            window_days=_int(env, "JOBFEED_WINDOW_DAYS", cls.window_days),
            database_url=env.get("JOBFEED_DATABASE_URL") or env.get("DATABASE_URL") or DEFAULT_DATABASE_URL,
            admin_token=env.get("JOBFEED_ADMIN_TOKEN", ""),
            log_level=(env.get("JOBFEED_LOG_LEVEL") or "INFO").upper(),
        )

    def limits_for(self, provider: str) -> tuple[int, int]:
        """(daily, hourly) ceilings for one provider credential."""
        return self.provider_limits.get(provider.lower(), (self.daily_limit, self.hourly_limit))


def _location(entry: Union[str, dict]) -> LocationWeight:
    if isinstance(entry, str):
        return LocationWeight(name=entry, weight=1.0)
    if not isinstance(entry, dict) or not entry.get("name"):
        raise ValueError(f"invalid location entry: {entry!r}")
    return LocationWeight(
        name=str(entry["name"]),
        weight=float(entry.get("weight", 1.0)),
        query=str(entry.get("query") or ""),
    )


def parse_search_plan(data: dict) -> SearchPlan:
    if not isinstance(data, dict):
        raise ValueError("search plan must be a mapping")
    queries = [str(q).strip() for q in data.get("queries") or [] if str(q).strip()]
    if not queries:
        raise ValueError("search plan has no queries")
    return SearchPlan(
        queries=queries,
        locations=[_location(e) for e in data.get("locations") or []],
        rotate=bool(data.get("rotate", True)),
        passes=int(data.get("passes", 1)),
    )


def load_search_plan(path: Union[str, Path]) -> SearchPlan:
    """Load a search plan from a .yaml/.yml or .json file."""
    path = Path(path)
    with path.open(encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    return parse_search_plan(data or {})
