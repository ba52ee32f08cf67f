from __future__ import annotations

import hashlib
import re
from datetime import datetime, timedelta
from enum import Enum

from bs4 import BeautifulSoup
from pydantic import BaseModel

from jobfeed.core.date_parse import utcnow


class FreshnessTier(str, Enum):
    ULTRA_FRESH = "ultra-fresh"
    FRESH = "fresh"
    COMPREHENSIVE = "comprehensive"


class CandidateJob(BaseModel):
    title: str
    company: str
    url: str
    source: str
    location: str = ""
    city: str = ""
    country: str = ""
    description: str = ""
    posted_at: datetime | None = None
    freshness_tier: FreshnessTier = FreshnessTier.COMPREHENSIVE
    experience_level: str | None = None
    languages: list[str] = []
    career_path: str = "unknown"
    is_remote: bool = False
    fingerprint: str = ""


def _collapse(value: str | None) -> str:
    return " ".join((value or "").split()).strip()


def normalize_title(title: str) -> str:
    return _collapse(title)


def normalize_company(name: str) -> str:
    return _collapse(name)


def canonical_location(loc: str | None) -> str:
    if not loc:
        return ""
    loc = _collapse(loc)
    loc = loc.replace("United Kingdom of Great Britain and Northern Ireland", "United Kingdom")
    loc = loc.replace("United States of America", "United States")
    return loc


def make_fingerprint(title: str, company: str, location: str) -> str:
    """Stable, case/whitespace-insensitive identity of a posting."""
    key = "|".join(_collapse(part).lower() for part in (title, company, location))
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def html_to_text(html: str | None) -> str:
    if not html:
        return ""
    if "<" not in html:
        return _collapse(html)
    text = BeautifulSoup(html, "html.parser").get_text(" ", strip=True)
    return _collapse(text)


# --- Location parsing -----------------------------------------------------------

COUNTRY_ALIASES: dict[str, str] = {
    "uk": "united kingdom",
    "gb": "united kingdom",
    "great britain": "united kingdom",
    "england": "united kingdom",
    "scotland": "united kingdom",
    "wales": "united kingdom",
    "northern ireland": "united kingdom",
    "deutschland": "germany",
    "de": "germany",
    "nederland": "netherlands",
    "the netherlands": "netherlands",
    "nl": "netherlands",
    "españa": "spain",
    "es": "spain",
    "italia": "italy",
    "it": "italy",
    "schweiz": "switzerland",
    "suisse": "switzerland",
    "ch": "switzerland",
    "österreich": "austria",
    "at": "austria",
    "belgique": "belgium",
    "belgië": "belgium",
    "danmark": "denmark",
    "sverige": "sweden",
    "éire": "ireland",
    "ie": "ireland",
    "fr": "france",
    "polska": "poland",
    "česko": "czech republic",
    "czechia": "czech republic",
    "usa": "united states",
    "us": "united states",
}

REMOTE_MARKERS = re.compile(r"\b(remote|work\s+from\s+home|wfh|anywhere)\b", re.I)


def canonical_country(country: str | None) -> str:
    key = _collapse(country).lower()
    return COUNTRY_ALIASES.get(key, key)


def parse_location(raw: str | None) -> tuple[str, str]:
    """Split "City, Region, Country" into (city, country), lower-cased."""
    parts = [p.strip() for p in canonical_location(raw).lower().split(",") if p.strip()]
    if not parts:
        return "", ""
    city = parts[0]
    country = canonical_country(parts[-1]) if len(parts) > 1 else ""
    return city, country


def is_remote_location(raw: str | None) -> bool:
    return bool(REMOTE_MARKERS.search(raw or ""))


# --- Freshness ------------------------------------------------------------------

def freshness_tier(
    posted_at: datetime | None,
    *,
    now: datetime | None = None,
    ultra_fresh_hours: float = 24,
    fresh_hours: float = 72,
) -> FreshnessTier:
    if posted_at is None:
        return FreshnessTier.COMPREHENSIVE
    age = (now or utcnow()) - posted_at
    if age < timedelta(hours=ultra_fresh_hours):
        return FreshnessTier.ULTRA_FRESH
    if age < timedelta(hours=fresh_hours):
        return FreshnessTier.FRESH
    return FreshnessTier.COMPREHENSIVE


# --- Experience -----------------------------------------------------------------

_EXPERIENCE_TITLE_RULES: tuple[tuple[str, re.Pattern], ...] = (
    ("principal", re.compile(r"\b(principal|staff|distinguished)\b", re.I)),
    ("lead", re.compile(r"\b(lead|head\s+of|team\s*lead|tech\s*lead)\b", re.I)),
    ("senior", re.compile(r"\b(senior|sr\.?|experienced)\b", re.I)),
    ("intern", re.compile(r"\b(intern|internship|placement|praktikum|stagiaire|werkstudent)\b", re.I)),
    ("graduate", re.compile(r"\b(graduate|new\s*grad|grad\s+scheme|campus\s+hire|trainee|absolvent)\b", re.I)),
    ("junior", re.compile(r"\b(junior|jr\.?|associate)\b", re.I)),
    ("entry", re.compile(r"\b(entry[\s-]*level|early\s+career|apprentice(ship)?)\b", re.I)),
    ("mid", re.compile(r"\b(mid[\s-]*level|intermediate)\b", re.I)),
)

_DESC_JUNIOR = re.compile(
    r"\b(new\s*grad|recent\s+graduate|entry[\s-]*level|early\s+career|0\s*[-–]\s*[12]\s*years?|no\s+experience\s+required)\b",
    re.I,
)
_DESC_SENIOR = re.compile(r"\b([5-9]|1[0-9])\s*\+\s*(years?|yrs?)\b", re.I)


def infer_experience(title: str, description: str | None = None) -> str | None:
    """Infer a coarse experience signal from title first, then description.

    Title keywords win; descriptions only decide when the title is silent.
    Returns None when there is no signal at all.
    """
    t = title or ""
    for level, pattern in _EXPERIENCE_TITLE_RULES:
        if pattern.search(t):
            return level

    desc = description or ""
    if _DESC_SENIOR.search(desc):
        return "senior"
    if _DESC_JUNIOR.search(desc):
        return "entry"
    return None


# --- Languages ------------------------------------------------------------------

LANGUAGE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "English": ("english",),
    "German": ("german", "deutsch"),
    "French": ("french", "français", "francais"),
    "Spanish": ("spanish", "español", "espanol", "castellano"),
    "Italian": ("italian", "italiano"),
    "Dutch": ("dutch", "nederlands"),
    "Portuguese": ("portuguese", "português", "portugues"),
    "Swedish": ("swedish", "svenska"),
    "Danish": ("danish", "dansk"),
    "Norwegian": ("norwegian", "norsk"),
    "Finnish": ("finnish", "suomi"),
    "Polish": ("polish", "polski"),
    "Czech": ("czech", "čeština"),
    "Greek": ("greek",),
    "Russian": ("russian",),
    "Arabic": ("arabic",),
    "Turkish": ("turkish",),
    "Mandarin": ("mandarin", "chinese"),
    "Japanese": ("japanese",),
    "Korean": ("korean",),
    "Hindi": ("hindi",),
}

_LANGUAGE_PATTERNS = {
    lang: re.compile(r"\b(" + "|".join(re.escape(k) for k in keys) + r")\b", re.I)
    for lang, keys in LANGUAGE_KEYWORDS.items()
}


def extract_languages(*texts: str | None) -> list[str]:
    """Languages a posting mentions, in a stable order."""
    blob = " ".join(t for t in texts if t)
    if not blob:
        return []
    return [lang for lang, pattern in _LANGUAGE_PATTERNS.items() if pattern.search(blob)]


def build_candidate(
    *,
    title: str,
    company: str,
    url: str,
    source: str,
    location: str | None = None,
    description: str | None = None,
    posted_at: datetime | None = None,
    now: datetime | None = None,
    ultra_fresh_hours: float = 24,
    fresh_hours: float = 72,
) -> CandidateJob:
    """Assemble a CandidateJob with every derived field filled in."""
    title = normalize_title(title)
    company = normalize_company(company)
    loc = canonical_location(location)
    desc = html_to_text(description)
    city, country = parse_location(loc)
    return CandidateJob(
        title=title,
        company=company,
        url=(url or "").strip(),
        source=source,
        location=loc,
        city=city,
        country=country,
        description=desc,
        posted_at=posted_at,
        freshness_tier=freshness_tier(
            posted_at, now=now, ultra_fresh_hours=ultra_fresh_hours, fresh_hours=fresh_hours
        ),
        experience_level=infer_experience(title, desc),
        languages=extract_languages(title, desc),
        is_remote=is_remote_location(loc),
        fingerprint=make_fingerprint(title, company, loc),
    )
