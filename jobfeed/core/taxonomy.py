"""Career-path taxonomy: canonical tags, synonyms and tie-break priorities.

`normalize_career_path` maps raw role signals (form values, provider category
labels, title phrases) onto exactly one canonical tag. It never raises; it
returns "unsure" when nothing matches. `resolve_career_path` returns the same
answer together with the matches it saw so callers can report ambiguity.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Sequence, Union

CANONICAL_CAREER_PATHS: tuple[str, ...] = (
    "strategy",
    "data-analytics",
    "retail-luxury",
    "sales",
    "marketing",
    "finance",
    "operations",
    "product",
    "tech",
    "sustainability",
    "entrepreneurship",
    "unsure",
    "unknown",
)

UNSURE = "unsure"
UNKNOWN = "unknown"

# Tie-break policy for ambiguous inputs; higher wins.
CAREER_PATH_PRIORITY: dict[str, int] = {
    "product": 9,
    "data-analytics": 8,
    "marketing": 7,
    "operations": 6,
    "finance": 5,
    "strategy": 4,
    "sales": 3,
    "tech": 2,
    "sustainability": 1,
    "retail-luxury": 0,
    "entrepreneurship": 0,
    "unsure": -1,
    "unknown": -2,
}

CAREER_PATH_SYNONYMS: dict[str, str] = {
    # display labels used by the signup form
    "strategy & business design": "strategy",
    "data analytics": "data-analytics",
    "data & analytics": "data-analytics",
    "retail & luxury": "retail-luxury",
    "sales & client success": "sales",
    "finance & investment": "finance",
    "operations & supply chain": "operations",
    "product & innovation": "product",
    "tech & transformation": "tech",
    "sustainability & esg": "sustainability",
    "not sure yet": "unsure",
    # strategy
    "business development": "strategy",
    "management consulting": "strategy",
    "consulting": "strategy",
    "consultant": "strategy",
    "advisory": "strategy",
    "business strategy": "strategy",
    "strategic": "strategy",
    # data & analytics
    "data": "data-analytics",
    "data analyst": "data-analytics",
    "business analyst": "data-analytics",
    "ba": "data-analytics",
    "analytics": "data-analytics",
    "business intelligence": "data-analytics",
    "bi": "data-analytics",
    "data science": "data-analytics",
    "data scientist": "data-analytics",
    "machine learning": "data-analytics",
    "ml": "data-analytics",
    "ai": "data-analytics",
    "artificial intelligence": "data-analytics",
    # retail & luxury
    "retail": "retail-luxury",
    "luxury": "retail-luxury",
    "fashion": "retail-luxury",
    "merchandising": "retail-luxury",
    "buying": "retail-luxury",
    # sales
    "biz dev": "sales",
    "sales representative": "sales",
    "account executive": "sales",
    "client success": "sales",
    "customer success": "sales",
    "account manager": "sales",
    "sales development": "sales",
    "revenue": "sales",
    # marketing
    "brand": "marketing",
    "digital marketing": "marketing",
    "social media": "marketing",
    "content": "marketing",
    "advertising": "marketing",
    "brand manager": "marketing",
    "growth": "marketing",
    "communications": "marketing",
    # finance
    "financial": "finance",
    "investment": "finance",
    "banking": "finance",
    "accounting": "finance",
    "accountant": "finance",
    "audit": "finance",
    "treasury": "finance",
    "corporate finance": "finance",
    # operations
    "supply chain": "operations",
    "logistics": "operations",
    "procurement": "operations",
    "manufacturing": "operations",
    "production": "operations",
    "quality assurance": "operations",
    "inventory": "operations",
    # product
    "product manager": "product",
    "product owner": "product",
    "product development": "product",
    "user experience": "product",
    "ux": "product",
    "user interface": "product",
    "ui": "product",
    "product design": "product",
    # tech
    "software": "tech",
    "developer": "tech",
    "engineer": "tech",
    "programming": "tech",
    "coding": "tech",
    "technology": "tech",
    "technical": "tech",
    "engineering": "tech",
    "devops": "tech",
    "cybersecurity": "tech",
    "infrastructure": "tech",
    "it jobs": "tech",
    "engineering jobs": "tech",
    # provider category labels
    "accounting & finance jobs": "finance",
    "sales jobs": "sales",
    "pr, advertising & marketing jobs": "marketing",
    "logistics & warehouse jobs": "operations",
    "consultancy jobs": "strategy",
    "retail jobs": "retail-luxury",
    # sustainability
    "esg": "sustainability",
    "environmental": "sustainability",
    "social responsibility": "sustainability",
    "corporate responsibility": "sustainability",
    "green": "sustainability",
    "climate": "sustainability",
    "renewable": "sustainability",
    # entrepreneurship
    "startup": "entrepreneurship",
    "entrepreneur": "entrepreneurship",
    "founder": "entrepreneurship",
    "co-founder": "entrepreneurship",
    "innovation": "entrepreneurship",
    "venture": "entrepreneurship",
}

_CANONICAL_SET = frozenset(CANONICAL_CAREER_PATHS)
_CANONICAL_BY_LOWER = {c.lower(): c for c in CANONICAL_CAREER_PATHS}
_WORD = re.compile(r"[a-z0-9&+\-]+")
_MAX_PHRASE_WORDS = 3

PathInput = Union[str, Sequence[str], None]


@dataclass(frozen=True)
class TaxonomyResult:
    career_path: str
    matches: tuple[str, ...] = field(default_factory=tuple)

    @property
    def ambiguous(self) -> bool:
        return len(set(self.matches)) > 1

    @property
    def diagnostic(self) -> str | None:
        if not self.ambiguous:
            return None
        return (
            f"multiple career paths matched ({', '.join(dict.fromkeys(self.matches))}); "
            f"using highest priority: {self.career_path}"
        )


def _match_one(raw: str) -> str | None:
    if raw in _CANONICAL_SET:
        return raw
    key = " ".join(raw.lower().split())
    if key in _CANONICAL_BY_LOWER:
        return _CANONICAL_BY_LOWER[key]
    return CAREER_PATH_SYNONYMS.get(key)


def resolve_career_path(value: PathInput) -> TaxonomyResult:
    if not value:
        return TaxonomyResult(UNSURE)
    candidates = [value] if isinstance(value, str) else list(value)

    matches: list[str] = []
    for raw in candidates:
        if not isinstance(raw, str) or not raw.strip():
            continue
        tag = _match_one(raw)
        if tag is not None:
            matches.append(tag)

    if not matches:
        return TaxonomyResult(UNSURE)

    best = matches[0]
    for tag in matches[1:]:
        # strict comparison keeps the first-encountered tag on ties
        if CAREER_PATH_PRIORITY.get(tag, -999) > CAREER_PATH_PRIORITY.get(best, -999):
            best = tag
    return TaxonomyResult(best, tuple(matches))


def normalize_career_path(value: PathInput) -> str:
    return resolve_career_path(value).career_path


def title_signals(title: str | None) -> list[str]:
    """Known taxonomy phrases found in a job title, longest phrases first per position."""
    words = _WORD.findall((title or "").lower())
    found: list[str] = []
    i = 0
    while i < len(words):
        step = 1
        for size in range(min(_MAX_PHRASE_WORDS, len(words) - i), 0, -1):
            phrase = " ".join(words[i:i + size])
            if phrase in CAREER_PATH_SYNONYMS or phrase in _CANONICAL_BY_LOWER:
                found.append(phrase)
                step = size
                break
        i += step
    return found


def classify_job(title: str | None, categories: Iterable[str] = ()) -> TaxonomyResult:
    """Tag a posting from provider category labels, then title phrases."""
    signals = [c for c in categories if c] + title_signals(title)
    return resolve_career_path(signals)
