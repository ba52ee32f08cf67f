from .normalize import CandidateJob, FreshnessTier, build_candidate, make_fingerprint
from .dedupe import DedupCache, deduplicate_jobs
from .budget import BudgetManager
from .locations import LocationWeight, WeightedLocationSelector
from .taxonomy import normalize_career_path, resolve_career_path

__all__ = [
    "CandidateJob",
    "FreshnessTier",
    "build_candidate",
    "make_fingerprint",
    "DedupCache",
    "deduplicate_jobs",
    "BudgetManager",
    "LocationWeight",
    "WeightedLocationSelector",
    "normalize_career_path",
    "resolve_career_path",
]
