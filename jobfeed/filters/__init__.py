from .location import MatchLevel, match_by_location
from .rules import experience_matches, filter_by_language, filter_by_quality, filter_by_career_path
from .prefilter import ScoredJob, Shortlist, SubscriberProfile, shortlist

__all__ = [
    "MatchLevel",
    "match_by_location",
    "experience_matches",
    "filter_by_language",
    "filter_by_quality",
    "filter_by_career_path",
    "ScoredJob",
    "Shortlist",
    "SubscriberProfile",
    "shortlist",
]
