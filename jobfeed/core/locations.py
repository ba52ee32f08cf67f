from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Sequence

LOGGER = logging.getLogger(__name__)


@dataclass
class LocationWeight:
    """A search location with a static priority weight and a usage counter.

    `query` is the string handed to providers (e.g. "London,England,United Kingdom");
    it defaults to `name`.
    """
    name: str
    weight: float
    usage: int = 0
    query: str = ""

    def __post_init__(self) -> None:
        if self.weight < 0:
            raise ValueError(f"location weight must be >= 0: {self.name}")
        if not self.query:
            self.query = self.name

    @property
    def score(self) -> float:
        return self.weight / (self.usage + 1)


class WeightedLocationSelector:
    """Usage-inverse weighted rotation over search locations.

    Picks the location with the highest `weight / (usage + 1)` (first in input
    order on ties) and bumps its usage. Long-run selection frequency tends to
    be proportional to weight while every positive-weight location keeps
    surfacing as the favourites' scores shrink.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def select_next(self, locations: Sequence[LocationWeight]) -> LocationWeight:
        if not locations:
            raise ValueError("no locations to select from")
        with self._lock:
            best = locations[0]
            best_score = best.score
            for loc in locations[1:]:
                score = loc.score
                if score > best_score:
                    best, best_score = loc, score
            best.usage += 1
        LOGGER.debug("location-selected name=%s weight=%s usage=%s", best.name, best.weight, best.usage)
        return best

    def reset(self, locations: Sequence[LocationWeight]) -> None:
        with self._lock:
            for loc in locations:
                loc.usage = 0

    @staticmethod
    def usage(locations: Sequence[LocationWeight]) -> dict[str, int]:
        return {loc.name: loc.usage for loc in locations}
