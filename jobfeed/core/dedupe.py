from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable

from jobfeed.core.date_parse import utcnow
from jobfeed.core.normalize import CandidateJob

LOGGER = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(days=7)


def deduplicate_jobs(jobs: Iterable[CandidateJob]) -> list[CandidateJob]:
    """Drop repeated fingerprints within one batch, keeping the first sighting."""
    seen: Dict[str, CandidateJob] = {}
    for j in jobs:
        seen.setdefault(j.fingerprint, j)
    return list(seen.values())


class DedupCache:
    """Time-bounded set of fingerprints seen recently.

    Entries keep their first-seen timestamp; `record` on a known fingerprint
    is a no-op. `sweep` drops entries older than the retention window and
    runs once on construction, at every acquisition cycle start, and on the
    optional background sweeper.
    """

    def __init__(
        self,
        retention: timedelta = DEFAULT_RETENTION,
        *,
        clock: Callable[[], datetime] = utcnow,
        entries: Dict[str, datetime] | None = None,
    ) -> None:
        self.retention = retention
        self._clock = clock
        self._entries: Dict[str, datetime] = dict(entries or {})
        self._lock = threading.Lock()
        self._sweeper: threading.Thread | None = None
        self._stop = threading.Event()
        self.sweep()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def has(self, fingerprint: str) -> bool:
        with self._lock:
            return fingerprint in self._entries

    def record(self, fingerprint: str) -> bool:
        """Remember a fingerprint; returns False if it was already known."""
        with self._lock:
            if fingerprint in self._entries:
                return False
            self._entries[fingerprint] = self._clock()
            return True

    def first_seen(self, fingerprint: str) -> datetime | None:
        with self._lock:
            return self._entries.get(fingerprint)

    def sweep(self) -> int:
        cutoff = self._clock() - self.retention
        with self._lock:
            stale = [fp for fp, seen_at in self._entries.items() if seen_at < cutoff]
            for fp in stale:
                del self._entries[fp]
        if stale:
            LOGGER.debug("dedup-sweep removed=%s remaining=%s", len(stale), len(self._entries))
        return len(stale)

    # --- background sweeping ---

    def start_sweeper(self, interval: float) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()

        def _loop() -> None:
            while not self._stop.wait(interval):
                try:
                    self.sweep()
                except Exception:  # pragma: no cover - keep the timer alive
                    LOGGER.exception("dedup-sweep failed")

        self._sweeper = threading.Thread(target=_loop, name="dedup-sweeper", daemon=True)
        self._sweeper.start()

    def stop_sweeper(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None
