"""Per-vehicle state carried forward between polls."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from threading import Lock
from typing import Optional

from ...models.domain import Coordinates

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CacheEntry:
    last_seen_at: Optional[datetime]
    last_known_coordinates: Optional[Coordinates]
    generation: int
    updated_at: datetime


class VehicleStateCache:
    """Thread-safe ``callsign -> CacheEntry`` store with generation-guarded writes.

    Every poll takes a sequence number from :meth:`begin_poll`. A write tagged
    with a sequence older than the entry's current generation comes from a
    slow poll that finished after a newer one and is discarded.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = Lock()
        self._sequence = 0
        self._generation = 0

    def begin_poll(self) -> int:
        with self._lock:
            self._sequence += 1
            return self._sequence

    @property
    def generation(self) -> int:
        """Highest poll sequence that has written to the cache."""
        with self._lock:
            return self._generation

    def get(self, callsign: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(callsign)

    def set(self, callsign: str, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[callsign] = entry
            self._generation = max(self._generation, entry.generation)

    def set_if_newer(
        self,
        callsign: str,
        *,
        generation: int,
        updated_at: datetime,
        last_seen_at: Optional[datetime] = None,
        coordinates: Optional[Coordinates] = None,
    ) -> bool:
        """Upsert an entry unless a newer poll already wrote it. Returns whether it was written."""
        with self._lock:
            current = self._entries.get(callsign)
            if current is not None and generation < current.generation:
                logger.debug(
                    f"Discarding stale cache write for {callsign}: poll {generation} < generation {current.generation}"
                )
                return False

            if current is None:
                entry = CacheEntry(
                    last_seen_at=last_seen_at,
                    last_known_coordinates=coordinates,
                    generation=generation,
                    updated_at=updated_at,
                )
            else:
                # GPS timestamps never move backwards, even if the feed replays an older fix
                seen = current.last_seen_at
                if last_seen_at is not None and (seen is None or last_seen_at > seen):
                    seen = last_seen_at
                entry = replace(
                    current,
                    last_seen_at=seen,
                    last_known_coordinates=coordinates or current.last_known_coordinates,
                    generation=generation,
                    updated_at=updated_at,
                )
            self._entries[callsign] = entry
            self._generation = max(self._generation, generation)
            return True

    def evict_inactive(self, now: datetime, max_age: timedelta) -> int:
        """Drop entries not refreshed within ``max_age``. Returns how many were removed."""
        cutoff = now - max_age
        with self._lock:
            expired = [callsign for callsign, entry in self._entries.items() if entry.updated_at < cutoff]
            for callsign in expired:
                del self._entries[callsign]
        if expired:
            logger.info(f"Evicted {len(expired)} inactive vehicle cache entries")
        return len(expired)

    def snapshot(self) -> dict[str, CacheEntry]:
        with self._lock:
            return dict(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
