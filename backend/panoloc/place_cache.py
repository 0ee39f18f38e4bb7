"""
place_cache.py
~~~~~~~~~~~~~~
In-memory cache of resolved place names, keyed by quantized coordinate.

A lookup is valid when the stored coordinate lies within the reuse
threshold of the query, not when the keys match; keys only deduplicate
near-identical positions. Entries are never evicted: one session is one
game round and only visits a handful of places.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Final

from dateutil import tz

from .geo import CacheKey, Coordinate, cache_key, haversine_m, is_within_reuse_threshold

UTC: Final = tz.UTC
LOG = logging.getLogger("place_cache")


@dataclass(frozen=True)
class CacheEntry:
    coordinate: Coordinate
    place_name: str
    recorded_at: dt.datetime


class PlaceCache:
    """Place names resolved during one session."""

    def __init__(self) -> None:
        self._entries: dict[CacheKey, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, coord: object) -> bool:
        return isinstance(coord, Coordinate) and cache_key(coord) in self._entries

    def lookup(self, coord: Coordinate) -> CacheEntry | None:
        """
        Return a reusable entry for *coord*, or ``None``.

        The entry stored under the same quantized key wins outright;
        otherwise the nearest entry inside the reuse threshold is returned
        (insertion order breaks exact ties).
        """
        entry = self._entries.get(cache_key(coord))
        if entry is not None and is_within_reuse_threshold(coord, entry.coordinate):
            LOG.debug("Cache hit (key) for %s", coord)
            return entry

        best: CacheEntry | None = None
        best_m = float("inf")
        for candidate in self._entries.values():
            if not is_within_reuse_threshold(coord, candidate.coordinate):
                continue
            distance_m = haversine_m(coord, candidate.coordinate)
            if distance_m < best_m:
                best, best_m = candidate, distance_m

        if best is not None:
            LOG.debug("Cache hit for %s → %r (%.1f m)", coord, best.place_name, best_m)
        return best

    def store(self, coord: Coordinate, place_name: str) -> CacheEntry:
        """Insert or overwrite the entry at *coord*'s quantized key."""
        entry = CacheEntry(
            coordinate=coord,
            place_name=place_name,
            recorded_at=dt.datetime.now(UTC),
        )
        self._entries[cache_key(coord)] = entry
        LOG.debug("Cached %r for %s (%d entries)", place_name, coord, len(self._entries))
        return entry


__all__ = ["CacheEntry", "PlaceCache"]
