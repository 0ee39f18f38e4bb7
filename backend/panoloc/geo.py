"""geo.py
~~~~~~~~
Coordinate value type and the distance gate deciding whether a previously
resolved place name can be reused for a new position.

* ``haversine_m`` — great-circle distance in metres (R = 6 371 000 m).
* ``is_within_reuse_threshold`` — strictly closer than 100 m.
* ``cache_key`` — coordinate rounded to 6 decimals (≈ 0.11 m).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Final

from .constants import KEY_PRECISION, REUSE_THRESHOLD_M

R_EARTH_M: Final = 6_371_000.0
MAPS_URL: Final = "https://www.google.com/maps?q={lat},{lng}"

CacheKey = tuple[float, float]


@dataclass(frozen=True)
class Coordinate:
    """Decimal-degree position; immutable once created."""

    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.lat) and math.isfinite(self.lng)):
            raise ValueError(f"non-finite coordinate ({self.lat}, {self.lng})")
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise ValueError(f"longitude out of range: {self.lng}")


def haversine_m(a: Coordinate, b: Coordinate) -> float:
    """Great‑circle distance (m) between *a* and *b*."""

    φ1, φ2 = map(math.radians, (a.lat, b.lat))
    dφ = math.radians(b.lat - a.lat)
    dλ = math.radians(b.lng - a.lng)
    h = math.sin(dφ / 2) ** 2 + math.cos(φ1) * math.cos(φ2) * math.sin(dλ / 2) ** 2
    return 2 * R_EARTH_M * math.asin(math.sqrt(min(1.0, h)))


def is_within_reuse_threshold(a: Coordinate, b: Coordinate) -> bool:
    """True when *a* and *b* are close enough to share a place name."""

    return haversine_m(a, b) < REUSE_THRESHOLD_M


def cache_key(coord: Coordinate) -> CacheKey:
    return (round(coord.lat, KEY_PRECISION), round(coord.lng, KEY_PRECISION))


def format_coordinate(coord: Coordinate) -> str:
    """``"48.856600, 2.352200"`` — the info-panel rendering."""

    return f"{coord.lat:.6f}, {coord.lng:.6f}"


def maps_url(coord: Coordinate) -> str:
    """Google Maps link centred on *coord*."""

    return MAPS_URL.format(lat=coord.lat, lng=coord.lng)


__all__ = [
    "Coordinate",
    "cache_key",
    "format_coordinate",
    "haversine_m",
    "is_within_reuse_threshold",
    "maps_url",
]
