"""position_source.py
~~~~~~~~~~~~~~~~~~~~~~
Extract the current panorama position from page markup we do not control.

The viewer page embeds a Street View iframe whose ``src`` carries
``location=<lat>,<lng>``. The iframe's id has changed between site releases,
so frames are identified **only** by their URL pattern: every ``<iframe>`` is
scanned and the first one whose ``src`` is a Google Maps Street View embed
is read.

When no frame yields a position, the page's own URL is tried as a last
resort (``?lat=..&lng=..`` first, then ``?location=lat,lng``).
"""

from __future__ import annotations

import logging
import re
from typing import Final
from urllib.parse import parse_qs, urlsplit

from bs4 import BeautifulSoup

from .geo import Coordinate

LOG = logging.getLogger("position_source")

PANORAMA_SRC_RE: Final = re.compile(
    r"^https?://(?:www\.)?google\.[a-z.]+/maps/embed/v1/streetview\b", re.I
)
# plain decimal degrees, e.g. "-33.86"
_DECIMAL_RE: Final = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")


def _to_coordinate(lat_raw: str, lng_raw: str) -> Coordinate | None:
    if not (_DECIMAL_RE.fullmatch(lat_raw) and _DECIMAL_RE.fullmatch(lng_raw)):
        return None
    try:
        return Coordinate(float(lat_raw), float(lng_raw))
    except ValueError:
        # out of range
        return None


def parse_location_param(url: str) -> Coordinate | None:
    """Return the ``location=lat,lng`` query parameter of *url* as a coordinate."""

    try:
        query = parse_qs(urlsplit(url).query)
    except ValueError as exc:
        LOG.debug("Unparsable URL %r: %s", url, exc)
        return None

    values = query.get("location")
    if not values:
        return None
    parts = values[0].split(",")
    if len(parts) != 2:
        return None
    return _to_coordinate(parts[0].strip(), parts[1].strip())


def _parse_page_url(url: str) -> Coordinate | None:
    try:
        query = parse_qs(urlsplit(url).query)
    except ValueError:
        return None
    if "lat" in query and "lng" in query:
        coord = _to_coordinate(query["lat"][0].strip(), query["lng"][0].strip())
        if coord is not None:
            return coord
    return parse_location_param(url)


class PositionSource:
    """Reads the panorama position; remembers the last successful read."""

    def __init__(self, src_pattern: re.Pattern[str] = PANORAMA_SRC_RE) -> None:
        self.src_pattern = src_pattern
        self.last_position: Coordinate | None = None

    def get_current_position(
        self,
        markup: str | BeautifulSoup,
        page_url: str | None = None,
    ) -> Coordinate | None:
        """
        Return the coordinate shown by the panorama frame, or ``None``.

        Args:
            markup:   Page HTML (or an already parsed soup).
            page_url: Optional address of the page itself, used as fallback.

        Returns:
            Coordinate of the first matching iframe. ``None`` when no frame
            matches, the parameter is missing or it does not parse.
        """
        soup = markup if isinstance(markup, BeautifulSoup) else BeautifulSoup(
            markup or "", "html.parser"
        )

        coord: Coordinate | None = None
        for frame in soup.find_all("iframe"):
            src = frame.get("src")
            if not src or not self.src_pattern.search(src):
                continue
            coord = parse_location_param(src)
            if coord is None:
                LOG.debug("Panorama frame without usable location: %s", src)
            break

        if coord is None and page_url:
            coord = _parse_page_url(page_url)

        if coord is None:
            LOG.debug("No position source on page")
            return None

        self.last_position = coord
        return coord


__all__ = ["PANORAMA_SRC_RE", "PositionSource", "parse_location_param"]
