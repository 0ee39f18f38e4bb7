"""
geocode_service.py
~~~~~~~~~~~~~~~~~~
Reverse-geocode a coordinate with **Nominatim** and turn the answer into a
short place name.

Public helpers
--------------
    reverse_geocode(client, coord) -> dict
        One GET to ``/reverse`` (zoom 18, structured address). Raises
        :class:`GeocodeError` on transport errors and non-2xx answers.

    compose_place_name(payload) -> str
        ``"{country}, {city|town|village}"`` from the structured address,
        falling back to ``display_name``. ``""`` when nothing usable.
"""

from __future__ import annotations

import logging
from typing import Any, Final

import httpx

from .api_logging import logged_request_async
from .constants import GEOCODE_ZOOM, NOMINATIM_REVERSE_URL
from .geo import Coordinate

LOG = logging.getLogger("geocode_service")

#: Names Nominatim (or the overlay) uses when it has nothing real to say
PLACEHOLDER_NAMES: Final = frozenset({"unknown", "no details found"})
LOCALITY_KEYS: Final = ("city", "town", "village")


class GeocodeError(Exception):
    """The reverse-geocoding service could not be reached or refused."""

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


def compose_place_name(payload: dict[str, Any]) -> str:
    """
    Build the display name for one Nominatim reverse answer.

    Args:
        payload: Decoded JSON object (may lack any field).

    Returns:
        ``"Italy, Rome"`` for ``{country: Italy, city: Rome}``, ``"Italy"``
        when no locality is present, the raw ``display_name`` when the
        structured address yields nothing, else ``""``.
    """
    address = payload.get("address")
    if isinstance(address, dict) and address:
        country = str(address.get("country") or "").strip()
        locality = next(
            (
                str(address[k]).strip()
                for k in LOCALITY_KEYS
                if address.get(k) and str(address[k]).strip()
            ),
            "",
        )
        name = ", ".join(part for part in (country, locality) if part)
        if name:
            return name

    display_name = payload.get("display_name")
    if isinstance(display_name, str):
        return display_name.strip()
    return ""


def is_placeholder(name: str) -> bool:
    """True for empty names and the service's "nothing found" wording."""
    return not name or name.strip().lower() in PLACEHOLDER_NAMES


async def reverse_geocode(
    client: httpx.AsyncClient,
    coord: Coordinate,
    *,
    url: str = NOMINATIM_REVERSE_URL,
) -> dict[str, Any]:
    """
    Return the decoded reverse-geocoding answer for *coord*.

    A 2xx body that is not a JSON object yields ``{}``; the caller treats
    that as a thin answer, not a failure.
    """
    params = {
        "format": "json",
        "lat": coord.lat,
        "lon": coord.lng,
        "zoom": GEOCODE_ZOOM,
        "addressdetails": 1,
    }
    try:
        resp = await logged_request_async(client, "get", url, params=params)
    except httpx.HTTPError as exc:
        raise GeocodeError(f"{type(exc).__name__}: {exc}") from exc

    if not resp.is_success:
        raise GeocodeError(f"HTTP {resp.status_code}", status_code=resp.status_code)

    try:
        data = resp.json()
    except ValueError as exc:
        LOG.warning("Unparsable reverse answer for %s: %s", coord, exc)
        return {}

    if not isinstance(data, dict):
        return {}
    if "error" in data:
        LOG.info("Nominatim has no match for %s: %s", coord, data["error"])
    return data


__all__ = [
    "GeocodeError",
    "PLACEHOLDER_NAMES",
    "compose_place_name",
    "is_placeholder",
    "reverse_geocode",
]
