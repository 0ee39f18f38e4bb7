"""pipeline.py
~~~~~~~~~~~~~
Turn panorama positions into a place name for the overlay.

Flow per :meth:`ResolutionPipeline.resolve` call
------------------------------------------------
1. **Debounce** — every call cancels the pending firing and schedules a new
   one ``debounce_s`` after the latest call, so a burst of positions while
   panning collapses into one lookup for the final coordinate.
2. **Cache** — a place resolved within 100 m is reused; no request.
3. **Nominatim** — otherwise one rate-limited reverse lookup. Successes are
   cached; failures feed :class:`~panoloc.health.HealthTracker` and the text
   falls back to the last valid place.

Firings are numbered. A response that completes after a newer one has been
applied still updates the cache and health, but never the display text.

Nothing here raises to the caller: :attr:`ResolutionPipeline.display`
always holds a renderable ``(text, status)`` pair.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Final, NamedTuple

import httpx
from geopy.extra.rate_limiter import AsyncRateLimiter

from .constants import (
    DEBOUNCE_S,
    GEOCODE_MIN_DELAY_S,
    GEOCODE_TIMEOUT_S,
    NOMINATIM_REVERSE_URL,
    USER_AGENT,
)
from .geo import Coordinate
from .geocode_service import (
    GeocodeError,
    compose_place_name,
    is_placeholder,
    reverse_geocode,
)
from .health import HealthTracker
from .place_cache import PlaceCache

LOG = logging.getLogger("pipeline")

IDLE_TEXT: Final = "Waiting for position…"
UNAVAILABLE_TEXT: Final = "Location name unavailable"
LAST_KNOWN_SUFFIX: Final = " (last known)"


class DisplayState(NamedTuple):
    text: str
    status: str  # "connected" | "disconnected" | "error"


class ResolutionPipeline:
    """
    Debounced, cached, rate-limited position → place resolution.

    One instance per session; it owns its cache, health tracker and (unless
    one is passed in) its HTTP client. Must be used from a running loop.
    """

    def __init__(
        self,
        *,
        cache: PlaceCache | None = None,
        health: HealthTracker | None = None,
        client: httpx.AsyncClient | None = None,
        debounce_s: float = DEBOUNCE_S,
        min_delay_s: float = GEOCODE_MIN_DELAY_S,
        timeout_s: float = GEOCODE_TIMEOUT_S,
        geocode_url: str = NOMINATIM_REVERSE_URL,
    ) -> None:
        self.cache = cache if cache is not None else PlaceCache()
        self.health = health if health is not None else HealthTracker()
        self.debounce_s = debounce_s
        self.timeout_s = timeout_s
        self.geocode_url = geocode_url

        self._client = client
        self._owns_client = client is None
        # Nominatim usage policy: at most one request per second
        self._lookup = AsyncRateLimiter(
            self._fetch,
            min_delay_seconds=min_delay_s,
            max_retries=0,
            swallow_exceptions=False,
        )

        self._pending: asyncio.TimerHandle | None = None
        self._inflight: set[asyncio.Task[None]] = set()
        self._seq = 0
        self._applied_seq = 0
        self._text = IDLE_TEXT

        self.current: Coordinate | None = None
        self.last_valid_place: str | None = None
        self.network_calls = 0

    # ── Public API ────────────────────────────────────────────────────────
    @property
    def display(self) -> DisplayState:
        return DisplayState(self._text, self.health.status)

    def resolve(self, coord: Coordinate) -> None:
        """Schedule a resolution of *coord* once positions stop changing."""
        self.current = coord
        if self._pending is not None:
            self._pending.cancel()
        loop = asyncio.get_running_loop()
        self._pending = loop.call_later(self.debounce_s, self._fire, coord)

    async def wait_idle(self) -> None:
        """Wait until no firing is scheduled and no lookup is in flight."""
        loop = asyncio.get_running_loop()
        while self._pending is not None or self._inflight:
            if self._pending is not None:
                await asyncio.sleep(max(0.0, self._pending.when() - loop.time()))
                await asyncio.sleep(0)
                continue
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def aclose(self) -> None:
        """Drop the pending firing, let in-flight lookups finish, release I/O."""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)
        self.health.close()
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ── Internals ─────────────────────────────────────────────────────────
    def _fire(self, coord: Coordinate) -> None:
        self._pending = None
        self._seq += 1
        task = asyncio.create_task(self._run(coord, self._seq))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout_s, headers={"User-Agent": USER_AGENT}
            )
        return self._client

    async def _fetch(self, coord: Coordinate) -> dict[str, Any]:
        self.network_calls += 1
        return await reverse_geocode(self._http(), coord, url=self.geocode_url)

    async def _run(self, coord: Coordinate, seq: int) -> None:
        entry = self.cache.lookup(coord)
        if entry is not None:
            LOG.info("#%d %s → %r (cached)", seq, coord, entry.place_name)
            self.health.record_success()
            self._apply(seq, entry.place_name, place=entry.place_name)
            return

        try:
            payload = await self._lookup(coord)
        except GeocodeError as exc:
            LOG.warning("#%d reverse geocode failed for %s: %s", seq, coord, exc)
            self.health.record_failure()
            self._apply(seq, None)
            return
        except Exception:  # noqa: BLE001 – keep the overlay renderable
            LOG.error("#%d resolution crashed for %s", seq, coord, exc_info=True)
            self.health.record_failure()
            self._apply(seq, None)
            return

        name = compose_place_name(payload)
        if is_placeholder(name):
            # The service answered, just with nothing useful
            LOG.info("#%d no usable place name for %s", seq, coord)
            self.health.record_success()
            self._apply(seq, None)
            return

        self.cache.store(coord, name)
        self.health.record_success()
        LOG.info("#%d %s → %r", seq, coord, name)
        self._apply(seq, name, place=name)

    def _fallback_text(self) -> str:
        if self.last_valid_place:
            return f"{self.last_valid_place}{LAST_KNOWN_SUFFIX}"
        return UNAVAILABLE_TEXT

    def _apply(self, seq: int, text: str | None, *, place: str | None = None) -> None:
        """Publish a firing's outcome unless a newer firing already did."""
        if seq < self._applied_seq:
            LOG.debug("Discarding stale result #%d (applied #%d)", seq, self._applied_seq)
            return
        self._applied_seq = seq
        if place is not None:
            self.last_valid_place = place
        self._text = text if text is not None else self._fallback_text()


__all__ = [
    "DisplayState",
    "IDLE_TEXT",
    "LAST_KNOWN_SUFFIX",
    "ResolutionPipeline",
    "UNAVAILABLE_TEXT",
]
