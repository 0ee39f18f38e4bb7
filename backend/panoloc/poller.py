"""
poller.py
~~~~~~~~~
Polling driver: read the panorama position on a fixed cadence and hand it
to the pipeline **only when it changed**.

The change check is exact field equality; the 100 m tolerance lives in the
place cache, not here. The poller can be paused while the page is hidden: ticks (pushed by the
bridge or pulled by the background loop) are skipped until it is resumed,
and the last observed position is kept.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Awaitable, Callable

from .constants import POLL_INTERVAL_S
from .geo import Coordinate
from .pipeline import ResolutionPipeline
from .position_source import PositionSource

LOG = logging.getLogger("poller")

#: async () -> (markup, page_url)
PageFetcher = Callable[[], Awaitable[tuple[str, str | None]]]


class PositionPoller:
    def __init__(
        self,
        pipeline: ResolutionPipeline,
        source: PositionSource | None = None,
        *,
        interval_s: float = POLL_INTERVAL_S,
    ) -> None:
        self.pipeline = pipeline
        self.source = source if source is not None else PositionSource()
        self.interval_s = interval_s
        self.last_observed: Coordinate | None = None

        self._task: asyncio.Task[None] | None = None
        self._running = asyncio.Event()
        self._running.set()
        self._paused = False

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_paused(self) -> bool:
        return self._paused

    # ── One tick ──────────────────────────────────────────────────────────
    def observe(self, markup: str, page_url: str | None = None) -> Coordinate | None:
        """Read the position from *markup*; resolve it if it moved.

        Paused pollers skip the tick and return ``None``.
        """
        if self._paused:
            return None
        coord = self.source.get_current_position(markup, page_url)
        if coord is None:
            return None
        self.observe_coordinate(coord)
        return coord

    def observe_coordinate(self, coord: Coordinate) -> bool:
        """Forward *coord* to the pipeline when it differs. Returns True if so."""
        if self._paused:
            return False
        if coord == self.last_observed:
            return False
        self.last_observed = coord
        LOG.debug("Position changed → %s", coord)
        self.pipeline.resolve(coord)
        return True

    # ── Background loop ───────────────────────────────────────────────────
    def start(self, fetch_page: PageFetcher) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(fetch_page))
        LOG.info("Polling every %.1f s", self.interval_s)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        LOG.info("Polling stopped")

    def pause(self) -> None:
        """Suspend ticks (e.g. the page is hidden)."""
        if not self._paused:
            LOG.info("Polling paused")
        self._paused = True
        self._running.clear()

    def resume(self) -> None:
        if self._paused:
            LOG.info("Polling resumed")
        self._paused = False
        self._running.set()

    async def _loop(self, fetch_page: PageFetcher) -> None:
        while True:
            await self._running.wait()
            try:
                markup, page_url = await fetch_page()
                self.observe(markup, page_url)
            except Exception as exc:  # noqa: BLE001 – one bad tick must not stop polling
                LOG.warning("[poll] tick failed: %s", exc)
            await asyncio.sleep(self.interval_s)


__all__ = ["PageFetcher", "PositionPoller"]
