"""
health.py
~~~~~~~~~
Service-health state machine for the reverse-geocoding backend.

States
------
* ``CONNECTED``    — last resolution succeeded; decays to DISCONNECTED when
  no further success arrives within ``decay_s``.
* ``DISCONNECTED`` — idle / default.
* ``DEGRADED``     — ``threshold`` consecutive failures; left only on the
  next success.

Failures are counted inside a rolling window: each failure (re)starts a
timer that zeroes the counter after ``reset_s`` of quiet, so sparse failures
never add up to DEGRADED.

Timers are plain :class:`asyncio.TimerHandle` objects on the running loop;
the tracker must be driven from inside that loop.
"""

from __future__ import annotations

import asyncio
import enum
import logging

from .constants import DECAY_S, DEGRADED_THRESHOLD, FAILURE_RESET_S

LOG = logging.getLogger("health")


class HealthState(enum.Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    DEGRADED = "degraded"


# What the overlay shows for each state
_STATUS = {
    HealthState.CONNECTED: "connected",
    HealthState.DISCONNECTED: "disconnected",
    HealthState.DEGRADED: "error",
}


class HealthTracker:
    def __init__(
        self,
        *,
        decay_s: float = DECAY_S,
        reset_s: float = FAILURE_RESET_S,
        threshold: int = DEGRADED_THRESHOLD,
    ) -> None:
        self.decay_s = decay_s
        self.reset_s = reset_s
        self.threshold = threshold

        self.state = HealthState.DISCONNECTED
        self.consecutive_failures = 0
        self._decay_timer: asyncio.TimerHandle | None = None
        self._reset_timer: asyncio.TimerHandle | None = None

    @property
    def status(self) -> str:
        """``"connected"`` | ``"disconnected"`` | ``"error"``."""
        return _STATUS[self.state]

    # ── Outcomes ──────────────────────────────────────────────────────────
    def record_success(self) -> None:
        loop = asyncio.get_running_loop()

        self.consecutive_failures = 0
        _cancel(self._reset_timer)
        self._reset_timer = None

        if self.state is not HealthState.CONNECTED:
            LOG.info("Health %s → connected", self.state.value)
        self.state = HealthState.CONNECTED

        _cancel(self._decay_timer)
        self._decay_timer = loop.call_later(self.decay_s, self._on_decay)

    def record_failure(self) -> None:
        loop = asyncio.get_running_loop()

        self.consecutive_failures += 1
        _cancel(self._reset_timer)
        self._reset_timer = loop.call_later(self.reset_s, self._on_reset)

        LOG.warning(
            "Resolution failure %d/%d", self.consecutive_failures, self.threshold
        )
        if (
            self.consecutive_failures >= self.threshold
            and self.state is not HealthState.DEGRADED
        ):
            LOG.warning("Health %s → degraded", self.state.value)
            self.state = HealthState.DEGRADED

    def close(self) -> None:
        """Cancel pending timers (end of session)."""
        _cancel(self._decay_timer)
        _cancel(self._reset_timer)
        self._decay_timer = self._reset_timer = None

    # ── Timer callbacks ───────────────────────────────────────────────────
    def _on_decay(self) -> None:
        self._decay_timer = None
        # DEGRADED is only left on success
        if self.state is HealthState.CONNECTED:
            LOG.info("No success for %.0f s, health connected → disconnected", self.decay_s)
            self.state = HealthState.DISCONNECTED

    def _on_reset(self) -> None:
        self._reset_timer = None
        if self.consecutive_failures:
            LOG.debug("Failure window elapsed, counter reset")
        self.consecutive_failures = 0


def _cancel(handle: asyncio.TimerHandle | None) -> None:
    if handle is not None:
        handle.cancel()


__all__ = ["HealthState", "HealthTracker"]
