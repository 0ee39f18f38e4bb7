# backend/panoloc/constants.py

"""
Global constants used across modules, including a single User-Agent string
for Nominatim (its usage policy requires an identifying agent) and the
tunables that can be overridden from the environment.
"""

from __future__ import annotations

import os
from typing import Final

USER_AGENT: Final = "panoloc/0.1 (+https://github.com/panoloc/panoloc)"

# ── Reverse geocoding ─────────────────────────────────────────────────────
NOMINATIM_REVERSE_URL: Final = os.getenv(
    "NOMINATIM_REVERSE_URL", "https://nominatim.openstreetmap.org/reverse"
)
GEOCODE_ZOOM: Final = 18
GEOCODE_TIMEOUT_S: Final = float(os.getenv("GEOCODE_TIMEOUT_S", "10"))
# Nominatim allows one request per second
GEOCODE_MIN_DELAY_S: Final = float(os.getenv("GEOCODE_MIN_DELAY_S", "1.0"))

# ── Pipeline timings (seconds) ────────────────────────────────────────────
DEBOUNCE_S: Final = 2.0
POLL_INTERVAL_S: Final = float(os.getenv("POLL_INTERVAL_S", "2.0"))
DECAY_S: Final = 8.0
FAILURE_RESET_S: Final = 30.0
DEGRADED_THRESHOLD: Final = 3

# ── Cache ─────────────────────────────────────────────────────────────────
REUSE_THRESHOLD_M: Final = 100.0
KEY_PRECISION: Final = 6
