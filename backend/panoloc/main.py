"""
main.py – FastAPI bridge for the panorama overlay
=================================================

The overlay running inside the viewer page owns all rendering. Every poll
tick it posts either the panorama iframe markup (``/frame``) or a coordinate
it already extracted (``/position``) and renders the ``text``/``status`` pair
that comes back. It reports tab visibility to ``/visibility`` so polling is
paused while nobody is looking.

One resolution session (pipeline + poller) lives in ``app.state`` for the
lifetime of the process.
"""

from __future__ import annotations

# ─── Std-lib / third-party ────────────────────────────────────────────
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

# ─── Project modules ──────────────────────────────────────────────────
from .geo import Coordinate, format_coordinate, maps_url
from .pipeline import ResolutionPipeline
from .poller import PositionPoller

# ─── Logging ──────────────────────────────────────────────────────────
LOG = logging.getLogger("bridge")

_handler = logging.StreamHandler(sys.stdout)
_handler.setFormatter(logging.Formatter("%(levelname)s:     %(name)s - %(message)s"))
for _name in ("bridge", "pipeline", "poller", "health", "extapi"):
    _logger = logging.getLogger(_name)
    _logger.addHandler(_handler)
    _logger.setLevel(logging.INFO)

# ---------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------
load_dotenv()
ALLOWED_ORIGINS = [
    o.strip()
    for o in os.getenv(
        "PANOLOC_ALLOWED_ORIGINS", "https://openguessr.com,http://localhost:8000"
    ).split(",")
    if o.strip()
]
TICK_RATE_LIMIT = os.getenv("PANOLOC_TICK_RATE_LIMIT", "120/minute")

limiter = Limiter(key_func=get_remote_address)


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def _display_payload(pipeline: ResolutionPipeline) -> dict[str, Any]:
    """Everything the overlay needs to draw one frame."""
    text, status = pipeline.display
    coord = pipeline.current
    return {
        "text": text,
        "status": status,
        "lat": coord.lat if coord else None,
        "lng": coord.lng if coord else None,
        "coords": format_coordinate(coord) if coord else None,
        "maps_url": maps_url(coord) if coord else None,
        "consecutive_failures": pipeline.health.consecutive_failures,
    }


def _parse_coordinate(body: dict) -> Coordinate:
    try:
        return Coordinate(float(body["lat"]), float(body["lng"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=f"invalid coordinate: {exc}") from exc


# ---------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    pipeline = ResolutionPipeline()
    app.state.pipeline = pipeline
    app.state.poller = PositionPoller(pipeline)
    LOG.info("Resolution session started")

    yield  # ⇢ application runs here

    await app.state.poller.stop()
    await pipeline.aclose()
    LOG.info("Resolution session closed")


# ---------------------------------------------------------------------
# FastAPI instance & middleware
# ---------------------------------------------------------------------
app = FastAPI(title="panoloc", lifespan=lifespan)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Return 429 when the overlay ticks faster than allowed."""
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded. Try again later."},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


# Health probe --------------------------------------------------------
@app.get("/healthz", response_class=PlainTextResponse)
async def healthz() -> PlainTextResponse:
    """Return HTTP 200 with body “ok” if the app is up."""
    return PlainTextResponse("ok", status_code=200)


# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------
@app.post("/frame")
@limiter.limit(TICK_RATE_LIMIT)
async def frame(body: dict, request: Request) -> dict[str, Any]:
    """
    One poll tick with page markup.

    Body: ``{"html": "<iframe …>", "page_url": "https://…"}``; only the
    iframes matter, so the overlay may send just those.
    """
    html = body.get("html")
    if not isinstance(html, str):
        raise HTTPException(status_code=422, detail="'html' must be a string")
    page_url = body.get("page_url")

    state = request.app.state
    coord = state.poller.observe(html, page_url if isinstance(page_url, str) else None)
    payload = _display_payload(state.pipeline)
    payload["found"] = coord is not None
    return payload


@app.post("/position")
@limiter.limit(TICK_RATE_LIMIT)
async def position(body: dict, request: Request) -> dict[str, Any]:
    """One poll tick with a coordinate ``{"lat": …, "lng": …}``."""
    coord = _parse_coordinate(body)
    state = request.app.state
    state.poller.observe_coordinate(coord)
    return _display_payload(state.pipeline)


@app.get("/display.json")
async def display(request: Request) -> dict[str, Any]:
    """Current text/status pair plus coordinate helpers."""
    return _display_payload(request.app.state.pipeline)


@app.post("/visibility")
@limiter.limit(TICK_RATE_LIMIT)
async def visibility(body: dict, request: Request) -> dict[str, Any]:
    """
    The overlay reports ``{"hidden": true}`` when its tab is hidden and
    ``{"hidden": false}`` when it is shown again. Ticks posted while hidden
    are ignored.
    """
    hidden = body.get("hidden")
    if not isinstance(hidden, bool):
        raise HTTPException(status_code=422, detail="'hidden' must be a boolean")

    state = request.app.state
    if hidden:
        state.poller.pause()
    else:
        state.poller.resume()
    payload = _display_payload(state.pipeline)
    payload["paused"] = state.poller.is_paused
    return payload
