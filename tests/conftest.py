"""
tests/conftest.py
~~~~~~~~~~~~~~~~~
Global pytest fixtures.

`make_pipeline` builds a :class:`ResolutionPipeline` with millisecond
timings (debounce, rate limiter) so the async tests run fast, and closes
every pipeline it built once the test is over so no timer outlives its loop.
"""

from __future__ import annotations

from typing import AsyncIterator, Callable

import pytest_asyncio

from panoloc.health import HealthTracker
from panoloc.pipeline import ResolutionPipeline

pytest_plugins = ["pytest_asyncio"]


@pytest_asyncio.fixture
async def make_pipeline() -> AsyncIterator[Callable[..., ResolutionPipeline]]:
    """Factory fixture: ``make_pipeline(decay_s=…, reset_s=…)``."""
    built: list[ResolutionPipeline] = []

    def _make(
        *,
        debounce_s: float = 0.01,
        decay_s: float = 60.0,
        reset_s: float = 60.0,
        threshold: int = 3,
    ) -> ResolutionPipeline:
        pipeline = ResolutionPipeline(
            health=HealthTracker(decay_s=decay_s, reset_s=reset_s, threshold=threshold),
            debounce_s=debounce_s,
            min_delay_s=0.0,
        )
        built.append(pipeline)
        return pipeline

    yield _make

    for pipeline in built:
        await pipeline.aclose()
