"""
tests/integration/conftest.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Integration test configuration - skip unless INTEGRATION_TESTS=1.

Usage:
    # Run only unit tests (default, CI-safe)
    pytest -q

    # Run integration tests locally
    INTEGRATION_TESTS=1 pytest tests/integration/ -v
"""

from __future__ import annotations

import os
import time
from typing import Generator

import pytest


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip all integration tests unless INTEGRATION_TESTS=1."""
    if os.getenv("INTEGRATION_TESTS"):
        return

    skip_marker = pytest.mark.skip(
        reason="Integration tests disabled (set INTEGRATION_TESTS=1 to enable)"
    )
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(skip_marker)


@pytest.fixture
def nominatim_pause() -> Generator[None, None, None]:
    """Keep consecutive tests at least a second apart (Nominatim policy)."""
    yield
    time.sleep(1.1)
