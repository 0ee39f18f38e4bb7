"""
tests/test_api_logging.py
~~~~~~~~~~~~~~~~~~~~~~~~~
Validate `api_logging.logged_request_async()`: one log line per request,
level by status, optional raise, transport errors re-raised.

A *toy* async client returns a pre-canned ``httpx.Response`` tied to a
dummy ``httpx.Request`` so that ``raise_for_status()`` works.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
import pytest

from panoloc.api_logging import logged_request_async

URL = "https://x.test/reverse"


class _ToyAsyncClient:
    def __init__(self, response: httpx.Response | None = None, exc: Exception | None = None) -> None:
        self._resp = response
        self._exc = exc
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def get(self, url: str, *a: Any, **k: Any) -> httpx.Response:
        self.calls.append((url, k))
        if self._exc is not None:
            raise self._exc
        return self._resp


def _response(status: int) -> httpx.Response:
    return httpx.Response(
        status_code=status, content=b"{}", request=httpx.Request("GET", URL)
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, expect_level",
    [(200, logging.INFO), (404, logging.WARNING), (503, logging.WARNING)],
)
async def test_levels_without_raise(
    caplog: pytest.LogCaptureFixture, status: int, expect_level: int
) -> None:
    caplog.set_level(logging.DEBUG, logger="extapi")
    toy = _ToyAsyncClient(_response(status))

    resp = await logged_request_async(toy, "GET", URL, params={"lat": 1})

    assert resp.status_code == status
    assert toy.calls == [(URL, {"params": {"lat": 1}})]
    (rec,) = caplog.records
    assert rec.levelno == expect_level
    assert str(status) in rec.getMessage()


@pytest.mark.asyncio
async def test_raise_for_status(caplog: pytest.LogCaptureFixture) -> None:
    toy = _ToyAsyncClient(_response(429))

    with pytest.raises(httpx.HTTPStatusError):
        await logged_request_async(toy, "get", URL, raise_for_status=True)


@pytest.mark.asyncio
async def test_transport_error_logged_and_reraised(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.DEBUG, logger="extapi")
    toy = _ToyAsyncClient(exc=httpx.ConnectError("refused"))

    with pytest.raises(httpx.ConnectError):
        await logged_request_async(toy, "get", URL)

    (rec,) = caplog.records
    assert rec.levelno == logging.WARNING
    assert rec.getMessage().startswith("FAIL GET")
