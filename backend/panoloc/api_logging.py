"""
api_logging.py
~~~~~~~~~~~~~~
Emit **one concise log line** per outbound HTTP request.

Usage example
-------------
>>> async with httpx.AsyncClient() as cli:
...     resp = await logged_request_async(cli, "get", NOMINATIM_REVERSE_URL,
...                                       params={"lat": 1, "lon": 2})
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

LOG = logging.getLogger("extapi")


async def logged_request_async(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *args: Any,
    raise_for_status: bool = False,
    **kwargs: Any,
) -> httpx.Response:
    """
    Issue one request on *client* and log verb, URL, status and latency.

    Parameters
    ----------
    client:
        ``httpx.AsyncClient`` (or anything exposing awaitable verb methods).
    method:
        HTTP verb, e.g. ``"get"``.
    raise_for_status:
        *True* ⇒ any 4xx/5xx raises :class:`httpx.HTTPStatusError`.
        *False* ⇒ the caller inspects ``status_code`` itself.

    Transport errors are logged at *WARNING* and re-raised unchanged.
    """
    verb = method.upper()
    t0 = time.perf_counter()
    try:
        response = await getattr(client, method.lower())(url, *args, **kwargs)
    except Exception as exc:
        latency_ms = (time.perf_counter() - t0) * 1000.0
        LOG.warning("FAIL %s %s %.0f ms %r", verb, url, latency_ms, exc)
        raise

    latency_ms = (time.perf_counter() - t0) * 1000.0
    code = response.status_code
    level = logging.INFO if code < 400 else logging.WARNING
    LOG.log(level, "%s %s → %s (%.0f ms)", verb, url, code, latency_ms)

    if raise_for_status and code >= 400:
        response.raise_for_status()

    return response


__all__ = ["logged_request_async"]
