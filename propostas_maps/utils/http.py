"""HTTP helpers shared by the KML, image and translation clients."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from propostas_maps.core.constants import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_BACKOFF_SECONDS

logger = logging.getLogger("propostas_maps.utils.http")

HTTP_TOO_MANY_REQUESTS = 429


def send_with_retry(
    client: httpx.Client,
    method: str,
    url: str,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
    log: logging.Logger | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request, retrying on HTTP 429 with linear backoff.

    Waits ``attempt * backoff_seconds`` between attempts. The last
    response is returned as-is once attempts are exhausted, so callers
    still see the 429.

    Raises:
        httpx.HTTPError: On transport failures (timeouts, connection errors).
    """
    log = log or logger
    response = client.request(method, url, **kwargs)
    attempt = 1
    while response.status_code == HTTP_TOO_MANY_REQUESTS and attempt < max_attempts:
        delay = attempt * backoff_seconds
        log.warning(
            "Rate limited | url=%s | attempt=%d/%d | retrying in %.1fs",
            url,
            attempt,
            max_attempts,
            delay,
        )
        sleep(delay)
        attempt += 1
        response = client.request(method, url, **kwargs)
    return response
