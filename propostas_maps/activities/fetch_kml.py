"""Fetch KML activity — download the My Maps KML export.

Retrieves the public KML for a map identifier, retrying on rate limits,
checks the body looks like KML and caches the raw text on disk so a
later run (or a debugging session) can reuse it.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from pathlib import Path

import httpx

from propostas_maps.core.constants import (
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    KML_ACCEPT,
    KML_MAX_REDIRECTS,
    KML_URL_TEMPLATE,
    USER_AGENT,
)
from propostas_maps.core.exceptions import PipelineError, TransientError
from propostas_maps.utils.http import HTTP_TOO_MANY_REQUESTS, send_with_retry

logger = logging.getLogger("propostas_maps.activities.fetch_kml")

_KML_SIGNATURE = re.compile(r"<\?xml|<kml", re.IGNORECASE)
_PREVIEW_CHARS = 200


class KmlFetchError(PipelineError):
    """Raised when the KML export cannot be downloaded. Fatal for the run."""

    default_stage = "fetch_kml"
    default_code = "KML_FETCH_FAILED"


class KmlTransportError(KmlFetchError, TransientError):
    """Network failure or rate limit still in force after the last retry."""


def build_kml_url(map_id: str) -> str:
    """Public KML export URL for *map_id*."""
    return KML_URL_TEMPLATE.format(map_id=map_id)


def fetch_kml(
    map_id: str,
    *,
    client: httpx.Client | None = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
    log: logging.Logger | None = None,
) -> str:
    """Download the KML text for a My Maps document.

    Args:
        map_id: Google My Maps identifier.
        client: Optional pre-configured client (tests inject a mock
            transport). A client is created and closed otherwise.
        timeout: Request timeout in seconds.
        max_attempts: Attempts when rate limited (HTTP 429).
        backoff_seconds: Linear backoff step between attempts.
        sleep: Sleep function (injected by tests).
        log: Logger for progress messages.

    Returns:
        The KML document text.

    Raises:
        KmlTransportError: On transport errors, or HTTP 429 after the
            last attempt.
        KmlFetchError: On other non-200 responses or a body that does not
            look like KML.
    """
    log = log or logger
    if not map_id:
        msg = "Google My Maps ID is required"
        raise KmlFetchError(msg)

    url = build_kml_url(map_id)
    log.info("fetch_kml started | map_id=%s | url=%s", map_id, url)

    owns_client = client is None
    if client is None:
        client = httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            max_redirects=KML_MAX_REDIRECTS,
        )
    try:
        response = send_with_retry(
            client,
            "GET",
            url,
            headers={"User-Agent": USER_AGENT, "Accept": KML_ACCEPT},
            max_attempts=max_attempts,
            backoff_seconds=backoff_seconds,
            sleep=sleep,
            log=log,
        )
    except httpx.HTTPError as exc:
        msg = (
            f"HTTP request failed: {exc}. This might be due to network connectivity "
            "issues, timeout, or Google Maps service issues."
        )
        raise KmlTransportError(msg) from exc
    finally:
        if owns_client:
            client.close()

    if response.status_code != 200:
        msg = (
            f"Failed to download map data (HTTP {response.status_code}). Possible issues: "
            "map is not publicly accessible, invalid map ID, or network connectivity issues."
        )
        if response.status_code == HTTP_TOO_MANY_REQUESTS:
            raise KmlTransportError(msg)
        raise KmlFetchError(msg)

    text = response.text
    if not _KML_SIGNATURE.search(text):
        msg = (
            "Downloaded content doesn't appear to be valid KML. "
            f"Content preview: {text[:_PREVIEW_CHARS]}..."
        )
        raise KmlFetchError(msg)

    log.info("fetch_kml completed | map_id=%s | bytes=%d", map_id, len(text))
    return text


def save_raw_kml(text: str, path: Path | str) -> Path:
    """Write the raw KML to *path*, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    logger.debug("Raw KML saved to %s", path)
    return path


def load_kml_file(path: Path | str) -> str:
    """Read a cached KML file.

    Raises:
        KmlFetchError: If the file cannot be read or is not UTF-8.
    """
    path = Path(path)
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Cannot read KML file {path}: {exc}"
        raise KmlFetchError(msg) from exc
