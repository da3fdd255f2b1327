"""Tests for the fetch_kml activity.

Covers:
- Export URL construction
- Successful download with the expected headers
- Rate-limit retries with linear backoff
- Non-200 responses, transport errors and non-KML bodies
- Raw KML caching on disk
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from propostas_maps.activities.fetch_kml import (
    KmlFetchError,
    KmlTransportError,
    build_kml_url,
    fetch_kml,
    load_kml_file,
    save_raw_kml,
)

KML_BODY = '<?xml version="1.0"?><kml xmlns="http://www.opengis.net/kml/2.2"><Document/></kml>'


def _client(*responses: httpx.Response, seen: list[httpx.Request] | None = None) -> httpx.Client:
    queue = iter(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return next(queue)

    return httpx.Client(transport=httpx.MockTransport(handler))


class TestBuildUrl:
    def test_url_contains_map_id(self) -> None:
        url = build_kml_url("1AbC")
        assert url == "https://www.google.com/maps/d/kml?mid=1AbC&forcekml=1"


class TestFetchKml:
    """Download behaviour."""

    def test_returns_kml_text(self) -> None:
        seen: list[httpx.Request] = []
        text = fetch_kml("1AbC", client=_client(httpx.Response(200, text=KML_BODY), seen=seen))

        assert text == KML_BODY
        assert seen[0].url.params["mid"] == "1AbC"
        assert "Propostas Map Downloader" in seen[0].headers["User-Agent"]
        assert "kml" in seen[0].headers["Accept"]

    def test_retries_on_rate_limit(self) -> None:
        sleep = MagicMock()
        client = _client(
            httpx.Response(429),
            httpx.Response(429),
            httpx.Response(200, text=KML_BODY),
        )

        text = fetch_kml("1AbC", client=client, max_attempts=3, backoff_seconds=2.0, sleep=sleep)

        assert text == KML_BODY
        assert [c.args[0] for c in sleep.call_args_list] == [2.0, 4.0]

    def test_rate_limit_exhausted_is_retryable(self) -> None:
        client = _client(httpx.Response(429), httpx.Response(429))
        with pytest.raises(KmlTransportError) as exc_info:
            fetch_kml("1AbC", client=client, max_attempts=2, sleep=MagicMock())
        assert "HTTP 429" in str(exc_info.value)
        assert exc_info.value.retryable is True
        assert exc_info.value.category == "transient"

    def test_not_found(self) -> None:
        with pytest.raises(KmlFetchError, match="HTTP 404") as exc_info:
            fetch_kml("missing", client=_client(httpx.Response(404)))
        assert exc_info.value.retryable is False
        assert not isinstance(exc_info.value, KmlTransportError)
        assert exc_info.value.to_error_dict()["stage"] == "fetch_kml"

    def test_html_body_rejected(self) -> None:
        body = "<html><body>Sign in</body></html>"
        with pytest.raises(KmlFetchError, match="doesn't appear to be valid KML") as exc_info:
            fetch_kml("1AbC", client=_client(httpx.Response(200, text=body)))
        assert "Sign in" in str(exc_info.value)

    def test_transport_error(self) -> None:
        def boom(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = httpx.Client(transport=httpx.MockTransport(boom))
        with pytest.raises(KmlTransportError, match="HTTP request failed") as exc_info:
            fetch_kml("1AbC", client=client)
        assert exc_info.value.retryable is True
        assert exc_info.value.category == "transient"

    def test_empty_map_id(self) -> None:
        with pytest.raises(KmlFetchError, match="required"):
            fetch_kml("")


class TestRawKmlFiles:
    """Caching the raw text on disk."""

    def test_save_and_load(self, tmp_path: Path) -> None:
        path = save_raw_kml(KML_BODY, tmp_path / "tmp" / "arroios" / "raw_data.kml")
        assert path.is_file()
        assert load_kml_file(path) == KML_BODY

    def test_load_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(KmlFetchError, match="Cannot read KML file"):
            load_kml_file(tmp_path / "nope.kml")

    def test_load_non_utf8_file(self, tmp_path: Path) -> None:
        path = tmp_path / "latin1.kml"
        path.write_bytes(b"\xff\xfe<kml>Pra\xe7a</kml>")
        with pytest.raises(KmlFetchError, match="Cannot read KML file"):
            load_kml_file(path)
