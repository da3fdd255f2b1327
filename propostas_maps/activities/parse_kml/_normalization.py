"""Coordinate and property normalization helpers for KML parsing.

Responsibilities:
- Parse KML coordinate text (``lon,lat[,alt] ...``) to ``(lon, lat)`` tuples
- Parse the ``Coordenadas`` free-text field of proposals without location
- Extract ``key: value`` pairs from My Maps descriptions
- Extract ExtendedData ``<Data>`` values
"""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING

from propostas_maps.activities.parse_kml._constants import DESCRIPTION_LINE_BREAK

if TYPE_CHECKING:
    from lxml.etree import _Element

    from propostas_maps.models.feature import Coordinate

# "Key: value<br>" pairs. Keys stop at the first colon; values run to the
# next tag or the end of the text.
_DESCRIPTION_PAIR = re.compile(r"([^<:]+):\s*([^<]+)(?:<br>|$)")


# ---------------------------------------------------------------------------
# Coordinate parsing
# ---------------------------------------------------------------------------


def _to_number(text: str) -> float | None:
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_position(token: str) -> Coordinate | None:
    """Parse one ``lon,lat[,alt]`` token. Altitude is discarded.

    Returns ``None`` unless both longitude and latitude parse as numbers.
    """
    parts = token.strip().split(",")
    if len(parts) < 2:
        return None
    lon = _to_number(parts[0])
    lat = _to_number(parts[1])
    if lon is None or lat is None:
        return None
    return (lon, lat)


def parse_positions(text: str) -> list[Coordinate]:
    """Parse whitespace-separated KML coordinate text, dropping invalid tokens."""
    positions: list[Coordinate] = []
    for token in text.split():
        position = parse_position(token)
        if position is not None:
            positions.append(position)
    return positions


def parse_number_list(text: str) -> list[float] | None:
    """Parse ``"38.71, -9.13"`` into ``[38.71, -9.13]``.

    Non-numeric entries are dropped. Returns ``None`` when fewer than two
    numbers remain.
    """
    numbers = [n for n in (_to_number(part.strip()) for part in text.split(",")) if n is not None]
    if len(numbers) < 2:
        return None
    return numbers


# ---------------------------------------------------------------------------
# Description parsing
# ---------------------------------------------------------------------------


def parse_description_pairs(description: str) -> list[tuple[str, str]]:
    """Extract ``key: value`` pairs separated by ``<br>`` markers.

    Descriptions without any ``<br>`` are free text and yield no pairs.
    Keys are trimmed and lower-cased; values are trimmed.
    """
    if DESCRIPTION_LINE_BREAK not in description:
        return []
    pairs: list[tuple[str, str]] = []
    for key, value in _DESCRIPTION_PAIR.findall(description):
        clean = key.strip().lower()
        if clean:
            pairs.append((clean, value.strip()))
    return pairs


# ---------------------------------------------------------------------------
# ExtendedData
# ---------------------------------------------------------------------------


def extract_extended_data(placemark: _Element) -> dict[str, str]:
    """Extract ``ExtendedData/Data`` values keyed by lower-cased ``name``.

    Expects a namespace-stripped element tree. Empty values are skipped.
    """
    metadata: dict[str, str] = {}
    for data_elem in placemark.iterfind(".//Data"):
        key = (data_elem.get("name") or "").strip().lower()
        value = data_elem.findtext("value") or ""
        if key and value.strip():
            metadata[key] = value.strip()
    return metadata
