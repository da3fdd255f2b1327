"""KML parsing activity.

Parses a My Maps KML export into geographic and non-geographic features.

The parsing pipeline is split into focused stages:
- **_validation**: XML/KML check, coordinate bounds, ring closure
- **_normalization**: coordinate text, description pairs, ExtendedData
- **_geometry**: placemark markup to Point/LineString/Polygon/Multi*
- **_lxml_parser**: folder classification and per-placemark extraction

Failure policy:
- An unparsable document raises ``KmlParseError`` (fatal for the run).
- A placemark that fails extraction is logged and skipped.
- A geographic feature whose geometry fails validation is dropped by
  ``filter_valid_features`` (logged, not fatal).
"""

from __future__ import annotations

import logging

from propostas_maps.activities.parse_kml._constants import (
    KML_NAMESPACE,
    MAX_LATITUDE,
    MAX_LONGITUDE,
    MIN_LATITUDE,
    MIN_LINESTRING_POINTS,
    MIN_LONGITUDE,
    MIN_POLYGON_VERTICES,
)
from propostas_maps.activities.parse_kml._geometry import extract_geometry
from propostas_maps.activities.parse_kml._lxml_parser import (
    ParsedLayers,
    extract_feature,
    is_non_geographic_folder,
    parse_layers,
    strip_namespaces,
)
from propostas_maps.activities.parse_kml._normalization import (
    extract_extended_data,
    parse_description_pairs,
    parse_number_list,
    parse_position,
    parse_positions,
)
from propostas_maps.activities.parse_kml._validation import (
    GeometryValidationError,
    KmlParseError,
    filter_valid_features,
    is_valid_geometry,
    is_valid_position,
    validate_geometry,
    validate_xml,
)

logger = logging.getLogger("propostas_maps.activities.parse_kml")

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    "KML_NAMESPACE",
    "MAX_LATITUDE",
    "MAX_LONGITUDE",
    "MIN_LATITUDE",
    "MIN_LINESTRING_POINTS",
    "MIN_LONGITUDE",
    "MIN_POLYGON_VERTICES",
    "GeometryValidationError",
    "KmlParseError",
    "ParsedLayers",
    "extract_extended_data",
    "extract_feature",
    "extract_geometry",
    "filter_valid_features",
    "is_non_geographic_folder",
    "is_valid_geometry",
    "is_valid_position",
    "parse_description_pairs",
    "parse_kml",
    "parse_layers",
    "parse_number_list",
    "parse_position",
    "parse_positions",
    "strip_namespaces",
    "validate_geometry",
    "validate_xml",
]


def parse_kml(content: bytes | str, *, log: logging.Logger | None = None) -> ParsedLayers:
    """Parse KML text into geographic and non-geographic features.

    Args:
        content: Raw KML document.
        log: Logger for progress and per-placemark failures.

    Returns:
        ``ParsedLayers`` with features in document order. Geographic
        features are not yet validated; see ``filter_valid_features``.

    Raises:
        KmlParseError: If the document is empty, not XML, or not KML.
    """
    log = log or logger
    root = strip_namespaces(validate_xml(content))
    return parse_layers(root, log=log)
