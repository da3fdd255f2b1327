"""Validation helpers for KML parsing.

Responsibilities:
- XML structure and KML root validation (fatal for the run)
- Coordinate bounds checking (WGS 84)
- Geometry structure validation: LineString length, polygon ring
  vertex count and closure, Multi* members
- Filtering geographic features down to those with valid geometry
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from propostas_maps.activities.parse_kml._constants import (
    KML_NAMESPACE,
    MAX_LATITUDE,
    MAX_LONGITUDE,
    MIN_LATITUDE,
    MIN_LINESTRING_POINTS,
    MIN_LONGITUDE,
    MIN_POLYGON_VERTICES,
)
from propostas_maps.core.exceptions import PermanentError, ValidationError
from propostas_maps.models.feature import (
    LineString,
    MultiLineString,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
)

if TYPE_CHECKING:
    from lxml.etree import _Element

    from propostas_maps.models.feature import Coordinate, Feature, Geometry

logger = logging.getLogger("propostas_maps.activities.parse_kml")


# ---------------------------------------------------------------------------
# Exceptions (public API, re-exported from __init__)
# ---------------------------------------------------------------------------


class KmlParseError(PermanentError):
    """Raised when a KML document cannot be parsed. Fatal for the run."""

    default_stage = "parse_kml"
    default_code = "KML_PARSE_FAILED"


class GeometryValidationError(ValidationError):
    """Raised when a feature's geometry fails validation."""

    default_stage = "parse_kml"
    default_code = "GEOMETRY_INVALID"


# ---------------------------------------------------------------------------
# XML / KML validation
# ---------------------------------------------------------------------------


def validate_xml(content: bytes | str) -> _Element:
    """Parse *content* as XML and check it looks like KML.

    Returns:
        The document root element.

    Raises:
        KmlParseError: If the content is empty, not valid XML, or the
            root element is not ``<kml>``.
    """
    from lxml import etree  # type: ignore[attr-defined]

    if isinstance(content, str):
        content = content.encode("utf-8")

    if not content.strip():
        msg = "KML document is empty"
        raise KmlParseError(msg)

    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)
    try:
        root = etree.fromstring(content, parser=parser)
    except etree.XMLSyntaxError as exc:
        msg = f"Not valid XML: {exc}"
        raise KmlParseError(msg) from exc

    tag = root.tag
    if f"{{{KML_NAMESPACE}}}" not in tag and "kml" not in tag.lower():
        msg = f"Not a KML document: root element is <{tag}>"
        raise KmlParseError(msg)

    return root


# ---------------------------------------------------------------------------
# Geometry validation
# ---------------------------------------------------------------------------


def is_valid_position(lon: object, lat: object) -> bool:
    """Both values numeric and finite, within WGS 84 bounds."""
    for value in (lon, lat):
        if isinstance(value, bool) or not isinstance(value, int | float):
            return False
        if not math.isfinite(value):
            return False
    return MIN_LONGITUDE <= lon <= MAX_LONGITUDE and MIN_LATITUDE <= lat <= MAX_LATITUDE  # type: ignore[operator]


def _check_positions(positions: tuple[Coordinate, ...], what: str) -> None:
    for lon, lat in positions:
        if not is_valid_position(lon, lat):
            msg = f"{what} has out-of-range position ({lon}, {lat})"
            raise GeometryValidationError(msg)


def _check_point(point: Point) -> None:
    if not is_valid_position(point.lon, point.lat):
        msg = (
            f"Point ({point.lon}, {point.lat}) out of WGS 84 range "
            f"lon [{MIN_LONGITUDE}, {MAX_LONGITUDE}], lat [{MIN_LATITUDE}, {MAX_LATITUDE}]"
        )
        raise GeometryValidationError(msg)


def _check_linestring(line: LineString) -> None:
    if len(line.points) < MIN_LINESTRING_POINTS:
        msg = f"LineString has {len(line.points)} point(s), need at least {MIN_LINESTRING_POINTS}"
        raise GeometryValidationError(msg)
    _check_positions(line.points, "LineString")


def _check_polygon(polygon: Polygon) -> None:
    if not polygon.rings:
        msg = "Polygon has no rings"
        raise GeometryValidationError(msg)
    for ring in polygon.rings:
        if len(ring) < MIN_POLYGON_VERTICES:
            msg = f"Polygon ring has {len(ring)} point(s), need at least {MIN_POLYGON_VERTICES}"
            raise GeometryValidationError(msg)
        _check_positions(ring, "Polygon ring")
        if ring[0] != ring[-1]:
            msg = f"Polygon ring is not closed: first {ring[0]} != last {ring[-1]}"
            raise GeometryValidationError(msg)


def validate_geometry(geometry: Geometry | None) -> None:
    """Validate a geometry.

    Rules:
    - Point: both coordinates numeric, lon in [-180, 180], lat in [-90, 90].
    - LineString: at least 2 points, every point valid.
    - Polygon: every ring has at least 4 points, every point valid, and
      the ring is closed (first point equals last point). Rings are never
      auto-closed.
    - Multi*: every member validates by the rule for its type.

    Raises:
        GeometryValidationError: If the geometry is missing or invalid.
    """
    if geometry is None:
        msg = "Feature has no geometry"
        raise GeometryValidationError(msg)

    if isinstance(geometry, Point):
        _check_point(geometry)
    elif isinstance(geometry, LineString):
        _check_linestring(geometry)
    elif isinstance(geometry, Polygon):
        _check_polygon(geometry)
    elif isinstance(geometry, MultiPoint):
        for point in geometry.points:
            _check_point(point)
    elif isinstance(geometry, MultiLineString):
        for line in geometry.lines:
            _check_linestring(line)
    elif isinstance(geometry, MultiPolygon):
        for polygon in geometry.polygons:
            _check_polygon(polygon)
    else:
        msg = f"Unsupported geometry type {type(geometry).__name__}"
        raise GeometryValidationError(msg)


def is_valid_geometry(geometry: Geometry | None) -> bool:
    """Boolean form of ``validate_geometry``."""
    try:
        validate_geometry(geometry)
    except GeometryValidationError:
        return False
    return True


def filter_valid_features(
    features: list[Feature],
    *,
    log: logging.Logger | None = None,
) -> tuple[list[Feature], list[Feature]]:
    """Split geographic features into accepted and rejected lists.

    A feature whose geometry fails validation is logged and dropped; it
    never aborts the run.

    Returns:
        ``(valid, rejected)`` preserving input order.
    """
    log = log or logger
    valid: list[Feature] = []
    rejected: list[Feature] = []
    for feature in features:
        try:
            validate_geometry(feature.geometry)
        except GeometryValidationError as exc:
            log.warning(
                "Skipping feature with invalid geometry | placemark=%d | name=%s | %s",
                feature.source_index,
                feature.name,
                exc,
            )
            rejected.append(feature)
            continue
        valid.append(feature)

    log.info(
        "Filtered %d geographic feature(s) down to %d valid feature(s)",
        len(features),
        len(valid),
    )
    return valid, rejected
