"""Geometry extraction from placemark markup.

Turns ``Point``, ``LineString``, ``Polygon`` and homogeneous
``MultiGeometry`` elements into model geometries. Extraction only drops
unparsable tokens and too-short sequences; range and ring-closure checks
are left to ``_validation.validate_geometry``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from propostas_maps.activities.parse_kml._constants import (
    MIN_LINESTRING_POINTS,
    MIN_POLYGON_VERTICES,
)
from propostas_maps.activities.parse_kml._normalization import parse_position, parse_positions
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

    from propostas_maps.models.feature import Geometry

_SIMPLE_TAGS = ("Point", "LineString", "Polygon")
_GEOMETRY_TAGS = (*_SIMPLE_TAGS, "MultiGeometry")


def extract_geometry(placemark: _Element) -> Geometry | None:
    """Return the placemark's geometry, or ``None`` if absent or unsupported."""
    for child in placemark:
        if child.tag in _GEOMETRY_TAGS:
            return _extract(child)
    return None


def _extract(elem: _Element) -> Geometry | None:
    if elem.tag == "Point":
        return _extract_point(elem)
    if elem.tag == "LineString":
        return _extract_linestring(elem)
    if elem.tag == "Polygon":
        return _extract_polygon(elem)
    if elem.tag == "MultiGeometry":
        return _extract_multi(elem)
    return None


def _coordinates_text(elem: _Element, path: str = "coordinates") -> str:
    return (elem.findtext(path) or "").strip()


def _extract_point(elem: _Element) -> Point | None:
    tokens = _coordinates_text(elem).split()
    if not tokens:
        return None
    position = parse_position(tokens[0])
    if position is None:
        return None
    return Point(lon=position[0], lat=position[1])


def _extract_linestring(elem: _Element) -> LineString | None:
    points = parse_positions(_coordinates_text(elem))
    if len(points) < MIN_LINESTRING_POINTS:
        return None
    return LineString(points=tuple(points))


def _extract_polygon(elem: _Element) -> Polygon | None:
    # Outer boundary only; inner rings are not carried.
    ring = parse_positions(_coordinates_text(elem, "outerBoundaryIs/LinearRing/coordinates"))
    if len(ring) < MIN_POLYGON_VERTICES:
        return None
    return Polygon(rings=(tuple(ring),))


def _extract_multi(elem: _Element) -> Geometry | None:
    members = [child for child in elem if child.tag in _SIMPLE_TAGS]
    kinds = {child.tag for child in members}
    if len(kinds) != 1:
        return None

    parts = [_extract(child) for child in members]
    if any(part is None for part in parts):
        return None

    kind = kinds.pop()
    if kind == "Point":
        return MultiPoint(points=tuple(parts))  # type: ignore[arg-type]
    if kind == "LineString":
        return MultiLineString(lines=tuple(parts))  # type: ignore[arg-type]
    return MultiPolygon(polygons=tuple(parts))  # type: ignore[arg-type]
