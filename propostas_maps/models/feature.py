"""Data model for a parsed KML placemark.

A Feature represents a single placemark extracted from the My Maps KML,
with its (optional) geometry and its property bag. Features are
immutable: each pipeline stage that changes properties returns a new
Feature via ``with_properties()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Union

Coordinate = tuple[float, float]
"""A ``(lon, lat)`` pair. Altitude is always discarded."""

PropertyValue = Union[str, list[float]]
"""Property values are strings, except non-geographic ``coordinates``."""


# ---------------------------------------------------------------------------
# Geometry variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Point:
    """A single position."""

    lon: float
    lat: float

    type = "Point"

    def to_geojson(self) -> dict[str, object]:
        return {"type": self.type, "coordinates": [self.lon, self.lat]}


@dataclass(frozen=True, slots=True)
class LineString:
    """An ordered sequence of positions."""

    points: tuple[Coordinate, ...]

    type = "LineString"

    def to_geojson(self) -> dict[str, object]:
        return {"type": self.type, "coordinates": [list(p) for p in self.points]}


@dataclass(frozen=True, slots=True)
class Polygon:
    """A polygon as a sequence of linear rings (outer ring first).

    Rings are stored exactly as parsed; unclosed rings are kept so that
    validation can reject them.
    """

    rings: tuple[tuple[Coordinate, ...], ...]

    type = "Polygon"

    def to_geojson(self) -> dict[str, object]:
        return {
            "type": self.type,
            "coordinates": [[list(p) for p in ring] for ring in self.rings],
        }


@dataclass(frozen=True, slots=True)
class MultiPoint:
    points: tuple[Point, ...]

    type = "MultiPoint"

    def to_geojson(self) -> dict[str, object]:
        return {"type": self.type, "coordinates": [[p.lon, p.lat] for p in self.points]}


@dataclass(frozen=True, slots=True)
class MultiLineString:
    lines: tuple[LineString, ...]

    type = "MultiLineString"

    def to_geojson(self) -> dict[str, object]:
        return {
            "type": self.type,
            "coordinates": [[list(p) for p in line.points] for line in self.lines],
        }


@dataclass(frozen=True, slots=True)
class MultiPolygon:
    polygons: tuple[Polygon, ...]

    type = "MultiPolygon"

    def to_geojson(self) -> dict[str, object]:
        return {
            "type": self.type,
            "coordinates": [
                [[list(p) for p in ring] for ring in poly.rings] for poly in self.polygons
            ],
        }


Geometry = Union[Point, LineString, Polygon, MultiPoint, MultiLineString, MultiPolygon]


# ---------------------------------------------------------------------------
# Feature
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Feature:
    """A single placemark extracted from the KML.

    Attributes:
        properties: Ordered property bag. Keys are lower-cased; values are
            strings except ``coordinates`` on non-geographic features.
        geometry: Parsed geometry, ``None`` for non-geographic placemarks
            or placemarks without a supported geometry.
        is_geographic: Whether the placemark came from a geographic folder.
        source_index: Zero-based placemark position in the KML document.
    """

    properties: dict[str, PropertyValue] = field(default_factory=dict)
    geometry: Geometry | None = None
    is_geographic: bool = True
    source_index: int = 0

    @property
    def slug(self) -> str:
        """Trimmed slug, or ``""`` when absent or blank."""
        value = self.properties.get("slug")
        if not isinstance(value, str):
            return ""
        return value.strip()

    @property
    def name(self) -> str:
        value = self.properties.get("name")
        return value if isinstance(value, str) else ""

    def with_properties(self, properties: dict[str, PropertyValue]) -> Feature:
        """Return a copy of this feature carrying *properties*."""
        return replace(self, properties=dict(properties))

    def to_geojson(self) -> dict[str, object]:
        """Serialise as a GeoJSON ``Feature`` object."""
        return {
            "type": "Feature",
            "properties": dict(self.properties),
            "geometry": self.geometry.to_geojson() if self.geometry is not None else None,
        }
