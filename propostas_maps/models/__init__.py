"""Data models and schemas.

Defines the data structures used throughout the pipeline:
- Feature: One placemark with geometry and properties
- Geometry variants: Point, LineString, Polygon and their Multi* forms
- ProposalGroup: Features sharing a slug, with merged properties
- EixoPalette: Colour palette for eixo categories
- RunSummary: End-of-run counts
"""

from propostas_maps.models.feature import (
    Coordinate,
    Feature,
    Geometry,
    LineString,
    MultiLineString,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
)
from propostas_maps.models.palette import DEFAULT_PALETTE, EixoColour, EixoPalette
from propostas_maps.models.proposal import ProposalGroup
from propostas_maps.models.summary import RunSummary

__all__ = [
    "DEFAULT_PALETTE",
    "Coordinate",
    "EixoColour",
    "EixoPalette",
    "Feature",
    "Geometry",
    "LineString",
    "MultiLineString",
    "MultiPoint",
    "MultiPolygon",
    "Point",
    "Polygon",
    "ProposalGroup",
    "RunSummary",
]
