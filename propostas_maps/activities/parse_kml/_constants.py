"""Shared constants for KML parsing."""

from __future__ import annotations

# KML 2.2 namespace
KML_NAMESPACE = "http://www.opengis.net/kml/2.2"

# WGS 84 coordinate bounds
MIN_LONGITUDE = -180.0
MAX_LONGITUDE = 180.0
MIN_LATITUDE = -90.0
MAX_LATITUDE = 90.0

# Minimum positions for a LineString
MIN_LINESTRING_POINTS = 2

# Minimum vertices for a valid polygon ring (3 distinct + closing = 4)
MIN_POLYGON_VERTICES = 4

# Folder naming conventions for proposals without a map location
NON_GEOGRAPHIC_FOLDER_MARKER = "Propostas s/ Local"
NON_GEOGRAPHIC_FOLDER_KEYWORD = "sem local"

# Layer name used when the document has no Folder elements
DEFAULT_LAYER_NAME = "Default"

# Marker separating key/value pairs in My Maps descriptions
DESCRIPTION_LINE_BREAK = "<br>"
