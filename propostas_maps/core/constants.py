"""Shared pipeline constants.

Centralises URLs, HTTP headers, path templates and property whitelists
used by more than one stage.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Google My Maps
# ---------------------------------------------------------------------------

KML_URL_TEMPLATE: str = "https://www.google.com/maps/d/kml?mid={map_id}&forcekml=1"
"""Public KML export endpoint for a My Maps document."""

USER_AGENT: str = "Mozilla/5.0 (compatible; Propostas Map Downloader)"

KML_ACCEPT: str = "application/vnd.google-earth.kml+xml,application/xml,text/xml,*/*"
IMAGE_ACCEPT: str = "image/*,*/*"

# ---------------------------------------------------------------------------
# HTTP defaults
# ---------------------------------------------------------------------------

DEFAULT_HTTP_TIMEOUT_SECONDS: float = 30.0
DEFAULT_MAX_ATTEMPTS: int = 3
DEFAULT_RETRY_BACKOFF_SECONDS: float = 2.0
KML_MAX_REDIRECTS: int = 5
IMAGE_MAX_REDIRECTS: int = 3

# ---------------------------------------------------------------------------
# Output layout
# ---------------------------------------------------------------------------

DEFAULT_OUTPUT_DIR: str = "tmp"
DEFAULT_IMAGES_DIR: str = "assets/data/images"
DEFAULT_PAGES_DIR: str = "freguesias"
DEFAULT_PALETTE_FILE: str = "_data/eixo_colors.yml"

RAW_KML_FILENAME: str = "raw_data.kml"
GEOJSON_FILENAME: str = "propostas.geojson"
PROPOSTAS_SUBDIR: str = "propostas"
INDEX_PAGE_FILENAME: str = "index.md"

CRS84_URN: str = "urn:ogc:def:crs:OGC:1.3:CRS84"

# ---------------------------------------------------------------------------
# Feature properties
# ---------------------------------------------------------------------------

SLUG_KEY: str = "slug"
MEDIA_LINKS_KEY: str = "gx_media_links"
COORDINATES_KEY: str = "coordinates"
COORDENADAS_KEY: str = "coordenadas"
EIXO_KEY: str = "eixo"

_COMMON_KEYS: tuple[str, ...] = (
    "slug",
    "name",
    "proposta",
    "sumario",
    "descricao",
    "eixo",
    "gx_media_links",
)

GEOGRAPHIC_PROPERTY_WHITELIST: frozenset[str] = frozenset(_COMMON_KEYS)
"""Properties kept on geographic features after tidying."""

NON_GEOGRAPHIC_PROPERTY_WHITELIST: frozenset[str] = frozenset((*_COMMON_KEYS, COORDINATES_KEY))
"""Properties kept on non-geographic features after tidying."""

APPEND_MERGE_KEYS: frozenset[str] = frozenset({"descricao", "sumario"})
"""Keys whose conflicting values are concatenated rather than discarded."""

APPEND_SEPARATOR: str = "\n\n"
