"""Write GeoJSON activity — the FeatureCollection behind the map layer."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from propostas_maps.core.constants import CRS84_URN

if TYPE_CHECKING:
    from propostas_maps.models.feature import Feature

logger = logging.getLogger("propostas_maps.activities.write_geojson")


def build_feature_collection(
    features: list[Feature],
    *,
    region_slug: str,
    map_id: str,
) -> dict[str, object]:
    """Build the FeatureCollection dict for the accepted geographic features."""
    return {
        "type": "FeatureCollection",
        "name": f"{region_slug.capitalize()} Layer ({map_id})",
        "crs": {"type": "name", "properties": {"name": CRS84_URN}},
        "features": [feature.to_geojson() for feature in features],
    }


def write_geojson(
    features: list[Feature],
    path: Path | str,
    *,
    region_slug: str,
    map_id: str,
    log: logging.Logger | None = None,
) -> Path:
    """Write *features* as a FeatureCollection to *path* (UTF-8, indented)."""
    log = log or logger
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    collection = build_feature_collection(features, region_slug=region_slug, map_id=map_id)
    path.write_text(json.dumps(collection, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    log.info("Saved final GeoJSON to %s (%d feature(s))", path, len(features))
    return path
