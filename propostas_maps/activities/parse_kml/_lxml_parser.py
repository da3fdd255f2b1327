"""lxml-based KML layer parser.

Walks every ``Folder`` of a My Maps export and classifies each placemark
as geographic or non-geographic by the folder it sits in. Each placemark
becomes one ``Feature``; a placemark that fails extraction is logged and
skipped without aborting the document.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from propostas_maps.activities.parse_kml._constants import (
    DEFAULT_LAYER_NAME,
    NON_GEOGRAPHIC_FOLDER_KEYWORD,
    NON_GEOGRAPHIC_FOLDER_MARKER,
)
from propostas_maps.activities.parse_kml._geometry import extract_geometry
from propostas_maps.activities.parse_kml._normalization import (
    extract_extended_data,
    parse_description_pairs,
    parse_number_list,
)
from propostas_maps.core.constants import COORDENADAS_KEY, COORDINATES_KEY
from propostas_maps.models.feature import Feature

if TYPE_CHECKING:
    from lxml.etree import _Element

    from propostas_maps.models.feature import PropertyValue

logger = logging.getLogger("propostas_maps.activities.parse_kml")


@dataclass(slots=True)
class ParsedLayers:
    """Placemarks of one KML document split by folder classification."""

    geographic: list[Feature] = field(default_factory=list)
    non_geographic: list[Feature] = field(default_factory=list)
    skipped: int = 0


def is_non_geographic_folder(name: str) -> bool:
    """Folders holding proposals without a map location."""
    return NON_GEOGRAPHIC_FOLDER_MARKER in name or NON_GEOGRAPHIC_FOLDER_KEYWORD in name.lower()


def strip_namespaces(root: _Element) -> _Element:
    """Drop namespace URIs from every element tag in place."""
    from lxml import etree  # type: ignore[attr-defined]

    for elem in root.iter():
        if isinstance(elem.tag, str):
            elem.tag = etree.QName(elem).localname
    return root


def parse_layers(root: _Element, *, log: logging.Logger | None = None) -> ParsedLayers:
    """Extract features from every placemark under *root*.

    A placemark is non-geographic when any enclosing ``Folder`` is named
    like "Propostas s/ Local" (or contains "sem local"). Documents with
    no folders are treated as one geographic layer.

    Args:
        root: Namespace-stripped KML root element.
        log: Logger for progress and per-placemark failures.
    """
    log = log or logger
    result = ParsedLayers()

    folders = list(root.iter("Folder"))
    if folders:
        for folder in folders:
            log.debug(
                "Folder %r | geographic=%s",
                (folder.findtext("name") or "").strip(),
                not is_non_geographic_folder(folder.findtext("name") or ""),
            )
    else:
        log.debug("No folders found, using %r layer", DEFAULT_LAYER_NAME)

    for index, placemark in enumerate(root.iter("Placemark")):
        geographic = not _in_non_geographic_folder(placemark)
        try:
            feature = extract_feature(placemark, is_geographic=geographic, index=index)
        except Exception as exc:
            log.warning("Error extracting feature from placemark %d: %s", index, exc)
            result.skipped += 1
            continue

        if geographic:
            result.geographic.append(feature)
        else:
            result.non_geographic.append(feature)

    log.info(
        "Extracted %d geographic and %d non-geographic feature(s) (%d skipped)",
        len(result.geographic),
        len(result.non_geographic),
        result.skipped,
    )
    return result


def extract_feature(placemark: _Element, *, is_geographic: bool, index: int = 0) -> Feature:
    """Build a ``Feature`` from one placemark.

    Properties come from, in increasing precedence: the placemark name,
    ``key: value`` pairs in the description, then ExtendedData values.
    On non-geographic placemarks ``coordenadas`` is parsed into a
    ``coordinates`` number list. Geometry is only read for geographic
    placemarks.
    """
    properties: dict[str, PropertyValue] = {"name": (placemark.findtext("name") or "").strip()}

    for key, value in parse_description_pairs(placemark.findtext("description") or ""):
        properties[key] = value
    properties.update(extract_extended_data(placemark))

    if not is_geographic and COORDENADAS_KEY in properties:
        raw = properties.pop(COORDENADAS_KEY)
        numbers = parse_number_list(raw) if isinstance(raw, str) else None
        if numbers is not None:
            properties[COORDINATES_KEY] = numbers

    geometry = extract_geometry(placemark) if is_geographic else None
    return Feature(
        properties=properties,
        geometry=geometry,
        is_geographic=is_geographic,
        source_index=index,
    )


def _in_non_geographic_folder(placemark: _Element) -> bool:
    for ancestor in placemark.iterancestors("Folder"):
        if is_non_geographic_folder(ancestor.findtext("name") or ""):
            return True
    return False
