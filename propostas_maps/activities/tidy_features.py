"""Tidy features activity — normalise property keys.

Lower-cases every property key and keeps only the whitelisted keys
(geographic features drop ``coordinates``). The transform is pure and
idempotent: tidying a tidy feature returns an equal feature.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from propostas_maps.core.constants import (
    GEOGRAPHIC_PROPERTY_WHITELIST,
    NON_GEOGRAPHIC_PROPERTY_WHITELIST,
)

if TYPE_CHECKING:
    from propostas_maps.models.feature import Feature, PropertyValue

logger = logging.getLogger("propostas_maps.activities.tidy_features")


def tidy_feature(feature: Feature) -> Feature:
    """Return *feature* with lower-cased, whitelisted property keys.

    When two keys collide after lower-casing the later one wins, matching
    dict update order.
    """
    whitelist = (
        GEOGRAPHIC_PROPERTY_WHITELIST
        if feature.is_geographic
        else NON_GEOGRAPHIC_PROPERTY_WHITELIST
    )
    lowered: dict[str, PropertyValue] = {}
    for key, value in feature.properties.items():
        lowered[key.lower()] = value
    return feature.with_properties({k: v for k, v in lowered.items() if k in whitelist})


def tidy_features(features: list[Feature], *, log: logging.Logger | None = None) -> list[Feature]:
    """Tidy every feature, preserving order."""
    log = log or logger
    tidied = [tidy_feature(feature) for feature in features]
    log.debug("Tidied %d feature(s)", len(tidied))
    return tidied
