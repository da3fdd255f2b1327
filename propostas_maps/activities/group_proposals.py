"""Group proposals activity — fold features into one group per slug.

Geographic features are folded first, then non-geographic features, each
in KML encounter order. The merge below is order-sensitive: the first
non-blank value of a key wins, except for ``descricao`` and ``sumario``
whose distinct values are appended with a blank line between them.
Running the fold twice over the same input yields identical groups.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from propostas_maps.core.constants import (
    APPEND_MERGE_KEYS,
    APPEND_SEPARATOR,
    MEDIA_LINKS_KEY,
    SLUG_KEY,
)
from propostas_maps.models.proposal import ProposalGroup
from propostas_maps.utils.helpers import is_blank

if TYPE_CHECKING:
    from propostas_maps.models.feature import Feature, PropertyValue

logger = logging.getLogger("propostas_maps.activities.group_proposals")

_MEDIA_LINK_SEPARATORS = re.compile(r"[\s,]+")


def split_media_links(value: object) -> list[str]:
    """Split a ``gx_media_links`` value on whitespace and commas."""
    if not isinstance(value, str):
        return []
    return [token for token in _MEDIA_LINK_SEPARATORS.split(value.strip()) if token]


def dedupe(values: list[str]) -> list[str]:
    """Stable de-duplication that also drops blank entries."""
    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        if not value.strip() or value in seen:
            continue
        seen.add(value)
        out.append(value)
    return out


def merge_properties(
    group: ProposalGroup,
    feature: Feature,
    *,
    log: logging.Logger | None = None,
) -> None:
    """Fold one feature's properties into ``group.combined_properties``.

    Rules per ``(key, value)``:
    - blank values are skipped;
    - an absent or blank combined value is replaced;
    - a differing value for ``descricao``/``sumario`` is appended after a
      blank line unless it already occurs in the combined text;
    - any other differing value is discarded (logged).

    The combined ``slug`` is always the trimmed group slug. Image links
    are collected into ``group.all_images`` instead.
    """
    log = log or logger
    combined = group.combined_properties

    combined[SLUG_KEY] = group.slug
    for key, value in feature.properties.items():
        if key in (MEDIA_LINKS_KEY, SLUG_KEY):
            continue
        if is_blank(value):
            continue

        existing = combined.get(key)
        if is_blank(existing):
            combined[key] = value
            continue
        if existing == value:
            continue

        if key in APPEND_MERGE_KEYS and isinstance(existing, str) and isinstance(value, str):
            if value not in existing:
                combined[key] = f"{existing}{APPEND_SEPARATOR}{value}"
            continue

        log.info(
            "Conflicting value for %r in proposal %s | kept=%r | discarded=%r",
            key,
            group.slug,
            existing,
            value,
        )

    links = split_media_links(feature.properties.get(MEDIA_LINKS_KEY))
    if links:
        group.all_images = dedupe([*group.all_images, *links])


def add_feature(
    groups: dict[str, ProposalGroup],
    feature: Feature,
    *,
    log: logging.Logger | None = None,
) -> ProposalGroup | None:
    """Add one feature to its group, creating the group on first sight.

    Returns the group, or ``None`` when the feature has no slug.
    """
    slug = feature.slug
    if not slug:
        return None

    group = groups.get(slug)
    if group is None:
        group = ProposalGroup(slug=slug)
        groups[slug] = group

    if feature.is_geographic:
        group.has_map_location = True
        group.geographic_features.append(feature)
    else:
        group.non_geographic_features.append(feature)

    merge_properties(group, feature, log=log)
    return group


def group_proposals(
    geographic: list[Feature],
    non_geographic: list[Feature],
    *,
    log: logging.Logger | None = None,
) -> dict[str, ProposalGroup]:
    """Group features by slug, geographic features first.

    Features without a slug (missing, null or blank) are skipped and never
    create or join a group.

    Returns:
        Mapping from slug to group, in order of first appearance.
    """
    log = log or logger
    groups: dict[str, ProposalGroup] = {}
    skipped = 0
    for feature in [*geographic, *non_geographic]:
        if add_feature(groups, feature, log=log) is None:
            skipped += 1

    log.info(
        "Grouped %d feature(s) into %d proposal(s) (%d without slug)",
        len(geographic) + len(non_geographic),
        len(groups),
        skipped,
    )
    return groups
