"""Eixo colour mapping — assign palette colours to proposal categories.

Each distinct ``eixo`` gets a ``{"hex", "className"}`` pair. Categories
are matched against palette names first (exact, then substring, both
case- and accent-insensitive); unmatched categories take the remaining
palette entries in order, and the overflow colour once the palette is
exhausted. The resulting mapping is stored in the proposals index page
and read back by the site templates.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import ValidationError as PydanticValidationError

from propostas_maps.models.palette import DEFAULT_PALETTE, EixoPalette
from propostas_maps.utils.helpers import fold_text

if TYPE_CHECKING:
    from propostas_maps.models.proposal import ProposalGroup

logger = logging.getLogger("propostas_maps.activities.eixo_colours")

OVERFLOW_CLASS = "overflow"


def load_palette(path: Path | str | None, *, log: logging.Logger | None = None) -> EixoPalette:
    """Load the palette file, falling back to ``DEFAULT_PALETTE``.

    A missing file is expected (fresh checkouts); an unreadable or
    malformed one is logged before falling back.
    """
    log = log or logger
    if path is None or not Path(path).is_file():
        return DEFAULT_PALETTE
    try:
        return EixoPalette.from_yaml(path)
    except (OSError, yaml.YAMLError, PydanticValidationError) as exc:
        log.warning("Ignoring invalid eixo palette %s: %s", path, exc)
        return DEFAULT_PALETTE


def distinct_eixos(groups: dict[str, ProposalGroup]) -> list[str]:
    """Distinct non-blank eixo values in group order."""
    seen: dict[str, None] = {}
    for group in groups.values():
        if group.eixo:
            seen.setdefault(group.eixo, None)
    return list(seen)


def _match(eixo: str, names: list[str], used: set[int]) -> int | None:
    folded = fold_text(eixo)
    for index, name in enumerate(names):
        if index not in used and name and name == folded:
            return index
    for index, name in enumerate(names):
        if index not in used and name and (name in folded or folded in name):
            return index
    return None


def build_colour_map(eixos: list[str], palette: EixoPalette) -> dict[str, dict[str, str]]:
    """Assign each eixo a palette entry.

    ``className`` is the 1-based palette index as a string, or
    ``"overflow"`` for categories beyond the palette.
    """
    names = [fold_text(colour.name) for colour in palette.colors]
    used: set[int] = set()
    assigned: dict[str, int] = {}
    unmatched: list[str] = []

    for eixo in eixos:
        index = _match(eixo, names, used)
        if index is None:
            unmatched.append(eixo)
            continue
        used.add(index)
        assigned[eixo] = index

    free = [i for i in range(len(palette.colors)) if i not in used]
    for eixo in unmatched:
        if free:
            assigned[eixo] = free.pop(0)

    mapping: dict[str, dict[str, str]] = {}
    for eixo in eixos:
        index = assigned.get(eixo)
        if index is None:
            mapping[eixo] = {"hex": palette.overflow.hex, "className": OVERFLOW_CLASS}
        else:
            mapping[eixo] = {"hex": palette.colors[index].hex, "className": str(index + 1)}
    return mapping


def eixo_badge_class(eixo: str, colour_map: dict[str, dict[str, str]]) -> str:
    """CSS badge class for *eixo* (``badge-eixo-3`` or ``badge-eixo-overflow``)."""
    colour = colour_map.get(eixo)
    if colour is None:
        return f"badge-eixo-{OVERFLOW_CLASS}"
    return f"badge-eixo-{colour['className']}"
