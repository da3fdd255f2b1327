"""Generate pages activity — Jekyll pages for each proposal.

Writes one Markdown stub per ``ProposalGroup`` with YAML front matter
built from its merged properties, plus the region's proposals index page
carrying the eixo colour map. Front matter is modelled with pydantic so
the fixed keys are checked before the YAML is written.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import BaseModel, ConfigDict

from propostas_maps.core.constants import (
    COORDINATES_KEY,
    INDEX_PAGE_FILENAME,
    MEDIA_LINKS_KEY,
    PROPOSTAS_SUBDIR,
    SLUG_KEY,
)
from propostas_maps.utils.helpers import clean_key, humanize_slug, is_blank

if TYPE_CHECKING:
    from propostas_maps.models.feature import PropertyValue
    from propostas_maps.models.proposal import ProposalGroup

logger = logging.getLogger("propostas_maps.activities.generate_pages")

# Properties never copied into front matter (handled separately or noise).
_SKIP_KEYS = frozenset(
    {SLUG_KEY, "description", "tessellate", "extrude", "visibility", COORDINATES_KEY, MEDIA_LINKS_KEY}
)

_UNSAFE_FILENAME_CHARS = re.compile(r"[\\/]+")

GENERATED_NOTICE = (
    "<!-- This page was automatically generated from Google My Maps data -->\n"
    "<!-- To edit this proposal, update the Google My Maps data and re-run the download script -->\n"
)
NO_LOCATION_NOTICE = "<!-- This proposal does not have a specific map location -->\n"


class ProposalFrontMatter(BaseModel):
    """Front matter of a proposal page. Merged properties ride as extras."""

    model_config = ConfigDict(extra="allow")

    layout: str = "proposta"
    freguesia: str
    freguesia_slug: str
    slug: str
    has_map_location: bool
    lang: str | None = None
    parties: Any = None
    under_construction: Any = None


class PropostasIndexFrontMatter(BaseModel):
    """Front matter of the region's proposals index page."""

    layout: str = "propostas"
    freguesia_slug: str
    freguesia: str
    lang: str | None = None
    parties: Any = None
    title: str = "Todas as Propostas"
    description: str
    under_construction: Any = None
    eixos_colour_map: dict[str, dict[str, str]] = {}


def propostas_dir(pages_root: Path | str, region_slug: str, lang: str | None = None) -> Path:
    """``<pages_root>/<region>[/<lang>]/propostas``."""
    base = Path(pages_root) / region_slug
    if lang:
        base = base / lang
    return base / PROPOSTAS_SUBDIR


def page_filename(slug: str) -> str:
    return f"{_UNSAFE_FILENAME_CHARS.sub('-', slug)}.md"


def render_front_matter(data: dict[str, Any]) -> str:
    """``---`` delimited YAML block, keys in insertion order."""
    body = yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f"---\n{body}---\n\n"


def _clean_properties(properties: dict[str, PropertyValue]) -> dict[str, PropertyValue]:
    cleaned: dict[str, PropertyValue] = {}
    for key, value in properties.items():
        if key in _SKIP_KEYS or is_blank(value):
            continue
        cleaned[clean_key(key)] = value
    return cleaned


def build_proposal_front_matter(
    group: ProposalGroup,
    *,
    region_slug: str,
    page_data: dict[str, Any] | None = None,
    lang: str | None = None,
) -> dict[str, Any]:
    """Front matter dict for one proposal page."""
    page_data = page_data or {}
    extras: dict[str, Any] = _clean_properties(group.combined_properties)
    if is_blank(extras.get("proposta")) and not is_blank(extras.get("name")):
        extras["proposta"] = extras["name"]

    if group.resolved_images:
        extras["images"] = list(group.resolved_images)

    if group.has_map_location:
        extras["geometries"] = [
            f.geometry.to_geojson() for f in group.geographic_features if f.geometry is not None
        ]
    else:
        coordinates = group.combined_properties.get(COORDINATES_KEY)
        if isinstance(coordinates, list) and coordinates:
            extras["reference_coordinates"] = list(coordinates)

    model = ProposalFrontMatter(
        freguesia=str(page_data.get("freguesia") or humanize_slug(region_slug)),
        freguesia_slug=region_slug,
        slug=group.slug,
        has_map_location=group.has_map_location,
        lang=lang,
        parties=page_data.get("parties"),
        under_construction=page_data.get("under_construction"),
        **extras,
    )
    return model.model_dump(exclude_none=True)


def render_proposal_page(
    group: ProposalGroup,
    *,
    region_slug: str,
    page_data: dict[str, Any] | None = None,
    lang: str | None = None,
) -> str:
    """Full Markdown text of a proposal page."""
    front_matter = build_proposal_front_matter(
        group, region_slug=region_slug, page_data=page_data, lang=lang
    )
    text = render_front_matter(front_matter) + GENERATED_NOTICE
    if not group.has_map_location:
        text += NO_LOCATION_NOTICE
    return text


def write_proposal_pages(
    groups: dict[str, ProposalGroup],
    output_dir: Path | str,
    *,
    region_slug: str,
    page_data: dict[str, Any] | None = None,
    lang: str | None = None,
    log: logging.Logger | None = None,
) -> tuple[int, int]:
    """Write one page per group into *output_dir*.

    Returns:
        ``(pages_with_location, pages_without_location)``.
    """
    log = log or logger
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    with_location = 0
    without_location = 0
    for group in groups.values():
        path = output_dir / page_filename(group.slug)
        path.write_text(
            render_proposal_page(group, region_slug=region_slug, page_data=page_data, lang=lang),
            encoding="utf-8",
        )
        if group.has_map_location:
            with_location += 1
        else:
            without_location += 1
        log.debug(
            "Generated page: %s (%s map location)",
            path,
            "with" if group.has_map_location else "without",
        )

    log.info("Generated %d page(s) in %s", with_location + without_location, output_dir)
    return with_location, without_location


def write_propostas_index(
    output_dir: Path | str,
    *,
    region_slug: str,
    colour_map: dict[str, dict[str, str]],
    page_data: dict[str, Any] | None = None,
    lang: str | None = None,
    log: logging.Logger | None = None,
) -> Path:
    """Write the region's ``propostas/index.md``."""
    log = log or logger
    page_data = page_data or {}
    freguesia = str(page_data.get("freguesia") or humanize_slug(region_slug))
    model = PropostasIndexFrontMatter(
        freguesia_slug=region_slug,
        freguesia=freguesia,
        lang=lang,
        parties=page_data.get("parties"),
        description=(
            f"Explore todas as propostas da coligação Viver {freguesia} "
            "para as Eleições Autárquicas 2025"
        ),
        under_construction=page_data.get("under_construction"),
        eixos_colour_map=colour_map,
    )
    path = Path(output_dir) / INDEX_PAGE_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_front_matter(model.model_dump(exclude_none=True)), encoding="utf-8")
    log.info("Generated propostas index: %s", path)
    return path
