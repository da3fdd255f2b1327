"""Region pipeline orchestrator.

Runs the stages for one region, sequentially and in-process:

1. Fetch KML (or read a cached file) and save the raw text
2. Parse placemarks into geographic / non-geographic features
3. Drop geographic features with invalid geometry
4. Tidy property keys
5. Group features by slug and merge their properties
6. Resolve images to local files and rewrite links
7. Write the GeoJSON layer
8. Write proposal pages, the proposals index and translated pages
9. Report a ``RunSummary``

Fatal errors (``ConfigValidationError``, ``KmlFetchError``,
``KmlParseError``) propagate. Per-item failures are logged by the stage
that hit them and the run continues.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from propostas_maps.activities.eixo_colours import build_colour_map, distinct_eixos, load_palette
from propostas_maps.activities.fetch_kml import fetch_kml, save_raw_kml
from propostas_maps.activities.generate_pages import (
    propostas_dir,
    write_proposal_pages,
    write_propostas_index,
)
from propostas_maps.activities.group_proposals import group_proposals
from propostas_maps.activities.parse_kml import filter_valid_features, parse_kml
from propostas_maps.activities.resolve_images import (
    ImageFetcher,
    ImageProcessor,
    ImageResolver,
    resolve_feature_images,
    resolve_group_images,
)
from propostas_maps.activities.tidy_features import tidy_features
from propostas_maps.activities.translate import JsonFileTranslationCache, Translator
from propostas_maps.activities.write_geojson import write_geojson
from propostas_maps.core.constants import (
    GEOJSON_FILENAME,
    MEDIA_LINKS_KEY,
    RAW_KML_FILENAME,
)
from propostas_maps.models.summary import RunSummary

if TYPE_CHECKING:
    import httpx

    from propostas_maps.core.config import PipelineConfig
    from propostas_maps.models.proposal import ProposalGroup

logger = logging.getLogger("propostas_maps.orchestrators.map_pipeline")


def build_resolver(config: PipelineConfig, *, log: logging.Logger | None = None) -> ImageResolver:
    """Image resolver configured from *config*."""
    return ImageResolver(
        config.images_dir,
        config.region_slug,
        fetcher=ImageFetcher(
            timeout=config.http_timeout_seconds,
            max_attempts=config.max_attempts,
            backoff_seconds=config.retry_backoff_seconds,
        ),
        processor=ImageProcessor(
            max_width=config.max_image_width,
            max_height=config.max_image_height,
            quality=config.jpeg_quality,
        ),
        log=log,
    )


def run_pipeline(
    config: PipelineConfig,
    *,
    page_data: dict[str, Any] | None = None,
    kml_text: str | None = None,
    client: httpx.Client | None = None,
    resolver: ImageResolver | None = None,
    log: logging.Logger | None = None,
) -> RunSummary:
    """Run the whole pipeline for one region.

    Args:
        config: Validated configuration.
        page_data: Region page front matter (``freguesia``, ``parties``,
            ``under_construction``).
        kml_text: Pre-loaded KML; fetched from My Maps when ``None``.
        client: HTTP client for the KML fetch (tests inject one).
        resolver: Image resolver (built from *config* when ``None``).
        log: Logger passed to every stage.

    Returns:
        Counts of everything produced.
    """
    log = log or logger
    page_data = page_data or {}
    log.info(
        "Pipeline started | region=%s | map_id=%s", config.region_slug, config.map_id
    )

    # Phase 1: KML
    if kml_text is None:
        kml_text = fetch_kml(
            config.map_id,
            client=client,
            timeout=config.http_timeout_seconds,
            max_attempts=config.max_attempts,
            backoff_seconds=config.retry_backoff_seconds,
            log=log,
        )
    save_raw_kml(kml_text, config.region_output_dir / RAW_KML_FILENAME)

    # Phase 2-4: features
    layers = parse_kml(kml_text, log=log)
    valid, rejected = filter_valid_features(layers.geographic, log=log)
    valid = tidy_features(valid, log=log)
    non_geographic = tidy_features(layers.non_geographic, log=log)

    # Phase 5: proposals
    groups = group_proposals(valid, non_geographic, log=log)

    # Phase 6: images
    owns_resolver = resolver is None
    if resolver is None:
        resolver = build_resolver(config, log=log)
    try:
        resolve_group_images(groups, resolver, log=log)
        valid = resolve_feature_images(valid, resolver)
        non_geographic = resolve_feature_images(non_geographic, resolver)
    finally:
        if owns_resolver:
            resolver.fetcher.close()

    # Phase 7: GeoJSON
    geojson_path = write_geojson(
        valid,
        config.region_output_dir / GEOJSON_FILENAME,
        region_slug=config.region_slug,
        map_id=config.map_id,
        log=log,
    )

    # Phase 8: pages
    colour_map = build_colour_map(distinct_eixos(groups), load_palette(config.palette_file, log=log))
    pages_dir = propostas_dir(config.pages_dir, config.region_slug)
    with_location, without_location = write_proposal_pages(
        groups,
        pages_dir,
        region_slug=config.region_slug,
        page_data=page_data,
        log=log,
    )
    write_propostas_index(
        pages_dir,
        region_slug=config.region_slug,
        colour_map=colour_map,
        page_data=page_data,
        log=log,
    )
    translated = write_translated_pages(config, groups, colour_map, page_data=page_data, log=log)

    # Phase 9: summary
    summary = RunSummary(
        map_id=config.map_id,
        region_slug=config.region_slug,
        valid_features=len(valid),
        invalid_features=len(rejected),
        non_geographic_features=len(non_geographic),
        groups=len(groups),
        resolved_images=len(resolver.downloaded_images),
        pages_with_location=with_location,
        pages_without_location=without_location,
        translated_pages=translated,
        geometry_types=dict(
            Counter(f.geometry.type for f in valid if f.geometry is not None)
        ),
        features_with_images=sum(1 for f in valid if MEDIA_LINKS_KEY in f.properties),
        output_file=str(geojson_path),
        output_size_bytes=geojson_path.stat().st_size,
    )
    for line in summary.lines():
        log.info(line)
    return summary


def write_translated_pages(
    config: PipelineConfig,
    groups: dict[str, ProposalGroup],
    colour_map: dict[str, dict[str, str]],
    *,
    page_data: dict[str, Any] | None = None,
    log: logging.Logger | None = None,
) -> int:
    """Write translated proposal pages for each configured language.

    Skipped (returns 0) when no language or no DeepL key is configured.
    """
    log = log or logger
    if not config.translate_languages:
        return 0
    if not config.deepl_api_key:
        log.warning("TRANSLATE_LANGUAGES set but DEEPL_API_KEY missing; skipping translation")
        return 0

    cache_path = config.translation_cache_file or str(
        Path(config.output_dir) / "translations.json"
    )
    cache = JsonFileTranslationCache(cache_path)
    written = 0
    for language in config.translate_languages:
        translator = Translator(
            language,
            cache,
            config.deepl_api_key,
            api_url=config.deepl_api_url,
            timeout=config.http_timeout_seconds,
            max_attempts=config.max_attempts,
            backoff_seconds=config.retry_backoff_seconds,
            log=log,
        )
        try:
            translated_groups = {
                slug: replace(
                    group,
                    combined_properties=translator.translate_properties(group.combined_properties),
                )
                for slug, group in groups.items()
            }
        finally:
            translator.close()

        output_dir = propostas_dir(config.pages_dir, config.region_slug, language)
        with_location, without_location = write_proposal_pages(
            translated_groups,
            output_dir,
            region_slug=config.region_slug,
            page_data=page_data,
            lang=language,
            log=log,
        )
        write_propostas_index(
            output_dir,
            region_slug=config.region_slug,
            colour_map=colour_map,
            page_data=page_data,
            lang=language,
            log=log,
        )
        written += with_location + without_location
    cache.flush()
    return written
