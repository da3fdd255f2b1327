"""Command-line entry point: ``propostas-maps <region>``.

Typically invoked once per freguesia by the site's task runner::

    MY_GOOGLE_MAP_ID=1AbC... propostas-maps arroios --verbose
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from propostas_maps.activities.fetch_kml import load_kml_file
from propostas_maps.core.config import PipelineConfig, load_page_data
from propostas_maps.core.constants import DEFAULT_PAGES_DIR
from propostas_maps.core.exceptions import PipelineError
from propostas_maps.orchestrators.map_pipeline import run_pipeline

logger = logging.getLogger("propostas_maps.cli")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="propostas-maps",
        description="Download a region's Google My Maps data and generate GeoJSON and proposal pages.",
    )
    ap.add_argument("region", help="Freguesia slug (e.g. arroios)")
    ap.add_argument("--map-id", dest="map_id", help="Google My Maps ID (overrides MY_GOOGLE_MAP_ID)")
    ap.add_argument("--kml-file", dest="kml_file", help="Use a local KML file instead of downloading")
    ap.add_argument("--page", dest="page", help="Region page with front matter (default: <pages-dir>/<region>/index.html)")
    ap.add_argument("--pages-dir", dest="pages_dir", help="Root directory of region pages")
    ap.add_argument("--images-dir", dest="images_dir", help="Directory for downloaded images")
    ap.add_argument("--output-dir", dest="output_dir", help="Directory for raw KML and GeoJSON")
    ap.add_argument("-v", "--verbose", action="store_true", default=None, help="Log progress details")
    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        pages_dir = args.pages_dir or os.getenv("PAGES_DIR", DEFAULT_PAGES_DIR)
        page_path = Path(args.page) if args.page else Path(pages_dir) / args.region / "index.html"
        page_data = load_page_data(page_path)

        config = PipelineConfig.from_env(
            region_slug=args.region,
            map_id=args.map_id or _env_or_page_map_id(page_data),
            pages_dir=args.pages_dir,
            images_dir=args.images_dir,
            output_dir=args.output_dir,
            verbose=args.verbose,
        )
        if config.verbose:
            logging.getLogger().setLevel(logging.DEBUG)
        kml_text = load_kml_file(args.kml_file) if args.kml_file else None
        run_pipeline(config, page_data=page_data, kml_text=kml_text)
    except PipelineError as exc:
        exc.correlation_id = exc.correlation_id or args.region
        logger.error("Pipeline failed | %s", exc.to_error_dict())
        return 1
    return 0


def _env_or_page_map_id(page_data: dict[str, object]) -> str | None:
    """Page-data map id, used only when the environment does not set one."""
    if os.getenv("MY_GOOGLE_MAP_ID", "").strip():
        return None
    value = page_data.get("my_google_map_id")
    return str(value).strip() if value else None


if __name__ == "__main__":
    sys.exit(main())
