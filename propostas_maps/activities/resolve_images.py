"""Resolve images activity — download proposal images to local files.

Each raw image URL maps to a content-addressed local file named
``{prefix}_{md5(url)[:9]}{ext}``. Files already on disk (under their
original extension or the ``.jpg`` they are transcoded to) are reused
without fetching, so repeated runs are idempotent.

Fetching uses ``httpx``; resizing and JPEG transcoding use Pillow. A URL
that fails to fetch or process is dropped (logged) and never aborts the
run.

After resolution every feature's ``gx_media_links`` is re-derived from
the shared URL → local path map: a feature keeps only the images it
originally referenced, and loses the property when none resolved.
"""

from __future__ import annotations

import hashlib
import logging
import re
import time
from collections.abc import Callable
from io import BytesIO
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING
from urllib.parse import urlparse

import httpx
from PIL import Image, UnidentifiedImageError

from propostas_maps.activities.group_proposals import split_media_links
from propostas_maps.core.constants import (
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    IMAGE_ACCEPT,
    IMAGE_MAX_REDIRECTS,
    MEDIA_LINKS_KEY,
    USER_AGENT,
)
from propostas_maps.core.exceptions import PipelineError, TransientError
from propostas_maps.utils.helpers import format_file_size
from propostas_maps.utils.http import send_with_retry

if TYPE_CHECKING:
    from propostas_maps.models.feature import Feature
    from propostas_maps.models.proposal import ProposalGroup

logger = logging.getLogger("propostas_maps.activities.resolve_images")

DEFAULT_EXTENSION = ".jpg"
URL_HASH_CHARS = 9

_IMAGE_EXTENSION = re.compile(r"\.(jpe?g|png|gif|webp|bmp|svg)$", re.IGNORECASE)
_ANY_EXTENSION = re.compile(r"\.\w+$")
_HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)


class ImageResolutionError(PipelineError):
    """Raised when a single image cannot be fetched or processed."""

    default_stage = "resolve_images"
    default_code = "IMAGE_RESOLUTION_FAILED"


class ImageTransportError(ImageResolutionError, TransientError):
    """The image host could not be reached."""


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------


def image_extension(url: str) -> str:
    """Extension sniffed from the URL path, defaulting to ``.jpg``."""
    try:
        path = urlparse(url).path
    except ValueError:
        return DEFAULT_EXTENSION
    match = _IMAGE_EXTENSION.search(path)
    if match is None:
        return DEFAULT_EXTENSION
    return f".{match.group(1).lower()}"


def image_filename(url: str, prefix: str) -> str:
    """Content-addressed filename for *url*."""
    digest = hashlib.md5(url.encode("utf-8")).hexdigest()[:URL_HASH_CHARS]  # noqa: S324
    return f"{prefix}_{digest}{image_extension(url)}"


def jpeg_filename(filename: str) -> str:
    """*filename* with its extension replaced by ``.jpg``."""
    return _ANY_EXTENSION.sub(".jpg", filename)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class ImageFetcher:
    """Download image bytes over HTTP."""

    def __init__(
        self,
        *,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client or httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            max_redirects=IMAGE_MAX_REDIRECTS,
        )
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep

    def fetch(self, url: str) -> bytes:
        """Return the body of *url*.

        Raises:
            ImageResolutionError: On transport errors or non-200 responses.
        """
        try:
            response = send_with_retry(
                self._client,
                "GET",
                url,
                headers={"User-Agent": USER_AGENT, "Accept": IMAGE_ACCEPT},
                max_attempts=self._max_attempts,
                backoff_seconds=self._backoff_seconds,
                sleep=self._sleep,
                log=logger,
            )
        except httpx.HTTPError as exc:
            msg = f"Error downloading {url}: {exc}"
            raise ImageTransportError(msg) from exc

        if response.status_code != 200:
            msg = f"Failed to download {url}: HTTP {response.status_code}"
            raise ImageResolutionError(msg)

        content_type = response.headers.get("Content-Type", "")
        if not content_type.startswith("image/"):
            logger.warning(
                "%s doesn't appear to be an image (Content-Type: %s)", url, content_type
            )
        return response.content

    def close(self) -> None:
        self._client.close()


class ImageProcessor:
    """Resize and transcode images for the web with Pillow.

    Images larger than the bounding box are downscaled preserving aspect
    ratio. JPEGs are re-encoded in place; every other raster format is
    flattened onto white and written as ``.jpg``. SVGs are stored as-is.
    """

    def __init__(self, *, max_width: int = 1200, max_height: int = 800, quality: int = 85) -> None:
        self.max_width = max_width
        self.max_height = max_height
        self.quality = quality

    def process(self, data: bytes, target: Path) -> Path:
        """Write *data* as a web-ready image at *target* (or its ``.jpg``).

        Returns:
            The path actually written.

        Raises:
            ImageResolutionError: If the data is not a readable image, is
                larger than Pillow's decompression bomb limit, or cannot
                be written.
        """
        try:
            if target.suffix.lower() == ".svg":
                target.write_bytes(data)
                return target

            with Image.open(BytesIO(data)) as image:
                image.load()
                source_format = image.format
                original_size = image.size
                if image.width > self.max_width or image.height > self.max_height:
                    image.thumbnail((self.max_width, self.max_height))
                    logger.debug(
                        "Resized image from %dx%d to %dx%d",
                        original_size[0],
                        original_size[1],
                        image.width,
                        image.height,
                    )

                if source_format == "JPEG":
                    image.convert("RGB").save(target, "JPEG", quality=self.quality)
                    return target

                written = target.with_name(jpeg_filename(target.name))
                _flatten(image).save(written, "JPEG", quality=self.quality)
                return written
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
            msg = f"Failed to process image {target.name}: {exc}"
            raise ImageResolutionError(msg) from exc


def _flatten(image: Image.Image) -> Image.Image:
    """Composite transparent images onto white; return an RGB image."""
    if image.mode in ("RGBA", "LA", "P"):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    return image.convert("RGB")


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class ImageResolver:
    """Map raw image URLs to local public paths, fetching at most once each.

    Attributes:
        downloaded_images: Resolved ``url -> public path`` map for this run.
        fetch_count: Number of network fetches performed.
    """

    def __init__(
        self,
        images_dir: Path | str,
        prefix: str,
        *,
        public_path: str | None = None,
        fetcher: ImageFetcher | None = None,
        processor: ImageProcessor | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.images_dir = Path(images_dir)
        self.prefix = prefix
        self.public_path = (
            public_path if public_path is not None else f"/{PurePosixPath(self.images_dir)}"
        ).rstrip("/")
        self.fetcher = fetcher or ImageFetcher()
        self.processor = processor or ImageProcessor()
        self.downloaded_images: dict[str, str] = {}
        self.failed_urls: set[str] = set()
        self.fetch_count = 0
        self._log = log or logger

    def _public(self, filename: str) -> str:
        return f"{self.public_path}/{filename}"

    def resolve(self, url: str) -> str | None:
        """Resolve one URL to a local public path, or ``None`` on failure."""
        cached = self.downloaded_images.get(url)
        if cached is not None:
            return cached
        if url in self.failed_urls:
            return None
        if not _HTTP_URL.match(url):
            self._log.warning("Skipping non-HTTP image reference: %s", url)
            self.failed_urls.add(url)
            return None

        filename = image_filename(url, self.prefix)
        local_path = self.images_dir / filename
        jpeg_path = self.images_dir / jpeg_filename(filename)

        if local_path.exists():
            self._log.debug("Image already exists: %s", filename)
            return self._remember(url, local_path.name)
        if jpeg_path.exists():
            self._log.debug("Image already exists (as JPEG): %s", jpeg_path.name)
            return self._remember(url, jpeg_path.name)

        self._log.debug("Downloading image: %s -> %s", url, filename)
        try:
            self.fetch_count += 1
            data = self.fetcher.fetch(url)
            self.images_dir.mkdir(parents=True, exist_ok=True)
            written = self.processor.process(data, local_path)
        except ImageResolutionError as exc:
            self._log.warning("Dropping image %s: %s", url, exc)
            self.failed_urls.add(url)
            return None

        self._log.debug(
            "Successfully processed: %s (%s)",
            written.name,
            format_file_size(written.stat().st_size),
        )
        return self._remember(url, written.name)

    def _remember(self, url: str, filename: str) -> str:
        public = self._public(filename)
        self.downloaded_images[url] = public
        return public

    def resolve_many(self, urls: list[str]) -> list[str]:
        """Resolve each URL in order, dropping failures."""
        resolved: list[str] = []
        for url in urls:
            path = self.resolve(url)
            if path is not None:
                resolved.append(path)
        return resolved


# ---------------------------------------------------------------------------
# Feature and group rewriting
# ---------------------------------------------------------------------------


def rewrite_media_links(feature: Feature, url_map: dict[str, str]) -> Feature:
    """Re-derive a feature's ``gx_media_links`` from *url_map*.

    Only the URLs the feature itself referenced are kept, in its own
    order and de-duplicated. The property is removed when none resolved.
    """
    urls = split_media_links(feature.properties.get(MEDIA_LINKS_KEY))
    if not urls:
        return feature

    local: list[str] = []
    for url in urls:
        path = url_map.get(url)
        if path is not None and path not in local:
            local.append(path)

    properties = dict(feature.properties)
    if local:
        properties[MEDIA_LINKS_KEY] = " ".join(local)
    else:
        properties.pop(MEDIA_LINKS_KEY, None)
    return feature.with_properties(properties)


def resolve_group_images(
    groups: dict[str, ProposalGroup],
    resolver: ImageResolver,
    *,
    log: logging.Logger | None = None,
) -> dict[str, ProposalGroup]:
    """Resolve every group's images and rewrite its members' links.

    Groups are updated in place and returned for chaining.
    """
    log = log or logger
    for group in groups.values():
        if not group.all_images:
            continue
        group.resolved_images = resolver.resolve_many(group.all_images)
        group.geographic_features = [
            rewrite_media_links(f, resolver.downloaded_images) for f in group.geographic_features
        ]
        group.non_geographic_features = [
            rewrite_media_links(f, resolver.downloaded_images)
            for f in group.non_geographic_features
        ]
        log.debug(
            "Resolved %d/%d image(s) for proposal %s",
            len(group.resolved_images),
            len(group.all_images),
            group.slug,
        )

    log.info(
        "Resolved %d image(s) into %s (%d fetch(es))",
        len(resolver.downloaded_images),
        resolver.images_dir,
        resolver.fetch_count,
    )
    return groups


def resolve_feature_images(features: list[Feature], resolver: ImageResolver) -> list[Feature]:
    """Resolve and rewrite the images of loose features.

    URLs already resolved for a group are served from the resolver's map
    without fetching again.
    """
    out: list[Feature] = []
    for feature in features:
        resolver.resolve_many(split_media_links(feature.properties.get(MEDIA_LINKS_KEY)))
        out.append(rewrite_media_links(feature, resolver.downloaded_images))
    return out
