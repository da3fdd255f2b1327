"""Pipeline configuration loaded from environment variables.

All configuration values have sensible defaults. Environment variables
are the source of truth; CLI flags are passed to ``from_env()`` as
overrides and win over the environment.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if the map identifier
    or region slug is missing, or any numeric value is unparsable or out
    of range.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from propostas_maps.core.constants import (
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_IMAGES_DIR,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_PAGES_DIR,
    DEFAULT_PALETTE_FILE,
    DEFAULT_RETRY_BACKOFF_SECONDS,
)
from propostas_maps.core.exceptions import ValidationError

DEFAULT_DEEPL_API_URL = "https://api-free.deepl.com/v2/translate"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


class ConfigValidationError(ValidationError):
    """Raised when configuration values are missing or out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Immutable pipeline configuration for one region run.

    Attributes:
        map_id: Google My Maps identifier (``mid`` query parameter).
        region_slug: Freguesia slug, used for output paths and image names.
        output_dir: Directory for raw KML and the GeoJSON layer.
        images_dir: Directory for resolved image files.
        pages_dir: Root directory of the per-region Jekyll pages.
        http_timeout_seconds: Timeout for each KML/image request.
        max_attempts: Attempts per request when rate limited (HTTP 429).
        retry_backoff_seconds: Linear backoff step between attempts.
        max_image_width: Images wider than this are downscaled.
        max_image_height: Images taller than this are downscaled.
        jpeg_quality: JPEG quality used when writing processed images.
        palette_file: YAML file with the eixo colour palette.
        translate_languages: Target languages for translated pages.
        deepl_api_key: DeepL API key (empty disables translation).
        deepl_api_url: DeepL translate endpoint.
        translation_cache_file: JSON file backing the translation cache.
        verbose: Log progress details at DEBUG level.
    """

    map_id: str = ""
    region_slug: str = ""
    output_dir: str = DEFAULT_OUTPUT_DIR
    images_dir: str = DEFAULT_IMAGES_DIR
    pages_dir: str = DEFAULT_PAGES_DIR
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    max_image_width: int = 1200
    max_image_height: int = 800
    jpeg_quality: int = 85
    palette_file: str = DEFAULT_PALETTE_FILE
    translate_languages: tuple[str, ...] = field(default_factory=tuple)
    deepl_api_key: str = ""
    deepl_api_url: str = DEFAULT_DEEPL_API_URL
    translation_cache_file: str = ""
    verbose: bool = False

    @property
    def region_output_dir(self) -> Path:
        """``<output_dir>/<region_slug>``."""
        return Path(self.output_dir) / self.region_slug

    @classmethod
    def from_env(cls, **overrides: Any) -> PipelineConfig:
        """Load and validate configuration from environment variables.

        Args:
            **overrides: Field values that take precedence over the
                environment (``None`` values are ignored).

        Raises:
            ConfigValidationError: If a required value is empty or a
                numeric value cannot be parsed or is out of range.
        """
        languages = os.getenv("TRANSLATE_LANGUAGES", "")
        config = cls(
            map_id=os.getenv("MY_GOOGLE_MAP_ID", "").strip(),
            region_slug=os.getenv("FREGUESIA_SLUG", "").strip(),
            output_dir=os.getenv("OUTPUT_DIR", DEFAULT_OUTPUT_DIR),
            images_dir=os.getenv("IMAGES_DIR", DEFAULT_IMAGES_DIR),
            pages_dir=os.getenv("PAGES_DIR", DEFAULT_PAGES_DIR),
            http_timeout_seconds=_env_number(
                "HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS, float
            ),
            max_attempts=_env_number("HTTP_MAX_RETRIES", DEFAULT_MAX_ATTEMPTS, int),
            retry_backoff_seconds=_env_number(
                "RETRY_BACKOFF_SECONDS", DEFAULT_RETRY_BACKOFF_SECONDS, float
            ),
            max_image_width=_env_number("MAX_IMAGE_WIDTH", 1200, int),
            max_image_height=_env_number("MAX_IMAGE_HEIGHT", 800, int),
            jpeg_quality=_env_number("JPEG_QUALITY", 85, int),
            palette_file=os.getenv("EIXO_PALETTE_FILE", DEFAULT_PALETTE_FILE),
            translate_languages=tuple(
                lang.strip().lower() for lang in languages.split(",") if lang.strip()
            ),
            deepl_api_key=os.getenv("DEEPL_API_KEY", ""),
            deepl_api_url=os.getenv("DEEPL_API_URL", DEFAULT_DEEPL_API_URL),
            translation_cache_file=os.getenv("TRANSLATION_CACHE_FILE", ""),
            verbose=os.getenv("VERBOSE", "").strip().lower() in _TRUE_VALUES,
        )
        config = replace(config, **{k: v for k, v in overrides.items() if v is not None})
        _validate(config)
        return config


def _env_number(key: str, default: float, kind: type) -> Any:
    """Parse a numeric environment variable with *kind* (``int``/``float``)."""
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return kind(raw.strip())
    except ValueError as exc:
        raise ConfigValidationError(key, raw, f"must be a number ({kind.__name__})") from exc


def _validate(config: PipelineConfig) -> None:
    """Validate required values and ranges.  Raises ``ConfigValidationError``."""
    if not config.map_id:
        raise ConfigValidationError(
            "MY_GOOGLE_MAP_ID",
            config.map_id,
            "Google My Maps ID is required",
        )

    if not config.region_slug:
        raise ConfigValidationError(
            "FREGUESIA_SLUG",
            config.region_slug,
            "must not be empty",
        )

    if config.http_timeout_seconds <= 0:
        raise ConfigValidationError(
            "HTTP_TIMEOUT_SECONDS",
            config.http_timeout_seconds,
            "must be > 0 (seconds)",
        )

    if config.max_attempts < 1:
        raise ConfigValidationError(
            "HTTP_MAX_RETRIES",
            config.max_attempts,
            "must be >= 1",
        )

    if config.retry_backoff_seconds < 0:
        raise ConfigValidationError(
            "RETRY_BACKOFF_SECONDS",
            config.retry_backoff_seconds,
            "must be >= 0 (seconds)",
        )

    if config.max_image_width <= 0 or config.max_image_height <= 0:
        raise ConfigValidationError(
            "MAX_IMAGE_WIDTH/MAX_IMAGE_HEIGHT",
            (config.max_image_width, config.max_image_height),
            "must be > 0 (pixels)",
        )

    if not 1 <= config.jpeg_quality <= 95:
        raise ConfigValidationError(
            "JPEG_QUALITY",
            config.jpeg_quality,
            "must be between 1 and 95",
        )


# ---------------------------------------------------------------------------
# Region page data
# ---------------------------------------------------------------------------


def load_page_data(page_path: Path | str) -> dict[str, Any]:
    """Read the YAML front matter of a region index page.

    The front matter is the block between the first two ``---`` lines.
    Returns an empty dict when the file does not exist or carries no
    front matter.

    Raises:
        ConfigValidationError: If the front matter is not a YAML mapping.
    """
    page_path = Path(page_path)
    if not page_path.is_file():
        return {}

    text = page_path.read_text(encoding="utf-8")
    if not text.startswith("---"):
        return {}

    parts = text.split("---", 2)
    if len(parts) < 3:
        return {}

    try:
        data = yaml.safe_load(parts[1]) or {}
    except yaml.YAMLError as exc:
        raise ConfigValidationError(str(page_path), "<front matter>", f"invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigValidationError(str(page_path), type(data).__name__, "front matter must be a mapping")
    return data
