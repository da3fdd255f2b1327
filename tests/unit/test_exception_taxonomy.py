"""Tests for the unified pipeline exception taxonomy.

Covers:
- Category resolution from the class hierarchy
- Default stage/code per domain exception
- Structured error payloads
"""

from __future__ import annotations

import pytest

from propostas_maps.activities.fetch_kml import KmlFetchError, KmlTransportError
from propostas_maps.activities.parse_kml import GeometryValidationError, KmlParseError
from propostas_maps.activities.resolve_images import ImageResolutionError, ImageTransportError
from propostas_maps.activities.translate import TranslationError, TranslationTransportError
from propostas_maps.core.config import ConfigValidationError
from propostas_maps.core.exceptions import (
    PermanentError,
    PipelineError,
    TransientError,
    ValidationError,
)


class TestCategories:
    """Category follows the class hierarchy, then ``retryable``."""

    def test_validation(self) -> None:
        assert ValidationError("x").category == "validation"
        assert ValidationError("x").retryable is False

    def test_transient(self) -> None:
        err = TransientError("x")
        assert err.category == "transient"
        assert err.retryable is True

    def test_permanent(self) -> None:
        assert PermanentError("x").category == "permanent"

    def test_base_uses_retryable(self) -> None:
        assert PipelineError("x", retryable=True).category == "transient"
        assert PipelineError("x").category == "permanent"


class TestDomainExceptions:
    """Each stage's exception carries its own stage and code."""

    @pytest.mark.parametrize(
        ("error", "stage", "code", "category"),
        [
            (ConfigValidationError("K", "v", "bad"), "config", "CONFIG_VALIDATION_FAILED", "validation"),
            (KmlFetchError("x"), "fetch_kml", "KML_FETCH_FAILED", "permanent"),
            (KmlTransportError("x"), "fetch_kml", "KML_FETCH_FAILED", "transient"),
            (KmlParseError("x"), "parse_kml", "KML_PARSE_FAILED", "permanent"),
            (GeometryValidationError("x"), "parse_kml", "GEOMETRY_INVALID", "validation"),
            (ImageResolutionError("x"), "resolve_images", "IMAGE_RESOLUTION_FAILED", "permanent"),
            (ImageTransportError("x"), "resolve_images", "IMAGE_RESOLUTION_FAILED", "transient"),
            (TranslationError("x"), "translate", "TRANSLATION_FAILED", "permanent"),
            (TranslationTransportError("x"), "translate", "TRANSLATION_FAILED", "transient"),
        ],
    )
    def test_defaults(self, error: PipelineError, stage: str, code: str, category: str) -> None:
        assert error.stage == stage
        assert error.code == code
        assert error.category == category
        assert error.retryable is (category == "transient")

    @pytest.mark.parametrize(
        ("error", "parent"),
        [
            (KmlTransportError("x"), KmlFetchError),
            (ImageTransportError("x"), ImageResolutionError),
            (TranslationTransportError("x"), TranslationError),
        ],
    )
    def test_transport_errors_are_transient_stage_errors(
        self, error: PipelineError, parent: type[PipelineError]
    ) -> None:
        assert isinstance(error, parent)
        assert isinstance(error, TransientError)

    def test_config_error_message(self) -> None:
        err = ConfigValidationError("JPEG_QUALITY", 100, "must be between 1 and 95")
        assert str(err) == "Invalid configuration JPEG_QUALITY=100: must be between 1 and 95"
        assert err.key == "JPEG_QUALITY"
        assert err.value == 100


class TestErrorDict:
    def test_stable_keys(self) -> None:
        err = KmlParseError("Not valid XML", correlation_id="arroios")
        assert err.to_error_dict() == {
            "category": "permanent",
            "code": "KML_PARSE_FAILED",
            "stage": "parse_kml",
            "message": "Not valid XML",
            "retryable": False,
            "correlation_id": "arroios",
        }

    def test_overrides(self) -> None:
        err = PipelineError("x", stage="custom", code="CUSTOM")
        assert err.to_error_dict()["stage"] == "custom"
        assert err.to_error_dict()["code"] == "CUSTOM"
