"""Errors raised by the map pipeline.

Each stage defines its own ``PipelineError`` subclass with a default
stage name and error code. Subclasses also pick one of three categories,
which the CLI reports alongside the message:

- ``ValidationError``: bad configuration, page data or geometry.
- ``TransientError``: network failures and exhausted rate-limit retries;
  running the region again may succeed.
- ``PermanentError``: input the pipeline cannot use (malformed KML).

Errors that abort a run (missing map id, unreadable or unparsable KML,
failed KML download) reach the CLI, which stamps the region slug into
``correlation_id`` before logging them. Errors about one placemark, one
image or one translation chunk are logged and dropped by the stage that
raised them.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for map pipeline errors.

    Attributes:
        message: What went wrong.
        stage: Stage that failed (``"fetch_kml"``, ``"resolve_images"``...).
        code: Stable error code such as ``"KML_PARSE_FAILED"``.
        retryable: True when re-running the region may succeed.
        correlation_id: Region slug of the failed run; empty until the
            CLI sets it.
    """

    default_stage: str = ""
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """``"validation"``, ``"transient"`` or ``"permanent"``."""
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Fields logged by the CLI when a run fails."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


class ValidationError(PipelineError):
    """Rejected input. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(PipelineError):
    """Network or rate-limit failure. Retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(PipelineError):
    """Input the pipeline cannot use. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]
