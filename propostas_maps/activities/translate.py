"""Translate activity — machine translation of proposal text via DeepL.

Text is split into paragraph chunks. Each chunk is looked up in a
``TranslationCache`` before calling the DeepL REST API, so re-running the
pipeline over unchanged proposals costs nothing. A chunk that fails to
translate (auth, quota, transport errors) is logged and kept in the
source language; translation never aborts a run.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import httpx

from propostas_maps.core.config import DEFAULT_DEEPL_API_URL
from propostas_maps.core.constants import (
    APPEND_SEPARATOR,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_BACKOFF_SECONDS,
)
from propostas_maps.core.exceptions import PipelineError, TransientError
from propostas_maps.utils.http import send_with_retry

if TYPE_CHECKING:
    from propostas_maps.models.feature import PropertyValue

logger = logging.getLogger("propostas_maps.activities.translate")

SOURCE_LANGUAGE = "PT"

# eixo stays untranslated: it keys the colour map.
TRANSLATABLE_KEYS = frozenset({"name", "proposta", "sumario", "descricao"})

_STATUS_MESSAGES = {
    403: "DeepL authentication failed. Check your API key.",
    456: "DeepL quota exceeded. Check your usage limits.",
    413: "DeepL character limit exceeded for this request.",
}


class TranslationError(PipelineError):
    """Raised when one chunk cannot be translated."""

    default_stage = "translate"
    default_code = "TRANSLATION_FAILED"


class TranslationTransportError(TranslationError, TransientError):
    """DeepL could not be reached."""


class TranslationCache(Protocol):
    """Persistent ``(text, language) -> translation`` store."""

    def get(self, text: str, language: str) -> str | None: ...

    def set(self, text: str, language: str, translation: str) -> None: ...

    def flush(self) -> None: ...


class JsonFileTranslationCache:
    """Translation cache backed by a JSON file ``{language: {text: translation}}``.

    Entries are held in memory and only written back by ``flush()`` for
    languages that changed. An unreadable or corrupt file is logged and
    replaced on the next flush.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._entries: dict[str, dict[str, str]] = {}
        self._dirty: set[str] = set()
        if self.path.is_file():
            try:
                data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
                self._entries = {
                    str(lang): {str(k): str(v) for k, v in table.items()}
                    for lang, table in data.items()
                    if isinstance(table, dict)
                }
            except (OSError, ValueError, AttributeError) as exc:
                logger.warning(
                    "Ignoring unreadable translation cache %s: %s", self.path, exc
                )
                self._entries = {}

    def get(self, text: str, language: str) -> str | None:
        return self._entries.get(language, {}).get(text)

    def set(self, text: str, language: str, translation: str) -> None:
        self._entries.setdefault(language, {})[text] = translation
        self._dirty.add(language)

    def flush(self) -> None:
        if not self._dirty:
            return
        for language in sorted(self._dirty):
            logger.info(
                "Flushing translation cache | language=%s | entries=%d",
                language,
                len(self._entries.get(language, {})),
            )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(self._entries, indent=2, ensure_ascii=False, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        self._dirty.clear()


class Translator:
    """Translate Portuguese text into one target language."""

    def __init__(
        self,
        language: str,
        cache: TranslationCache,
        api_key: str,
        *,
        api_url: str = DEFAULT_DEEPL_API_URL,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        log: logging.Logger | None = None,
    ) -> None:
        if not api_key:
            msg = "DeepL API key is required. Set DEEPL_API_KEY."
            raise ValueError(msg)
        self.language = language
        self.cache = cache
        self._api_key = api_key
        self._api_url = api_url
        self._client = client or httpx.Client(timeout=timeout)
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep
        self._log = log or logger

    def translate(self, text: str) -> str:
        """Translate *text* chunk by chunk; blank text is returned unchanged."""
        if not text or not text.strip():
            return text
        chunks = text.split(APPEND_SEPARATOR)
        return APPEND_SEPARATOR.join(self._translate_chunk(chunk) for chunk in chunks)

    def translate_properties(
        self, properties: dict[str, PropertyValue]
    ) -> dict[str, PropertyValue]:
        """Copy of *properties* with the human-readable text fields translated."""
        out = dict(properties)
        for key in TRANSLATABLE_KEYS:
            value = out.get(key)
            if isinstance(value, str):
                out[key] = self.translate(value)
        return out

    def flush_cache(self) -> None:
        self.cache.flush()

    def close(self) -> None:
        self._client.close()

    def _translate_chunk(self, chunk: str) -> str:
        if not chunk.strip():
            return chunk
        cached = self.cache.get(chunk, self.language)
        if cached is not None:
            return cached
        try:
            translated = self._request(chunk)
        except TranslationError as exc:
            self._log.warning("Translation error (%s): %s", self.language, exc)
            return chunk
        self.cache.set(chunk, self.language, translated)
        return translated

    def _request(self, text: str) -> str:
        try:
            response = send_with_retry(
                self._client,
                "POST",
                self._api_url,
                headers={"Authorization": f"DeepL-Auth-Key {self._api_key}"},
                data={
                    "text": text,
                    "source_lang": SOURCE_LANGUAGE,
                    "target_lang": self.language.upper(),
                },
                max_attempts=self._max_attempts,
                backoff_seconds=self._backoff_seconds,
                sleep=self._sleep,
                log=self._log,
            )
        except httpx.HTTPError as exc:
            raise TranslationTransportError(str(exc)) from exc

        if response.status_code != 200:
            msg = _STATUS_MESSAGES.get(
                response.status_code, f"DeepL request failed (HTTP {response.status_code})"
            )
            raise TranslationError(msg)

        try:
            return str(response.json()["translations"][0]["text"])
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            msg = f"Unexpected DeepL response: {exc}"
            raise TranslationError(msg) from exc
