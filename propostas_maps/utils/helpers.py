"""Shared helper functions used across multiple modules."""

from __future__ import annotations

import re
import unicodedata

_NON_KEY_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def format_file_size(size_bytes: int) -> str:
    """Format a byte count as ``"512 bytes"``, ``"1.5 KB"`` or ``"2.0 MB"``."""
    if size_bytes < 1024:
        return f"{size_bytes} bytes"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"


def humanize_slug(slug: str) -> str:
    """Turn a slug into a display name (``"santa-maria_maior"`` → ``"Santa maria maior"``)."""
    text = re.sub(r"[-_]+", " ", slug).strip()
    return text[:1].upper() + text[1:]


def is_blank(value: object) -> bool:
    """``True`` for ``None``, whitespace-only strings and empty sequences."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, list | tuple):
        return len(value) == 0
    return False


def clean_key(key: str) -> str:
    """Lower-case *key* and replace anything outside ``[a-z0-9_]`` with ``_``."""
    return _NON_KEY_CHARS.sub("_", key).lower()


def fold_text(text: str) -> str:
    """Case- and accent-insensitive form of *text* for loose matching."""
    decomposed = unicodedata.normalize("NFKD", text.strip().casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))
