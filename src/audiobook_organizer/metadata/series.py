"""Series candidate validation and free-text series extraction."""

import re

from loguru import logger

from ..models import INVALID_SERIES

log = logger.bind(stage="series")

MAX_SERIES_LENGTH = 200

# Fragments that only show up when serialized structure leaked into a field
_LEAK_MARKERS = (
    '"name":',
    '"series_index"',
    '"@id"',
    '"content":',
    '"property":',
    "belongs-to-collection",
    "<meta",
)

# "(Mistborn, Book 1)", "(Mistborn Book 1)", "(Mistborn #1)", "(Mistborn, Vol. 2)"
_PAREN_RE = re.compile(
    r"\(\s*([^()]+?),?\s+(?:Book|Volume|Vol\.?|#)\s*(\d+(?:\.\d+)?)\s*\)",
    re.IGNORECASE,
)
# "Mistborn, Book 1" anywhere in the text
_COMMA_RE = re.compile(
    r"([^,:;()]+?),\s*Book\s+(\d+(?:\.\d+)?)\b",
    re.IGNORECASE,
)


def looks_like_leaked_data(value: str) -> bool:
    """True when a series string is raw internal data rather than a name."""
    stripped = value.strip()
    if stripped.startswith(("{", "[")):
        return True
    if len(stripped) > MAX_SERIES_LENGTH:
        return True
    lowered = stripped.lower()
    return any(marker in lowered for marker in _LEAK_MARKERS)


def sanitize_series_candidate(value: str | None, source: str = "") -> str:
    """Return a usable series name, "" for nothing, or the invalid sentinel."""
    if value is None:
        return ""
    value = str(value).strip()
    if not value:
        return ""
    if looks_like_leaked_data(value):
        log.warning(
            f"Rejected unparseable series value from {source or 'metadata'}: "
            f"{value[:60]!r}"
        )
        return INVALID_SERIES
    return value


def extract_series_from_text(text: str | None) -> tuple[str, float] | None:
    """Find a "(Series, Book N)" or "Series, Book N" pattern in free text.

    Returns (series name, index) or None.
    """
    if not text:
        return None

    match = _PAREN_RE.search(text) or _COMMA_RE.search(text)
    if not match:
        return None

    name = match.group(1).strip(" -:")
    if not name:
        return None
    index = float(match.group(2))
    log.debug(f"extract_series_from_text: {name!r} #{index:g}")
    return name, index
