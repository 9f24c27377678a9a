"""Path-component sanitization and series-name helpers."""

import sys

from loguru import logger

log = logger.bind(stage="sanitize")

WINDOWS_RESERVED = ("<", ">", ":", '"', "/", "\\", "|", "?", "*")
DARWIN_RESERVED = (":",)
# Remapped on every platform except macOS, which only reserves ':'
COMMON_PROBLEMATIC = ("<", ">", ":", "|", "?", "*", "`", '"')


def reserved_chars(platform: str | None = None) -> tuple[str, ...]:
    """Characters remapped in path components on the given platform."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return tuple(dict.fromkeys(WINDOWS_RESERVED + COMMON_PROBLEMATIC))
    if platform == "darwin":
        return DARWIN_RESERVED
    return ("/",) + COMMON_PROBLEMATIC


def sanitize_component(
    component: str,
    replace_space: str = "",
    platform: str | None = None,
) -> str:
    """Sanitize a single path component (never a joined path).

    Reserved characters for the platform become underscores, then spaces
    are substituted when replace_space is set, then leading and trailing
    spaces and dots are trimmed.
    """
    sanitized = component
    for char in reserved_chars(platform):
        sanitized = sanitized.replace(char, "_")

    if replace_space:
        sanitized = sanitized.replace(" ", replace_space)

    sanitized = sanitized.strip(" .")

    if sanitized != component:
        log.debug(f"sanitize_component('{component}') -> '{sanitized}'")
    return sanitized


def clean_series_name(series: str) -> str:
    """Strip a trailing " #N" marker: "Mistborn #1" -> "Mistborn"."""
    idx = series.rfind(" #")
    if idx != -1:
        return series[:idx].strip()
    return series


def extract_series_number(series: str) -> str:
    """Return the text after the last " #": "Mistborn #2" -> "2"."""
    idx = series.rfind(" #")
    if idx != -1:
        return series[idx + 2:].strip()
    return ""
