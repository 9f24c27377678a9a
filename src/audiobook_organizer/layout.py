"""Target path calculation from metadata and a layout policy.

Layouts:
    author-only                  Author/
    author-title                 Author/Title/
    author-series-title          Author/Series/Title/  (Author/Title/ without a series)
    author-series-title-number   Author/Series/[01] Title/
    series-title                 Series/Title/         (Title/ without a series)
    series-title-number          Series/[01] Title/

Sanitization applies to each component, never to the joined path. The
title is dropped when it equals the cleaned series name.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Sequence
from pathlib import Path

from loguru import logger

from .config import OrganizerConfig
from .models import Layout, Metadata, SeriesFormat
from .sanitize import extract_series_number, sanitize_component

log = logger.bind(stage="layout")

DEFAULT_SERIES_PADDING = 2

_TRACK_PREFIX_RE = re.compile(r"^(\d{2,4}) - ")


# ---------------------------------------------------------------------------
# Series index
# ---------------------------------------------------------------------------


def _format_index(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return f"{value:g}"


def series_number(metadata: Metadata) -> str:
    """Series index as text, or "" when there is none.

    An explicit numeric series_index in raw data wins over a " #N" suffix
    in the series the layout uses. Indexes <= 0 and non-finite values
    mean "no index".
    """
    explicit = metadata.raw_data.get("series_index")
    if explicit is not None and not isinstance(explicit, bool):
        try:
            value = float(explicit)
        except (TypeError, ValueError):
            value = 0.0
        if math.isfinite(value) and value > 0:
            return _format_index(value)

    series = metadata.full_valid_series()
    if series:
        text = extract_series_number(series)
        try:
            if text and math.isfinite(float(text)) and float(text) > 0:
                return text
        except ValueError:
            log.debug(f"Non-numeric series number {text!r} ignored")
    return ""


def format_series_number(
    number: str,
    fmt: SeriesFormat | str = SeriesFormat.BRACKET,
    padding: int = DEFAULT_SERIES_PADDING,
) -> str:
    """Format a series index: "[01]" (bracket) or "#1" (hash).

    Bracket pads the integer part to ``padding`` digits and keeps any
    decimal part: "2.5" -> "[02.5]".
    """
    if not number:
        return ""
    if SeriesFormat.parse(str(fmt)) is SeriesFormat.HASH:
        return f"#{number}"

    if padding <= 0:
        padding = DEFAULT_SERIES_PADDING
    whole, dot, frac = number.partition(".")
    if whole.isdigit():
        whole = whole.zfill(padding)
    return f"[{whole}{dot}{frac}]"


def numbered_title(
    title: str,
    number: str,
    fmt: SeriesFormat | str = SeriesFormat.BRACKET,
    padding: int = DEFAULT_SERIES_PADDING,
) -> str:
    """Prefix a leaf component with its formatted series index."""
    formatted = format_series_number(number, fmt, padding)
    if not formatted:
        return title
    if SeriesFormat.parse(str(fmt)) is SeriesFormat.HASH:
        return f"{formatted} - {title}"
    return f"{formatted} {title}"


# ---------------------------------------------------------------------------
# Path building
# ---------------------------------------------------------------------------


def build_path(
    base: Path,
    components: Sequence[str | None],
    sanitizer: Callable[[str], str],
) -> Path:
    """Join sanitized, non-empty components onto base."""
    path = base
    for component in components:
        if not component:
            continue
        cleaned = sanitizer(component)
        if cleaned:
            path = path / cleaned
    return path


def calculate_target_path(
    metadata: Metadata,
    config: OrganizerConfig,
    base: Path | None = None,
) -> Path:
    """Compute the target directory for a unit.

    base defaults to the output directory, else the base directory.
    """
    target_base = base if base is not None else config.effective_output_dir
    layout = Layout.parse(str(config.layout))

    def sanitizer(component: str) -> str:
        return sanitize_component(component, replace_space=config.replace_space)

    author = ",".join(a for a in metadata.authors if a)
    title = metadata.title
    series = metadata.valid_series() if layout.uses_series else ""

    if series and title == series:
        title = ""

    leaf = title
    if layout.numbered and series:
        number = series_number(metadata)
        if number:
            leaf = numbered_title(
                title or series,
                number,
                config.series_format,
                config.series_padding,
            )

    if layout is Layout.AUTHOR_ONLY:
        components = [author]
    elif layout is Layout.AUTHOR_TITLE:
        components = [author, title]
    elif layout in (Layout.SERIES_TITLE, Layout.SERIES_TITLE_NUMBER):
        components = [series, leaf]
    else:
        components = [author, series, leaf]

    result = build_path(target_base, components, sanitizer)
    log.debug(f"calculate_target_path({metadata.title!r}, layout={layout}) -> {result}")
    return result


# ---------------------------------------------------------------------------
# Filename track prefixes
# ---------------------------------------------------------------------------


def track_prefix_width(total_tracks: int) -> int:
    if total_tracks < 100:
        return 2
    if total_tracks < 1000:
        return 3
    return 4


def has_track_prefix(stem: str) -> bool:
    """True for "01 - Name", "001 - Name", "0001 - Name"."""
    return _TRACK_PREFIX_RE.match(stem) is not None


def extract_track_number(stem: str) -> int:
    match = _TRACK_PREFIX_RE.match(stem)
    return int(match.group(1)) if match else 0


def remove_track_prefix(stem: str) -> str:
    return _TRACK_PREFIX_RE.sub("", stem, count=1)


def add_track_prefix(filename: str, track: int, total_tracks: int = 0) -> str:
    """Prefix a filename with its zero-padded track number.

    An existing prefix with the same number is re-padded; a prefix with a
    different number is left alone.
    """
    if track <= 0:
        return filename

    path = Path(filename)
    stem, ext = path.stem, path.suffix
    prefix = f"{track:0{track_prefix_width(total_tracks)}d} - "

    if has_track_prefix(stem):
        if extract_track_number(stem) == track:
            return f"{prefix}{remove_track_prefix(stem)}{ext}"
        return filename

    return f"{prefix}{stem}{ext}"


def target_filename(
    filename: str,
    track: int = 0,
    total_tracks: int = 0,
    replace_space: str = "",
) -> str:
    """Final filename inside a target directory."""
    name = add_track_prefix(filename, track, total_tracks)
    if replace_space:
        name = name.replace(" ", replace_space)
    return name
