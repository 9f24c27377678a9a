"""Album detection: decide whether a directory's audio files are one work.

Exact grouping uses a normalized authors|title[|series] key. Files whose
titles differ are still merged when they share a separator-terminated
prefix ("Title - Track 01"), share an ordinal word (Track, Part, Chapter...)
or are similar once digits are removed, or when their series match and
track numbers run sequentially.

The similarity measure is a same-position character count, not an edit
distance. It is intentionally crude and its behavior is pinned by tests.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from .errors import MetadataError
from .models import AlbumGroup, Metadata, is_audio_file

if TYPE_CHECKING:
    from .metadata.resolver import MetadataResolver

log = logger.bind(stage="grouping")

SEPARATORS = (" - ", ": ", ", ")

ORDINAL_WORDS = (
    "track",
    "tr",
    "part",
    "chapter",
    "disc",
    "cd",
    "episode",
    "ep",
    "section",
    "vol",
    "volume",
)

SIMILARITY_THRESHOLD = 0.7

_SYMBOL_WORDS = (
    ("&", "and"),
    ("+", "plus"),
    ("@", "at"),
    ("#", "number"),
    ("%", "percent"),
    ("$", "dollar"),
)
_DROPPED = ("*", "\\", "/", ":")
_AS_SPACE = ("_", ".")
_DOUBLE_DOLLAR_MARKER = "\x00dd\x00"


# ---------------------------------------------------------------------------
# Key normalization
# ---------------------------------------------------------------------------


def normalize_key_part(text: str) -> str:
    """Normalize a title/author/series string for album keys."""
    text = text.lower()
    text = text.replace(" $$ ", f" {_DOUBLE_DOLLAR_MARKER} ")

    # Collapse runs of the same symbol: "!!!" -> "!"
    collapsed: list[str] = []
    prev = ""
    for char in text:
        if not char.isalnum() and not char.isspace() and char == prev:
            continue
        collapsed.append(char)
        prev = char
    text = "".join(collapsed)

    text = text.replace(_DOUBLE_DOLLAR_MARKER, "dollar dollar")
    for symbol, word in _SYMBOL_WORDS:
        text = text.replace(symbol, word)
    for char in _DROPPED:
        text = text.replace(char, "")
    for char in _AS_SPACE:
        text = text.replace(char, " ")

    return " ".join(text.split())


def album_key(metadata: Metadata) -> str:
    key = ",".join(normalize_key_part(a) for a in metadata.authors)
    key += "|" + normalize_key_part(metadata.title)
    series = metadata.valid_series()
    if series:
        key += "|" + normalize_key_part(series)
    return key


# ---------------------------------------------------------------------------
# Title heuristics
# ---------------------------------------------------------------------------


def has_common_prefix(a: str, b: str) -> bool:
    """True when a and b share a prefix ending in " - ", ": " or ", "."""
    min_len = min(len(a), len(b))

    if min_len <= 5:
        for sep in SEPARATORS:
            if sep in a and sep in b and a.split(sep)[0] == b.split(sep)[0]:
                return True

    for i in range(min_len, 3, -1):
        prefix = a[:i]
        if b.startswith(prefix) and prefix.endswith(SEPARATORS):
            return True
    return False


def common_prefix_title(a: str, b: str) -> str:
    """The shared separator-terminated prefix of a and b, separator removed."""
    for i in range(min(len(a), len(b)), 3, -1):
        prefix = a[:i]
        if b.startswith(prefix) and prefix.endswith(SEPARATORS):
            for sep in SEPARATORS:
                if prefix.endswith(sep):
                    return prefix[: -len(sep)].strip()
    return ""


def strip_digits(text: str) -> str:
    return re.sub(r"\d", "", text)


def string_similarity(a: str, b: str) -> float:
    """Same-position matching characters divided by the longer length."""
    a, b = a.lower(), b.lower()
    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
    if not longer:
        return 0.0
    matches = sum(1 for i, char in enumerate(shorter) if char == longer[i])
    return matches / len(longer)


def has_track_number_pattern(a: str, b: str) -> bool:
    a_lower, b_lower = a.lower(), b.lower()
    for word in ORDINAL_WORDS:
        if word in a_lower and word in b_lower:
            return True
    return string_similarity(strip_digits(a), strip_digits(b)) > SIMILARITY_THRESHOLD


def has_sequential_tracks(tracks: set[int] | list[int]) -> bool:
    """True when some n and n+1 are both present."""
    present = {t for t in tracks if t > 0}
    return any(t + 1 in present for t in present)


# ---------------------------------------------------------------------------
# Directory scanning
# ---------------------------------------------------------------------------


@dataclass
class ScannedFile:
    path: Path
    metadata: Metadata | None


def scan_audio_files(directory: Path, resolver: MetadataResolver) -> list[ScannedFile]:
    """Read tags for every audio file directly inside directory."""
    scanned: list[ScannedFile] = []
    for path in sorted(p for p in directory.iterdir() if p.is_file()):
        if not is_audio_file(path):
            continue
        try:
            metadata = resolver.resolve_audio(path)
        except MetadataError as exc:
            log.warning(f"Could not extract metadata from {path}: {exc}")
            metadata = None
        scanned.append(ScannedFile(path, metadata))
    return scanned


def _first_author(metadata: Metadata) -> str:
    return metadata.authors[0] if metadata.authors else ""


def should_process_as_album(scanned: list[ScannedFile]) -> bool:
    """Decide whether a directory's audio files form one multi-file work."""
    if len(scanned) <= 1:
        return False

    first: Metadata | None = None
    tracks: set[int] = set()

    for item in scanned:
        metadata = item.metadata
        if metadata is None:
            continue
        if metadata.track_number > 0:
            tracks.add(metadata.track_number)

        if first is None:
            first = metadata
            continue

        first_artist = _first_author(first)
        artist = _first_author(metadata)
        title_mismatch = metadata.title != first.title
        artist_mismatch = bool(first_artist and artist and artist != first_artist)
        if not (title_mismatch or artist_mismatch):
            continue

        if has_common_prefix(metadata.title, first.title):
            continue
        if has_track_number_pattern(metadata.title, first.title):
            continue

        first_series = first.valid_series()
        series = metadata.valid_series()
        series_match = not first_series or not series or first_series == series
        if series_match and len(tracks) > 1:
            continue

        log.debug(
            f"Not an album: {item.path.name!r} ({metadata.title!r}) "
            f"does not match {first.title!r}"
        )
        return False

    if has_sequential_tracks(tracks):
        return True
    return first is not None


def _can_merge(group: AlbumGroup, title: str, metadata: Metadata) -> str | None:
    """Return the merge reason if metadata belongs in group, else None."""
    if [normalize_key_part(a) for a in group.metadata.authors] != [
        normalize_key_part(a) for a in metadata.authors
    ]:
        return None
    if has_common_prefix(metadata.title, title):
        return "prefix"
    if has_track_number_pattern(metadata.title, title):
        return "pattern"
    group_series = group.metadata.valid_series()
    if group_series and group_series == metadata.valid_series():
        tracks = set(group.track_order.values()) | {metadata.track_number}
        if has_sequential_tracks(tracks):
            return "series"
    return None


def group_files_by_album(scanned: list[ScannedFile]) -> dict[str, AlbumGroup]:
    """Split scanned files into album groups, one per distinct work.

    Each group's files are sorted by track number, unnumbered files last.
    """
    groups: dict[str, AlbumGroup] = {}
    # First-seen title per group, used for heuristics after a group is renamed
    first_titles: dict[str, str] = {}

    for item in scanned:
        metadata = item.metadata
        if metadata is None:
            continue

        key = album_key(metadata)
        if key not in groups:
            for existing_key, group in groups.items():
                reason = _can_merge(group, first_titles[existing_key], metadata)
                if reason is None:
                    continue
                key = existing_key
                if reason == "prefix":
                    shared = common_prefix_title(
                        first_titles[existing_key], metadata.title
                    )
                    if shared:
                        group.metadata.title = shared
                elif group.metadata.valid_series():
                    group.metadata.title = group.metadata.valid_series()
                log.debug(f"Merged {item.path.name!r} into album {existing_key!r} ({reason})")
                break

        if key not in groups:
            groups[key] = AlbumGroup(metadata=metadata.copy())
            first_titles[key] = metadata.title
        groups[key].add_file(item.path, metadata.track_number)

    for group in groups.values():
        group.sort_files()

    log.debug(f"group_files_by_album: {len(groups)} group(s)")
    return groups
