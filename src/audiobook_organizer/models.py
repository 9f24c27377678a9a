"""Core enums, constants, and record types for the audiobook organizer.

Enums:
    SourceType    -- Where a metadata record came from (json sidecar, epub, audio tags).
    Layout        -- Directory naming scheme for target paths. Unknown names fall
                     back to author-title.
    SeriesFormat  -- Series index style for -number layouts. ``bracket`` sorts
                     correctly; ``hash`` is kept for existing libraries.

Records:
    Metadata      -- Canonical metadata regardless of source format.
    AlbumGroup    -- Audio files in one directory that are tracks of one work.
    JournalEntry  -- One completed move batch, persisted for undo.
    Summary       -- Per-run report (found/missing metadata, moves, removed dirs).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from pathlib import Path
from typing import Any

from .errors import MetadataInvalidError
from .sanitize import clean_series_name


class SourceType(StrEnum):
    JSON = "json"
    EPUB = "epub"
    AUDIO = "audio"


class Layout(StrEnum):
    AUTHOR_ONLY = "author-only"
    AUTHOR_TITLE = "author-title"
    AUTHOR_SERIES_TITLE = "author-series-title"
    AUTHOR_SERIES_TITLE_NUMBER = "author-series-title-number"
    SERIES_TITLE = "series-title"
    SERIES_TITLE_NUMBER = "series-title-number"

    @classmethod
    def parse(cls, value: str | None) -> Layout:
        """Map a configured layout name to a Layout.

        Empty means the default (author-series-title); anything unknown
        falls back to author-title.
        """
        if not value:
            return cls.AUTHOR_SERIES_TITLE
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.AUTHOR_TITLE

    @property
    def numbered(self) -> bool:
        return self.value.endswith("-number")

    @property
    def uses_series(self) -> bool:
        return "series" in self.value


class SeriesFormat(StrEnum):
    """Series index formatting styles.

    bracket -- "[01] Title": zero-padded, sorts lexicographically, no shell quoting
    hash    -- "#1 - Title": legacy style, "#10" sorts before "#2"
    """

    BRACKET = "bracket"
    HASH = "hash"

    @classmethod
    def parse(cls, value: str | None) -> SeriesFormat:
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.BRACKET


SOURCE_LABELS: dict[SourceType, str] = {
    SourceType.JSON: "JSON metadata file",
    SourceType.EPUB: "EPUB embedded metadata",
    SourceType.AUDIO: "Audio embedded metadata",
}

METADATA_FILENAME = "metadata.json"
JOURNAL_FILENAME = ".abook-org.log"

# Marks a series value that was found but rejected as unparseable
INVALID_SERIES = "__INVALID_SERIES__"

AUDIO_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".mp3",
        ".m4b",
        ".m4a",
        ".ogg",
        ".flac",
    }
)

EPUB_EXTENSIONS: frozenset[str] = frozenset({".epub"})

# Files organized individually in flat mode
SUPPORTED_EXTENSIONS: frozenset[str] = AUDIO_EXTENSIONS | EPUB_EXTENSIONS


def is_audio_file(path: Path | str) -> bool:
    return Path(path).suffix.lower() in AUDIO_EXTENSIONS


def is_epub_file(path: Path | str) -> bool:
    return Path(path).suffix.lower() in EPUB_EXTENSIONS


def _utcnow() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class Metadata:
    """Canonical metadata record produced by every source."""

    title: str = ""
    authors: list[str] = field(default_factory=list)
    series: list[str] = field(default_factory=list)
    track_number: int = 0
    source_type: SourceType = SourceType.JSON
    source_path: str = ""
    raw_data: dict[str, Any] = field(default_factory=dict)

    @property
    def source_label(self) -> str:
        """Human-readable label for the source, used in log lines."""
        return SOURCE_LABELS[SourceType(self.source_type)]

    def is_valid(self) -> bool:
        return bool(self.title) and any(a for a in self.authors)

    def validate(self) -> None:
        if not self.title:
            raise MetadataInvalidError(self.source_path, "title is empty")
        if not any(a for a in self.authors):
            raise MetadataInvalidError(self.source_path, "no authors")

    def first_author(self, default: str = "") -> str:
        if self.authors and self.authors[0]:
            return self.authors[0]
        return default

    def full_valid_series(self) -> str:
        """First usable series value after sorting, with any " #N" suffix intact."""
        for value in sorted(self.series):
            if value and value != INVALID_SERIES:
                return value
        return ""

    def valid_series(self) -> str:
        """First usable series name after sorting, cleaned of its " #N" suffix."""
        return clean_series_name(self.full_valid_series())

    def copy(self) -> Metadata:
        return Metadata(
            title=self.title,
            authors=list(self.authors),
            series=list(self.series),
            track_number=self.track_number,
            source_type=self.source_type,
            source_path=self.source_path,
            raw_data=dict(self.raw_data),
        )


@dataclass
class AlbumGroup:
    """A set of audio files in one directory identified as tracks of one work."""

    metadata: Metadata
    files: list[Path] = field(default_factory=list)
    track_order: dict[Path, int] = field(default_factory=dict)

    def add_file(self, path: Path, track_number: int) -> None:
        self.files.append(path)
        self.track_order[path] = track_number

    def sort_files(self) -> None:
        """Known track numbers ascending first, then the rest by filename."""

        def _key(path: Path) -> tuple[int, int, str]:
            track = self.track_order.get(path, 0)
            if track > 0:
                return (0, track, path.name)
            return (1, 0, path.name)

        self.files.sort(key=_key)

    def track_for(self, path: Path) -> int:
        return self.track_order.get(path, 0)


@dataclass
class JournalEntry:
    """One completed move batch."""

    source_path: str
    target_path: str
    files: list[str] = field(default_factory=list)
    timestamp: str = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "source_path": self.source_path,
            "target_path": self.target_path,
            "files": list(self.files),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JournalEntry:
        return cls(
            timestamp=str(data.get("timestamp", "")),
            source_path=str(data["source_path"]),
            target_path=str(data["target_path"]),
            files=[str(f) for f in data.get("files") or []],
        )


@dataclass
class MoveRecord:
    source: Path
    target: Path
    metadata: Metadata | None = None


@dataclass
class Summary:
    """Result summary for one organizer run."""

    metadata_found: list[Path] = field(default_factory=list)
    metadata_missing: list[Path] = field(default_factory=list)
    moves: list[MoveRecord] = field(default_factory=list)
    empty_dirs_removed: list[Path] = field(default_factory=list)
    errors: list[tuple[Path, str]] = field(default_factory=list)

    def add_move(
        self, source: Path, target: Path, metadata: Metadata | None = None
    ) -> None:
        self.moves.append(MoveRecord(source, target, metadata))
