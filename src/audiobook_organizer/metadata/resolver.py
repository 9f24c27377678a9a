"""Metadata resolution across sidecar, EPUB, and audio-tag sources.

Every source produces the same canonical Metadata record. The configured
FieldMapping is applied afterwards so operators can redefine which raw key
carries the title, series, authors, or track number without touching the
extraction code.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any

from loguru import logger

from ..config import FieldMapping
from ..errors import MetadataError, UnsupportedSourceError
from ..models import (
    METADATA_FILENAME,
    Metadata,
    is_audio_file,
    is_epub_file,
)
from .audio import read_audio
from .epub import read_epub
from .series import sanitize_series_candidate
from .sidecar import read_sidecar

log = logger.bind(stage="resolver")


# ---------------------------------------------------------------------------
# Field mapping
# ---------------------------------------------------------------------------


def _lookup(metadata: Metadata, name: str) -> Any:
    if name == "title":
        return metadata.title
    if name == "authors":
        return metadata.authors
    if name == "series":
        return metadata.series
    return metadata.raw_data.get(name)


def _as_text(value: Any) -> str:
    if isinstance(value, list):
        value = value[0] if value else ""
    if value is None:
        return ""
    return str(value).strip()


def _as_track(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        head = value.partition("/")[0].strip()
        try:
            return int(float(head))
        except (ValueError, OverflowError):
            return 0
    return 0


def apply_field_mapping(metadata: Metadata, mapping: FieldMapping) -> Metadata:
    """Recompute canonical fields from the mapped raw keys.

    Returns a new record; the input is left untouched.
    """
    result = metadata.copy()

    if mapping.title_field and mapping.title_field != "title":
        title = _as_text(_lookup(metadata, mapping.title_field))
        if title:
            result.title = title

    if mapping.series_field and mapping.series_field != "series":
        value = _lookup(metadata, mapping.series_field)
        values = value if isinstance(value, list) else [value]
        series = [
            sanitize_series_candidate(v, source=metadata.source_path)
            for v in values
            if v is not None
        ]
        series = [s for s in series if s]
        if series:
            result.series = series

    if mapping.author_fields:
        authors: list[str] = []
        for name in mapping.author_fields:
            value = _lookup(metadata, name)
            values = value if isinstance(value, list) else [value]
            for author in values:
                author = _as_text(author)
                if author and author not in authors:
                    authors.append(author)
        if authors:
            result.authors = authors

    if mapping.track_field:
        track = _as_track(_lookup(metadata, mapping.track_field))
        if track > 0:
            result.track_number = track

    return result


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


def _first_matching(directory: Path, predicate) -> Path | None:
    try:
        candidates = sorted(
            p for p in directory.iterdir() if p.is_file() and predicate(p)
        )
    except OSError as exc:
        raise MetadataError(directory, f"cannot list directory: {exc}") from exc
    return candidates[0] if candidates else None


class MetadataResolver:
    """Resolve canonical metadata for files and book directories."""

    def __init__(
        self,
        field_mapping: FieldMapping | None = None,
        use_embedded_metadata: bool = False,
        verbose: bool = False,
    ) -> None:
        self.field_mapping = field_mapping or FieldMapping()
        self.use_embedded_metadata = use_embedded_metadata
        self.verbose = verbose

    def _finish(self, metadata: Metadata) -> Metadata:
        mapped = apply_field_mapping(metadata, self.field_mapping)
        summary = (
            f"{mapped.source_label} {mapped.source_path}: "
            f"title={mapped.title!r} authors={mapped.authors} "
            f"series={mapped.series} track={mapped.track_number}"
        )
        if self.verbose:
            log.info(summary)
        else:
            log.debug(summary)
        return mapped

    def resolve(self, path: Path) -> Metadata:
        """Resolve metadata for a file (by extension) or a book directory.

        Raises MetadataError when a source cannot be read and
        UnsupportedSourceError when nothing handles the path.
        """
        if path.is_dir():
            metadata = self.resolve_directory(path)
            if metadata is None:
                raise UnsupportedSourceError(path, "no metadata source found")
            return metadata
        if path.name == METADATA_FILENAME or path.suffix.lower() == ".json":
            return self._finish(read_sidecar(path))
        if is_epub_file(path):
            return self._finish(read_epub(path))
        if is_audio_file(path):
            return self._finish(read_audio(path))
        raise UnsupportedSourceError(path, "unsupported file type")

    def resolve_audio(self, path: Path) -> Metadata:
        return self._finish(read_audio(path))

    def _try_embedded(self, path: Path | None, reader) -> Metadata | None:
        if path is None:
            return None
        try:
            metadata = self._finish(reader(path))
        except MetadataError as exc:
            log.warning(f"Embedded metadata unreadable: {exc}")
            return None
        if not metadata.is_valid():
            log.debug(f"Embedded metadata incomplete in {path}")
            return None
        return metadata

    def resolve_directory(self, directory: Path) -> Metadata | None:
        """Find metadata for a book directory, or None if it has none.

        With embedded metadata enabled: first EPUB, then first audio file,
        then the sidecar. Otherwise only the sidecar is consulted.
        """
        log.debug(f"resolve_directory(directory={directory})")
        if self.use_embedded_metadata:
            metadata = self._try_embedded(
                _first_matching(directory, is_epub_file), read_epub
            )
            if metadata is None:
                metadata = self._try_embedded(
                    _first_matching(directory, is_audio_file), read_audio
                )
            if metadata is not None:
                return metadata

        sidecar = directory / METADATA_FILENAME
        if sidecar.is_file():
            return self._finish(read_sidecar(sidecar))
        return None
