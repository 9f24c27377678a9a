"""Audio tag extraction using mutagen.

Standard fields are read through mutagen's "easy" interface so MP3, MP4,
FLAC and Ogg share one key space. Narrator, explicit series, comment and
content group live in format-specific frames and are read from the full
tag set.
"""

from __future__ import annotations

from pathlib import Path

import mutagen
from loguru import logger
from mutagen.id3 import ID3
from mutagen.mp4 import MP4Tags

from ..errors import MetadataError
from ..models import Metadata, SourceType
from .series import sanitize_series_candidate

log = logger.bind(stage="audio")

EASY_KEYS = (
    "title",
    "album",
    "artist",
    "albumartist",
    "composer",
    "genre",
    "date",
    "tracknumber",
    "discnumber",
)

# Custom frame names (lowercased TXXX desc / MP4 freeform name / Vorbis key)
CUSTOM_KEYS = ("narrator", "series")


def _first_text(values) -> str:
    if not values:
        return ""
    value = values[0]
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return str(value).strip()


def _custom_frames(tags) -> dict[str, str]:
    """Narrator, series, comment, and content group from native tag frames."""
    found: dict[str, str] = {}

    if isinstance(tags, ID3):
        for frame in tags.getall("TXXX"):
            key = frame.desc.strip().lower()
            if key in CUSTOM_KEYS and frame.text:
                found[key] = _first_text(frame.text)
        comments = tags.getall("COMM")
        if comments:
            found["comment"] = _first_text(comments[0].text)
        grouping = tags.get("TIT1")
        if grouping is not None:
            found["grouping"] = _first_text(grouping.text)
    elif isinstance(tags, MP4Tags):
        for key, values in tags.items():
            if key.startswith("----:"):
                name = key.rsplit(":", 1)[-1].lower()
                if name in CUSTOM_KEYS:
                    found[name] = _first_text(values)
        found["comment"] = _first_text(tags.get("\xa9cmt"))
        found["grouping"] = _first_text(tags.get("\xa9grp"))
    else:
        # Vorbis comments (FLAC, Ogg) are case-insensitive
        for key in CUSTOM_KEYS + ("comment", "grouping"):
            found[key] = _first_text(tags.get(key))

    return {k: v for k, v in found.items() if v}


def read_tags(path: Path) -> dict[str, str]:
    """Read a flat string dict of tags from an audio file."""
    log.debug(f"read_tags(path={path})")
    try:
        easy = mutagen.File(str(path), easy=True)
        full = mutagen.File(str(path))
    except (mutagen.MutagenError, OSError) as exc:
        raise MetadataError(path, f"cannot read tags: {exc}") from exc

    if easy is None:
        raise MetadataError(path, "unrecognized audio format")

    tags: dict[str, str] = {}
    if easy.tags is not None:
        for key in EASY_KEYS:
            value = _first_text(easy.tags.get(key))
            if value:
                tags[key] = value

    if full is not None and full.tags is not None:
        for key, value in _custom_frames(full.tags).items():
            tags.setdefault(key, value)

    return tags


def _split_number(value: str) -> tuple[int, int]:
    """'3/12' -> (3, 12); '3' -> (3, 0); junk -> (0, 0)."""
    number, _, total = (value or "").partition("/")

    def _int(text: str) -> int:
        try:
            return int(text.strip())
        except ValueError:
            return 0

    return _int(number), _int(total)


def build_audio_metadata(path: Path, tags: dict[str, str]) -> Metadata:
    """Map a tag dict onto canonical metadata.

    Authors come from artist, else album artist. Series is the explicit
    series tag, else the album.
    """
    title = tags.get("title", "")
    album = tags.get("album", "")
    artist = tags.get("artist", "")
    album_artist = tags.get("albumartist", "")
    track, track_total = _split_number(tags.get("tracknumber", ""))
    disc, disc_total = _split_number(tags.get("discnumber", ""))

    raw: dict = {
        "title": title,
        "album": album,
        "artist": artist,
        "album_artist": album_artist,
        "composer": tags.get("composer", ""),
        "genre": tags.get("genre", ""),
        "comment": tags.get("comment", ""),
        "year": tags.get("date", "")[:4],
        "track": track,
        "track_total": track_total,
        "disc": disc,
        "disc_total": disc_total,
        "narrator": tags.get("narrator", ""),
        "content_group": tags.get("grouping", ""),
    }

    authors = [artist] if artist else ([album_artist] if album_artist else [])

    explicit_series = sanitize_series_candidate(tags.get("series"), source=str(path))
    if explicit_series:
        raw["series"] = explicit_series
        series = [explicit_series]
    elif album:
        series = [album]
    else:
        series = []

    return Metadata(
        title=title,
        authors=authors,
        series=series,
        track_number=track,
        source_type=SourceType.AUDIO,
        source_path=str(path),
        raw_data=raw,
    )


def read_audio(path: Path) -> Metadata:
    return build_audio_metadata(path, read_tags(path))
