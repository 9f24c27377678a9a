"""metadata.json sidecar reader."""

import json
from pathlib import Path

from loguru import logger

from ..errors import MetadataError
from ..models import Metadata, SourceType
from .series import sanitize_series_candidate

log = logger.bind(stage="sidecar")


def _as_str_list(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, list):
        return [str(v) for v in value if v is not None]
    return [str(value)]


def read_sidecar(path: Path) -> Metadata:
    """Read a metadata.json file.

    Missing fields are not an error here; validity is checked by the caller.
    """
    log.debug(f"read_sidecar(path={path})")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MetadataError(path, f"invalid JSON: {exc}") from exc
    except OSError as exc:
        raise MetadataError(path, f"cannot read: {exc}") from exc

    if not isinstance(data, dict):
        raise MetadataError(path, "expected a JSON object")

    title = data.get("title") or ""
    track = data.get("track_number") or 0
    try:
        track_number = int(float(track))
    except (TypeError, ValueError, OverflowError):
        track_number = 0

    series = [
        sanitize_series_candidate(s, source=str(path))
        for s in _as_str_list(data.get("series"))
    ]

    return Metadata(
        title=str(title),
        authors=_as_str_list(data.get("authors")),
        series=[s for s in series if s],
        track_number=track_number,
        source_type=SourceType.JSON,
        source_path=str(path),
        raw_data=data,
    )
