"""Empty-directory pruning after a live run."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

from loguru import logger

log = logger.bind(stage="cleanup")


def is_empty_dir(directory: Path) -> bool:
    try:
        return directory.is_dir() and not any(directory.iterdir())
    except OSError:
        return False


def find_empty_dirs(base_dir: Path, output_dir: Path | None = None) -> list[Path]:
    """Empty directories under base_dir, deepest first.

    Never includes base_dir or output_dir, and never looks inside output_dir.
    """
    empty: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(base_dir):
        current = Path(dirpath)
        if output_dir is not None:
            dirnames[:] = [
                d for d in dirnames if (current / d) != output_dir
            ]
        if current == base_dir or current == output_dir:
            continue
        if not dirnames and not filenames and is_empty_dir(current):
            empty.append(current)
    empty.sort(key=lambda p: len(p.parts), reverse=True)
    return empty


def remove_empty_dirs(
    base_dir: Path,
    output_dir: Path | None = None,
    confirm: Callable[[Path], bool] | None = None,
) -> list[Path]:
    """Repeatedly prune empty directories bottom-up until none are left.

    When confirm is given, each removal must be approved; declined
    directories are kept (and so are their parents).
    """
    removed: list[Path] = []
    declined: set[Path] = set()

    while True:
        candidates = [
            d for d in find_empty_dirs(base_dir, output_dir) if d not in declined
        ]
        if not candidates:
            break

        removed_any = False
        for directory in candidates:
            if not is_empty_dir(directory):
                continue
            if confirm is not None and not confirm(directory):
                log.debug(f"Keeping empty directory {directory}")
                declined.add(directory)
                continue
            try:
                directory.rmdir()
            except OSError as exc:
                log.error(f"Failed to remove {directory}: {exc}")
                declined.add(directory)
                continue
            log.info(f"Removed empty directory {directory}")
            removed.append(directory)
            removed_any = True

        if not removed_any:
            break

    return removed
