"""Move primitive with a crash-safe cross-device fallback."""

import errno
import os
import shutil
from pathlib import Path

from loguru import logger

from ..errors import FileOperationError

log = logger.bind(stage="move")


def same_path(a: Path | str, b: Path | str) -> bool:
    return os.path.normpath(str(a)) == os.path.normpath(str(b))


def fsync_directory(directory: Path) -> None:
    """Flush directory entries to disk. No-op where directories can't be opened."""
    if os.name == "nt":
        return
    fd = os.open(str(directory), os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def _copy_then_remove(source: Path, target: Path) -> None:
    """Read the whole source, write and flush the target, then drop the source.

    The source stays authoritative until the copy is on disk.
    """
    data = source.read_bytes()
    try:
        with open(target, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        shutil.copystat(source, target)
        fsync_directory(target.parent)
    except OSError:
        target.unlink(missing_ok=True)
        raise
    log.debug(f"Copied {len(data)} bytes {source} -> {target}")
    source.unlink()
    fsync_directory(target.parent)


def move_file(source: Path, target: Path) -> Path:
    """Move source to target, creating the target directory.

    Tries an atomic rename first; a cross-device rename falls back to
    copy + fsync + delete. Refuses to overwrite an existing target.
    """
    if same_path(source, target):
        return target

    log.debug(f"move_file(source={source}, target={target})")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FileOperationError(source, target, f"cannot create directory: {exc}") from exc

    if target.exists():
        raise FileOperationError(source, target, "target already exists")

    try:
        os.rename(source, target)
        return target
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise FileOperationError(source, target, exc.strerror or str(exc)) from exc
        log.debug(f"Rename across devices failed, copying instead: {exc}")

    try:
        _copy_then_remove(source, target)
    except OSError as exc:
        raise FileOperationError(source, target, f"copy fallback failed: {exc}") from exc
    return target
