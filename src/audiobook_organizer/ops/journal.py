"""Undo journal: every completed move batch, rewritten in full after each one.

The file is a JSON array of {timestamp, source_path, target_path, files[]}
at the root of the output (or base) directory. ``source_files`` is written
alongside ``files`` when a batch renamed files, so undo restores the
original names.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from ..errors import FileOperationError, JournalCorruptError, JournalMissingError
from ..models import JournalEntry
from .move import move_file

log = logger.bind(stage="journal")


@dataclass
class UndoResult:
    restored: list[tuple[Path, Path]] = field(default_factory=list)
    failed: list[tuple[Path, str]] = field(default_factory=list)


@dataclass
class _Batch:
    entry: JournalEntry
    source_files: list[str]


class Journal:
    """In-memory list of completed batches mirrored to one JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._batches: list[_Batch] = []

    @property
    def entries(self) -> list[JournalEntry]:
        return [b.entry for b in self._batches]

    def __len__(self) -> int:
        return len(self._batches)

    # -- Write operations --

    def _serialize(self) -> list[dict]:
        out = []
        for batch in self._batches:
            data = batch.entry.to_dict()
            if batch.source_files != batch.entry.files:
                data["source_files"] = list(batch.source_files)
            out.append(data)
        return out

    def _atomic_write(self) -> None:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=".abook-org.", suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._serialize(), f, indent=2)
                f.write("\n")
            os.replace(tmp_path, str(self.path))
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def append(
        self,
        entry: JournalEntry,
        source_files: list[str] | None = None,
    ) -> None:
        """Append a completed batch and rewrite the journal file.

        A failed write is logged and otherwise ignored; completed moves
        are never rolled back because of it.
        """
        self._batches.append(
            _Batch(entry, list(source_files) if source_files else list(entry.files))
        )
        try:
            self._atomic_write()
        except OSError as exc:
            log.warning(f"Could not save undo journal {self.path}: {exc}")

    # -- Read operations --

    @classmethod
    def load(cls, path: Path) -> Journal:
        """Read an existing journal.

        Raises JournalMissingError if absent, JournalCorruptError if unparseable.
        """
        if not path.is_file():
            raise JournalMissingError(f"No journal found at {path}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
            raise JournalCorruptError(f"Cannot parse journal {path}: {exc}") from exc
        if not isinstance(data, list):
            raise JournalCorruptError(f"Journal {path} is not a JSON array")

        journal = cls(path)
        for raw in data:
            try:
                entry = JournalEntry.from_dict(raw)
            except (KeyError, TypeError, AttributeError) as exc:
                raise JournalCorruptError(f"Malformed journal entry in {path}: {raw!r}") from exc
            source_files = raw.get("source_files") or entry.files
            if len(source_files) != len(entry.files):
                source_files = entry.files
            journal._batches.append(_Batch(entry, [str(f) for f in source_files]))
        log.debug(f"Loaded journal {path}: {len(journal)} entries")
        return journal

    # -- Undo --

    def restore_pairs(self) -> list[tuple[Path, Path]]:
        """(moved path, original path) for every file, newest batch first."""
        pairs = []
        for batch in reversed(self._batches):
            source_dir = Path(batch.entry.source_path)
            target_dir = Path(batch.entry.target_path)
            for moved_name, original_name in zip(batch.entry.files, batch.source_files):
                pairs.append((target_dir / moved_name, source_dir / original_name))
        return pairs

    def undo(self) -> UndoResult:
        """Move every journaled file back, newest batch first, then delete the journal.

        Per-file failures are logged and skipped.
        """
        result = UndoResult()
        for batch in reversed(self._batches):
            entry = batch.entry
            source_dir = Path(entry.source_path)
            target_dir = Path(entry.target_path)
            log.info(f"Restoring {target_dir} -> {source_dir}")
            try:
                source_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                log.error(f"Cannot recreate {source_dir}: {exc}")
                result.failed.append((source_dir, str(exc)))
                continue

            for moved_name, original_name in zip(entry.files, batch.source_files):
                moved = target_dir / moved_name
                original = source_dir / original_name
                try:
                    move_file(moved, original)
                except FileOperationError as exc:
                    log.error(f"Undo failed for {moved}: {exc.reason}")
                    result.failed.append((moved, exc.reason))
                    continue
                result.restored.append((moved, original))

        self.delete()
        return result

    def delete(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            log.warning(f"Could not remove journal {self.path}: {exc}")
