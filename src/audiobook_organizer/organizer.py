"""Organizer -- walks the base directory and moves each book into its layout path.

A run is: resolve paths, then either undo the last journal or scan. A scan
is hierarchical (one book per metadata directory) or flat (album groups and
single files inside each directory). Every organizable unit is computed,
optionally confirmed, then described (dry run) or moved and journaled.
"""

from __future__ import annotations

import os
import time
from collections import defaultdict
from collections.abc import Callable
from pathlib import Path

import click
from loguru import logger

from . import prompt
from .config import OrganizerConfig
from .errors import FileOperationError, MetadataError, OrganizerError
from .grouping import group_files_by_album, scan_audio_files, should_process_as_album
from .layout import calculate_target_path, target_filename
from .metadata import MetadataResolver
from .models import (
    JOURNAL_FILENAME,
    METADATA_FILENAME,
    SUPPORTED_EXTENSIONS,
    AlbumGroup,
    JournalEntry,
    Metadata,
    Summary,
    is_audio_file,
)
from .ops.cleanup import remove_empty_dirs
from .ops.journal import Journal
from .ops.move import move_file, same_path
from .ops.plan_script import PlanScriptWriter

log = logger.bind(stage="organizer")

# Files that keep their name when a unit is moved
_UNPREFIXED = frozenset({METADATA_FILENAME})


class Organizer:
    """Runs one organize (or undo) pass for a config."""

    def __init__(
        self,
        config: OrganizerConfig,
        resolver: MetadataResolver | None = None,
        confirm_move: Callable[[Metadata, Path, Path], bool] = prompt.confirm_move,
        confirm_remove: Callable[[Path], bool] = prompt.confirm_remove_dir,
    ) -> None:
        self.config = config
        self.resolver = resolver or MetadataResolver(
            field_mapping=config.field_mapping,
            use_embedded_metadata=config.embedded_metadata,
            verbose=config.verbose,
        )
        self.confirm_move = confirm_move
        self.confirm_remove = confirm_remove
        self.summary = Summary()
        self.journal: Journal | None = None
        self.plan: PlanScriptWriter | None = None

    @property
    def journal_path(self) -> Path:
        """Journal location; a single-file run keeps it beside the file."""
        config = self.config
        if config.output_dir is None and config.base_dir.is_file():
            return config.base_dir.parent / JOURNAL_FILENAME
        return config.journal_path

    # -- Entry point --

    def run(self) -> Summary:
        """Resolve paths, then undo or scan. Returns the run summary.

        Raises PathResolutionError before anything is touched, and
        JournalMissingError/JournalCorruptError for an undo run.
        """
        start = time.monotonic()
        self.config = self.config.with_resolved_paths()
        log.debug(
            f"base_dir={self.config.base_dir} output_dir={self.config.output_dir} "
            f"layout={self.config.layout}"
        )

        if self.config.undo:
            self.undo()
            return self.summary

        if self.config.dry_run:
            click.echo("[DRY-RUN] No changes will be made")
            if self.config.plan_script:
                self.plan = PlanScriptWriter(
                    Path(self.config.plan_script),
                    self.config.base_dir,
                    self.config.output_dir,
                )
        else:
            # A live run starts a fresh journal; the first move overwrites the file
            self.journal = Journal(self.journal_path)

        base = self.config.base_dir
        if base.is_file():
            try:
                self._organize_file_unit(
                    base, base=None if self.config.output_dir else base.parent
                )
            except OrganizerError as exc:
                self._record_error(base, exc)
        else:
            self.scan(base)

        if self.config.remove_empty and not self.config.dry_run and base.is_dir():
            self.summary.empty_dirs_removed = remove_empty_dirs(
                base,
                self.config.output_dir,
                confirm=self.confirm_remove if self.config.prompt else None,
            )

        if self.plan is not None:
            self.plan.write()
            click.echo(f"Plan script: {self.plan.script_path}")

        self.print_summary(time.monotonic() - start)
        return self.summary

    # -- Undo --

    def undo(self) -> None:
        journal = Journal.load(self.journal_path)
        if self.config.dry_run:
            for moved, original in journal.restore_pairs():
                click.echo(f"[DRY-RUN] Would restore {moved} -> {original}")
                self.summary.add_move(moved, original)
            return

        result = journal.undo()
        for moved, original in result.restored:
            self.summary.add_move(moved, original)
        self.summary.errors.extend(result.failed)
        click.echo(
            f"Undo complete: {len(result.restored)} restored, {len(result.failed)} failed"
        )

    # -- Walk --

    def scan(self, base: Path) -> None:
        """Walk base depth-first, organizing each directory as the mode dictates."""
        output_dir = self.config.output_dir
        for dirpath, dirnames, _filenames in os.walk(base):
            directory = Path(dirpath)
            dirnames.sort()
            if output_dir is not None:
                # Never descend into already organized output
                dirnames[:] = [d for d in dirnames if directory / d != output_dir]
                if directory == output_dir and directory != base:
                    continue

            if self.config.flat:
                self._process_flat_directory(directory)
            elif self._process_book_directory(directory):
                dirnames.clear()

    def _record_error(self, path: Path, exc: Exception) -> None:
        log.error(f"{path}: {exc}")
        self.summary.errors.append((path, str(exc)))

    def _process_book_directory(self, directory: Path) -> bool:
        """Organize one directory as a book. True when its subtree is done."""
        try:
            metadata = self.resolver.resolve_directory(directory)
        except MetadataError as exc:
            self._record_error(directory, exc)
            return False

        if metadata is None:
            log.debug(f"No metadata in {directory}")
            self.summary.metadata_missing.append(directory)
            return False

        self.summary.metadata_found.append(Path(metadata.source_path or directory))
        try:
            metadata.validate()
            self._organize_directory(directory, metadata)
        except OrganizerError as exc:
            self._record_error(directory, exc)
            return False
        return True

    def _process_flat_directory(self, directory: Path) -> None:
        try:
            scanned = scan_audio_files(directory, self.resolver)
        except OSError as exc:
            self._record_error(directory, exc)
            return

        handled: set[Path] = set()
        if should_process_as_album(scanned):
            groups = group_files_by_album(scanned)
            click.echo(f"Album: {directory} ({len(groups)} group(s))")
            for group in groups.values():
                handled.update(group.files)
                try:
                    self._organize_album(group)
                except OrganizerError as exc:
                    self._record_error(group.files[0].parent, exc)

        known = {item.path: item.metadata for item in scanned}
        for path in sorted(p for p in directory.iterdir() if p.is_file()):
            if path in handled or path.suffix.lower() not in SUPPORTED_EXTENSIONS:
                continue
            if is_audio_file(path) and known.get(path) is None:
                self.summary.errors.append((path, "unreadable audio metadata"))
                continue
            try:
                self._organize_file_unit(path, metadata=known.get(path))
            except OrganizerError as exc:
                self._record_error(path, exc)

    # -- Units --

    def _target_name(self, name: str, track: int = 0, total: int = 0) -> str:
        if name in _UNPREFIXED:
            return name
        return target_filename(name, track, total, self.config.replace_space)

    def _organize_directory(self, directory: Path, metadata: Metadata) -> None:
        target_dir = calculate_target_path(metadata, self.config)
        if same_path(directory, target_dir):
            log.info(f"Already organized: {directory}")
            return

        files = sorted(
            p for p in directory.iterdir() if p.is_file() and p.name != JOURNAL_FILENAME
        )
        moves = [
            (p, target_dir / self._target_name(p.name, metadata.track_number))
            for p in files
        ]
        self._execute_unit(directory, target_dir, moves, metadata)

    def _organize_album(self, group: AlbumGroup) -> None:
        metadata = group.metadata
        metadata.validate()
        target_dir = calculate_target_path(metadata, self.config)
        total = len(group.files)

        moves = []
        for index, path in enumerate(group.files):
            track = group.track_for(path)
            if track <= 0:
                track = index + 1
            moves.append((path, target_dir / self._target_name(path.name, track, total)))

        source_dir = group.files[0].parent
        self.summary.metadata_found.append(source_dir)
        if all(same_path(src, dst) for src, dst in moves):
            log.info(f"Already organized: {metadata.title!r} in {source_dir}")
            return
        self._execute_unit(source_dir, target_dir, moves, metadata)

    def _organize_file_unit(
        self,
        path: Path,
        metadata: Metadata | None = None,
        base: Path | None = None,
    ) -> None:
        """Organize one file on its own, reading its metadata if not given."""
        if metadata is None:
            metadata = self.resolver.resolve(path)
        self.summary.metadata_found.append(path)
        metadata.validate()

        target_dir = calculate_target_path(metadata, self.config, base=base)
        target = target_dir / self._target_name(path.name, metadata.track_number)
        if same_path(path, target):
            log.info(f"Already organized: {path}")
            return
        self._execute_unit(path.parent, target_dir, [(path, target)], metadata)

    def _execute_unit(
        self,
        source_dir: Path,
        target_dir: Path,
        moves: list[tuple[Path, Path]],
        metadata: Metadata,
    ) -> None:
        """Confirm, then describe or perform the moves of one unit.

        A live unit is journaled once, with every file that was moved.
        Per-file failures are recorded and the remaining files still move.
        """
        if self.config.prompt and not self.confirm_move(metadata, source_dir, target_dir):
            log.info(f"Skipped by user: {source_dir}")
            return

        if self.config.dry_run:
            for src, dst in moves:
                click.echo(f"[DRY-RUN] Would move {src} -> {dst}")
                self.summary.add_move(src, dst, metadata)
                if self.plan is not None:
                    self.plan.add_move(src, dst, metadata)
            return

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FileOperationError(
                source_dir, target_dir, f"cannot create directory: {exc}"
            ) from exc
        moved: list[tuple[Path, Path]] = []
        for src, dst in moves:
            if same_path(src, dst):
                continue
            try:
                move_file(src, dst)
            except OrganizerError as exc:
                self._record_error(src, exc)
                continue
            moved.append((src, dst))
            self.summary.add_move(src, dst, metadata)
            log.debug(f"Moved {src} -> {dst}")

        if not moved:
            return
        click.echo(f"Moved {len(moved)} file(s): {source_dir} -> {target_dir}")
        if self.journal is not None:
            self.journal.append(
                JournalEntry(
                    source_path=str(source_dir),
                    target_path=str(target_dir),
                    files=[dst.name for _, dst in moved],
                ),
                source_files=[src.name for src, _ in moved],
            )

    # -- Reporting --

    def print_summary(self, duration: float) -> None:
        summary = self.summary
        click.echo("\nSummary")
        click.echo(f"  Duration: {duration:.2f}s")
        click.echo(f"  Metadata found: {len(summary.metadata_found)}")
        click.echo(f"  Metadata missing: {len(summary.metadata_missing)}")
        if self.config.verbose:
            for directory in summary.metadata_missing:
                click.echo(f"    - {directory}")

        verb = "planned" if self.config.dry_run else "executed"
        click.echo(f"  Moves {verb}: {len(summary.moves)}")
        books: dict[str, int] = defaultdict(int)
        for move in summary.moves:
            if move.metadata is None:
                continue
            label = move.metadata.first_author("Unknown Author")
            series = move.metadata.valid_series()
            if series:
                label = f"{label} / {series}"
            books[label] += 1
        for label in sorted(books):
            click.echo(f"    {label}: {books[label]} file(s)")

        if summary.empty_dirs_removed:
            click.echo(f"  Empty directories removed: {len(summary.empty_dirs_removed)}")
        if summary.errors:
            click.echo(f"  Errors: {len(summary.errors)}")
            for path, reason in summary.errors:
                click.echo(f"    {path}: {reason}")
        if self.config.dry_run:
            click.echo("[DRY-RUN] No files were moved")
