"""Exception hierarchy for the audiobook organizer.

Metadata-missing is not an error: a directory without any usable source is
reported in the run summary and skipped.
"""

from pathlib import Path


class OrganizerError(Exception):
    """Base exception for all organizer errors."""


class ConfigError(OrganizerError):
    """Invalid or missing configuration."""


class PathResolutionError(OrganizerError):
    """The base or output directory cannot be resolved. Aborts the run."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Cannot resolve {path}: {reason}")
        self.path = Path(path)
        self.reason = reason


class MetadataError(OrganizerError):
    """A metadata source exists but could not be read or parsed."""

    def __init__(self, source_path: Path | str, reason: str) -> None:
        super().__init__(f"{source_path}: {reason}")
        self.source_path = str(source_path)
        self.reason = reason


class MetadataInvalidError(MetadataError):
    """Metadata was read but lacks a title or authors."""


class UnsupportedSourceError(MetadataError):
    """No metadata source variant handles this path."""


class FileOperationError(OrganizerError):
    """A filesystem move, copy, or directory operation failed."""

    def __init__(self, source: Path | str, target: Path | str, reason: str) -> None:
        super().__init__(f"Cannot move {source} -> {target}: {reason}")
        self.source = Path(source)
        self.target = Path(target)
        self.reason = reason


class JournalError(OrganizerError):
    """Undo journal read/write error."""


class JournalMissingError(JournalError):
    """Undo requested but no journal file exists."""


class JournalCorruptError(JournalError):
    """Undo requested but the journal cannot be parsed. Fatal for the undo run."""
