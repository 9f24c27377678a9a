"""Tests for errors.py -- exception hierarchy and carried attributes."""

from pathlib import Path

from audiobook_organizer.errors import (
    ConfigError,
    FileOperationError,
    JournalCorruptError,
    JournalError,
    JournalMissingError,
    MetadataError,
    MetadataInvalidError,
    OrganizerError,
    PathResolutionError,
    UnsupportedSourceError,
)


class TestExceptionHierarchy:
    def test_all_inherit_from_organizer_error(self):
        for cls in (
            ConfigError,
            PathResolutionError,
            MetadataError,
            FileOperationError,
            JournalError,
        ):
            assert issubclass(cls, OrganizerError)

    def test_metadata_subclasses(self):
        assert issubclass(MetadataInvalidError, MetadataError)
        assert issubclass(UnsupportedSourceError, MetadataError)

    def test_journal_subclasses(self):
        assert issubclass(JournalCorruptError, JournalError)
        assert issubclass(JournalMissingError, JournalError)

    def test_organizer_error_is_exception(self):
        assert issubclass(OrganizerError, Exception)


class TestAttributes:
    def test_path_resolution_error(self):
        err = PathResolutionError("/nope", "no such file or directory")
        assert err.path == Path("/nope")
        assert "no such file" in str(err)

    def test_metadata_error(self):
        err = MetadataError(Path("/b/metadata.json"), "invalid JSON")
        assert err.source_path == "/b/metadata.json"
        assert err.reason == "invalid JSON"
        assert "invalid JSON" in str(err)

    def test_file_operation_error(self):
        err = FileOperationError("/a/x.mp3", "/b/x.mp3", "target already exists")
        assert err.source == Path("/a/x.mp3")
        assert err.target == Path("/b/x.mp3")
        assert "target already exists" in str(err)
