"""Tests for ops/journal.py -- persistence, loading, and undo."""

import json

import pytest

from audiobook_organizer.errors import JournalCorruptError, JournalMissingError
from audiobook_organizer.models import JournalEntry
from audiobook_organizer.ops.journal import Journal


def _moved_book(tmp_path, names=("a.mp3", "b.mp3"), renamed=None):
    """Simulate one moved unit; returns (source_dir, target_dir, entry, source_files)."""
    source_dir = tmp_path / "src"
    target_dir = tmp_path / "lib" / "Author" / "Book"
    target_dir.mkdir(parents=True)
    moved_names = list(renamed or names)
    for name in moved_names:
        (target_dir / name).write_bytes(name.encode())
    entry = JournalEntry(
        source_path=str(source_dir), target_path=str(target_dir), files=moved_names
    )
    return source_dir, target_dir, entry, list(names)


class TestRecord:
    def test_writes_json_array(self, tmp_path):
        journal = Journal(tmp_path / ".abook-org.log")
        journal.append(JournalEntry(source_path="/s", target_path="/t", files=["a.mp3"]))
        journal.append(JournalEntry(source_path="/s2", target_path="/t2", files=["b.mp3"]))
        data = json.loads((tmp_path / ".abook-org.log").read_text())
        assert [e["source_path"] for e in data] == ["/s", "/s2"]
        assert "source_files" not in data[0]
        assert len(journal) == 2

    def test_records_renamed_sources(self, tmp_path):
        journal = Journal(tmp_path / ".abook-org.log")
        journal.append(
            JournalEntry(source_path="/s", target_path="/t", files=["01 - a.mp3"]),
            source_files=["a.mp3"],
        )
        data = json.loads((tmp_path / ".abook-org.log").read_text())
        assert data[0]["files"] == ["01 - a.mp3"]
        assert data[0]["source_files"] == ["a.mp3"]

    def test_write_failure_is_not_fatal(self, tmp_path):
        journal = Journal(tmp_path / "missing-dir" / ".abook-org.log")
        journal.append(JournalEntry(source_path="/s", target_path="/t"))
        assert len(journal) == 1

    def test_no_temp_files_left(self, tmp_path):
        journal = Journal(tmp_path / ".abook-org.log")
        journal.append(JournalEntry(source_path="/s", target_path="/t"))
        assert [p.name for p in tmp_path.iterdir()] == [".abook-org.log"]


class TestLoad:
    def test_missing(self, tmp_path):
        with pytest.raises(JournalMissingError):
            Journal.load(tmp_path / ".abook-org.log")

    def test_corrupt(self, tmp_path):
        path = tmp_path / ".abook-org.log"
        path.write_text("[{broken")
        with pytest.raises(JournalCorruptError):
            Journal.load(path)

    def test_not_an_array(self, tmp_path):
        path = tmp_path / ".abook-org.log"
        path.write_text('{"files": []}')
        with pytest.raises(JournalCorruptError):
            Journal.load(path)

    def test_malformed_entry(self, tmp_path):
        path = tmp_path / ".abook-org.log"
        path.write_text('[{"files": []}]')
        with pytest.raises(JournalCorruptError):
            Journal.load(path)

    def test_round_trip(self, tmp_path):
        path = tmp_path / ".abook-org.log"
        journal = Journal(path)
        journal.append(
            JournalEntry(source_path="/s", target_path="/t", files=["01 - a.mp3"]),
            source_files=["a.mp3"],
        )
        loaded = Journal.load(path)
        assert loaded.entries[0].files == ["01 - a.mp3"]
        assert loaded.restore_pairs()[0][1].name == "a.mp3"


class TestUndo:
    def test_restores_and_deletes_journal(self, tmp_path):
        source_dir, target_dir, entry, _ = _moved_book(tmp_path)
        path = tmp_path / ".abook-org.log"
        Journal(path).append(entry)

        result = Journal.load(path).undo()
        assert sorted(p.name for p in source_dir.iterdir()) == ["a.mp3", "b.mp3"]
        assert (source_dir / "a.mp3").read_bytes() == b"a.mp3"
        assert len(result.restored) == 2
        assert result.failed == []
        assert not path.exists()

    def test_restores_original_names(self, tmp_path):
        source_dir, _, entry, names = _moved_book(
            tmp_path, names=("a.mp3",), renamed=("01 - a.mp3",)
        )
        path = tmp_path / ".abook-org.log"
        Journal(path).append(entry, source_files=names)
        Journal.load(path).undo()
        assert [p.name for p in source_dir.iterdir()] == ["a.mp3"]

    def test_missing_file_is_skipped(self, tmp_path):
        source_dir, target_dir, entry, _ = _moved_book(tmp_path)
        (target_dir / "a.mp3").unlink()
        path = tmp_path / ".abook-org.log"
        Journal(path).append(entry)
        result = Journal.load(path).undo()
        assert [p.name for p in source_dir.iterdir()] == ["b.mp3"]
        assert len(result.failed) == 1
        assert not path.exists()

    def test_reverse_order(self, tmp_path):
        # a.mp3 moved s -> t1, then t1 -> t2; undo must unwind newest first
        s, t1, t2 = tmp_path / "s", tmp_path / "t1", tmp_path / "t2"
        t2.mkdir()
        (t2 / "a.mp3").write_bytes(b"x")
        path = tmp_path / ".abook-org.log"
        journal = Journal(path)
        journal.append(JournalEntry(source_path=str(s), target_path=str(t1), files=["a.mp3"]))
        journal.append(JournalEntry(source_path=str(t1), target_path=str(t2), files=["a.mp3"]))
        result = Journal.load(path).undo()
        assert (s / "a.mp3").read_bytes() == b"x"
        assert result.failed == []
