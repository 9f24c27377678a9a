"""Tests for models.py -- enums, metadata record, album groups, journal entries."""

from pathlib import Path

import pytest

from audiobook_organizer.errors import MetadataInvalidError
from audiobook_organizer.models import (
    INVALID_SERIES,
    AlbumGroup,
    JournalEntry,
    Layout,
    Metadata,
    SeriesFormat,
    SourceType,
    Summary,
    is_audio_file,
    is_epub_file,
)


class TestLayout:
    def test_values(self):
        assert Layout.AUTHOR_ONLY == "author-only"
        assert Layout.SERIES_TITLE_NUMBER == "series-title-number"

    def test_parse_known(self):
        assert Layout.parse("author-series-title-number") is Layout.AUTHOR_SERIES_TITLE_NUMBER
        assert Layout.parse(" Series-Title ") is Layout.SERIES_TITLE

    def test_parse_empty_is_default(self):
        assert Layout.parse("") is Layout.AUTHOR_SERIES_TITLE
        assert Layout.parse(None) is Layout.AUTHOR_SERIES_TITLE

    def test_parse_unknown_falls_back_to_author_title(self):
        assert Layout.parse("nonsense") is Layout.AUTHOR_TITLE

    def test_numbered(self):
        assert Layout.AUTHOR_SERIES_TITLE_NUMBER.numbered
        assert Layout.SERIES_TITLE_NUMBER.numbered
        assert not Layout.AUTHOR_SERIES_TITLE.numbered

    def test_uses_series(self):
        assert not Layout.AUTHOR_ONLY.uses_series
        assert not Layout.AUTHOR_TITLE.uses_series
        assert Layout.SERIES_TITLE.uses_series


class TestSeriesFormat:
    def test_parse(self):
        assert SeriesFormat.parse("hash") is SeriesFormat.HASH
        assert SeriesFormat.parse("bracket") is SeriesFormat.BRACKET

    def test_unknown_is_bracket(self):
        assert SeriesFormat.parse("roman") is SeriesFormat.BRACKET
        assert SeriesFormat.parse("") is SeriesFormat.BRACKET


class TestExtensions:
    def test_audio(self):
        for name in ("a.mp3", "a.M4B", "a.m4a", "a.ogg", "a.flac"):
            assert is_audio_file(name)
        assert not is_audio_file("a.epub")
        assert not is_audio_file("cover.jpg")

    def test_epub(self):
        assert is_epub_file(Path("book.EPUB"))
        assert not is_epub_file("book.pdf")


class TestMetadata:
    def test_valid(self):
        assert Metadata(title="T", authors=["A"]).is_valid()

    def test_invalid_without_title(self):
        metadata = Metadata(authors=["A"], source_path="x.json")
        assert not metadata.is_valid()
        with pytest.raises(MetadataInvalidError, match="title"):
            metadata.validate()

    def test_invalid_with_only_empty_authors(self):
        metadata = Metadata(title="T", authors=["", ""])
        assert not metadata.is_valid()
        with pytest.raises(MetadataInvalidError, match="authors"):
            metadata.validate()

    def test_valid_series_cleans_suffix(self):
        metadata = Metadata(series=["Mistborn #2"])
        assert metadata.full_valid_series() == "Mistborn #2"
        assert metadata.valid_series() == "Mistborn"

    def test_valid_series_skips_sentinel_and_sorts(self):
        metadata = Metadata(series=["Zeta", INVALID_SERIES, "", "Alpha"])
        assert metadata.valid_series() == "Alpha"

    def test_valid_series_only_sentinel(self):
        assert Metadata(series=[INVALID_SERIES]).valid_series() == ""

    def test_first_author_default(self):
        assert Metadata(authors=[]).first_author("Unknown") == "Unknown"
        assert Metadata(authors=["A", "B"]).first_author() == "A"

    def test_source_label(self):
        assert Metadata(source_type=SourceType.EPUB).source_label == "EPUB embedded metadata"
        assert Metadata(source_type=SourceType.JSON).source_label == "JSON metadata file"

    def test_copy_is_independent(self):
        original = Metadata(title="T", authors=["A"], raw_data={"k": 1})
        clone = original.copy()
        clone.authors.append("B")
        clone.raw_data["k"] = 2
        assert original.authors == ["A"]
        assert original.raw_data == {"k": 1}


class TestAlbumGroup:
    def test_sort_numbered_first_then_by_name(self, tmp_path):
        group = AlbumGroup(metadata=Metadata(title="T"))
        group.add_file(tmp_path / "zz.mp3", 0)
        group.add_file(tmp_path / "b.mp3", 2)
        group.add_file(tmp_path / "aa.mp3", 0)
        group.add_file(tmp_path / "c.mp3", 1)
        group.sort_files()
        assert [p.name for p in group.files] == ["c.mp3", "b.mp3", "aa.mp3", "zz.mp3"]
        assert group.track_for(tmp_path / "b.mp3") == 2
        assert group.track_for(tmp_path / "missing.mp3") == 0


class TestJournalEntry:
    def test_dict_shape(self):
        entry = JournalEntry(source_path="/s", target_path="/t", files=["a.mp3"])
        data = entry.to_dict()
        assert set(data) == {"timestamp", "source_path", "target_path", "files"}
        assert data["timestamp"].endswith("Z")

    def test_from_dict(self):
        entry = JournalEntry.from_dict(
            {"timestamp": "2024-01-01T00:00:00Z", "source_path": "/s", "target_path": "/t"}
        )
        assert entry.files == []
        assert entry.source_path == "/s"


class TestSummary:
    def test_add_move(self, tmp_path):
        summary = Summary()
        summary.add_move(tmp_path / "a", tmp_path / "b")
        assert len(summary.moves) == 1
        assert summary.moves[0].target == tmp_path / "b"
