"""Tests for ops/cleanup.py -- empty-directory pruning."""

from audiobook_organizer.ops.cleanup import find_empty_dirs, is_empty_dir, remove_empty_dirs


class TestFindEmptyDirs:
    def test_deepest_first(self, tmp_path):
        (tmp_path / "a" / "b" / "c").mkdir(parents=True)
        (tmp_path / "d").mkdir()
        found = find_empty_dirs(tmp_path)
        assert found[0] == tmp_path / "a" / "b" / "c"
        assert tmp_path / "d" in found
        assert tmp_path not in found

    def test_skips_output_dir(self, tmp_path):
        out = tmp_path / "out"
        (out / "empty").mkdir(parents=True)
        assert find_empty_dirs(tmp_path, output_dir=out) == []


class TestRemoveEmptyDirs:
    def test_removes_nested_chain(self, tmp_path):
        (tmp_path / "a" / "b" / "c").mkdir(parents=True)
        removed = remove_empty_dirs(tmp_path)
        assert not (tmp_path / "a").exists()
        assert tmp_path.exists()
        assert len(removed) == 3

    def test_keeps_directories_with_files(self, tmp_path):
        keep = tmp_path / "keep"
        keep.mkdir()
        (keep / "file.txt").write_text("x")
        (tmp_path / "empty").mkdir()
        remove_empty_dirs(tmp_path)
        assert keep.exists()
        assert not (tmp_path / "empty").exists()

    def test_never_removes_base_or_output(self, tmp_path):
        out = tmp_path / "out"
        out.mkdir()
        remove_empty_dirs(tmp_path, output_dir=out)
        assert tmp_path.exists()
        assert out.exists()

    def test_declined_directory_kept(self, tmp_path):
        (tmp_path / "a" / "b").mkdir(parents=True)
        asked = []

        def _confirm(directory):
            asked.append(directory)
            return False

        assert remove_empty_dirs(tmp_path, confirm=_confirm) == []
        assert (tmp_path / "a" / "b").exists()
        assert asked == [tmp_path / "a" / "b"]

    def test_is_empty_dir(self, tmp_path):
        assert is_empty_dir(tmp_path)
        (tmp_path / "f").write_text("x")
        assert not is_empty_dir(tmp_path)
        assert not is_empty_dir(tmp_path / "missing")
