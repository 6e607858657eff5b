"""
Unit tests for the filesystem indexer.

Tests traversal, post-order emptiness, symlink handling, partial-failure
recovery and parallel traversal of the FSIndexer class.
"""

import os
import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from guessfs.errors import InvalidOptionsError, IoError
from guessfs.models.index import EntryKind, IndexOptions
from guessfs.tools.fs_indexer import FSIndexer, build_index
from guessfs.tools.path_filter import PathFilter, RULE_EMPTY, RULE_HIDDEN, RULE_TYPE


class TestFSIndexer:
    """Test cases for the FSIndexer class."""

    def setup_method(self):
        """Set up a temporary directory tree."""
        self.temp_dir = tempfile.mkdtemp()
        self.root = Path(self.temp_dir).resolve()
        self._create_test_structure()

        # Test trees live under the temporary directory, so no default prefixes
        self.path_filter = PathFilter(system_prefixes=[], temporary_prefixes=[])
        self.indexer = FSIndexer(path_filter=self.path_filter, max_workers=1)

    def teardown_method(self):
        """Clean up the temporary directory tree."""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _create_test_structure(self):
        test_files = {
            "docs/report.txt": "quarterly numbers",
            "docs/notes.md": "meeting notes",
            "docs/empty.txt": "",
            "src/main.py": "print('hi')",
            "src/util.py": "def util(): pass",
            ".hidden/secret.txt": "hush",
            "top.txt": "top level",
        }
        for relative, content in test_files.items():
            full_path = self.root / relative
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_text(content)

        (self.root / "hollow").mkdir()
        (self.root / "nest" / "inner").mkdir(parents=True)

    def _options(self, **overrides):
        data = {'path': str(self.root)}
        data.update(overrides)
        return IndexOptions(**data)

    def _relative_paths(self, index):
        return sorted(index.relative_path(entry.path) for entry in index.entries)

    def test_build_files_only(self):
        """Test indexing files with default options."""
        index = self.indexer.build(self._options())

        assert self._relative_paths(index) == [
            ".hidden/secret.txt",
            "docs/empty.txt",
            "docs/notes.md",
            "docs/report.txt",
            "src/main.py",
            "src/util.py",
            "top.txt",
        ]
        assert all(entry.kind == EntryKind.FILE for entry in index.entries)

    def test_build_with_directories(self):
        """Test that directories are indexed and the root never is."""
        index = self.indexer.build(self._options(index_directories=True))

        directories = sorted(index.relative_path(entry.path) for entry in index.directories())
        assert directories == [".hidden", "docs", "hollow", "nest", "nest/inner", "src"]
        assert index.get(str(self.root)) is None

    def test_every_entry_satisfies_filter(self):
        """Test that re-running the filter admits every returned entry."""
        options = self._options(
            index_directories=True,
            exclude_hidden=True,
            exclude_empty=True,
            file_types=["txt", "py"],
        )
        index = self.indexer.build(options)

        assert len(index) > 0
        for entry in index.entries:
            assert self.path_filter.admit(entry, options), entry.path

    def test_exclude_empty_is_post_order(self):
        """Test that emptiness propagates from children to parents."""
        index = self.indexer.build(self._options(index_directories=True, exclude_empty=True))
        paths = self._relative_paths(index)

        assert "docs/empty.txt" not in paths
        assert "hollow" not in paths
        assert "nest/inner" not in paths
        # nest only holds an empty directory
        assert "nest" not in paths
        assert "docs" in paths
        assert index.stats.excluded[RULE_EMPTY] == 4

    def test_emptiness_ignores_selection(self):
        """Test that unselected children still make a directory non-empty."""
        options = self._options(index_directories=True, exclude_empty=True, file_types=[".md"])
        index = self.indexer.build(options)
        paths = self._relative_paths(index)

        assert "src" in paths
        assert "src/main.py" not in paths
        assert "docs/notes.md" in paths

    def test_exclude_hidden_prunes_subtree(self):
        """Test that an excluded directory is not descended into."""
        index = self.indexer.build(self._options(exclude_hidden=True))
        paths = self._relative_paths(index)

        assert ".hidden/secret.txt" not in paths
        assert index.stats.excluded[RULE_HIDDEN] == 1

    def test_directories_only_counts_files_as_unselected(self):
        """Test exclusion counts for the type filter."""
        index = self.indexer.build(self._options(index_directories=True, index_files=False))

        assert index.files() == []
        assert index.stats.excluded[RULE_TYPE] == 7

    def test_stats(self):
        """Test traversal statistics."""
        index = self.indexer.build(self._options())
        stats = index.stats

        # root, docs, src, .hidden, hollow, nest, nest/inner
        assert stats.directories_traversed == 7
        assert stats.entries_admitted == len(index)
        assert stats.errors == 0
        assert stats.duration_seconds >= 0

    def test_entries_sorted_and_stable(self):
        """Test that repeated builds give the same order."""
        first = self.indexer.build(self._options(index_directories=True))
        second = self.indexer.build(self._options(index_directories=True))

        paths = [entry.path for entry in first.entries]
        assert paths == sorted(paths)
        assert paths == [entry.path for entry in second.entries]

    def test_parallel_build_matches_serial(self):
        """Test that parallel traversal gives the same entries."""
        options = self._options(index_directories=True, exclude_empty=True)
        serial = self.indexer.build(options)
        parallel = FSIndexer(path_filter=self.path_filter, max_workers=4).build(options)

        assert [e.path for e in serial.entries] == [e.path for e in parallel.entries]
        assert serial.stats.excluded == parallel.stats.excluded

    def test_symlinks_are_not_followed(self):
        """Test that symbolic links are skipped."""
        try:
            os.symlink(self.root / "docs", self.root / "docs_link")
            os.symlink(self.root / "top.txt", self.root / "top_link.txt")
        except (OSError, NotImplementedError):
            pytest.skip("Symbolic links not supported")

        index = self.indexer.build(self._options(index_directories=True))
        paths = self._relative_paths(index)

        assert not any(path.startswith("docs_link") for path in paths)
        assert "top_link.txt" not in paths
        assert index.stats.symlinks_skipped == 2

    def test_unreadable_subtree_is_skipped(self):
        """Test that a failing subtree is recorded and skipped."""
        original = FSIndexer._list_directory
        failing = str(self.root / "src")

        def flaky_list(indexer, path):
            if path == failing:
                raise PermissionError(13, "Permission denied", path)
            return original(indexer, path)

        with patch.object(FSIndexer, '_list_directory', flaky_list):
            index = self.indexer.build(self._options())

        paths = self._relative_paths(index)
        assert "src/main.py" not in paths
        assert "docs/report.txt" in paths
        assert index.stats.errors == 1
        assert index.stats.skipped_paths == [failing]

    def test_missing_root(self):
        """Test that a missing root is an I/O error."""
        with pytest.raises(IoError, match="does not exist"):
            self.indexer.build(self._options(path=str(self.root / "missing")))

    def test_root_is_a_file(self):
        """Test that a file root is an I/O error."""
        with pytest.raises(IoError, match="not a directory"):
            self.indexer.build(self._options(path=str(self.root / "top.txt")))

    def test_unreadable_root(self):
        """Test that a root that cannot be listed is an I/O error."""
        with patch.object(FSIndexer, '_list_directory', side_effect=PermissionError("denied")):
            with pytest.raises(IoError, match="Cannot read index root"):
                self.indexer.build(self._options())

    def test_nothing_selected(self):
        """Test that options selecting nothing are rejected."""
        with pytest.raises(InvalidOptionsError):
            self.indexer.build(self._options(index_files=False, index_directories=False))

    def test_build_index_function(self):
        """Test the convenience function."""
        index = build_index(self._options(file_types=["py"]), path_filter=self.path_filter)
        assert self._relative_paths(index) == ["src/main.py", "src/util.py"]
