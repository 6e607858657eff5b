"""
Filesystem indexer for GuessFS.

This module walks a root directory, resolves the metadata the path filter
needs, and assembles an immutable ``Index`` of admitted entries. Traversal is
post-order so directory emptiness can be decided from already-resolved
children, symbolic links are never followed, and errors on individual
subtrees are recorded and skipped instead of aborting the build.
"""

import os
import stat
import time
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from datetime import datetime
from concurrent.futures import ThreadPoolExecutor
import logging

from ..errors import IoError
from ..models.index import EntryKind, EntryMetadata, Index, IndexEntry, IndexOptions, IndexStats
from .path_filter import PathFilter


logger = logging.getLogger(__name__)


class _BuildState:
    """Shared bookkeeping for one build, guarded by a single lock."""

    def __init__(self):
        self.lock = threading.Lock()
        self.visited: set = set()
        self.directories_traversed = 0
        self.entries_seen = 0
        self.symlinks_skipped = 0
        self.excluded: Dict[str, int] = {}
        self.skipped_paths: List[str] = []

    def enter(self, canonical: str) -> bool:
        """Mark a canonical directory as visited; False if it already was."""
        with self.lock:
            if canonical in self.visited:
                return False
            self.visited.add(canonical)
            return True

    def count_directory(self) -> None:
        with self.lock:
            self.directories_traversed += 1

    def count_seen(self) -> None:
        with self.lock:
            self.entries_seen += 1

    def count_symlink(self) -> None:
        with self.lock:
            self.symlinks_skipped += 1

    def count_excluded(self, rule: str) -> None:
        with self.lock:
            self.excluded[rule] = self.excluded.get(rule, 0) + 1

    def record_error(self, path: str, error: Exception) -> None:
        logger.warning(f"Skipping subtree {path}: {error}")
        with self.lock:
            self.skipped_paths.append(path)


class FSIndexer:
    """
    Filesystem indexer that builds an ``Index`` from ``IndexOptions``.

    This class provides:
    - Post-order traversal so directory emptiness is decidable
    - Symlink and cycle protection (visited canonical paths)
    - Partial-failure recovery for unreadable subtrees
    - Parallel traversal of the root's top-level subtrees
    """

    def __init__(self, path_filter: Optional[PathFilter] = None, max_workers: int = 4):
        """
        Initialize the indexer.

        Args:
            path_filter: Filter applied to every entry (default PathFilter if None)
            max_workers: Threads used to traverse top-level subtrees
        """
        self.path_filter = path_filter or PathFilter()
        self.max_workers = max(1, max_workers)

    def build(self, options: IndexOptions) -> Index:
        """
        Build an index for the given options.

        Args:
            options: Inclusion and exclusion rules, including the root path

        Returns:
            Immutable Index whose entries all satisfy the path filter

        Raises:
            InvalidOptionsError: If no entry kind is selected or the regex is invalid
            IoError: If the root does not exist, is not a directory, or is unreadable
        """
        self.path_filter.check_options(options)

        root_path = Path(options.path)
        if not root_path.exists():
            raise IoError(f"Index root does not exist: {root_path}")
        if not root_path.is_dir():
            raise IoError(f"Index root is not a directory: {root_path}")

        try:
            children = self._list_directory(str(root_path))
        except OSError as e:
            raise IoError(f"Cannot read index root {root_path}: {e}") from e

        logger.info(f"Indexing directory tree: {root_path}")
        start = time.perf_counter()

        state = _BuildState()
        state.enter(os.path.realpath(root_path))
        state.count_directory()

        entries: List[IndexEntry] = []
        subdirectories: List[str] = []

        for child in children:
            kind = self._classify(child, state)
            if kind == EntryKind.DIRECTORY:
                subdirectories.append(child.path)
            elif kind == EntryKind.FILE:
                entries.extend(self._visit_file(child, options, state)[0])

        if self.max_workers > 1 and len(subdirectories) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [
                    executor.submit(self._visit_directory, path, options, state)
                    for path in subdirectories
                ]
                results = [future.result() for future in futures]
        else:
            results = [self._visit_directory(path, options, state) for path in subdirectories]

        for subtree_entries, _ in results:
            entries.extend(subtree_entries)

        entries.sort(key=lambda entry: entry.path)
        duration = time.perf_counter() - start

        stats = IndexStats(
            directories_traversed=state.directories_traversed,
            entries_seen=state.entries_seen,
            entries_admitted=len(entries),
            excluded=dict(state.excluded),
            symlinks_skipped=state.symlinks_skipped,
            errors=len(state.skipped_paths),
            skipped_paths=sorted(state.skipped_paths),
            duration_seconds=duration,
        )

        logger.info(
            f"Indexing completed in {duration:.3f}s "
            f"({sum(1 for e in entries if e.is_directory())} directories, "
            f"{sum(1 for e in entries if e.is_file())} files, "
            f"{stats.total_excluded()} excluded, {stats.errors} errors)"
        )

        return Index(options=options, entries=tuple(entries), stats=stats, built_at=datetime.now())

    def _list_directory(self, path: str) -> List[os.DirEntry]:
        """List a directory sorted by name so results are stable."""
        with os.scandir(path) as iterator:
            return sorted(iterator, key=lambda child: child.name)

    def _classify(self, child: os.DirEntry, state: _BuildState) -> Optional[EntryKind]:
        """
        Determine the kind of a directory entry without following links.

        Returns:
            EntryKind, or None for symlinks and entries that cannot be inspected
        """
        try:
            if child.is_symlink():
                state.count_symlink()
                return None
            if child.is_dir(follow_symlinks=False):
                return EntryKind.DIRECTORY
            if child.is_file(follow_symlinks=False):
                return EntryKind.FILE
        except OSError as e:
            state.record_error(child.path, e)
            return None
        # Sockets, FIFOs and devices are not part of the game
        return None

    def _visit_file(
        self,
        child: os.DirEntry,
        options: IndexOptions,
        state: _BuildState
    ) -> Tuple[List[IndexEntry], bool]:
        """
        Evaluate a single file.

        Returns:
            Tuple of (admitted entries, whether the file is eligible)
        """
        try:
            stat_result = child.stat(follow_symlinks=False)
        except OSError as e:
            state.record_error(child.path, e)
            return [], False

        entry = IndexEntry(
            path=child.path,
            kind=EntryKind.FILE,
            size=stat_result.st_size,
            metadata=self._extract_metadata(child.path, stat_result, is_dir=False),
        )
        return self._evaluate(entry, options, state)

    def _visit_directory(
        self,
        path: str,
        options: IndexOptions,
        state: _BuildState
    ) -> Tuple[List[IndexEntry], bool]:
        """
        Recursively evaluate a directory and its subtree, children first.

        Returns:
            Tuple of (admitted entries in the subtree, whether the directory is eligible)
        """
        try:
            stat_result = os.stat(path, follow_symlinks=False)
        except OSError as e:
            state.record_error(path, e)
            return [], False

        metadata = self._extract_metadata(path, stat_result, is_dir=True)
        provisional = IndexEntry(path=path, kind=EntryKind.DIRECTORY, metadata=metadata)

        # Rules that do not depend on children prune the whole subtree
        state.count_seen()
        rule = self.path_filter.excluded_by(provisional, options, check_empty=False)
        if rule is not None:
            logger.debug(f"Pruned {path} ({rule})")
            state.count_excluded(rule)
            return [], False

        if not state.enter(os.path.realpath(path)):
            logger.debug(f"Already visited {path}, not re-entering")
            return [], False

        entries: List[IndexEntry] = []
        eligible_children = 0

        try:
            children = self._list_directory(path)
        except OSError as e:
            state.record_error(path, e)
            children = []
        else:
            state.count_directory()

        for child in children:
            kind = self._classify(child, state)
            if kind == EntryKind.DIRECTORY:
                subtree_entries, eligible = self._visit_directory(child.path, options, state)
            elif kind == EntryKind.FILE:
                subtree_entries, eligible = self._visit_file(child, options, state)
            else:
                continue
            entries.extend(subtree_entries)
            if eligible:
                eligible_children += 1

        entry = IndexEntry(
            path=path,
            kind=EntryKind.DIRECTORY,
            metadata=metadata.model_copy(update={'eligible_children': eligible_children}),
        )

        rule = self.path_filter.excluded_by(entry, options)
        if rule is not None:
            state.count_excluded(rule)
            return entries, False

        rule = self.path_filter.unselected_by(entry, options)
        if rule is not None:
            state.count_excluded(rule)
        else:
            entries.append(entry)
        return entries, True

    def _evaluate(
        self,
        entry: IndexEntry,
        options: IndexOptions,
        state: _BuildState
    ) -> Tuple[List[IndexEntry], bool]:
        state.count_seen()
        rule = self.path_filter.excluded_by(entry, options)
        if rule is not None:
            state.count_excluded(rule)
            return [], False

        rule = self.path_filter.unselected_by(entry, options)
        if rule is not None:
            state.count_excluded(rule)
            return [], True

        return [entry], True

    def _extract_metadata(self, path: str, stat_result: os.stat_result, is_dir: bool) -> EntryMetadata:
        """
        Resolve the metadata the path filter needs.

        Args:
            path: Entry path
            stat_result: Result of a non-following stat call
            is_dir: Whether the entry is a directory

        Returns:
            EntryMetadata for the entry
        """
        # st_file_attributes only exists on Windows
        attributes = getattr(stat_result, 'st_file_attributes', 0)

        mode = os.R_OK | os.X_OK if is_dir else os.R_OK
        readable = os.access(path, mode)

        return EntryMetadata(
            is_hidden=bool(attributes & stat.FILE_ATTRIBUTE_HIDDEN),
            is_system=bool(attributes & stat.FILE_ATTRIBUTE_SYSTEM),
            is_temporary=bool(attributes & stat.FILE_ATTRIBUTE_TEMPORARY),
            readable=readable,
        )


def build_index(
    options: IndexOptions,
    path_filter: Optional[PathFilter] = None,
    max_workers: int = 4
) -> Index:
    """
    Convenience function to build an index.

    Args:
        options: Inclusion and exclusion rules
        path_filter: Filter to apply (default PathFilter if None)
        max_workers: Threads used to traverse top-level subtrees

    Returns:
        Immutable Index
    """
    return FSIndexer(path_filter=path_filter, max_workers=max_workers).build(options)
