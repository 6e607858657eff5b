"""
Path filter for GuessFS.

This module implements the exclusion and inclusion policy applied to every
entry the indexer visits. The filter is pure: it only looks at the entry's
path and at metadata the indexer already resolved, never at the filesystem.

Rules are evaluated in a fixed order and the first failing rule rejects the
entry. The first seven rules decide *eligibility* (whether an entry exists for
the game at all); the last two decide *selection* (whether an eligible entry
is the kind the index collects). Directory emptiness counts eligible children.
"""

import os
import re
import platform
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional

from ..errors import InvalidOptionsError
from ..models.index import IndexEntry, IndexOptions


RULE_EXCLUDED_PATHS = "excluded_paths"
RULE_EXCLUDED_FILES = "excluded_files"
RULE_EXCLUDED_REGEX = "excluded_regex"
RULE_HIDDEN = "exclude_hidden"
RULE_SYSTEM = "exclude_system"
RULE_TEMPORARY = "exclude_temporary"
RULE_EMPTY = "exclude_empty"
RULE_ADMIN = "exclude_admin"
RULE_TYPE = "index_type"
RULE_FILE_TYPES = "file_types"

RULE_ORDER = [
    RULE_EXCLUDED_PATHS,
    RULE_EXCLUDED_FILES,
    RULE_EXCLUDED_REGEX,
    RULE_HIDDEN,
    RULE_SYSTEM,
    RULE_TEMPORARY,
    RULE_EMPTY,
    RULE_ADMIN,
    RULE_TYPE,
    RULE_FILE_TYPES,
]

TEMPORARY_NAMES = {"temp", "tmp"}
TEMPORARY_SUFFIXES = (".tmp",)


def default_system_prefixes() -> List[str]:
    """
    Get the platform-specific set of operating system locations.

    Returns:
        List of system directory paths
    """
    system = platform.system().lower()

    if system == "windows":
        return [
            "C:\\Windows",
            "C:\\Program Files",
            "C:\\Program Files (x86)",
            "C:\\ProgramData",
            "C:\\System Volume Information",
            "C:\\$Recycle.Bin",
            "C:\\Recovery",
        ]

    prefixes = [
        "/etc",
        "/var/log",
        "/dev",
        "/proc",
        "/sys",
    ]

    if system == "darwin":
        prefixes.extend([
            "/System",
            "/Library/System",
            "/private",
            "/var/root",
            "/usr/lib",
            "/usr/libexec",
            "/bin",
            "/sbin",
            "/.Trashes",
        ])
    else:
        prefixes.extend([
            "/boot",
            "/root",
            "/run",
            "/var/lib",
            "/usr/lib",
            "/lib",
            "/sbin",
            "/bin",
            "/lost+found",
        ])

    return prefixes


def default_temporary_prefixes() -> List[str]:
    """
    Get the temporary directories of the current environment.

    Returns:
        List of temporary directory paths (deduplicated, in discovery order)
    """
    candidates = [tempfile.gettempdir()]
    for var in ("TEMP", "TMP", "TMPDIR"):
        value = os.environ.get(var)
        if value:
            candidates.append(value)

    prefixes: List[str] = []
    for candidate in candidates:
        try:
            resolved = str(Path(candidate).expanduser().resolve())
        except (OSError, RuntimeError):
            continue
        if resolved not in prefixes:
            prefixes.append(resolved)
    return prefixes


def compile_excluded_regex(pattern: Optional[str]) -> Optional[re.Pattern]:
    """
    Compile the exclusion regex of an options object.

    Raises:
        InvalidOptionsError: If the pattern is not a valid regular expression
    """
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidOptionsError(f"Invalid exclusion regex '{pattern}': {e}") from e


def _normalize(path: str) -> str:
    return os.path.normcase(os.path.normpath(path))


def _is_at_or_below(path: str, prefix: str) -> bool:
    """Check whether ``path`` equals ``prefix`` or lies inside it."""
    path = _normalize(path)
    prefix = _normalize(prefix)
    if path == prefix:
        return True
    return path.startswith(prefix.rstrip(os.sep) + os.sep)


class PathFilter:
    """
    Predicate layer implementing the exclusion and inclusion policy.

    The system and temporary prefix sets default to the platform's locations
    and can be replaced, which keeps the filter deterministic under test.
    """

    def __init__(
        self,
        system_prefixes: Optional[Iterable[str]] = None,
        temporary_prefixes: Optional[Iterable[str]] = None
    ):
        """
        Initialize the path filter.

        Args:
            system_prefixes: Operating system locations (platform defaults if None)
            temporary_prefixes: Temporary directories (environment defaults if None)
        """
        self.system_prefixes = list(
            default_system_prefixes() if system_prefixes is None else system_prefixes
        )
        self.temporary_prefixes = list(
            default_temporary_prefixes() if temporary_prefixes is None else temporary_prefixes
        )
        self._regex_cache: dict = {}

    def _regex_for(self, options: IndexOptions) -> Optional[re.Pattern]:
        pattern = options.excluded_regex
        if pattern not in self._regex_cache:
            self._regex_cache[pattern] = compile_excluded_regex(pattern)
        return self._regex_cache[pattern]

    def check_options(self, options: IndexOptions) -> None:
        """
        Validate options before a build.

        Raises:
            InvalidOptionsError: If nothing is selected or the regex is invalid
        """
        if not options.selects_anything():
            raise InvalidOptionsError(
                "At least one of index_directories or index_files must be enabled"
            )
        self._regex_for(options)

    def excluded_by(
        self,
        entry: IndexEntry,
        options: IndexOptions,
        check_empty: bool = True
    ) -> Optional[str]:
        """
        Evaluate the eligibility rules.

        Args:
            entry: Entry to check
            options: Options the index is built from
            check_empty: Whether to apply the emptiness rule (skipped while a
                directory's children are not resolved yet)

        Returns:
            Name of the first failing rule, or None if the entry is eligible
        """
        path = entry.path
        name = entry.name

        for excluded in options.excluded_paths:
            excluded_path = excluded
            if not os.path.isabs(excluded_path):
                excluded_path = os.path.join(options.path, excluded_path)
            if _is_at_or_below(path, excluded_path):
                return RULE_EXCLUDED_PATHS

        for excluded in options.excluded_files:
            if os.path.normcase(name) == os.path.normcase(excluded):
                return RULE_EXCLUDED_FILES
            suffix = _normalize(excluded)
            if _normalize(path).endswith(os.sep + suffix.lstrip(os.sep)):
                return RULE_EXCLUDED_FILES

        regex = self._regex_for(options)
        if regex is not None and regex.search(path):
            return RULE_EXCLUDED_REGEX

        if options.exclude_hidden and (name.startswith('.') or entry.metadata.is_hidden):
            return RULE_HIDDEN

        if options.exclude_system:
            if entry.metadata.is_system:
                return RULE_SYSTEM
            if any(_is_at_or_below(path, prefix) for prefix in self.system_prefixes):
                return RULE_SYSTEM

        if options.exclude_temporary:
            if entry.metadata.is_temporary:
                return RULE_TEMPORARY
            lower = name.lower()
            if lower in TEMPORARY_NAMES or lower.endswith(TEMPORARY_SUFFIXES):
                return RULE_TEMPORARY
            if any(_is_at_or_below(path, prefix) for prefix in self.temporary_prefixes):
                return RULE_TEMPORARY

        if options.exclude_empty and check_empty:
            if entry.is_file() and entry.size == 0:
                return RULE_EMPTY
            if entry.is_directory() and entry.metadata.eligible_children == 0:
                return RULE_EMPTY

        if options.exclude_admin and not entry.metadata.readable:
            return RULE_ADMIN

        return None

    def unselected_by(self, entry: IndexEntry, options: IndexOptions) -> Optional[str]:
        """
        Evaluate the selection rules (entry kind and extension allow-list).

        Returns:
            Name of the failing rule, or None if the entry is selected
        """
        if entry.is_directory() and not options.index_directories:
            return RULE_TYPE
        if entry.is_file() and not options.index_files:
            return RULE_TYPE

        if entry.is_file() and options.file_types is not None:
            if entry.extension not in options.file_types:
                return RULE_FILE_TYPES

        return None

    def evaluate(self, entry: IndexEntry, options: IndexOptions) -> Optional[str]:
        """
        Evaluate every rule in order.

        Returns:
            Name of the first failing rule, or None if the entry is admitted
        """
        return self.excluded_by(entry, options) or self.unselected_by(entry, options)

    def is_eligible(self, entry: IndexEntry, options: IndexOptions) -> bool:
        return self.excluded_by(entry, options) is None

    def admit(self, entry: IndexEntry, options: IndexOptions) -> bool:
        """Check whether an entry belongs in an index built from ``options``."""
        return self.evaluate(entry, options) is None


def admit(entry: IndexEntry, options: IndexOptions, path_filter: Optional[PathFilter] = None) -> bool:
    """
    Convenience function to check an entry against the default policy.

    Args:
        entry: Entry to check
        options: Options the index is built from
        path_filter: Filter to use (a default PathFilter if None)

    Returns:
        True if the entry is admitted
    """
    return (path_filter or PathFilter()).admit(entry, options)
