"""
Index data models for GuessFS.

This module defines the data structures produced by the filesystem indexer:
the options an index is built from, the entries it admits, traversal
statistics, and the immutable index snapshot itself.
"""

from typing import Dict, List, Optional, Any, Tuple
from datetime import datetime
from pathlib import Path
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator


class EntryKind(Enum):
    """Kind of filesystem entry held in an index."""
    FILE = "file"
    DIRECTORY = "directory"


class IndexOptions(BaseModel):
    """
    Inclusion and exclusion rules for building an index.

    Attributes:
        path: Root directory to index
        index_directories: Whether directories are indexable
        index_files: Whether files are indexable
        file_types: Optional extension allow-list (files only)
        excluded_regex: Optional regex; matching paths are excluded
        excluded_paths: Paths excluded together with everything below them
        excluded_files: File names (or path suffixes) to exclude
        exclude_hidden: Exclude hidden files and directories
        exclude_system: Exclude operating system locations
        exclude_temporary: Exclude temporary files and directories
        exclude_empty: Exclude zero-byte files and directories with no eligible children
        exclude_admin: Exclude entries the current user cannot read
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1, description="Root directory to index")
    index_directories: bool = Field(False, description="Whether directories are indexable")
    index_files: bool = Field(True, description="Whether files are indexable")
    file_types: Optional[List[str]] = Field(None, description="Extension allow-list for files")

    excluded_regex: Optional[str] = Field(None, description="Regex of paths to exclude")
    excluded_paths: List[str] = Field(default_factory=list, description="Paths to exclude")
    excluded_files: List[str] = Field(default_factory=list, description="File names to exclude")

    exclude_hidden: bool = Field(False, description="Exclude hidden files and directories")
    exclude_system: bool = Field(False, description="Exclude system locations")
    exclude_temporary: bool = Field(False, description="Exclude temporary files and directories")
    exclude_empty: bool = Field(False, description="Exclude empty files and directories")
    exclude_admin: bool = Field(False, description="Exclude entries not readable by the current user")

    @field_validator('path')
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Expand and normalize the root path."""
        if not v or not v.strip():
            raise ValueError("Index root path cannot be empty")
        return str(Path(v.strip()).expanduser().resolve())

    @field_validator('file_types')
    @classmethod
    def validate_file_types(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        """Normalize extensions to lowercase with a leading dot."""
        if v is None:
            return None

        normalized = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            if not ext.startswith('.'):
                ext = '.' + ext
            if ext not in normalized:
                normalized.append(ext)
        return normalized

    @field_validator('excluded_paths')
    @classmethod
    def validate_excluded_paths(cls, v: List[str]) -> List[str]:
        """Expand user paths and drop blanks."""
        return [str(Path(p.strip()).expanduser()) for p in v if p and p.strip()]

    @field_validator('excluded_files')
    @classmethod
    def validate_excluded_files(cls, v: List[str]) -> List[str]:
        """Drop blank file names."""
        return [f.strip() for f in v if f and f.strip()]

    @field_validator('excluded_regex')
    @classmethod
    def validate_excluded_regex(cls, v: Optional[str]) -> Optional[str]:
        """Treat a blank regex as no regex."""
        if v is None or not v.strip():
            return None
        return v

    def selects_anything(self) -> bool:
        """Check whether at least one entry kind is indexable."""
        return self.index_directories or self.index_files

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return self.model_dump()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IndexOptions':
        """Create options from dictionary representation."""
        return cls.model_validate(data)


class EntryMetadata(BaseModel):
    """
    Filesystem facts resolved by the indexer for the path filter.

    Attributes:
        is_hidden: Hidden attribute set by the platform (Windows)
        is_system: System attribute set by the platform (Windows)
        is_temporary: Temporary attribute set by the platform (Windows)
        readable: Whether the current process can read the entry
        eligible_children: For directories, children that passed every exclusion rule
    """

    model_config = ConfigDict(frozen=True)

    is_hidden: bool = False
    is_system: bool = False
    is_temporary: bool = False
    readable: bool = True
    eligible_children: int = Field(0, ge=0)


class IndexEntry(BaseModel):
    """
    A single file or directory admitted into an index.

    Attributes:
        path: Absolute path of the entry
        kind: File or directory
        size: Size in bytes (0 for directories)
        metadata: Resolved metadata used by the path filter
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1, description="Absolute path of the entry")
    kind: EntryKind = Field(..., description="File or directory")
    size: int = Field(0, ge=0, description="Size in bytes")
    metadata: EntryMetadata = Field(default_factory=EntryMetadata, description="Resolved metadata")

    @property
    def name(self) -> str:
        """Final path component."""
        return Path(self.path).name

    @property
    def extension(self) -> Optional[str]:
        """Lowercase extension with leading dot, if any."""
        suffix = Path(self.path).suffix
        return suffix.lower() if suffix else None

    def is_file(self) -> bool:
        return self.kind == EntryKind.FILE

    def is_directory(self) -> bool:
        return self.kind == EntryKind.DIRECTORY


class IndexStats(BaseModel):
    """
    Statistics gathered while building an index.

    Attributes:
        directories_traversed: Directories whose children were listed
        entries_seen: Entries evaluated against the path filter
        entries_admitted: Entries admitted into the index
        excluded: Count of exclusions per filter rule
        symlinks_skipped: Symbolic links that were not followed
        errors: Subtrees skipped because of traversal errors
        skipped_paths: Paths of the skipped subtrees
        duration_seconds: Wall-clock duration of the build
    """

    directories_traversed: int = 0
    entries_seen: int = 0
    entries_admitted: int = 0
    excluded: Dict[str, int] = Field(default_factory=dict)
    symlinks_skipped: int = 0
    errors: int = 0
    skipped_paths: List[str] = Field(default_factory=list)
    duration_seconds: float = 0.0

    def total_excluded(self) -> int:
        """Total number of excluded entries across all rules."""
        return sum(self.excluded.values())


class Index(BaseModel):
    """
    Immutable snapshot of the entries admitted under a set of options.

    Attributes:
        options: Options the index was built from
        entries: Admitted entries, sorted by path
        stats: Traversal statistics
        built_at: When the build finished
    """

    model_config = ConfigDict(frozen=True)

    options: IndexOptions
    entries: Tuple[IndexEntry, ...] = ()
    stats: IndexStats = Field(default_factory=IndexStats)
    built_at: datetime = Field(default_factory=datetime.now)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def root(self) -> str:
        return self.options.path

    def entries_of(self, kind: EntryKind) -> List[IndexEntry]:
        """Get entries of one kind, in index order."""
        return [entry for entry in self.entries if entry.kind == kind]

    def files(self) -> List[IndexEntry]:
        return self.entries_of(EntryKind.FILE)

    def directories(self) -> List[IndexEntry]:
        return self.entries_of(EntryKind.DIRECTORY)

    def get(self, path: str) -> Optional[IndexEntry]:
        """Look up an entry by its exact path."""
        for entry in self.entries:
            if entry.path == path:
                return entry
        return None

    def relative_path(self, path: str) -> str:
        """Path relative to the index root, POSIX style."""
        try:
            return Path(path).relative_to(self.root).as_posix()
        except ValueError:
            return Path(path).as_posix()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return self.model_dump(mode='json')

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Index':
        """Create an index from dictionary representation."""
        return cls.model_validate(data)

    def __str__(self) -> str:
        parts = [f"Root: {self.root}"]
        parts.append(f"Files: {len(self.files())}")
        parts.append(f"Directories: {len(self.directories())}")
        parts.append(f"Excluded: {self.stats.total_excluded()}")
        return " | ".join(parts)
