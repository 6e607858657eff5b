"""
Index snapshot storage for GuessFS.

Built indexes are saved as JSON snapshots in a data directory, one file per
root path. The file name is derived from a SHA-256 of the root path so that
any root maps to a stable, filesystem-safe name.
"""

import hashlib
import json
from pathlib import Path
from typing import Optional, Union
import logging

from pydantic import ValidationError

from ..errors import IoError
from ..models.index import Index, IndexOptions


logger = logging.getLogger(__name__)


def index_file_name(root: str) -> str:
    """Get the snapshot file name for a root path."""
    digest = hashlib.sha256(str(root).encode('utf-8')).hexdigest()
    return f"index_{digest}.json"


class IndexStore:
    """
    Saves and loads index snapshots.

    Attributes:
        data_dir: Directory holding the snapshot files
    """

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir).expanduser()

    def path_for(self, root: str) -> Path:
        """Get the snapshot path for a root directory."""
        return self.data_dir / index_file_name(str(Path(root).expanduser().resolve()))

    def exists(self, root: str) -> bool:
        return self.path_for(root).is_file()

    def save(self, index: Index) -> Path:
        """
        Save an index snapshot, replacing any previous snapshot for its root.

        Args:
            index: Index to save

        Returns:
            Path of the written snapshot

        Raises:
            IoError: If the snapshot cannot be written
        """
        target = self.path_for(index.root)
        temp_target = target.with_suffix('.json.tmp')
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with open(temp_target, 'w', encoding='utf-8') as f:
                json.dump(index.to_dict(), f)
            temp_target.replace(target)
        except OSError as e:
            raise IoError(f"Cannot write index snapshot {target}: {e}") from e
        finally:
            if temp_target.exists():
                temp_target.unlink()

        logger.info(f"Saved index snapshot for {index.root} to {target}")
        return target

    def load(self, root: str, options: Optional[IndexOptions] = None) -> Optional[Index]:
        """
        Load the snapshot for a root directory.

        Args:
            root: Root directory the index was built from
            options: Options the caller needs the index to have been built
                with; a snapshot built with other options is not returned

        Returns:
            The stored Index, or None if no matching snapshot exists

        Raises:
            IoError: If the snapshot exists but cannot be read or is invalid
        """
        source = self.path_for(root)
        if not source.is_file():
            return None

        try:
            with open(source, 'r', encoding='utf-8') as f:
                data = json.load(f)
            index = Index.from_dict(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise IoError(f"Cannot read index snapshot {source}: {e}") from e

        if options is not None and index.options != options:
            logger.warning(f"Index snapshot {source} was built with different options, ignoring it")
            return None

        logger.info(f"Loaded index snapshot for {root} ({len(index)} entries)")
        return index

    def delete(self, root: str) -> bool:
        """Delete the snapshot for a root directory; False if there was none."""
        source = self.path_for(root)
        if not source.is_file():
            return False
        source.unlink()
        return True
