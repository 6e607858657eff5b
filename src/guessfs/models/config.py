"""
Configuration data models for GuessFS.

This module defines the application configuration: the index options used to
build an index, the difficulty table, the ``custom`` difficulty profile and
indexer tuning. It is also where the ``custom`` difficulty alias is resolved
into explicit ``GameSettings`` before anything reaches the game core.
"""

from typing import Dict, List, Optional, Any, Union
from pathlib import Path
from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator

from .index import IndexOptions
from .game import GameDifficulty, GameSettings, GameType


class DifficultyChoice(Enum):
    """Difficulty as chosen by the player, including the ``custom`` alias."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"
    CUSTOM = "custom"


class DifficultyProfile(BaseModel):
    """
    Numeric knobs for one difficulty.

    Attributes:
        hint_count: Hints available per level
        time_limit: Seconds allowed per level (0 disables the limit)
        total_levels: Number of levels in a game
    """

    hint_count: int = Field(3, ge=0, description="Hints available per level")
    time_limit: int = Field(60, ge=0, description="Seconds allowed per level")
    total_levels: int = Field(5, ge=1, description="Number of levels")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return self.model_dump()


DEFAULT_DIFFICULTIES: Dict[str, Dict[str, int]] = {
    "easy": {"hint_count": 5, "time_limit": 120, "total_levels": 5},
    "medium": {"hint_count": 3, "time_limit": 90, "total_levels": 10},
    "hard": {"hint_count": 2, "time_limit": 60, "total_levels": 15},
    "expert": {"hint_count": 0, "time_limit": 30, "total_levels": 20},
}


class GameConfig(BaseModel):
    """
    Default game choices.

    Attributes:
        type: Whether answers are files or directories
        difficulty: Difficulty choice, possibly ``custom``
        close_sensitivity: Similarity percentage required to count as close
    """

    type: GameType = Field(GameType.FILE, description="Answer entry kind")
    difficulty: DifficultyChoice = Field(DifficultyChoice.EASY, description="Difficulty choice")
    close_sensitivity: float = Field(80.0, ge=0.0, le=100.0, description="Similarity required for close")

    @field_validator('type', mode='before')
    @classmethod
    def validate_type(cls, v) -> GameType:
        """Validate and convert type to enum."""
        if isinstance(v, str):
            try:
                return GameType(v.lower())
            except ValueError:
                raise ValueError(f"Invalid game type: {v}")
        return v

    @field_validator('difficulty', mode='before')
    @classmethod
    def validate_difficulty(cls, v) -> DifficultyChoice:
        """Validate and convert difficulty to enum."""
        if isinstance(v, str):
            try:
                return DifficultyChoice(v.lower())
            except ValueError:
                raise ValueError(f"Invalid difficulty: {v}")
        return v

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'type': self.type.value,
            'difficulty': self.difficulty.value,
            'close_sensitivity': self.close_sensitivity,
        }


class IndexerConfig(BaseModel):
    """
    Indexer tuning and storage.

    Attributes:
        max_workers: Threads used to traverse top-level subtrees
        data_dir: Directory where index snapshots are stored
    """

    max_workers: int = Field(4, gt=0, description="Threads used for traversal")
    data_dir: str = Field("~/.guessfs", description="Directory for index snapshots")

    @field_validator('data_dir')
    @classmethod
    def validate_data_dir(cls, v: str) -> str:
        """Expand user path."""
        if not v or not v.strip():
            raise ValueError("Data directory cannot be empty")
        return str(Path(v).expanduser())

    def get_data_path(self) -> Path:
        """Get the resolved snapshot directory."""
        return Path(self.data_dir).resolve()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return self.model_dump()


class GuessFSConfig(BaseModel):
    """
    Main configuration class for GuessFS.

    Attributes:
        index: Options used to build the index
        game: Default game choices
        difficulties: Difficulty table for the four core difficulties
        custom: Profile the ``custom`` difficulty resolves to
        indexer: Indexer tuning and storage
    """

    index: IndexOptions = Field(default_factory=lambda: IndexOptions(path="."), description="Index options")
    game: GameConfig = Field(default_factory=GameConfig, description="Default game choices")
    difficulties: Dict[str, DifficultyProfile] = Field(
        default_factory=lambda: {
            name: DifficultyProfile(**values) for name, values in DEFAULT_DIFFICULTIES.items()
        },
        description="Difficulty table"
    )
    custom: DifficultyProfile = Field(
        default_factory=lambda: DifficultyProfile(hint_count=3, time_limit=60, total_levels=10),
        description="Custom difficulty profile"
    )
    indexer: IndexerConfig = Field(default_factory=IndexerConfig, description="Indexer settings")

    @field_validator('difficulties', mode='before')
    @classmethod
    def validate_difficulties(cls, v) -> Dict[str, Any]:
        """Merge user entries over the default table and reject unknown names."""
        if v is None:
            v = {}
        if not isinstance(v, dict):
            raise ValueError("difficulties must be a mapping")

        merged: Dict[str, Any] = {name: dict(values) for name, values in DEFAULT_DIFFICULTIES.items()}
        for name, values in v.items():
            key = str(name).lower()
            if key not in merged:
                raise ValueError(
                    f"Unknown difficulty '{name}'. Must be one of: {list(DEFAULT_DIFFICULTIES)}"
                )
            if isinstance(values, DifficultyProfile):
                values = values.model_dump()
            merged[key].update(values or {})
        return merged

    @model_validator(mode='after')
    def validate_table_complete(self):
        """Every core difficulty needs a profile."""
        missing = [d.value for d in GameDifficulty if d.value not in self.difficulties]
        if missing:
            raise ValueError(f"Missing difficulty profiles: {missing}")
        return self

    def profile_for(self, difficulty: Union[DifficultyChoice, str]) -> DifficultyProfile:
        """Get the numeric profile behind a difficulty choice."""
        if isinstance(difficulty, str):
            difficulty = DifficultyChoice(difficulty.lower())
        if difficulty == DifficultyChoice.CUSTOM:
            return self.custom
        return self.difficulties[difficulty.value]

    def resolve_settings(
        self,
        game_type: Optional[Union[GameType, str]] = None,
        difficulty: Optional[Union[DifficultyChoice, str]] = None,
        close_sensitivity: Optional[float] = None
    ) -> GameSettings:
        """
        Resolve a difficulty choice into explicit game settings.

        The ``custom`` choice expands into the ``custom`` profile; its resolved
        difficulty label is the core difficulty with the same level count or,
        failing that, the closest one by level count.

        Args:
            game_type: Answer entry kind (defaults to ``game.type``)
            difficulty: Difficulty choice (defaults to ``game.difficulty``)
            close_sensitivity: Override for ``game.close_sensitivity``

        Returns:
            Fully resolved GameSettings
        """
        if game_type is None:
            game_type = self.game.type
        elif isinstance(game_type, str):
            game_type = GameType(game_type.lower())

        if difficulty is None:
            difficulty = self.game.difficulty
        elif isinstance(difficulty, str):
            difficulty = DifficultyChoice(difficulty.lower())

        profile = self.profile_for(difficulty)
        if difficulty == DifficultyChoice.CUSTOM:
            resolved = self._closest_difficulty(profile)
        else:
            resolved = GameDifficulty(difficulty.value)

        return GameSettings(
            type=game_type,
            difficulty=resolved,
            hint_count=profile.hint_count,
            time_limit=profile.time_limit,
            total_levels=profile.total_levels,
            close_sensitivity=(
                self.game.close_sensitivity if close_sensitivity is None else close_sensitivity
            ),
        )

    def _closest_difficulty(self, profile: DifficultyProfile) -> GameDifficulty:
        best = GameDifficulty.EASY
        best_distance = None
        for difficulty in GameDifficulty:
            candidate = self.difficulties[difficulty.value]
            distance = abs(candidate.total_levels - profile.total_levels)
            if best_distance is None or distance < best_distance:
                best = difficulty
                best_distance = distance
        return best

    def validate_configuration(self) -> List[str]:
        """Validate the configuration and return any warnings."""
        warnings = []

        root = Path(self.index.path)
        if not root.exists():
            warnings.append(f"Index root does not exist: {root}")
        elif not root.is_dir():
            warnings.append(f"Index root is not a directory: {root}")

        if not self.index.selects_anything():
            warnings.append("Neither files nor directories are indexable")

        if self.game.type == GameType.FILE and not self.index.index_files:
            warnings.append("Game type is 'file' but files are not indexed")
        if self.game.type == GameType.DIRECTORY and not self.index.index_directories:
            warnings.append("Game type is 'directory' but directories are not indexed")

        if str(root) in ["/", "C:\\", str(Path.home().parent)]:
            warnings.append(
                f"Index root '{root}' is very broad and indexing may take a long time. "
                f"Consider using a more specific directory."
            )

        return warnings

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary representation."""
        return {
            'index': self.index.to_dict(),
            'game': self.game.to_dict(),
            'difficulties': {name: profile.to_dict() for name, profile in self.difficulties.items()},
            'custom': self.custom.to_dict(),
            'indexer': self.indexer.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GuessFSConfig':
        """Create configuration from dictionary representation."""
        return cls.model_validate(data)

    def __str__(self) -> str:
        """String representation of the configuration."""
        parts = [f"Root: {self.index.path}"]
        parts.append(f"Game type: {self.game.type.value}")
        parts.append(f"Difficulty: {self.game.difficulty.value}")
        parts.append(f"Close sensitivity: {self.game.close_sensitivity}")
        return " | ".join(parts)
