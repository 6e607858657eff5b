"""
Game data models for GuessFS.

This module defines settings, levels, per-game running data and the game
record itself. Only the game session mutates ``GameData``.
"""

from typing import Dict, List, Optional, Any
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .statistics import LevelStatistics


class GameType(Enum):
    """What kind of entry the player has to guess."""
    DIRECTORY = "directory"
    FILE = "file"


class GameDifficulty(Enum):
    """Resolved difficulty of a game. The ``custom`` alias never reaches the core."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"


class GuessResult(Enum):
    """Classification of a single guess."""
    CORRECT = "correct"
    CLOSE = "close"
    INCORRECT = "incorrect"


class GameSettings(BaseModel):
    """
    Fully resolved settings for one game.

    Attributes:
        type: Whether answers are files or directories
        difficulty: Resolved difficulty
        hint_count: Hints available per level
        time_limit: Seconds allowed per level (0 disables the limit)
        total_levels: Number of levels in the game
        close_sensitivity: Similarity percentage required to count as close
    """

    model_config = ConfigDict(frozen=True)

    type: GameType = Field(GameType.FILE, description="Answer entry kind")
    difficulty: GameDifficulty = Field(GameDifficulty.EASY, description="Resolved difficulty")
    hint_count: int = Field(3, ge=0, description="Hints available per level")
    time_limit: int = Field(60, ge=0, description="Seconds allowed per level")
    total_levels: int = Field(5, ge=1, description="Number of levels")
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
    def validate_difficulty(cls, v) -> GameDifficulty:
        """Validate and convert difficulty to enum; ``custom`` must be resolved first."""
        if isinstance(v, str):
            if v.lower() == 'custom':
                raise ValueError("The 'custom' difficulty must be resolved to explicit settings")
            try:
                return GameDifficulty(v.lower())
            except ValueError:
                raise ValueError(f"Invalid difficulty: {v}")
        return v

    def has_time_limit(self) -> bool:
        return self.time_limit > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = self.model_dump()
        data['type'] = self.type.value
        data['difficulty'] = self.difficulty.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GameSettings':
        """Create settings from dictionary representation."""
        return cls.model_validate(data)


class Level(BaseModel):
    """One round of a game with a single answer path."""

    model_config = ConfigDict(frozen=True)

    answer: str = Field(..., min_length=1, description="Answer path")


class HintPayload(BaseModel):
    """
    Information handed to the player when a hint is used.

    Attributes:
        hint_number: 1-based number of this hint within the level
        hints_remaining: Hints still available for the level
        revealed: Answer path relative to the index root with unrevealed parts masked
    """

    model_config = ConfigDict(frozen=True)

    hint_number: int = Field(..., ge=1)
    hints_remaining: int = Field(..., ge=0)
    revealed: str


class GameData(BaseModel):
    """
    Running data of one game.

    Counters only ever increase and levels are only ever appended.

    Attributes:
        correct_answers: Levels won
        close_answers: Close guesses
        incorrect_answers: Incorrect guesses plus levels lost
        start_time: When the game started
        end_time: When the game finished (None while in progress)
        levels: Levels started so far
        level_statistics: Statistics of each started level, aligned with ``levels``
    """

    correct_answers: int = Field(0, ge=0)
    close_answers: int = Field(0, ge=0)
    incorrect_answers: int = Field(0, ge=0)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    levels: List[Level] = Field(default_factory=list)
    level_statistics: List[LevelStatistics] = Field(default_factory=list)

    def is_finished(self) -> bool:
        return self.end_time is not None

    def sealed_statistics(self) -> List[LevelStatistics]:
        """Statistics of levels that have ended."""
        return [stats for stats in self.level_statistics if stats.sealed]

    def elapsed_seconds(self, now: Optional[datetime] = None) -> float:
        """Seconds since the game started, up to ``end_time`` once finished."""
        if self.start_time is None:
            return 0.0
        end = self.end_time or now or datetime.now()
        return max(0.0, (end - self.start_time).total_seconds())


class Game(BaseModel):
    """
    A game record as exposed to the presentation layer.

    Attributes:
        id: Game identifier
        name: Display name
        difficulty: Resolved difficulty
        level: 0-based index of the current level
        settings: Snapshot of the settings the game was started with
        seed: Seed used for answer selection
        game_data: Running data, present once started
    """

    id: int = Field(..., ge=0)
    name: str = Field(..., min_length=1)
    difficulty: GameDifficulty
    level: int = Field(0, ge=0)
    settings: GameSettings
    seed: int = 0
    game_data: Optional[GameData] = None

    @property
    def time_limit(self) -> int:
        return self.settings.time_limit

    @property
    def hint_count(self) -> int:
        return self.settings.hint_count

    @property
    def total_levels(self) -> int:
        return self.settings.total_levels

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return self.model_dump(mode='json')
