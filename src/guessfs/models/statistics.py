"""
Statistics data models for GuessFS.

``LevelStatistics`` describes one level and is sealed when the level ends.
``GameStatistics`` holds cumulative totals across recorded games.
"""

from typing import Dict, List, Optional, Any
from enum import Enum
from pydantic import BaseModel, Field

from ..errors import InvalidStateError


class LevelOutcome(Enum):
    """How a level ended."""
    WON = "won"
    EXPIRED = "expired"
    ABANDONED = "abandoned"


class LevelStatistics(BaseModel):
    """
    Per-level guess history and counters.

    Attributes:
        guesses: Every guess made in the level, in order
        guesses_count: Number of guesses
        close_guesses: Number of guesses classified as close
        hints_used: Hints consumed in the level
        time_taken: Seconds spent on the level (set when sealed)
        outcome: How the level ended (None while open)
        sealed: Whether the level has ended
    """

    guesses: List[str] = Field(default_factory=list)
    guesses_count: int = Field(0, ge=0)
    close_guesses: int = Field(0, ge=0)
    hints_used: int = Field(0, ge=0)
    time_taken: float = Field(0.0, ge=0.0)
    outcome: Optional[LevelOutcome] = None
    sealed: bool = False

    def _ensure_open(self) -> None:
        if self.sealed:
            raise InvalidStateError("Level statistics are sealed")

    def add_guess(self, guess: str, close: bool = False) -> None:
        """Append a guess to the history."""
        self._ensure_open()
        self.guesses.append(guess)
        self.guesses_count += 1
        if close:
            self.close_guesses += 1

    def add_hint(self) -> None:
        self._ensure_open()
        self.hints_used += 1

    def seal(self, outcome: LevelOutcome, time_taken: float) -> None:
        """Mark the level as ended."""
        self._ensure_open()
        self.outcome = outcome
        self.time_taken = max(0.0, time_taken)
        self.sealed = True


class GameStatistics(BaseModel):
    """
    Cumulative totals across all recorded games.

    Attributes:
        total: Levels played (sealed levels only)
        win: Correct answers
        close: Close answers
        lose: Incorrect answers
        hints_used: Hints used across all levels
        time_taken: Seconds spent across all levels
        games_recorded: Number of games folded in
    """

    total: int = Field(0, ge=0)
    win: int = Field(0, ge=0)
    close: int = Field(0, ge=0)
    lose: int = Field(0, ge=0)
    hints_used: int = Field(0, ge=0)
    time_taken: float = Field(0.0, ge=0.0)
    games_recorded: int = Field(0, ge=0)

    def win_rate(self) -> float:
        """Share of levels won, 0.0 when nothing has been played."""
        if self.total == 0:
            return 0.0
        return self.win / self.total

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return self.model_dump()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GameStatistics':
        """Create statistics from dictionary representation."""
        return cls.model_validate(data)
