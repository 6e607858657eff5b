"""
Statistics aggregator for GuessFS.

Folds finished games into cumulative ``GameStatistics``. The fold is strictly
additive, so each game is recorded at most once.
"""

from typing import Optional, Set, Union
import logging

from ..errors import InvalidStateError
from ..models.game import Game
from ..models.statistics import GameStatistics
from .session import GameSession


logger = logging.getLogger(__name__)


class StatisticsAggregator:
    """
    Owns running totals and folds finished games into them.

    Attributes:
        totals: Running totals (copy returned from ``record``)
    """

    def __init__(self, initial: Optional[GameStatistics] = None):
        """
        Initialize the aggregator.

        Args:
            initial: Previously persisted totals to continue from
        """
        self.totals = initial.model_copy() if initial is not None else GameStatistics()
        self._recorded: Set[int] = set()

    def record(self, game: Union[Game, GameSession]) -> GameStatistics:
        """
        Fold one finished game into the running totals.

        Args:
            game: Finished game (or the session that played it)

        Returns:
            Copy of the updated totals

        Raises:
            InvalidStateError: If the game is not finished or was already recorded
        """
        if isinstance(game, GameSession):
            game = game.game

        data = game.game_data
        if data is None or not data.is_finished():
            raise InvalidStateError(f"Game {game.id} is not finished")
        if game.id in self._recorded:
            raise InvalidStateError(f"Game {game.id} was already recorded")

        sealed = data.sealed_statistics()

        self.totals.win += data.correct_answers
        self.totals.close += data.close_answers
        self.totals.lose += data.incorrect_answers
        self.totals.total += len(sealed)
        self.totals.hints_used += sum(stats.hints_used for stats in sealed)
        self.totals.time_taken += sum(stats.time_taken for stats in sealed)
        self.totals.games_recorded += 1
        self._recorded.add(game.id)

        logger.info(f"Recorded game {game.id}: {len(sealed)} levels, totals now {self.totals.total} levels")
        return self.totals.model_copy()

    def has_recorded(self, game_id: int) -> bool:
        return game_id in self._recorded
