"""
Public operations of the GuessFS core.

These functions are what a presentation layer calls. Each takes its inputs
explicitly and returns new or updated data; none of them reads or writes
process-wide state.
"""

from typing import Optional, Union

from .models.index import Index, IndexOptions
from .models.game import Game, GameSettings, GuessResult, HintPayload
from .models.statistics import GameStatistics
from .tools.fs_indexer import FSIndexer
from .tools.path_filter import PathFilter
from .game.session import AbandonPolicy, GameSession
from .game.statistics import StatisticsAggregator


def build_index(
    options: IndexOptions,
    path_filter: Optional[PathFilter] = None,
    max_workers: int = 4
) -> Index:
    """
    Build an index snapshot.

    Raises:
        IoError: If the root is missing or unreadable
        InvalidOptionsError: If the options select nothing or are invalid
    """
    return FSIndexer(path_filter=path_filter, max_workers=max_workers).build(options)


def start_game(
    index: Index,
    settings: GameSettings,
    seed: int,
    game_id: Optional[int] = None,
    name: Optional[str] = None,
    abandon_policy: AbandonPolicy = AbandonPolicy.COUNT_AS_LOSS,
    **session_options
) -> GameSession:
    """
    Create and start a game session.

    Raises:
        InsufficientEntriesError: If the index cannot supply enough levels
    """
    session = GameSession(
        index,
        settings,
        seed,
        game_id=game_id,
        name=name,
        abandon_policy=abandon_policy,
        **session_options
    )
    session.start()
    return session


def submit_guess(session: GameSession, text: str) -> GuessResult:
    """
    Submit a guess for the current level.

    Raises:
        InvalidStateError: If the game is not in progress
    """
    return session.submit_guess(text)


def use_hint(session: GameSession) -> HintPayload:
    """
    Use a hint on the current level.

    Raises:
        HintExhaustedError: If no hints remain for the level
        InvalidStateError: If the game is not in progress
    """
    return session.use_hint()


def abandon(session: GameSession) -> Game:
    """Finish a game immediately. Always succeeds."""
    return session.abandon()


def record_statistics(
    game: Union[Game, GameSession],
    aggregator: StatisticsAggregator
) -> GameStatistics:
    """
    Fold a finished game into the aggregator's totals.

    Raises:
        InvalidStateError: If the game is unfinished or already recorded
    """
    return aggregator.record(game)
