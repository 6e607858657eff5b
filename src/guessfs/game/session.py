"""
Game session for GuessFS.

A ``GameSession`` orchestrates one game from start to finish: it generates the
levels, routes guesses through the evaluator, tracks time and hints per level,
and keeps ``GameData`` up to date. It is the only component that mutates
``GameData``.

Level timers are wall-clock reads taken at operation boundaries. There is no
background ticking: expiry is detected lazily by the next operation or by an
explicit ``remaining_time()`` poll. When a level ends the next level is queued
and its clock starts at once; ``next_level()`` or the next operation only moves
the session back to ``in_progress``.
"""

import os
import threading
import uuid
from datetime import datetime
from enum import Enum
from pathlib import PurePosixPath, PureWindowsPath
from typing import Callable, List, Optional
import logging

from ..errors import HintExhaustedError, InvalidStateError
from ..models.game import Game, GameData, GameSettings, GuessResult, HintPayload, Level
from ..models.index import Index
from ..models.statistics import LevelOutcome, LevelStatistics
from . import evaluator
from .level_generator import generate


logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Lifecycle states of a game session."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    LEVEL_COMPLETE = "level_complete"
    FINISHED = "finished"


class AbandonPolicy(Enum):
    """
    How the open level is accounted for when a game is abandoned.

    COUNT_AS_LOSS seals the level as abandoned and counts it as incorrect.
    DISCARD leaves the level unsealed so statistics ignore it.
    """
    COUNT_AS_LOSS = "count_as_loss"
    DISCARD = "discard"


def build_hint(relative_answer: str, hint_number: int) -> str:
    """
    Reveal part of an answer path.

    Each hint reveals one more leading path segment. The final segment is never
    revealed whole: hints beyond the directory segments reveal its name one
    character at a time, always leaving at least one character masked.

    Args:
        relative_answer: Answer path relative to the index root, POSIX style
        hint_number: 1-based hint number

    Returns:
        Path with unrevealed characters replaced by ``*``
    """
    segments = [segment for segment in relative_answer.split('/') if segment]
    if not segments:
        return ""

    directory_count = len(segments) - 1
    revealed_dirs = min(hint_number, directory_count)
    name_chars = max(0, hint_number - directory_count)

    parts = []
    for position, segment in enumerate(segments[:-1]):
        parts.append(segment if position < revealed_dirs else '*' * len(segment))

    name = segments[-1]
    shown = min(name_chars, len(name) - 1)
    parts.append(name[:shown] + '*' * (len(name) - shown))
    return '/'.join(parts)


def _is_absolute(path: str) -> bool:
    return PurePosixPath(path).is_absolute() or PureWindowsPath(path).is_absolute()


class GameSession:
    """
    Stateful orchestration of one game.

    All state-changing operations hold an exclusive lock for their whole
    transition, so a session may be shared between threads.
    """

    def __init__(
        self,
        index: Index,
        settings: GameSettings,
        seed: int,
        game_id: Optional[int] = None,
        name: Optional[str] = None,
        abandon_policy: AbandonPolicy = AbandonPolicy.COUNT_AS_LOSS,
        clock: Callable[[], datetime] = datetime.now,
        case_sensitive: Optional[bool] = None
    ):
        """
        Initialize a game session.

        Args:
            index: Index the answers are drawn from
            settings: Resolved game settings
            seed: Seed for answer selection
            game_id: Game identifier (random if None)
            name: Display name (derived from the settings if None)
            abandon_policy: Accounting of the open level on abandonment
            clock: Source of the current time
            case_sensitive: Guess comparison case sensitivity (platform convention if None)
        """
        self.index = index
        self.settings = settings
        self.seed = seed
        self.abandon_policy = abandon_policy
        self.case_sensitive = case_sensitive
        self._clock = clock
        self._lock = threading.RLock()
        self._state = SessionState.NOT_STARTED
        self._planned: List[Level] = []
        self._level_started_at: Optional[datetime] = None

        if game_id is None:
            game_id = uuid.uuid4().int >> 65
        if name is None:
            name = f"{settings.difficulty.value.title()} {settings.type.value} game"

        self.game = Game(
            id=game_id,
            name=name,
            difficulty=settings.difficulty,
            level=0,
            settings=settings,
            seed=seed,
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def game_data(self) -> Optional[GameData]:
        return self.game.game_data

    @property
    def levels(self) -> List[Level]:
        """Every level generated for the game, including ones not reached yet."""
        return list(self._planned)

    def is_finished(self) -> bool:
        return self._state == SessionState.FINISHED

    def current_level(self) -> Optional[Level]:
        """The level being played or queued, None before start or after finish."""
        with self._lock:
            if self._state in (SessionState.NOT_STARTED, SessionState.FINISHED):
                return None
            return self.game.game_data.levels[-1]

    def current_statistics(self) -> Optional[LevelStatistics]:
        """Statistics of the current level, None before start."""
        with self._lock:
            if self.game.game_data is None or not self.game.game_data.level_statistics:
                return None
            return self.game.game_data.level_statistics[-1]

    def hints_remaining(self) -> int:
        """Hints left for the current level."""
        with self._lock:
            stats = self.current_statistics()
            if stats is None or stats.sealed:
                return 0
            return max(0, self.settings.hint_count - stats.hints_used)

    def start(self) -> Game:
        """
        Generate the levels and open the first one.

        Returns:
            The started Game

        Raises:
            InvalidStateError: If the session was already started
            InsufficientEntriesError: If the index cannot supply enough levels
        """
        with self._lock:
            if self._state != SessionState.NOT_STARTED:
                raise InvalidStateError(f"Cannot start a session in state {self._state.value}")

            self._planned = generate(self.index, self.settings, self.seed)

            now = self._clock()
            self.game.game_data = GameData(start_time=now)
            self._queue_level(0, now)
            self._begin_level()

            logger.info(
                f"Started game {self.game.id} ({self.settings.total_levels} "
                f"{self.settings.type.value} levels, seed={self.seed})"
            )
            return self.game

    def next_level(self) -> Level:
        """
        Move on to the queued level.

        The queued level's clock has been running since the previous level
        ended, so expiry is still detected by the next operation.

        Returns:
            The level now being played

        Raises:
            InvalidStateError: If no level is waiting to start
        """
        with self._lock:
            if self._state != SessionState.LEVEL_COMPLETE:
                raise InvalidStateError(f"No level is waiting to start (state {self._state.value})")
            self._begin_level()
            return self.game.game_data.levels[-1]

    def submit_guess(self, text: str) -> GuessResult:
        """
        Submit a guess for the current level.

        A correct guess wins the level. Close and incorrect guesses keep it
        open, unless its time limit has passed, in which case the level is lost
        and the guess counts as incorrect. Every guess is recorded in the
        level's history.

        Args:
            text: Guessed path, absolute or relative to the index root

        Returns:
            Classification of the guess

        Raises:
            InvalidStateError: If the game has not started or is finished
        """
        with self._lock:
            now = self._clock()
            self._require_playable()

            data = self.game.game_data
            stats = data.level_statistics[-1]
            answer = data.levels[-1].answer

            if self._expired(now):
                stats.add_guess(text)
                self._end_level(LevelOutcome.EXPIRED, now)
                return GuessResult.INCORRECT

            result = evaluator.evaluate(
                self._expand_guess(text),
                answer,
                self.settings.close_sensitivity,
                case_sensitive=self.case_sensitive,
                root=self.index.root,
            )
            stats.add_guess(text, close=result == GuessResult.CLOSE)

            if result == GuessResult.CORRECT:
                self._end_level(LevelOutcome.WON, now)
            elif result == GuessResult.CLOSE:
                data.close_answers += 1
            else:
                data.incorrect_answers += 1

            logger.debug(f"Game {self.game.id} level {self.game.level}: guess '{text}' -> {result.value}")
            return result

    def use_hint(self) -> HintPayload:
        """
        Use one hint on the current level.

        Returns:
            HintPayload revealing more of the answer

        Raises:
            HintExhaustedError: If the level has no hints left
            InvalidStateError: If the game is not playable or the level just expired
        """
        with self._lock:
            now = self._clock()
            self._require_playable()

            if self._expired(now):
                self._end_level(LevelOutcome.EXPIRED, now)
                raise InvalidStateError("The level's time limit has passed")

            stats = self.game.game_data.level_statistics[-1]
            if stats.hints_used >= self.settings.hint_count:
                raise HintExhaustedError(
                    f"No hints remain for level {self.game.level + 1} "
                    f"({self.settings.hint_count} per level)"
                )

            stats.add_hint()
            answer = self.game.game_data.levels[-1].answer
            return HintPayload(
                hint_number=stats.hints_used,
                hints_remaining=self.settings.hint_count - stats.hints_used,
                revealed=build_hint(self.index.relative_path(answer), stats.hints_used),
            )

    def remaining_time(self) -> Optional[float]:
        """
        Poll the time left on the current level, applying expiry lazily.

        Returns:
            Seconds left, None when the game has no time limit, 0.0 once finished
        """
        with self._lock:
            if not self.settings.has_time_limit():
                return None
            if self._state == SessionState.FINISHED:
                return 0.0
            if self._state == SessionState.NOT_STARTED:
                return float(self.settings.time_limit)

            now = self._clock()
            if self._expired(now):
                self._end_level(LevelOutcome.EXPIRED, now)
                return self.remaining_time()
            return max(0.0, self.settings.time_limit - self._level_elapsed(now))

    def abandon(self) -> Game:
        """
        Finish the game immediately. Always succeeds.

        The open level is handled according to ``abandon_policy``.

        Returns:
            The finished Game
        """
        with self._lock:
            if self._state == SessionState.FINISHED:
                return self.game

            now = self._clock()
            if self._state == SessionState.NOT_STARTED:
                self.game.game_data = GameData(start_time=now)
            elif self._state == SessionState.IN_PROGRESS:
                if self.abandon_policy == AbandonPolicy.COUNT_AS_LOSS:
                    stats = self.game.game_data.level_statistics[-1]
                    stats.seal(LevelOutcome.ABANDONED, self._level_elapsed(now))
                    self.game.game_data.incorrect_answers += 1

            logger.info(f"Game {self.game.id} abandoned at level {self.game.level + 1}")
            self._finish(now)
            return self.game

    def _require_playable(self) -> None:
        if self._state == SessionState.NOT_STARTED:
            raise InvalidStateError("The game has not been started")
        if self._state == SessionState.FINISHED:
            raise InvalidStateError("The game is finished")
        if self._state == SessionState.LEVEL_COMPLETE:
            self._begin_level()

    def _queue_level(self, position: int, now: datetime) -> None:
        data = self.game.game_data
        data.levels.append(self._planned[position])
        data.level_statistics.append(LevelStatistics())
        self.game.level = position
        self._level_started_at = now
        self._state = SessionState.LEVEL_COMPLETE

    def _begin_level(self) -> None:
        self._state = SessionState.IN_PROGRESS
        logger.debug(f"Game {self.game.id}: level {self.game.level + 1} started")

    def _level_elapsed(self, now: datetime) -> float:
        if self._level_started_at is None:
            return 0.0
        return max(0.0, (now - self._level_started_at).total_seconds())

    def _expired(self, now: datetime) -> bool:
        if not self.settings.has_time_limit():
            return False
        return self._level_elapsed(now) > self.settings.time_limit

    def _end_level(self, outcome: LevelOutcome, now: datetime) -> None:
        data = self.game.game_data
        elapsed = self._level_elapsed(now)
        if outcome == LevelOutcome.EXPIRED:
            elapsed = min(elapsed, float(self.settings.time_limit))
            data.incorrect_answers += 1
        elif outcome == LevelOutcome.WON:
            data.correct_answers += 1

        data.level_statistics[-1].seal(outcome, elapsed)
        logger.info(f"Game {self.game.id}: level {self.game.level + 1} {outcome.value}")

        next_position = self.game.level + 1
        if next_position >= len(self._planned):
            self._finish(now)
        else:
            self._queue_level(next_position, now)

    def _finish(self, now: datetime) -> None:
        self.game.game_data.end_time = now
        self._state = SessionState.FINISHED
        logger.info(
            f"Game {self.game.id} finished: {self.game.game_data.correct_answers} correct, "
            f"{self.game.game_data.close_answers} close, "
            f"{self.game.game_data.incorrect_answers} incorrect"
        )

    def _expand_guess(self, text: str) -> str:
        """Interpret a relative guess as relative to the index root."""
        guess = text.strip()
        if not guess or _is_absolute(guess):
            return guess
        return os.path.join(self.index.root, guess)
