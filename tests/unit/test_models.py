"""
Unit tests for the data models.

Tests validation, normalization and serialization of index options, game
settings, index snapshots and statistics.
"""

import os
from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from guessfs.errors import InvalidStateError
from guessfs.models.game import (
    GameData,
    GameDifficulty,
    GameSettings,
    GameType,
    Level,
)
from guessfs.models.index import EntryKind, Index, IndexEntry, IndexOptions, IndexStats
from guessfs.models.statistics import GameStatistics, LevelOutcome, LevelStatistics


class TestIndexOptions:
    """Test cases for IndexOptions."""

    def test_defaults(self):
        options = IndexOptions(path="/data")
        assert options.index_files is True
        assert options.index_directories is False
        assert options.file_types is None
        assert options.exclude_hidden is False
        assert options.exclude_admin is False

    def test_path_is_expanded_and_absolute(self):
        options = IndexOptions(path="~")
        assert options.path == str(os.path.realpath(os.path.expanduser("~")))

    def test_empty_path_rejected(self):
        with pytest.raises(ValidationError):
            IndexOptions(path="   ")

    def test_file_types_normalized(self):
        options = IndexOptions(path="/data", file_types=["TXT", ".md", "txt", " "])
        assert options.file_types == [".txt", ".md"]

    def test_frozen(self):
        options = IndexOptions(path="/data")
        with pytest.raises(ValidationError):
            options.index_files = False

    def test_selects_anything(self):
        assert IndexOptions(path="/data").selects_anything() is True
        assert IndexOptions(path="/data", index_files=False).selects_anything() is False

    def test_dict_round_trip(self):
        options = IndexOptions(path="/data", file_types=["py"], exclude_empty=True)
        assert IndexOptions.from_dict(options.to_dict()) == options


class TestIndex:
    """Test cases for the Index snapshot."""

    def setup_method(self):
        root = os.path.abspath(os.path.join(os.sep, "data"))
        self.root = root
        self.index = Index(
            options=IndexOptions(path=root, index_directories=True),
            entries=(
                IndexEntry(path=os.path.join(root, "docs"), kind=EntryKind.DIRECTORY),
                IndexEntry(path=os.path.join(root, "docs", "Report.TXT"), kind=EntryKind.FILE, size=4),
            ),
            stats=IndexStats(excluded={"exclude_hidden": 2, "index_type": 1}),
        )

    def test_accessors(self):
        assert len(self.index) == 2
        assert self.index.root == self.root
        assert [e.name for e in self.index.files()] == ["Report.TXT"]
        assert [e.name for e in self.index.directories()] == ["docs"]
        assert self.index.files()[0].extension == ".txt"

    def test_get(self):
        path = os.path.join(self.root, "docs")
        assert self.index.get(path).is_directory()
        assert self.index.get(os.path.join(self.root, "missing")) is None

    def test_relative_path(self):
        entry = self.index.files()[0]
        assert self.index.relative_path(entry.path) == "docs/Report.TXT"

    def test_stats_total(self):
        assert self.index.stats.total_excluded() == 3
        assert "Excluded: 3" in str(self.index)

    def test_serialization(self):
        restored = Index.from_dict(self.index.to_dict())
        assert restored.entries == self.index.entries
        assert restored.options == self.index.options


class TestGameSettings:
    """Test cases for GameSettings."""

    def test_string_enums(self):
        settings = GameSettings(type="Directory", difficulty="HARD")
        assert settings.type == GameType.DIRECTORY
        assert settings.difficulty == GameDifficulty.HARD

    def test_custom_must_be_resolved(self):
        with pytest.raises(ValidationError, match="must be resolved"):
            GameSettings(difficulty="custom")

    def test_invalid_values(self):
        with pytest.raises(ValidationError):
            GameSettings(total_levels=0)
        with pytest.raises(ValidationError):
            GameSettings(close_sensitivity=120)
        with pytest.raises(ValidationError):
            GameSettings(type="symlink")

    def test_time_limit(self):
        assert GameSettings(time_limit=30).has_time_limit() is True
        assert GameSettings(time_limit=0).has_time_limit() is False

    def test_dict_round_trip(self):
        settings = GameSettings(type="directory", difficulty="expert", hint_count=0)
        data = settings.to_dict()
        assert data['type'] == "directory"
        assert data['difficulty'] == "expert"
        assert GameSettings.from_dict(data) == settings


class TestLevelStatistics:
    """Test cases for per-level statistics."""

    def test_guess_history(self):
        stats = LevelStatistics()
        stats.add_guess("a")
        stats.add_guess("b", close=True)
        stats.add_hint()

        assert stats.guesses == ["a", "b"]
        assert stats.guesses_count == 2
        assert stats.close_guesses == 1
        assert stats.hints_used == 1

    def test_sealed_rejects_mutation(self):
        stats = LevelStatistics()
        stats.seal(LevelOutcome.WON, 12.5)

        assert stats.sealed is True
        assert stats.outcome == LevelOutcome.WON
        assert stats.time_taken == 12.5
        with pytest.raises(InvalidStateError):
            stats.add_guess("late")
        with pytest.raises(InvalidStateError):
            stats.add_hint()
        with pytest.raises(InvalidStateError):
            stats.seal(LevelOutcome.EXPIRED, 1.0)


class TestGameData:
    """Test cases for GameData."""

    def test_finished_and_elapsed(self):
        start = datetime(2024, 1, 1, 12, 0, 0)
        data = GameData(start_time=start)
        assert data.is_finished() is False
        assert data.elapsed_seconds(start + timedelta(seconds=30)) == 30.0

        data.end_time = start + timedelta(seconds=45)
        assert data.is_finished() is True
        assert data.elapsed_seconds(start + timedelta(hours=1)) == 45.0

    def test_sealed_statistics(self):
        open_level = LevelStatistics()
        sealed_level = LevelStatistics()
        sealed_level.seal(LevelOutcome.EXPIRED, 60)
        data = GameData(
            levels=[Level(answer="/a"), Level(answer="/b")],
            level_statistics=[sealed_level, open_level],
        )
        assert data.sealed_statistics() == [sealed_level]


class TestGameStatistics:
    """Test cases for cumulative statistics."""

    def test_win_rate(self):
        assert GameStatistics().win_rate() == 0.0
        assert GameStatistics(total=4, win=3).win_rate() == 0.75

    def test_dict_round_trip(self):
        stats = GameStatistics(total=3, win=1, close=2, lose=2, hints_used=1, time_taken=9.5)
        assert GameStatistics.from_dict(stats.to_dict()) == stats
