"""
Data models for GuessFS.

This module contains all the core data structures used throughout the system.
"""

from .index import EntryKind, EntryMetadata, Index, IndexEntry, IndexOptions, IndexStats
from .game import (
    Game,
    GameData,
    GameDifficulty,
    GameSettings,
    GameType,
    GuessResult,
    HintPayload,
    Level,
)
from .statistics import GameStatistics, LevelOutcome, LevelStatistics

__all__ = [
    'EntryKind',
    'EntryMetadata',
    'Index',
    'IndexEntry',
    'IndexOptions',
    'IndexStats',
    'Game',
    'GameData',
    'GameDifficulty',
    'GameSettings',
    'GameType',
    'GuessResult',
    'HintPayload',
    'Level',
    'GameStatistics',
    'LevelOutcome',
    'LevelStatistics',
]
