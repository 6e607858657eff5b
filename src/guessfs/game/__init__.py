"""
Game logic for GuessFS.

This module contains the level generator, the guess evaluator, the game
session state machine and the statistics aggregator.
"""

from .evaluator import evaluate, similarity
from .level_generator import generate
from .session import AbandonPolicy, GameSession, SessionState
from .statistics import StatisticsAggregator

__all__ = [
    'evaluate',
    'similarity',
    'generate',
    'AbandonPolicy',
    'GameSession',
    'SessionState',
    'StatisticsAggregator',
]
