"""
Level generator for GuessFS.

Selects the answers of a game from an index. Selection is uniform over the
entries whose kind matches the game type, without replacement, and driven by
an explicit seed so a game can be reproduced.
"""

import random
from typing import List
import logging

from ..errors import InsufficientEntriesError
from ..models.index import EntryKind, Index, IndexEntry
from ..models.game import GameSettings, GameType, Level


logger = logging.getLogger(__name__)


def entry_kind_for(game_type: GameType) -> EntryKind:
    """Map a game type to the entry kind it draws answers from."""
    if game_type == GameType.DIRECTORY:
        return EntryKind.DIRECTORY
    return EntryKind.FILE


def eligible_entries(index: Index, settings: GameSettings) -> List[IndexEntry]:
    """Get the entries a game with these settings can draw answers from."""
    return index.entries_of(entry_kind_for(settings.type))


def generate(index: Index, settings: GameSettings, seed: int) -> List[Level]:
    """
    Generate the levels of a game.

    Args:
        index: Index to draw answers from
        settings: Resolved game settings
        seed: Seed for answer selection

    Returns:
        List of ``settings.total_levels`` levels with distinct answers

    Raises:
        InsufficientEntriesError: If the index has too few eligible entries
    """
    candidates = eligible_entries(index, settings)
    if len(candidates) < settings.total_levels:
        raise InsufficientEntriesError(len(candidates), settings.total_levels)

    rng = random.Random(seed)
    chosen = rng.sample(candidates, settings.total_levels)

    logger.debug(
        f"Generated {len(chosen)} {settings.type.value} levels from "
        f"{len(candidates)} candidates (seed={seed})"
    )
    return [Level(answer=entry.path) for entry in chosen]
