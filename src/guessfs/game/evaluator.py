"""
Guess evaluator for GuessFS.

Scores a guess against the answer of a level. An exact match after path
normalization is correct. Otherwise a path-aware similarity in [0, 100] is
computed: an edit distance over path segments in which substituting one
segment for another costs the character-level dissimilarity of the two
(``rapidfuzz`` Levenshtein ratio), so a guess that differs in a single segment
scores far higher than one that differs in every segment. The evaluator is pure
and deterministic.
"""

import os
from typing import List, Optional

from rapidfuzz.distance import Levenshtein

from ..models.game import GuessResult


PLATFORM_CASE_SENSITIVE = os.path.normcase('A') == 'A'


def normalize_path(path: str, case_sensitive: Optional[bool] = None) -> str:
    """
    Normalize a path string for comparison.

    Backslashes become forward slashes, repeated separators collapse, a
    trailing separator is dropped, and case is folded when comparison is
    case-insensitive.

    Args:
        path: Path as typed or stored
        case_sensitive: Compare case-sensitively (platform convention if None)

    Returns:
        Normalized path string
    """
    if case_sensitive is None:
        case_sensitive = PLATFORM_CASE_SENSITIVE

    normalized = path.strip().replace('\\', '/')
    while '//' in normalized:
        normalized = normalized.replace('//', '/')
    if len(normalized) > 1 and normalized.endswith('/'):
        normalized = normalized.rstrip('/') or '/'

    if not case_sensitive:
        normalized = normalized.casefold()
    return normalized


def split_segments(normalized: str) -> List[str]:
    """Split a normalized path into its non-empty segments."""
    return [segment for segment in normalized.split('/') if segment]


def segment_ratio(a: str, b: str) -> float:
    """Levenshtein ratio of two segments in [0, 1]; two empty segments are identical."""
    return Levenshtein.normalized_similarity(a, b)


def strip_root(normalized: str, normalized_root: Optional[str]) -> str:
    """Drop a leading root from a normalized path; paths outside the root are kept whole."""
    if not normalized_root:
        return normalized
    if normalized == normalized_root:
        return ""
    prefix = normalized_root if normalized_root.endswith('/') else normalized_root + '/'
    if normalized.startswith(prefix):
        return normalized[len(prefix):]
    return normalized


def segment_distance(guess_segments: List[str], answer_segments: List[str]) -> float:
    """
    Edit distance over path segments.

    Inserting or deleting a segment costs 1; substituting one segment for
    another costs ``1 - segment_ratio``.
    """
    previous = [float(j) for j in range(len(answer_segments) + 1)]
    for i, guess_segment in enumerate(guess_segments, start=1):
        current = [float(i)]
        for j, answer_segment in enumerate(answer_segments, start=1):
            current.append(min(
                previous[j] + 1.0,
                current[j - 1] + 1.0,
                previous[j - 1] + (1.0 - segment_ratio(guess_segment, answer_segment)),
            ))
        previous = current
    return previous[-1]


def similarity(
    guess: str,
    answer: str,
    case_sensitive: Optional[bool] = None,
    root: Optional[str] = None
) -> float:
    """
    Path-aware similarity between a guess and an answer.

    When ``root`` is given, segments shared through the root are not scored,
    so the result does not depend on how deep the indexed tree sits.

    Args:
        guess: Guessed path
        answer: Answer path
        case_sensitive: Compare case-sensitively (platform convention if None)
        root: Index root both paths are compared relative to

    Returns:
        Score in [0, 100], 100 meaning the segments are identical
    """
    normalized_root = normalize_path(root, case_sensitive) if root else None
    guess_segments = split_segments(strip_root(normalize_path(guess, case_sensitive), normalized_root))
    answer_segments = split_segments(strip_root(normalize_path(answer, case_sensitive), normalized_root))

    longest = max(len(guess_segments), len(answer_segments))
    if longest == 0:
        return 100.0

    distance = segment_distance(guess_segments, answer_segments)
    score = 100.0 * (1.0 - distance / longest)
    return round(min(100.0, max(0.0, score)), 6)


def evaluate(
    guess: str,
    answer: str,
    close_sensitivity: float,
    case_sensitive: Optional[bool] = None,
    root: Optional[str] = None
) -> GuessResult:
    """
    Classify a guess against an answer.

    Args:
        guess: Guessed path
        answer: Answer path
        close_sensitivity: Minimum similarity (0 to 100) for a close guess
        case_sensitive: Compare case-sensitively (platform convention if None)
        root: Index root the similarity is measured under

    Returns:
        GuessResult.CORRECT, GuessResult.CLOSE or GuessResult.INCORRECT
    """
    if normalize_path(guess, case_sensitive) == normalize_path(answer, case_sensitive):
        return GuessResult.CORRECT

    if similarity(guess, answer, case_sensitive, root=root) >= close_sensitivity:
        return GuessResult.CLOSE
    return GuessResult.INCORRECT
