"""Guess matching and point awards."""

from __future__ import annotations

FIRST_GUESS_POINTS = 120
POINTS_STEP = 30
MIN_GUESS_POINTS = 30
DRAWER_POINTS = 15


def is_correct_guess(text: str, word: str) -> bool:
    """Whole-string, case-insensitive match. No partial credit."""
    answer = (word or "").strip().casefold()
    if not answer:
        return False
    return (text or "").strip().casefold() == answer


def guesser_points(order: int) -> int:
    """Points for the ``order``-th (1-based) correct guesser of a round."""
    return max(FIRST_GUESS_POINTS - (max(order, 1) - 1) * POINTS_STEP, MIN_GUESS_POINTS)
