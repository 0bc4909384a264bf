"""Elo style rating adjustment for duels."""

from __future__ import annotations

import math
from dataclasses import dataclass

K_FACTOR = 32


def expected_score(subject_rating: float, opponent_rating: float) -> float:
    """Probability that the subject beats the opponent."""

    return 1.0 / (1.0 + 10 ** ((opponent_rating - subject_rating) / 400.0))


def rating_change(subject_rating: float, opponent_rating: float, won: bool, k_factor: int = K_FACTOR) -> int:
    """Rating delta for the subject after one duel.

    Halves round towards positive infinity, so a 1000 vs 1000 loss costs
    exactly the 16 points the win earns.
    """

    actual = 1.0 if won else 0.0
    return math.floor(k_factor * (actual - expected_score(subject_rating, opponent_rating)) + 0.5)


@dataclass(frozen=True)
class Settlement:
    """Rating deltas for both sides of a finished duel."""

    winner_delta: int
    loser_delta: int


def settle(winner_rating: float, loser_rating: float, k_factor: int = K_FACTOR) -> Settlement:
    """Compute both deltas independently from each side's expected score."""

    return Settlement(
        winner_delta=rating_change(winner_rating, loser_rating, True, k_factor),
        loser_delta=rating_change(loser_rating, winner_rating, False, k_factor),
    )
