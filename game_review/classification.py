"""Move classifications and evaluation-loss thresholds.

Thresholds widen with the magnitude of the previous evaluation: a
swing of a few centipawns matters less once one side is already
winning or losing big.
"""

from __future__ import annotations

from enum import Enum


class Classification(str, Enum):
    """Move quality label. Each member carries its accuracy weight."""

    BRILLIANT = "brilliant"
    GREAT = "great"
    BEST = "best"
    EXCELLENT = "excellent"
    GOOD = "good"
    INACCURACY = "inaccuracy"
    MISTAKE = "mistake"
    BLUNDER = "blunder"
    BOOK = "book"
    FORCED = "forced"

    @property
    def weight(self) -> float:
        """Accuracy weight in [0, 1]."""
        return _CLASSIFICATION_WEIGHTS[self]


_CLASSIFICATION_WEIGHTS: dict[Classification, float] = {
    Classification.BLUNDER: 0.0,
    Classification.MISTAKE: 0.2,
    Classification.INACCURACY: 0.4,
    Classification.GOOD: 0.65,
    Classification.EXCELLENT: 0.9,
    Classification.BEST: 1.0,
    Classification.GREAT: 1.0,
    Classification.BRILLIANT: 1.0,
    Classification.BOOK: 1.0,
    Classification.FORCED: 1.0,
}

# Quadratic coefficients (a, b, c) of a*x^2 + b*x + c, x = |previous eval|
_THRESHOLD_CURVES: dict[Classification, tuple[float, float, float]] = {
    Classification.BEST: (0.0001, 0.0236, -3.7143),
    Classification.EXCELLENT: (0.0002, 0.1231, 27.5455),
    Classification.GOOD: (0.0002, 0.2643, 60.5455),
    Classification.INACCURACY: (0.0002, 0.3624, 108.0909),
    Classification.MISTAKE: (0.0003, 0.4027, 225.8182),
}

# Centipawn tiers in severity order; the first tier whose threshold
# tolerates the loss wins, anything beyond MISTAKE is a blunder.
CENTIPAWN_CLASSIFICATIONS: list[Classification] = [
    Classification.BEST,
    Classification.EXCELLENT,
    Classification.GOOD,
    Classification.INACCURACY,
    Classification.MISTAKE,
]

# Classifications that keep a cloud-evaluated move inside the book prefix
POSITIVE_CLASSIFICATIONS: frozenset[Classification] = frozenset({
    Classification.EXCELLENT,
    Classification.GOOD,
    Classification.BEST,
    Classification.GREAT,
})


def max_eval_loss(classification: Classification, previous_eval: float) -> float:
    """Maximum evaluation loss tolerated for a classification.

    Args:
        classification: Centipawn tier to look up.
        previous_eval: Evaluation before the move, in centipawns.
            Only its magnitude is used.

    Returns:
        Non-negative threshold in centipawns. Tiers without a curve
        (blunder and the non-centipawn labels) tolerate any loss.
    """
    curve = _THRESHOLD_CURVES.get(classification)
    if curve is None:
        return float("inf")

    a, b, c = curve
    x = abs(previous_eval)
    return max(a * x * x + b * x + c, 0.0)


def classify_eval_loss(eval_loss: float, previous_eval: float) -> Classification:
    """Pick the tightest centipawn tier that tolerates ``eval_loss``."""
    for classification in CENTIPAWN_CLASSIFICATIONS:
        if eval_loss <= max_eval_loss(classification, previous_eval):
            return classification
    return Classification.BLUNDER
