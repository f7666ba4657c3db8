"""Score combiner.

Combines the four factor scores into a single weighted compatibility
score.  This is the only place factor weights are applied.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime

from match_engine.matching.config import ScoringWeights


@dataclass(frozen=True)
class FactorScores:
    """Container for the four compatibility factor scores."""

    interest: float
    demographic: float
    location: float
    behavioral: float

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class CompatibilityScore:
    """Result of scoring one (viewer, candidate) pair."""

    overall: float
    factors: FactorScores
    computed_at: datetime


def combined_score(
    scores: FactorScores, weights: ScoringWeights | None = None
) -> float:
    """Compute the weighted sum of the four factor scores.

    Weights are validated to sum to 1.0 when the config is built, so no
    renormalisation happens here.

    Returns a float in [0, 1].
    """
    if weights is None:
        weights = ScoringWeights()

    weighted = (
        weights.interest * scores.interest
        + weights.demographic * scores.demographic
        + weights.location * scores.location
        + weights.behavioral * scores.behavioral
    )

    return min(1.0, max(0.0, weighted))
