"""Pairwise compatibility scoring.

Runs the four factor scorers for one (viewer, candidate) pair and feeds
them through the combiner.  All functions are PURE -- no database access --
so candidates can be scored concurrently.
"""

from __future__ import annotations

from datetime import datetime, timezone

from match_engine.learning.model import ImplicitPreferenceModel
from match_engine.matching.combiner import CompatibilityScore, FactorScores, combined_score
from match_engine.matching.config import MatchingConfig
from match_engine.matching.scorers import (
    behavioral_score,
    demographic_score,
    interest_score,
    location_score,
)


def score_factors(
    viewer: dict,
    candidate: dict,
    model: ImplicitPreferenceModel | None,
    config: MatchingConfig,
) -> FactorScores:
    """Compute the four factor scores for a viewer/candidate pair."""
    preferences = viewer.get("preferences") or {}

    return FactorScores(
        interest=interest_score(viewer.get("interests"), candidate.get("interests")),
        demographic=demographic_score(
            preferences,
            candidate.get("age"),
            candidate.get("gender"),
            config.demographic,
        ),
        location=location_score(
            viewer,
            candidate,
            preferences.get("max_distance_km"),
            config.location,
        ),
        behavioral=behavioral_score(
            model,
            candidate.get("age"),
            candidate.get("interests"),
            config.behavioral,
        ),
    )


def score_pair(
    viewer: dict,
    candidate: dict,
    model: ImplicitPreferenceModel | None,
    config: MatchingConfig,
    now: datetime | None = None,
) -> CompatibilityScore:
    """Score one candidate for a viewer.

    Args:
        viewer: Viewer profile dict (see ``repository.user_to_dict``).
        candidate: Candidate profile dict.
        model: The viewer's implicit preference model, if any.
        config: Active matching configuration.
        now: Timestamp to stamp on the result (defaults to current UTC).

    Returns:
        ``CompatibilityScore`` with the weighted overall score and the
        per-factor breakdown.
    """
    factors = score_factors(viewer, candidate, model, config)
    return CompatibilityScore(
        overall=combined_score(factors, config.scoring),
        factors=factors,
        computed_at=now or datetime.now(timezone.utc),
    )
