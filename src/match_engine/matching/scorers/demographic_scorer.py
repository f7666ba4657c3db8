"""Demographic scorer: stated age range and gender preference.

Each half contributes 0.5.  Missing preference data makes that half
neutral (0.5) so new users with empty profiles still get recommendations.
"""

from __future__ import annotations

from match_engine.matching.config import DemographicConfig

ANY_GENDER = "any"


def _age_half(
    preferences: dict, candidate_age: int | None, config: DemographicConfig
) -> float:
    age_min = preferences.get("age_min")
    age_max = preferences.get("age_max")

    if age_min is None and age_max is None:
        return 0.5
    if candidate_age is None:
        return 0.5

    if age_min is None:
        age_min = config.default_age_min
    if age_max is None:
        age_max = config.default_age_max

    return 0.5 if age_min <= candidate_age <= age_max else 0.0


def _gender_half(preferences: dict, candidate_gender: str | None) -> float:
    preference = preferences.get("gender_preference")

    if not preference:
        return 0.5
    if preference.lower() == ANY_GENDER:
        return 0.5
    if candidate_gender is None:
        return 0.0

    return 0.5 if preference.lower() == candidate_gender.lower() else 0.0


def demographic_score(
    preferences: dict | None,
    candidate_age: int | None,
    candidate_gender: str | None,
    config: DemographicConfig | None = None,
) -> float:
    """Score a candidate against the viewer's stated preferences.

    Returns one of ``0.0``, ``0.5`` or ``1.0``.
    """
    if config is None:
        config = DemographicConfig()
    preferences = preferences or {}

    return _age_half(preferences, candidate_age, config) + _gender_half(
        preferences, candidate_gender
    )
