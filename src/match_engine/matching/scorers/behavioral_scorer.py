"""Behavioral affinity scorer driven by the viewer's learned model.

Blends the mean learned tag affinity of the candidate's interests with a
Gaussian age-proximity term around the learned age centre.  Viewers without
a model (no swipe history yet) get a neutral score.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from match_engine.learning.model import ImplicitPreferenceModel
from match_engine.matching.config import BehavioralConfig


def _tag_affinity(model: ImplicitPreferenceModel, tags: set[str], neutral: float) -> float:
    if not tags:
        return neutral
    mean = sum(model.tag_weights.get(tag, 0.0) for tag in tags) / len(tags)
    # [-1, 1] -> [0, 1]
    return (mean + 1.0) / 2.0


def _age_proximity(
    model: ImplicitPreferenceModel, age: int | None, config: BehavioralConfig
) -> float:
    if age is None or model.age_center is None:
        return config.neutral_score

    spread = model.age_spread
    if model.sample_count < config.min_samples or not spread:
        spread = config.default_age_spread

    delta = age - model.age_center
    return math.exp(-(delta * delta) / (2.0 * spread * spread))


def behavioral_score(
    model: ImplicitPreferenceModel | None,
    candidate_age: int | None,
    candidate_tags: Iterable[str] | None,
    config: BehavioralConfig | None = None,
) -> float:
    """Score a candidate against the viewer's implicit preference model.

    Returns ``config.neutral_score`` when the viewer has no model or the
    model has no samples; otherwise a float in [0, 1].
    """
    if config is None:
        config = BehavioralConfig()
    if model is None or model.is_empty:
        return config.neutral_score

    total_weight = config.tag_weight + config.age_weight
    if total_weight == 0:
        return config.neutral_score

    tags = set(candidate_tags or ())
    score = (
        config.tag_weight * _tag_affinity(model, tags, config.neutral_score)
        + config.age_weight * _age_proximity(model, candidate_age, config)
    ) / total_weight

    return min(1.0, max(0.0, score))
