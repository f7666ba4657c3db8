"""Implicit preference learning strategies.

A strategy turns a user's recent swipe history into a fresh
``ImplicitPreferenceModel``.  Strategies are pure; loading history and
persisting the model is the job of ``PreferenceLearnerService``.
"""

from __future__ import annotations

import math
from collections import defaultdict
from typing import Protocol

from match_engine.learning.model import ImplicitPreferenceModel, LabeledSwipe
from match_engine.matching.config import LearnerConfig
from match_engine.models.swipe_event import DISLIKE, LIKE, POSITIVE_DIRECTIONS, SUPER_LIKE


class PreferenceLearner(Protocol):
    """Capability boundary for preference learning algorithms."""

    def learn(
        self,
        user_id: str,
        history: list[LabeledSwipe],
        previous: ImplicitPreferenceModel | None,
    ) -> ImplicitPreferenceModel | None:
        """Return a new model, or ``None`` to leave ``previous`` untouched."""
        ...


class WeightedAffinityLearner:
    """Recency-weighted tag affinity plus liked-age statistics.

    Each swipe adds a signed signal to every tag on the target profile
    (super-likes count more than likes, dislikes subtract).  Newer swipes
    weigh more via ``recency_decay ** rank``.  The per-tag running sums are
    clamped to [-1, 1], never rescaled.
    """

    def __init__(self, config: LearnerConfig | None = None) -> None:
        self.config = config or LearnerConfig()

    def _signal(self, direction: str) -> float:
        if direction == SUPER_LIKE:
            return self.config.super_like_weight
        if direction == LIKE:
            return self.config.like_weight
        if direction == DISLIKE:
            return -self.config.dislike_weight
        return 0.0

    def _tag_weights(self, window: list[LabeledSwipe]) -> dict[str, float]:
        signed: dict[str, float] = defaultdict(float)

        for rank, swipe in enumerate(window):
            recency = self.config.recency_decay**rank
            signal = self._signal(swipe.direction)
            for tag in swipe.target_interests:
                signed[tag] += signal * recency

        return {tag: max(-1.0, min(1.0, signed[tag])) for tag in sorted(signed)}

    def _age_stats(self, liked: list[LabeledSwipe]) -> tuple[float | None, float | None]:
        ages = [s.target_age for s in liked if s.target_age is not None]
        if not ages:
            return None, None

        center = sum(ages) / len(ages)
        variance = sum((age - center) ** 2 for age in ages) / len(ages)
        return center, max(math.sqrt(variance), self.config.age_spread_floor)

    def learn(
        self,
        user_id: str,
        history: list[LabeledSwipe],
        previous: ImplicitPreferenceModel | None,
    ) -> ImplicitPreferenceModel | None:
        window = sorted(history, key=lambda s: s.swiped_at, reverse=True)[
            : self.config.window_size
        ]
        liked = [s for s in window if s.direction in POSITIVE_DIRECTIONS]

        if len(liked) < self.config.min_likes:
            return None

        age_center, age_spread = self._age_stats(liked)

        return ImplicitPreferenceModel(
            user_id=user_id,
            tag_weights=self._tag_weights(window),
            age_center=age_center,
            age_spread=age_spread,
            sample_count=len(window),
            version=previous.version if previous else 0,
        )
