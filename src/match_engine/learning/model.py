"""In-memory representation of a user's implicit preference model.

The model is always read and written as a whole unit: the learner builds a
fresh instance and the repository replaces the stored row with it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime


@dataclass(frozen=True)
class ImplicitPreferenceModel:
    """Learned adjustment for one user.

    Attributes:
        user_id: Owner of the model.
        tag_weights: Interest tag id -> affinity in [-1, 1].
        age_center: Mean age of liked profiles, ``None`` before learning.
        age_spread: Standard deviation of liked ages (floored).
        sample_count: Number of swipes the model was learned from.
        version: Incremented on every replace; used for optimistic writes.
        updated_at: When the model was last replaced.
    """

    user_id: str
    tag_weights: dict[str, float] = field(default_factory=dict)
    age_center: float | None = None
    age_spread: float | None = None
    sample_count: int = 0
    version: int = 0
    updated_at: datetime | None = None

    @property
    def is_empty(self) -> bool:
        return self.sample_count == 0

    def with_version(self, version: int) -> ImplicitPreferenceModel:
        return replace(self, version=version)


@dataclass(frozen=True)
class LabeledSwipe:
    """One swipe joined with the target's attributes, as the learner sees it."""

    direction: str
    swiped_at: datetime
    target_age: int | None
    target_interests: frozenset[str]
