"""Matching engine configuration with sensible defaults.

All parameters can be overridden via ``config/matching.yaml``.
If the file does not exist, defaults are used.  Scoring weights are
validated when the config is built so a bad file fails at startup.
"""

from __future__ import annotations

import threading
from pathlib import Path

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from match_engine.errors import ConfigurationError

logger = structlog.get_logger()

WEIGHT_SUM_TOLERANCE = 1e-6


class ScoringWeights(BaseModel):
    """Relative weights for the four compatibility factors."""

    interest: float = Field(default=0.4, ge=0.0)
    demographic: float = Field(default=0.3, ge=0.0)
    location: float = Field(default=0.2, ge=0.0)
    behavioral: float = Field(default=0.1, ge=0.0)

    @model_validator(mode="after")
    def check_weights_sum(self) -> "ScoringWeights":
        """Reject weights that do not sum to 1.0."""
        total = self.interest + self.demographic + self.location + self.behavioral
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ValueError(f"scoring weights must sum to 1.0, got {total:.6f}")
        return self


class LocationConfig(BaseModel):
    """Parameters for geographic proximity scoring."""

    default_max_distance_km: float = Field(default=100.0, gt=0.0)
    neutral_score: float = Field(default=0.5, ge=0.0, le=1.0)


class DemographicConfig(BaseModel):
    """Fallback bounds used when a viewer has a partial age range."""

    default_age_min: int = 18
    default_age_max: int = 99


class BehavioralConfig(BaseModel):
    """Parameters for the learned-affinity factor."""

    neutral_score: float = Field(default=0.5, ge=0.0, le=1.0)
    tag_weight: float = Field(default=0.6, ge=0.0)
    age_weight: float = Field(default=0.4, ge=0.0)
    min_samples: int = Field(default=5, ge=0)
    default_age_spread: float = Field(default=10.0, gt=0.0)


class LearnerConfig(BaseModel):
    """Parameters for the implicit preference learner."""

    refresh_threshold: int = Field(default=20, ge=1)
    window_size: int = Field(default=200, ge=1)
    min_likes: int = Field(default=3, ge=1)
    age_spread_floor: float = Field(default=5.0, gt=0.0)
    like_weight: float = 1.0
    super_like_weight: float = 2.0
    dislike_weight: float = 1.0
    recency_decay: float = Field(default=0.99, gt=0.0, le=1.0)
    workers: int = Field(default=2, ge=1)


class RankingConfig(BaseModel):
    """Candidate pool and scoring fan-out parameters."""

    candidate_pool_cap: int = Field(default=500, ge=1)
    max_workers: int = Field(default=4, ge=1)
    batch_size: int = Field(default=32, ge=1)
    timeout_seconds: float = Field(default=2.0, gt=0.0)
    prefilter_distance: bool = True
    prefilter_demographics: bool = True
    exclude_beyond_max_distance: bool = False


class MatchingConfig(BaseModel):
    """Top-level matching configuration combining all sub-configs."""

    scoring: ScoringWeights = ScoringWeights()
    location: LocationConfig = LocationConfig()
    demographic: DemographicConfig = DemographicConfig()
    behavioral: BehavioralConfig = BehavioralConfig()
    learner: LearnerConfig = LearnerConfig()
    ranking: RankingConfig = RankingConfig()


def build_matching_config(data: dict) -> MatchingConfig:
    """Validate a raw config mapping, raising ``ConfigurationError`` on failure."""
    try:
        return MatchingConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e


def load_matching_config(path: Path) -> MatchingConfig:
    """Load matching configuration from a YAML file.

    If the file does not exist, returns a ``MatchingConfig`` with all
    default values.  Partial overrides are supported -- only the keys
    present in the YAML file will override defaults.

    Raises:
        ConfigurationError: If the file content fails validation
            (e.g. scoring weights that do not sum to 1.0).
    """
    if not path.exists():
        logger.info("matching_config_defaults", path=str(path))
        return MatchingConfig()

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping")

    config = build_matching_config(data)
    logger.info("matching_config_loaded", path=str(path), weights=config.scoring.model_dump())
    return config


class ConfigHolder:
    """Holds the active ``MatchingConfig`` and swaps it under a lock.

    Readers take a reference to the current config once per request, so a
    swap never changes the weights halfway through a ranking.
    """

    def __init__(self, config: MatchingConfig | None = None) -> None:
        self._lock = threading.Lock()
        self._config = config or MatchingConfig()

    @property
    def current(self) -> MatchingConfig:
        with self._lock:
            return self._config

    def swap(self, config: MatchingConfig) -> MatchingConfig:
        """Replace the active config, returning the previous one."""
        with self._lock:
            previous, self._config = self._config, config
        logger.info("matching_config_swapped", weights=config.scoring.model_dump())
        return previous
