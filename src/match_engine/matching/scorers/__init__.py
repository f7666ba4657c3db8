"""Compatibility factor scorers -- pure functions operating on profile dicts."""

from match_engine.matching.scorers.behavioral_scorer import behavioral_score
from match_engine.matching.scorers.demographic_scorer import demographic_score
from match_engine.matching.scorers.interest_scorer import interest_score
from match_engine.matching.scorers.location_scorer import haversine_km, location_score

__all__ = [
    "behavioral_score",
    "demographic_score",
    "haversine_km",
    "interest_score",
    "location_score",
]
