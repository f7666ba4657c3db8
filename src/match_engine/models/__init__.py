from match_engine.models.base import Base
from match_engine.models.interest import Interest, user_interests
from match_engine.models.match import Match
from match_engine.models.preference_model import PreferenceModel
from match_engine.models.swipe_event import SwipeEvent
from match_engine.models.user import User
from match_engine.models.user_swipe_stats import UserSwipeStats

__all__ = [
    "Base",
    "Interest",
    "Match",
    "PreferenceModel",
    "SwipeEvent",
    "User",
    "UserSwipeStats",
    "user_interests",
]
