"""Tests for the four compatibility factor scorers."""

import math

import pytest

from match_engine.learning.model import ImplicitPreferenceModel
from match_engine.matching.config import BehavioralConfig, DemographicConfig, LocationConfig
from match_engine.matching.scorers import (
    behavioral_score,
    demographic_score,
    haversine_km,
    interest_score,
    location_score,
)
from match_engine.matching.scorers.location_scorer import distance_score


# ===========================================================================
# interest_score tests
# ===========================================================================


class TestInterestScore:
    """Tests for the Jaccard interest scorer."""

    def test_identical_sets(self) -> None:
        assert interest_score({"hiking", "music"}, {"music", "hiking"}) == 1.0

    def test_disjoint_sets(self) -> None:
        assert interest_score({"hiking"}, {"cooking"}) == 0.0

    def test_partial_overlap(self) -> None:
        # {b, c} / {a, b, c, d}
        assert interest_score({"a", "b", "c"}, {"b", "c", "d"}) == pytest.approx(0.5)

    def test_both_empty(self) -> None:
        assert interest_score(set(), set()) == 0.0

    def test_none_treated_as_empty(self) -> None:
        assert interest_score(None, {"hiking"}) == 0.0

    def test_symmetric(self) -> None:
        a, b = {"a", "b"}, {"b", "c", "d"}
        assert interest_score(a, b) == interest_score(b, a)


# ===========================================================================
# location_score tests
# ===========================================================================


class TestHaversine:
    def test_same_point(self) -> None:
        assert haversine_km(48.0, 7.8, 48.0, 7.8) == pytest.approx(0.0)

    def test_one_degree_latitude(self) -> None:
        # 6371 * pi / 180
        assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.195, abs=0.01)

    def test_across_antimeridian(self) -> None:
        assert haversine_km(0.0, 179.5, 0.0, -179.5) == pytest.approx(111.195, abs=0.01)


class TestLocationScore:
    """Tests for the geographic proximity scorer."""

    def test_same_location(self) -> None:
        a = {"latitude": 48.0, "longitude": 7.8}
        assert location_score(a, dict(a), 50) == pytest.approx(1.0)

    def test_half_the_max_distance(self) -> None:
        a = {"latitude": 0.0, "longitude": 0.0}
        b = {"latitude": 1.0, "longitude": 0.0}
        assert location_score(a, b, 2 * 111.195) == pytest.approx(0.5, abs=1e-3)

    def test_beyond_max_distance_scores_zero(self) -> None:
        berlin = {"latitude": 52.52, "longitude": 13.405}
        freiburg = {"latitude": 47.999, "longitude": 7.842}
        assert location_score(berlin, freiburg, 100) == 0.0

    def test_missing_viewer_coordinates_neutral(self) -> None:
        a = {"latitude": None, "longitude": None}
        b = {"latitude": 48.0, "longitude": 7.8}
        assert location_score(a, b, 100) == 0.5

    def test_missing_candidate_coordinates_neutral(self) -> None:
        a = {"latitude": 48.0, "longitude": 7.8}
        assert location_score(a, {}, 100) == 0.5

    def test_neutral_score_configurable(self) -> None:
        cfg = LocationConfig(neutral_score=0.2)
        assert location_score({}, {}, 100, config=cfg) == 0.2

    def test_missing_max_distance_uses_default(self) -> None:
        a = {"latitude": 0.0, "longitude": 0.0}
        b = {"latitude": 0.0, "longitude": 0.0}
        cfg = LocationConfig(default_max_distance_km=10)
        assert location_score(a, b, None, config=cfg) == pytest.approx(1.0)

    def test_distance_score_clamped(self) -> None:
        assert distance_score(0.0, 100) == 1.0
        assert distance_score(150.0, 100) == 0.0
        assert distance_score(25.0, 100) == pytest.approx(0.75)

    def test_non_increasing_in_distance(self) -> None:
        viewer = {"latitude": 0.0, "longitude": 0.0}
        scores = [
            location_score(viewer, {"latitude": step * 0.05, "longitude": 0.0}, 100)
            for step in range(40)
        ]

        assert scores[0] == 1.0
        assert scores[-1] == 0.0
        assert all(a >= b for a, b in zip(scores, scores[1:]))


# ===========================================================================
# demographic_score tests
# ===========================================================================


class TestDemographicScore:
    """Tests for the stated age range / gender preference scorer."""

    def test_both_halves_match(self) -> None:
        prefs = {"age_min": 25, "age_max": 35, "gender_preference": "female"}
        assert demographic_score(prefs, 30, "female") == 1.0

    def test_age_outside_range(self) -> None:
        prefs = {"age_min": 25, "age_max": 35, "gender_preference": "female"}
        assert demographic_score(prefs, 40, "female") == 0.5

    def test_gender_mismatch(self) -> None:
        prefs = {"age_min": 25, "age_max": 35, "gender_preference": "female"}
        assert demographic_score(prefs, 30, "male") == 0.5

    def test_nothing_matches(self) -> None:
        prefs = {"age_min": 25, "age_max": 35, "gender_preference": "female"}
        assert demographic_score(prefs, 50, "male") == 0.0

    def test_range_bounds_inclusive(self) -> None:
        prefs = {"age_min": 25, "age_max": 35}
        assert demographic_score(prefs, 25, None) == 1.0
        assert demographic_score(prefs, 35, None) == 1.0

    def test_no_preferences_is_neutral_per_half(self) -> None:
        assert demographic_score(None, 30, "male") == 1.0
        assert demographic_score({}, None, None) == 1.0

    def test_any_gender(self) -> None:
        prefs = {"gender_preference": "any"}
        assert demographic_score(prefs, 30, "nonbinary") == 1.0

    def test_gender_case_insensitive(self) -> None:
        prefs = {"gender_preference": "Female"}
        assert demographic_score(prefs, None, "FEMALE") == 1.0

    def test_candidate_gender_missing_with_preference(self) -> None:
        prefs = {"gender_preference": "female"}
        assert demographic_score(prefs, None, None) == 0.5

    def test_partial_range_filled_from_defaults(self) -> None:
        cfg = DemographicConfig(default_age_min=18, default_age_max=60)
        assert demographic_score({"age_min": 30}, 65, None, config=cfg) == 0.5
        assert demographic_score({"age_max": 40}, 17, None, config=cfg) == 0.5
        assert demographic_score({"age_max": 40}, 20, None, config=cfg) == 1.0


# ===========================================================================
# behavioral_score tests
# ===========================================================================


def _model(**overrides) -> ImplicitPreferenceModel:
    fields = {
        "user_id": "alice",
        "tag_weights": {"hiking": 1.0, "cooking": -1.0},
        "age_center": 30.0,
        "age_spread": 5.0,
        "sample_count": 10,
        "version": 1,
    }
    fields.update(overrides)
    return ImplicitPreferenceModel(**fields)


class TestBehavioralScore:
    """Tests for the learned-affinity scorer."""

    def test_no_model_is_neutral(self) -> None:
        assert behavioral_score(None, 30, {"hiking"}) == 0.5

    def test_empty_model_is_neutral(self) -> None:
        empty = ImplicitPreferenceModel(user_id="alice")
        assert behavioral_score(empty, 30, {"hiking"}) == 0.5

    def test_perfect_match(self) -> None:
        assert behavioral_score(_model(), 30, {"hiking"}) == pytest.approx(1.0)

    def test_mixed_tags(self) -> None:
        # tags: mean(1, 0) = 0.5 -> 0.75; age: exp(0) = 1
        score = behavioral_score(_model(), 30, {"hiking", "unknown"})
        assert score == pytest.approx(0.6 * 0.75 + 0.4 * 1.0)

    def test_disliked_tag_and_distant_age(self) -> None:
        # tags: -1 -> 0.0; age: exp(-100 / 50)
        score = behavioral_score(_model(), 40, {"cooking"})
        assert score == pytest.approx(0.4 * math.exp(-2.0))

    def test_few_samples_use_default_spread(self) -> None:
        # spread 10: exp(-100 / 200)
        score = behavioral_score(_model(sample_count=3), 40, {"hiking"})
        assert score == pytest.approx(0.6 * 1.0 + 0.4 * math.exp(-0.5))

    def test_candidate_without_tags_uses_neutral_tag_component(self) -> None:
        score = behavioral_score(_model(), 30, set())
        assert score == pytest.approx(0.6 * 0.5 + 0.4 * 1.0)

    def test_candidate_without_age_uses_neutral_age_component(self) -> None:
        score = behavioral_score(_model(), None, {"hiking"})
        assert score == pytest.approx(0.6 * 1.0 + 0.4 * 0.5)

    def test_custom_blend(self) -> None:
        cfg = BehavioralConfig(tag_weight=1.0, age_weight=0.0)
        assert behavioral_score(_model(), 80, {"hiking"}, config=cfg) == pytest.approx(1.0)

    def test_always_in_unit_interval(self) -> None:
        model = _model(tag_weights={"x": 5.0})
        assert 0.0 <= behavioral_score(model, 30, {"x"}) <= 1.0
