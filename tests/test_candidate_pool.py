"""Tests for candidate pool pre-filters."""

import pytest

from conftest import make_profile
from match_engine.matching.config import MatchingConfig, RankingConfig
from match_engine.ranking.candidate_pool import (
    bounding_box,
    build_candidate_filters,
    effective_preferences,
    within_max_distance,
)


class TestBoundingBox:
    def test_contains_center(self) -> None:
        box = bounding_box(48.0, 7.8, 100)
        assert box.min_lat < 48.0 < box.max_lat
        assert box.min_lon < 7.8 < box.max_lon
        assert not box.wraps_antimeridian

    def test_latitude_span(self) -> None:
        box = bounding_box(0.0, 0.0, 111.195)
        assert box.max_lat == pytest.approx(1.0, abs=1e-3)
        assert box.min_lat == pytest.approx(-1.0, abs=1e-3)

    def test_wraps_antimeridian(self) -> None:
        box = bounding_box(0.0, 179.9, 100)
        assert box.wraps_antimeridian
        assert box.min_lon > 178.9
        assert box.max_lon < -179.0

    def test_near_pole_uses_full_longitude(self) -> None:
        box = bounding_box(89.5, 10.0, 100)
        assert (box.min_lon, box.max_lon) == (-180.0, 180.0)
        assert box.max_lat == 90.0


class TestEffectivePreferences:
    def test_all_missing_defaulted(self) -> None:
        prefs, defaulted = effective_preferences(make_profile("v"), MatchingConfig())
        assert prefs["age_min"] == 18
        assert prefs["age_max"] == 99
        assert prefs["gender_preference"] == "any"
        assert prefs["max_distance_km"] == 100
        assert defaulted == ["age_min", "age_max", "gender_preference", "max_distance_km"]

    def test_stated_preferences_kept(self) -> None:
        viewer = make_profile(
            "v",
            preferences={"age_min": 25, "age_max": 35, "gender_preference": "male", "max_distance_km": 20},
        )
        prefs, defaulted = effective_preferences(viewer, MatchingConfig())
        assert prefs == {"age_min": 25, "age_max": 35, "gender_preference": "male", "max_distance_km": 20}
        assert defaulted == []

    def test_viewer_dict_not_mutated(self) -> None:
        viewer = make_profile("v")
        effective_preferences(viewer, MatchingConfig())
        assert viewer["preferences"]["age_min"] is None


class TestBuildCandidateFilters:
    def test_filters_from_preferences(self) -> None:
        viewer = make_profile(
            "v",
            preferences={"age_min": 25, "age_max": 35, "gender_preference": "Female", "max_distance_km": 20},
        )
        filters, defaulted = build_candidate_filters(viewer, MatchingConfig())

        assert filters.limit == 500
        assert filters.exclude_ids == frozenset({"v"})
        assert filters.exclude_swiped
        assert filters.bounding_box is not None
        assert (filters.age_min, filters.age_max) == (25, 35)
        assert filters.gender == "Female"
        assert defaulted == []

    def test_any_gender_disables_gender_filter(self) -> None:
        filters, _ = build_candidate_filters(make_profile("v"), MatchingConfig())
        assert filters.gender is None

    def test_viewer_without_location_has_no_box(self) -> None:
        viewer = make_profile("v", latitude=None, longitude=None)
        filters, _ = build_candidate_filters(viewer, MatchingConfig())
        assert filters.bounding_box is None

    def test_prefilters_can_be_disabled(self) -> None:
        config = MatchingConfig(
            ranking=RankingConfig(prefilter_distance=False, prefilter_demographics=False)
        )
        viewer = make_profile("v", preferences={"gender_preference": "male"})
        filters, _ = build_candidate_filters(viewer, config)
        assert filters.bounding_box is None
        assert filters.age_min is None
        assert filters.gender is None


class TestWithinMaxDistance:
    def test_inside_and_outside(self) -> None:
        viewer = make_profile("v", latitude=0.0, longitude=0.0)
        near = make_profile("n", latitude=0.5, longitude=0.0)
        far = make_profile("f", latitude=2.0, longitude=0.0)
        assert within_max_distance(viewer, near, 100)
        assert not within_max_distance(viewer, far, 100)

    def test_missing_coordinates_kept(self) -> None:
        viewer = make_profile("v")
        assert within_max_distance(viewer, make_profile("c", latitude=None), 1)
