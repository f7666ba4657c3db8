"""Candidate pool pre-filters.

Turns a viewer profile into cheap, index-friendly filters (coarse
bounding box, age range, gender) so the database returns a bounded pool
instead of the whole user base.  Everything here is pure.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from match_engine.matching.config import MatchingConfig
from match_engine.matching.scorers.demographic_scorer import ANY_GENDER
from match_engine.matching.scorers.location_scorer import EARTH_RADIUS_KM, haversine_km


@dataclass(frozen=True)
class BoundingBox:
    """Latitude/longitude rectangle enclosing a search radius.

    ``min_lon > max_lon`` means the box wraps the antimeridian.
    """

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @property
    def wraps_antimeridian(self) -> bool:
        return self.min_lon > self.max_lon


@dataclass(frozen=True)
class CandidateFilters:
    """Filters passed to ``repository.fetch_candidate_pool``.

    Attributes:
        limit: Hard cap on the number of candidates returned.
        exclude_ids: User ids never returned (always includes the viewer).
        exclude_swiped: Drop candidates the viewer already swiped on.
        bounding_box: Coarse geographic filter, ``None`` to disable.
        age_min: Inclusive lower age bound, ``None`` to disable.
        age_max: Inclusive upper age bound, ``None`` to disable.
        gender: Required candidate gender, ``None`` for any.
    """

    limit: int
    exclude_ids: frozenset[str] = frozenset()
    exclude_swiped: bool = True
    bounding_box: BoundingBox | None = None
    age_min: int | None = None
    age_max: int | None = None
    gender: str | None = None


@dataclass
class CandidatePoolStats:
    """Statistics about one candidate pool retrieval."""

    fetched: int = 0
    excluded_beyond_distance: int = 0
    defaulted_preferences: list[str] = field(default_factory=list)

    @property
    def scored(self) -> int:
        return self.fetched - self.excluded_beyond_distance


def bounding_box(lat: float, lon: float, radius_km: float) -> BoundingBox:
    """Compute the lat/lon rectangle that contains a circle of ``radius_km``.

    Near the poles the longitude span degenerates, so the full longitude
    range is used instead.
    """
    dlat = math.degrees(radius_km / EARTH_RADIUS_KM)
    min_lat = max(-90.0, lat - dlat)
    max_lat = min(90.0, lat + dlat)

    if min_lat <= -90.0 or max_lat >= 90.0:
        return BoundingBox(min_lat, max_lat, -180.0, 180.0)

    dlon = math.degrees(
        math.asin(min(1.0, math.sin(radius_km / EARTH_RADIUS_KM) / math.cos(math.radians(lat))))
    )
    min_lon = lon - dlon
    max_lon = lon + dlon
    if dlon >= 180.0:
        return BoundingBox(min_lat, max_lat, -180.0, 180.0)
    if min_lon < -180.0:
        min_lon += 360.0
    if max_lon > 180.0:
        max_lon -= 360.0
    return BoundingBox(min_lat, max_lat, min_lon, max_lon)


def effective_preferences(
    viewer: dict, config: MatchingConfig
) -> tuple[dict, list[str]]:
    """Fill missing viewer preferences with the documented defaults.

    Returns the completed preference dict and the names of the fields that
    were defaulted (full age range, any gender, default max distance).
    """
    preferences = dict(viewer.get("preferences") or {})
    defaulted: list[str] = []

    if preferences.get("age_min") is None:
        preferences["age_min"] = config.demographic.default_age_min
        defaulted.append("age_min")
    if preferences.get("age_max") is None:
        preferences["age_max"] = config.demographic.default_age_max
        defaulted.append("age_max")
    if not preferences.get("gender_preference"):
        preferences["gender_preference"] = ANY_GENDER
        defaulted.append("gender_preference")
    if not preferences.get("max_distance_km"):
        preferences["max_distance_km"] = config.location.default_max_distance_km
        defaulted.append("max_distance_km")

    return preferences, defaulted


def build_candidate_filters(
    viewer: dict, config: MatchingConfig
) -> tuple[CandidateFilters, list[str]]:
    """Build the pre-filters for a viewer's candidate pool.

    Returns:
        A tuple of (filters, names of defaulted preference fields).
    """
    preferences, defaulted = effective_preferences(viewer, config)
    ranking = config.ranking

    box = None
    lat, lon = viewer.get("latitude"), viewer.get("longitude")
    if ranking.prefilter_distance and lat is not None and lon is not None:
        box = bounding_box(lat, lon, preferences["max_distance_km"])

    age_min = age_max = gender = None
    if ranking.prefilter_demographics:
        age_min = preferences["age_min"]
        age_max = preferences["age_max"]
        if preferences["gender_preference"].lower() != ANY_GENDER:
            gender = preferences["gender_preference"]

    filters = CandidateFilters(
        limit=ranking.candidate_pool_cap,
        exclude_ids=frozenset({viewer["id"]}),
        exclude_swiped=True,
        bounding_box=box,
        age_min=age_min,
        age_max=age_max,
        gender=gender,
    )
    return filters, defaulted


def within_max_distance(viewer: dict, candidate: dict, max_distance_km: float) -> bool:
    """Exact distance check used by the strict ranking policy.

    Candidates without coordinates are kept; they score neutral instead.
    """
    lat_a, lon_a = viewer.get("latitude"), viewer.get("longitude")
    lat_b, lon_b = candidate.get("latitude"), candidate.get("longitude")
    if lat_a is None or lon_a is None or lat_b is None or lon_b is None:
        return True
    return haversine_km(lat_a, lon_a, lat_b, lon_b) <= max_distance_km
