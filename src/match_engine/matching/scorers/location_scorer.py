"""Geographic proximity scorer using the Haversine formula.

Returns a score in [0, 1] based on how close two users are.  Missing
coordinates return a neutral score (default 0.5).  Candidates beyond the
viewer's max distance score 0 but are not excluded here; exclusion is a
ranking policy.
"""

from __future__ import annotations

import math

from match_engine.matching.config import LocationConfig

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute the great-circle distance between two points in kilometres."""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_score(distance_km: float, max_distance_km: float) -> float:
    """Normalise a distance into ``max(0, 1 - d / max)``, clamped to [0, 1]."""
    if max_distance_km <= 0:
        return 0.0
    return min(1.0, max(0.0, 1.0 - distance_km / max_distance_km))


def location_score(
    viewer: dict,
    candidate: dict,
    max_distance_km: float | None = None,
    config: LocationConfig | None = None,
) -> float:
    """Compute geographic proximity score between a viewer and a candidate.

    Returns a float in [0, 1]:
    - ``config.neutral_score`` if either side is missing coordinates
    - ``max(0.0, 1.0 - distance / max_distance_km)`` otherwise
    """
    if config is None:
        config = LocationConfig()
    if not max_distance_km:
        max_distance_km = config.default_max_distance_km

    lat_a = viewer.get("latitude")
    lon_a = viewer.get("longitude")
    lat_b = candidate.get("latitude")
    lon_b = candidate.get("longitude")

    if lat_a is None or lon_a is None or lat_b is None or lon_b is None:
        return config.neutral_score

    return distance_score(haversine_km(lat_a, lon_a, lat_b, lon_b), max_distance_km)
