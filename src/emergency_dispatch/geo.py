from __future__ import annotations

import math

KM_PER_DEGREE = 111
EARTH_RADIUS_KM = 6371.0


def flat_distance_km(center_lat: float, center_lng: float, lat: float, lng: float) -> float:
    """Small-area flat-earth approximation around ``center``.

    Degree deltas are scaled by 111 km, longitude shrunk by the cosine of the
    center latitude. Only meaningful over a few kilometres; use
    :func:`haversine_km` when accuracy matters.
    """
    d_lat = (lat - center_lat) * KM_PER_DEGREE
    d_lng = (lng - center_lng) * KM_PER_DEGREE * math.cos((center_lat * math.pi) / 180)
    return math.sqrt(d_lat * d_lat + d_lng * d_lng)


def haversine_km(origin_lat: float, origin_lng: float, target_lat: float, target_lng: float) -> float:
    lat1, lon1 = math.radians(origin_lat), math.radians(origin_lng)
    lat2, lon2 = math.radians(target_lat), math.radians(target_lng)
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c
