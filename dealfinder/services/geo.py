"""Great-circle distance between listings with a bounded memo cache."""

from __future__ import annotations

import math
from typing import Optional, Tuple

from ..utils.caching import DEFAULT_MAX_ENTRIES, BoundedCache
from ..utils.coerce import to_float

EARTH_RADIUS_KM = 6371.0
KM_TO_MILES = 0.621371
UNREACHABLE = math.inf


def km_to_miles(km: float) -> float:
    return km * KM_TO_MILES


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    miles = km_to_miles(EARTH_RADIUS_KM * c)
    return miles if math.isfinite(miles) else UNREACHABLE


def _parse_point(lat, lon) -> Optional[Tuple[float, float]]:
    lat_f, lon_f = to_float(lat), to_float(lon)
    if lat_f is None or lon_f is None:
        return None
    return lat_f, lon_f


class GeoDistance:
    """Haversine distance in miles, memoized on the coordinate 4-tuple.

    Coordinates may be numbers or numeric strings. Anything missing or
    non-finite on either side yields ``math.inf`` so the point simply falls
    outside every radius.
    """

    def __init__(self, cache: Optional[BoundedCache[float]] = None, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self.cache = cache if cache is not None else BoundedCache(max_entries)

    def distance(self, lat1, lon1, lat2, lon2) -> float:
        first = _parse_point(lat1, lon1)
        second = _parse_point(lat2, lon2)
        if first is None or second is None:
            return UNREACHABLE

        key = first + second
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        miles = haversine_miles(*key)
        self.cache.set(key, miles)
        return miles


__all__ = ["GeoDistance", "haversine_miles", "km_to_miles", "EARTH_RADIUS_KM", "KM_TO_MILES", "UNREACHABLE"]
