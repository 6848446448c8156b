"""Ward lookup for coordinates against GeoJSON ward boundaries."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..utils.coerce import to_float, to_str
from ..utils.logging import get_logger

LOGGER = get_logger("services.wards")


def point_in_polygon(lat: float, lng: float, polygon: Sequence[Sequence[Sequence[float]]]) -> bool:
    """Ray-casting test against the outer ring of a GeoJSON polygon.

    GeoJSON rings store ``[lng, lat]`` pairs; only ``polygon[0]`` is used.
    """

    if not polygon:
        return False
    ring = polygon[0]
    inside = False
    j = len(ring) - 1
    for i in range(len(ring)):
        lng_i, lat_i = ring[i][0], ring[i][1]
        lng_j, lat_j = ring[j][0], ring[j][1]
        if (lat_i > lat) != (lat_j > lat):
            crossing = (lng_j - lng_i) * (lat - lat_i) / (lat_j - lat_i) + lng_i
            if lng < crossing:
                inside = not inside
        j = i
    return inside


def find_ward(lat, lng, features: Iterable[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    lat_f, lng_f = to_float(lat), to_float(lng)
    if lat_f is None or lng_f is None:
        return None
    for feature in features:
        geometry = feature.get("geometry") or {}
        if point_in_polygon(lat_f, lng_f, geometry.get("coordinates") or []):
            props = feature.get("properties") or {}
            return {
                "number": props.get("NUMBER"),
                "name": to_str(props.get("Name")),
                "councillor": to_str(props.get("COUNCILLOR")),
            }
    return None


def assign_wards(rows: Iterable[Dict[str, Any]], features: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Copy of raw board rows with a missing ``wards`` label filled from coordinates."""

    assigned: List[Dict[str, Any]] = []
    filled = 0
    for row in rows:
        if row.get("wards"):
            assigned.append(row)
            continue
        address = row.get("address")
        if not isinstance(address, dict):
            address = {}
        ward = find_ward(address.get("lat"), address.get("lng"), features)
        if ward and ward["name"]:
            row = {**row, "wards": ward["name"]}
            filled += 1
        assigned.append(row)
    LOGGER.debug("wards_assigned rows=%d filled=%d", len(assigned), filled)
    return assigned


__all__ = ["point_in_polygon", "find_ward", "assign_wards"]
