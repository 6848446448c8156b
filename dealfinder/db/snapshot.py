"""In-memory repository over a snapshot of board property records."""

from __future__ import annotations

import os
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..models.property import Property
from ..services.wards import assign_wards
from ..utils.io import load_json
from ..utils.logging import get_logger
from .mappers import load_properties

LOGGER = get_logger("db.snapshot")

SNAPSHOT_PATH = os.getenv("SNAPSHOT_PATH", "properties.json")
WARDS_GEOJSON = os.getenv("WARDS_GEOJSON", "")


def load_ward_features(path: Optional[str]) -> List[Dict[str, Any]]:
    """Ward polygons from a GeoJSON FeatureCollection; empty when unset or missing."""

    if not path:
        return []
    try:
        features = load_json(path, key="features")
    except FileNotFoundError:
        LOGGER.warning("ward_boundaries_missing path=%s; ward labels left as exported", path)
        return []
    LOGGER.info("ward_boundaries_loaded path=%s features=%d", path, len(features))
    return features


class SnapshotRepo:
    """Read-only view over one snapshot; the data-fetch layer replaces it wholesale.

    Rows exported without a ward label get one from ``WARDS_GEOJSON`` (or
    ``wards_path``) when boundaries are configured.
    """

    def __init__(
        self,
        properties: Optional[Iterable[Property]] = None,
        path: Optional[str] = None,
        wards_path: Optional[str] = None,
    ) -> None:
        if properties is None:
            properties = self._load(path or SNAPSHOT_PATH, wards_path if wards_path is not None else WARDS_GEOJSON)
        self._properties: List[Property] = list(properties)
        self._lookup: Dict[str, Property] = {prop.id: prop for prop in self._properties}

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[Dict[str, Any]],
        ward_features: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> "SnapshotRepo":
        if ward_features:
            rows = assign_wards(rows, ward_features)
        return cls(properties=load_properties(rows))

    # ------------------------------------------------------------------
    def all(self) -> List[Property]:
        return list(self._properties)

    def list_properties(self, ward: Optional[str] = None, limit: Optional[int] = None) -> List[Property]:
        items = self._properties
        if ward:
            key = ward.strip().lower()
            items = [prop for prop in items if prop.ward.lower() == key]
        if limit is not None:
            items = items[:limit]
        return list(items)

    def get_property(self, property_id: str) -> Optional[Property]:
        return self._lookup.get(str(property_id))

    def __len__(self) -> int:
        return len(self._properties)

    # ------------------------------------------------------------------
    def _load(self, path: str, wards_path: Optional[str]) -> List[Property]:
        try:
            rows = load_json(path)
        except FileNotFoundError:
            LOGGER.warning("snapshot_missing path=%s; starting with an empty snapshot", path)
            return []
        features = load_ward_features(wards_path)
        if features:
            rows = assign_wards(rows, features)
        properties = load_properties(rows)
        LOGGER.info("snapshot_loaded path=%s rows=%d properties=%d", path, len(rows), len(properties))
        return properties


_repo_singleton: SnapshotRepo | None = None


def get_repository() -> SnapshotRepo:
    global _repo_singleton
    if _repo_singleton is None:
        _repo_singleton = SnapshotRepo()
    return _repo_singleton


def reset_repository(rows: Optional[Iterable[Dict[str, Any]]] = None) -> SnapshotRepo | None:
    """Drop the cached repository, optionally replacing it with ``rows``."""

    global _repo_singleton
    _repo_singleton = SnapshotRepo.from_rows(rows) if rows is not None else None
    return _repo_singleton
