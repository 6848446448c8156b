"""Comparable listing selection with an adaptive search radius."""

from __future__ import annotations

import math
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..models.analysis import Comparable, ComparableResult
from ..models.property import Property
from ..utils.coerce import to_float
from ..utils.logging import get_logger
from .geo import GeoDistance, km_to_miles

LOGGER = get_logger("services.comps")

RADIUS_AUTO = "auto"
FIXED_RADII_MILES: Dict[str, float] = {"0.1": 0.1, "0.3": 0.3, "0.5": 0.5, "1": 1.0}
ADAPTIVE_TIERS_KM = (1, 2, 5, 10)
CITY_FALLBACK_MAX_MILES = 0.3
MATCHABLE_STATUSES = ("Active", "RELISTED")
MIN_COMPARABLES = 5

_COLUMNS = [
    "position",
    "id",
    "price",
    "bedrooms",
    "bathrooms",
    "property_type",
    "listing_status",
    "ward",
    "city",
    "lat",
    "lng",
    "listed_key",
]


def parse_radius_mode(value) -> str:
    """Map a user supplied radius (``"auto"``, ``"0.5"``, ``0.5``...) to a mode key.

    Raises ``ValueError`` for anything that is not ``auto`` or a fixed radius.
    """

    if value is None or str(value).strip().lower() in ("", RADIUS_AUTO):
        return RADIUS_AUTO
    miles = to_float(value)
    if miles is not None:
        for key, fixed in FIXED_RADII_MILES.items():
            if math.isclose(miles, fixed):
                return key
    raise ValueError(f"Unsupported radius: {value!r}; expected 'auto' or one of {sorted(FIXED_RADII_MILES)}")


class ComparableMatcher:
    def __init__(self, geo: Optional[GeoDistance] = None, min_comparables: int = MIN_COMPARABLES) -> None:
        self.geo = geo if geo is not None else GeoDistance()
        self.min_comparables = min_comparables

    def find_comparables(
        self,
        target: Property,
        pool: Sequence[Property],
        radius_mode: str = RADIUS_AUTO,
        same_ward_only: bool = True,
    ) -> ComparableResult:
        try:
            mode = parse_radius_mode(radius_mode)
        except ValueError:
            LOGGER.warning("comparables_unknown_radius target=%s radius=%r using=auto", target.id, radius_mode)
            mode = RADIUS_AUTO

        candidates = self._candidate_frame(target, pool, same_ward_only)

        if mode != RADIUS_AUTO:
            miles = FIXED_RADII_MILES[mode]
            selected = self._within(candidates, target, miles, allow_city=miles <= CITY_FALLBACK_MAX_MILES)
            return self._result(selected, pool, f"{mode}mi", target)

        for km in ADAPTIVE_TIERS_KM:
            selected = self._within(candidates, target, km_to_miles(km), allow_city=km == ADAPTIVE_TIERS_KM[0])
            LOGGER.debug("comparables_tier target=%s radius=%skm found=%d", target.id, km, len(selected))
            if len(selected) >= self.min_comparables:
                return self._result(selected, pool, f"{km}km", target)

        selected = self._within(candidates, target, km_to_miles(ADAPTIVE_TIERS_KM[-1]), allow_city=True)
        return self._result(selected, pool, f"{ADAPTIVE_TIERS_KM[-1]}km+ (auto)", target)

    # ------------------------------------------------------------------
    def _candidate_frame(self, target: Property, pool: Sequence[Property], same_ward_only: bool) -> pd.DataFrame:
        """Candidates passing every categorical filter, with their distance to ``target``."""

        rows = [
            {
                "position": position,
                "id": candidate.id,
                "price": candidate.price,
                "bedrooms": candidate.bedrooms,
                "bathrooms": candidate.bathrooms,
                "property_type": candidate.property_type,
                "listing_status": candidate.listing_status,
                "ward": candidate.ward,
                "city": candidate.city,
                "lat": candidate.lat,
                "lng": candidate.lng,
                "listed_key": candidate.first_listed_at.timestamp() if candidate.first_listed_at else 0.0,
            }
            for position, candidate in enumerate(pool)
        ]
        df = pd.DataFrame(rows, columns=_COLUMNS)

        price = pd.to_numeric(df["price"], errors="coerce").astype(float)
        mask = df["id"] != target.id
        mask &= (price > 0) & np.isfinite(price)
        mask &= _equals(df["bedrooms"], target.bedrooms)
        mask &= _equals(df["bathrooms"], target.bathrooms)
        mask &= df["property_type"] == target.property_type
        mask &= df["listing_status"].isin(MATCHABLE_STATUSES)
        if same_ward_only and target.ward:
            mask &= df["ward"] == target.ward

        df = df[mask].copy()
        df["distance"] = pd.Series(
            [self.geo.distance(target.lat, target.lng, lat, lng) for lat, lng in zip(df["lat"], df["lng"])],
            index=df.index,
            dtype=float,
        )
        return df

    def _within(self, df: pd.DataFrame, target: Property, miles: float, allow_city: bool) -> pd.DataFrame:
        keep = df["distance"] <= miles
        if allow_city and target.city:
            keep |= np.isinf(df["distance"]) & (df["city"] == target.city)
        return df[keep]

    def _result(self, selected: pd.DataFrame, pool: Sequence[Property], label: str, target: Property) -> ComparableResult:
        ordered = selected.sort_values(["distance", "listed_key"], ascending=[True, False], kind="mergesort")
        comparables: List[Comparable] = []
        for comp_index, (position, distance) in enumerate(zip(ordered["position"], ordered["distance"]), start=1):
            source = pool[int(position)]
            comparables.append(
                Comparable.model_validate(
                    {
                        **source.model_dump(),
                        "comp_index": comp_index,
                        "distance_miles": float(distance) if math.isfinite(distance) else None,
                    }
                )
            )
        LOGGER.info("comparables_selected target=%s radius=%s count=%d", target.id, label, len(comparables))
        return ComparableResult(comparables=comparables, radius_used=label)


def _equals(series: pd.Series, value) -> pd.Series:
    if value is None:
        return series.isna()
    return series.map(lambda item: item == value).astype(bool)


__all__ = [
    "ComparableMatcher",
    "parse_radius_mode",
    "RADIUS_AUTO",
    "FIXED_RADII_MILES",
    "ADAPTIVE_TIERS_KM",
    "MATCHABLE_STATUSES",
    "MIN_COMPARABLES",
]
