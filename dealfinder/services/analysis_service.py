"""Compose the comparable, stats, scoring and ranking engines over a snapshot."""

from __future__ import annotations

import os
from typing import Dict, List, Optional

from ..db.snapshot import SnapshotRepo, get_repository
from ..models.analysis import AgentBadge, ComparableResult, MarketStats, PropertyAnalysis, Score, ScoredProperty
from ..models.property import Property
from ..utils.caching import BoundedCache
from ..utils.logging import get_logger
from .comparables import RADIUS_AUTO, ComparableMatcher
from .geo import GeoDistance
from .market_stats import MarketStatsCalculator
from .rankings import RealtorRankingEngine
from .scoring import DealScorer

LOGGER = get_logger("services.analysis")

DISTANCE_CACHE_SIZE = int(os.getenv("DISTANCE_CACHE_SIZE", "1000"))
MIN_COMPARABLES = int(os.getenv("MIN_COMPARABLES", "5"))


class PropertyNotFoundError(ValueError):
    pass


class AnalysisService:
    def __init__(
        self,
        repository: Optional[SnapshotRepo] = None,
        matcher: Optional[ComparableMatcher] = None,
        stats: Optional[MarketStatsCalculator] = None,
        scorer: Optional[DealScorer] = None,
        ranker: Optional[RealtorRankingEngine] = None,
    ) -> None:
        self._repository = repository
        self.matcher = matcher or ComparableMatcher()
        self.stats = stats or MarketStatsCalculator()
        self.scorer = scorer or DealScorer()
        self.ranker = ranker or RealtorRankingEngine()

    @property
    def repository(self) -> SnapshotRepo:
        return self._repository if self._repository is not None else get_repository()

    def analyze_property(
        self,
        property_id: str,
        radius_mode: str = RADIUS_AUTO,
        same_ward_only: bool = True,
        now=None,
    ) -> PropertyAnalysis:
        target = self._require(property_id)
        pool = self.repository.all()

        result = self.matcher.find_comparables(target, pool, radius_mode=radius_mode, same_ward_only=same_ward_only)
        stats = self.stats.compute_stats(target, result.comparables)
        trend = self.stats.market_trend(target, result.comparables, stats, today=now)
        rankings = self.ranker.rank(pool, now=now)

        LOGGER.debug(
            "analysis target=%s radius=%s comps=%d stats=%s",
            target.id,
            result.radius_used,
            len(result.comparables),
            "yes" if stats else "insufficient",
        )
        return PropertyAnalysis(
            property=target,
            score=self.scorer.score(target),
            comparables=result.comparables,
            radius_used=result.radius_used,
            market_stats=stats,
            market_trend=trend,
            realtor_badges=rankings.get(target.realtor, []),
        )

    def comparables(self, property_id: str, radius_mode: str = RADIUS_AUTO, same_ward_only: bool = True) -> ComparableResult:
        target = self._require(property_id)
        return self.matcher.find_comparables(target, self.repository.all(), radius_mode=radius_mode, same_ward_only=same_ward_only)

    def market_stats(
        self, property_id: str, radius_mode: str = RADIUS_AUTO, same_ward_only: bool = True
    ) -> Optional[MarketStats]:
        target = self._require(property_id)
        result = self.matcher.find_comparables(target, self.repository.all(), radius_mode=radius_mode, same_ward_only=same_ward_only)
        return self.stats.compute_stats(target, result.comparables)

    def score(self, property_id: str) -> Score:
        return self.scorer.score(self._require(property_id))

    def scores(self) -> List[ScoredProperty]:
        return self.scorer.score_all(self.repository.all())

    def realtor_rankings(self, now=None) -> Dict[str, List[AgentBadge]]:
        return self.ranker.rank(self.repository.all(), now=now)

    def _require(self, property_id: str) -> Property:
        target = self.repository.get_property(property_id)
        if target is None:
            raise PropertyNotFoundError(f"Property not found: {property_id}")
        return target


_SERVICE_SINGLETON: AnalysisService | None = None


def _get_default_service() -> AnalysisService:
    global _SERVICE_SINGLETON
    if _SERVICE_SINGLETON is None:
        geo = GeoDistance(cache=BoundedCache(DISTANCE_CACHE_SIZE))
        _SERVICE_SINGLETON = AnalysisService(matcher=ComparableMatcher(geo=geo, min_comparables=MIN_COMPARABLES))
    return _SERVICE_SINGLETON


def analyze_property(property_id: str, radius_mode: str = RADIUS_AUTO, same_ward_only: bool = True) -> PropertyAnalysis:
    """Module-level helper used by the FastAPI layer."""

    return _get_default_service().analyze_property(property_id, radius_mode=radius_mode, same_ward_only=same_ward_only)
