"""Pydantic schemas for derived analytics (comparables, scores, stats, badges)."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .property import Property


class Comparable(Property):
    comp_index: int
    distance_miles: Optional[float] = None


class ComparableResult(BaseModel):
    comparables: List[Comparable] = Field(default_factory=list)
    radius_used: str


class Score(BaseModel):
    model_config = ConfigDict(frozen=True)

    price_drop: int = 0
    dom: int = 0
    drop_frequency: int = 0
    keywords: int = 0
    global_score: int = Field(0, serialization_alias="global")


class ScoredProperty(Property):
    scores: Score
    total_drop_percent: float = 0.0
    total_drop_amount: float = 0.0


class MarketStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    avg_price: int
    median_price: int
    min_price: int
    max_price: int
    avg_dom: int
    price_diff: int
    price_diff_percent: int
    comp_count: int


class TrendPoint(BaseModel):
    date: datetime
    property_price: float
    market_average: int


class RelistMarker(BaseModel):
    date: datetime
    price: float


class MarketTrend(BaseModel):
    points: List[TrendPoint] = Field(default_factory=list)
    relist_marker: Optional[RelistMarker] = None


class AgentBadge(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    percentile: int
    badge_text: str
    icon: str
    color: str
    value: str = ""


class PropertyAnalysis(BaseModel):
    property: Property
    score: Score
    comparables: List[Comparable]
    radius_used: str
    market_stats: Optional[MarketStats] = None
    market_trend: MarketTrend
    realtor_badges: List[AgentBadge] = Field(default_factory=list)


class RealtorRankingsResponse(BaseModel):
    rankings: Dict[str, List[AgentBadge]]
    total: int
