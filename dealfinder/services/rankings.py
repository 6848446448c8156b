"""Realtor performance rankings expressed as percentile badges.

Every listing is grouped by its realtor, per-agent aggregates are computed once,
and each :class:`RankingCategory` in :data:`CATEGORIES` turns those aggregates
into a score per qualifying agent. Agents are ranked within each category and
the top 20% receive a badge; an agent keeps its five most exclusive badges.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..models.analysis import AgentBadge
from ..models.property import UNKNOWN_REALTOR, Property
from ..utils.coerce import as_utc, finite_or_zero, round_half_up
from ..utils.logging import get_logger

LOGGER = get_logger("services.rankings")

DAY = pd.Timedelta(days=1)
BADGE_CUTOFF_PERCENTILE = 20
MAX_BADGES = 5
SOLD_MAX_DAYS = 2
RECENT_DAYS = 30
NEWCOMER_DAYS = 180
VETERAN_MIN_LISTINGS = 5
HOT_STREAK_DAYS = 7
DEAL_DISCOUNT = 0.9
CONSISTENCY_MIN_MONTHS = 3
UNKNOWN_WARD = "Unknown"

_LISTING_COLUMNS = [
    "realtor",
    "ward",
    "price",
    "status",
    "first_listed",
    "removed",
    "relisted",
    "history_len",
    "history_first",
    "history_last",
]


@dataclass(frozen=True)
class RankingContext:
    listings: pd.DataFrame
    agents: pd.DataFrame
    now: pd.Timestamp


@dataclass(frozen=True)
class RankingCategory:
    """One badge category.

    ``extract`` returns a frame indexed by agent with a ``score`` column (and an
    optional ``value`` label). ``qualifies`` optionally restricts which agents
    are ranked; agents with a missing score never are.
    """

    key: str
    name: str
    icon: str
    extract: Callable[[RankingContext], pd.DataFrame]
    qualifies: Optional[Callable[[RankingContext], pd.Series]] = None


def percentile(rank: int, total: int) -> int:
    if total <= 0:
        return 100
    return round_half_up(rank / total * 100)


def badge_tier(pct: int) -> Tuple[str, str]:
    if pct <= 10:
        return "Top 10%", "blue"
    if pct <= 15:
        return "Top 15%", "teal"
    return "Top 20%", "gray"


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def _listing_frame(properties: Sequence[Property]) -> pd.DataFrame:
    rows = []
    for prop in properties:
        history = prop.price_history
        rows.append(
            {
                "realtor": prop.realtor or UNKNOWN_REALTOR,
                "ward": prop.ward or "",
                "price": finite_or_zero(prop.price),
                "status": prop.listing_status,
                "first_listed": prop.first_listed_at,
                "removed": prop.removed_at,
                "relisted": prop.relisted_at,
                "history_len": len(history),
                "history_first": history[0].price if history else 0.0,
                "history_last": history[-1].price if history else 0.0,
            }
        )
    df = pd.DataFrame(rows, columns=_LISTING_COLUMNS)
    for column in ("first_listed", "removed", "relisted"):
        df[column] = pd.to_datetime(df[column], utc=True)
    return df


def _agent_aggregates(df: pd.DataFrame, now: pd.Timestamp) -> pd.DataFrame:
    # a Removed listing taken down within two days of listing is counted as sold
    dom_to_sell = np.floor((df["removed"] - df["first_listed"]) / DAY)
    sold = df["status"].eq("Removed") & dom_to_sell.between(0, SOLD_MAX_DAYS)
    frame = df.assign(
        sold=sold,
        dom_to_sell=dom_to_sell.where(sold, 0.0),
        priced=df["price"].where(df["price"] != 0),
        relist=df["status"].eq("RELISTED"),
        dropped=df["history_len"] > 1,
        recent=((now - df["first_listed"]) / DAY) <= RECENT_DAYS,
    )
    grouped = frame.groupby("realtor", sort=False)
    agents = pd.DataFrame(
        {
            "total_listings": grouped.size(),
            "sold_listings": grouped["sold"].sum(),
            "total_dom_to_sell": grouped["dom_to_sell"].sum(),
            "avg_price": grouped["priced"].mean(),
            "relisted": grouped["relist"].sum(),
            "price_drops": grouped["dropped"].sum(),
            "recent_listings": grouped["recent"].sum(),
            "first_listing": grouped["first_listed"].min(),
        }
    )
    agents["tenure_days"] = np.floor((now - agents["first_listing"]) / DAY)
    return agents


def _score_frame(scores: pd.Series, values: Optional[pd.Series] = None) -> pd.DataFrame:
    frame = pd.DataFrame({"score": scores.astype(float)})
    frame["value"] = values.reindex(frame.index).fillna("") if values is not None else ""
    return frame


# ---------------------------------------------------------------------------
# Category extractors
# ---------------------------------------------------------------------------


def _agent_column(column: str) -> Callable[[RankingContext], pd.DataFrame]:
    return lambda ctx: _score_frame(ctx.agents[column])


def _agent_positive(column: str) -> Callable[[RankingContext], pd.Series]:
    return lambda ctx: ctx.agents[column] > 0


def _fastest_sale(ctx: RankingContext) -> pd.DataFrame:
    agents = ctx.agents[ctx.agents["sold_listings"] > 0]
    # negated so the lowest average days-to-sell ranks first
    return _score_frame(-agents["total_dom_to_sell"] / agents["sold_listings"])


def _is_newcomer(ctx: RankingContext) -> pd.Series:
    return (ctx.agents["tenure_days"] <= NEWCOMER_DAYS) & (ctx.agents["recent_listings"] > 0)


def _activity(ctx: RankingContext) -> pd.DataFrame:
    return _score_frame(ctx.agents["total_listings"] + ctx.agents["recent_listings"] * 2)


def _shapeshifter(ctx: RankingContext) -> pd.DataFrame:
    return _score_frame(ctx.agents["relisted"] + ctx.agents["price_drops"])


def _veteran(ctx: RankingContext) -> pd.DataFrame:
    return _score_frame(ctx.agents["tenure_days"] * 0.3 + ctx.agents["total_listings"])


def _is_veteran(ctx: RankingContext) -> pd.Series:
    return (ctx.agents["tenure_days"] > NEWCOMER_DAYS) & (ctx.agents["total_listings"] >= VETERAN_MIN_LISTINGS)


def _ward_specialist(ctx: RankingContext) -> pd.DataFrame:
    listings = ctx.listings
    warded = listings[listings["ward"] != ""]
    if warded.empty:
        return _score_frame(pd.Series(dtype=float))
    ward_totals = listings["ward"].value_counts()
    counts = warded.groupby(["realtor", "ward"], sort=False).size()

    shares: Dict[str, float] = {}
    wards: Dict[str, str] = {}
    for agent, agent_counts in counts.groupby(level=0, sort=False):
        per_ward = agent_counts.droplevel(0)
        top_ward = per_ward.idxmax()
        shares[agent] = per_ward[top_ward] / ward_totals[top_ward] * 100
        wards[agent] = top_ward

    order = [agent for agent in ctx.agents.index if agent in shares]
    return _score_frame(pd.Series(shares, dtype=float).reindex(order), pd.Series(wards, dtype=object))


def _deal_finder(ctx: RankingContext) -> pd.DataFrame:
    df = ctx.listings
    ward_key = df["ward"].replace("", UNKNOWN_WARD)
    priced = df["price"].where(df["price"] != 0)
    ward_avg = priced.groupby(ward_key).transform("mean")
    below_average = ward_avg.gt(0) & priced.notna() & (priced < ward_avg * DEAL_DISCOUNT)
    return _score_frame(df[below_average].groupby("realtor", sort=False).size())


def _consistency(ctx: RankingContext) -> pd.DataFrame:
    dated = ctx.listings[ctx.listings["first_listed"].notna()]
    if dated.empty:
        return _score_frame(pd.Series(dtype=float))
    monthly = dated.assign(month=dated["first_listed"].dt.strftime("%Y-%m")).groupby(["realtor", "month"], sort=False).size()

    scores: Dict[str, float] = {}
    for agent, counts in monthly.groupby(level=0, sort=False):
        if len(counts) < CONSISTENCY_MIN_MONTHS:
            continue
        # population std-dev, negated so steadier months rank first
        scores[agent] = -float(np.std(counts.to_numpy(dtype=float)))
    return _score_frame(pd.Series(scores, dtype=float))


def _hot_streak(ctx: RankingContext) -> pd.DataFrame:
    df = ctx.listings
    cutoff = ctx.now - pd.Timedelta(days=HOT_STREAK_DAYS)
    activity = sum((df[column] >= cutoff).astype(int) for column in ("first_listed", "relisted", "removed"))
    active = df.assign(activity=activity)[activity > 0]
    return _score_frame(active.groupby("realtor", sort=False)["activity"].sum())


def _negotiation(ctx: RankingContext) -> pd.DataFrame:
    df = ctx.listings
    negotiated = df[(df["history_len"] >= 2) & (df["history_first"] > 0)]
    change = ((negotiated["history_last"] - negotiated["history_first"]) / negotiated["history_first"] * 100).abs()
    average = change.groupby(negotiated["realtor"], sort=False).mean()
    return _score_frame(average[average > 0])


CATEGORIES: Tuple[RankingCategory, ...] = (
    RankingCategory("volume", "Volume Leader", "bar-chart", _agent_column("total_listings")),
    RankingCategory("fastest", "Fastest Seller", "zap", _fastest_sale),
    RankingCategory("upandcoming", "Up & Coming", "trending-up", _agent_column("recent_listings"), _is_newcomer),
    RankingCategory("price", "Price Leader", "dollar-sign", _agent_column("avg_price")),
    RankingCategory("sold", "Top Seller", "award", _agent_column("sold_listings"), _agent_positive("sold_listings")),
    RankingCategory("relist", "Relist Champ", "calendar", _agent_column("relisted"), _agent_positive("relisted")),
    RankingCategory("drops", "Price Drop Pro", "trending-down", _agent_column("price_drops"), _agent_positive("price_drops")),
    RankingCategory("active", "Active Performer", "users", _activity, _agent_positive("recent_listings")),
    RankingCategory("shapeshifter", "Shapeshifter", "sparkles", _shapeshifter, lambda ctx: ctx.agents["relisted"] + ctx.agents["price_drops"] > 0),
    RankingCategory("veteran", "Market Veteran", "star", _veteran, _is_veteran),
    RankingCategory("ward", "Ward Specialist", "map-pin", _ward_specialist),
    RankingCategory("dealfinder", "Deal Finder", "gem", _deal_finder),
    RankingCategory("consistent", "Consistent Performer", "activity", _consistency),
    RankingCategory("hotstreak", "Hot Streak", "flame", _hot_streak),
    RankingCategory("negotiation", "Negotiation Pro", "trending-down", _negotiation),
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class RealtorRankingEngine:
    def __init__(
        self,
        categories: Sequence[RankingCategory] = CATEGORIES,
        badge_cutoff: int = BADGE_CUTOFF_PERCENTILE,
        max_badges: int = MAX_BADGES,
    ) -> None:
        self.categories = tuple(categories)
        self.badge_cutoff = badge_cutoff
        self.max_badges = max_badges

    def context(self, properties: Iterable[Property], now=None) -> Optional[RankingContext]:
        properties = list(properties)
        if not properties:
            return None
        now_ts = as_utc(now) if now is not None else pd.Timestamp.now(tz="UTC")
        listings = _listing_frame(properties)
        return RankingContext(listings=listings, agents=_agent_aggregates(listings, now_ts), now=now_ts)

    def rank_category(self, category: RankingCategory, ctx: RankingContext) -> pd.DataFrame:
        """Qualifying agents for ``category``, best first."""

        scores = category.extract(ctx)
        if category.qualifies is not None:
            mask = category.qualifies(ctx).reindex(scores.index, fill_value=False).astype(bool)
            scores = scores[mask]
        scores = scores[scores["score"].notna()]
        return scores.sort_values("score", ascending=False, kind="mergesort")

    def rank(self, properties: Iterable[Property], now=None) -> Dict[str, List[AgentBadge]]:
        ctx = self.context(properties, now=now)
        if ctx is None:
            return {}

        rankings: Dict[str, List[AgentBadge]] = {}
        for category in self.categories:
            ranked = self.rank_category(category, ctx)
            total = len(ranked)
            for rank, (agent, value) in enumerate(zip(ranked.index, ranked["value"]), start=1):
                pct = percentile(rank, total)
                if pct > self.badge_cutoff:
                    break
                badge_text, color = badge_tier(pct)
                rankings.setdefault(agent, []).append(
                    AgentBadge(
                        category=category.name,
                        percentile=pct,
                        badge_text=badge_text,
                        icon=category.icon,
                        color=color,
                        value=str(value or ""),
                    )
                )

        for agent, badges in rankings.items():
            rankings[agent] = sorted(badges, key=lambda badge: badge.percentile)[: self.max_badges]

        LOGGER.info(
            "realtor_rankings agents=%d badged=%d categories=%d",
            len(ctx.agents),
            len(rankings),
            len(self.categories),
        )
        return rankings


__all__ = [
    "RealtorRankingEngine",
    "RankingCategory",
    "RankingContext",
    "CATEGORIES",
    "percentile",
    "badge_tier",
]
