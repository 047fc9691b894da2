"""Deal insights derived from a listing and its scan's market numbers.

These are display heuristics layered on top of the model's scores: risk
bands, profit tiers and the negotiation/exit price hints shown next to a
listing.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.common.models import Listing, MarketAnalysis

from .orchestrator import round_half_up

HOT_DEAL_PROFIT = 100
# Profit at which the margin gauge is full
FULL_MARGIN_PROFIT = 200
NEGOTIATION_DISCOUNT = 0.9
EXIT_PRICE_RATIO = 0.95


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def risk_band(score: int) -> str:
    """low < 20 <= medium < 50 <= high."""
    if score < 20:
        return "low"
    if score < 50:
        return "medium"
    return "high"


def profit_tier(profit: float) -> str:
    if profit > HOT_DEAL_PROFIT:
        return "strong"
    if profit > 0:
        return "positive"
    return "loss"


def is_hot_deal(listing: Listing) -> bool:
    return listing.profit_potential > HOT_DEAL_PROFIT


def profit_margin_percent(listing: Listing) -> float:
    return _clamp(listing.profit_potential / FULL_MARGIN_PROFIT * 100)


def deal_velocity(listing: Listing, market_avg: int) -> float:
    """How quickly the ad is likely to sell, 0-100; cheaper than average is faster."""
    if market_avg <= 0:
        return 0.0
    return _clamp(100 - (listing.price_num / market_avg) * 50)


def margin_vs_retail(listing: Listing, benchmark: int) -> float:
    return benchmark - listing.price_num


def negotiation_floor(listing: Listing) -> int:
    """Opening cash-pickup offer."""
    return round_half_up(listing.price_num * NEGOTIATION_DISCOUNT)


def exit_price(benchmark: int) -> int:
    """Re-listing target on alternate platforms."""
    return round_half_up(benchmark * EXIT_PRICE_RATIO)


@dataclass
class DealInsights:
    """All per-listing hints in one record."""

    listing_id: str
    risk_band: str
    profit_tier: str
    hot_deal: bool
    profit_margin_percent: float
    deal_velocity: float
    margin_vs_retail: float
    negotiation_floor: int
    exit_price: int

    @classmethod
    def for_listing(cls, listing: Listing, market_avg: int, benchmark: int) -> DealInsights:
        return cls(
            listing_id=listing.id,
            risk_band=risk_band(listing.risk_score),
            profit_tier=profit_tier(listing.profit_potential),
            hot_deal=is_hot_deal(listing),
            profit_margin_percent=profit_margin_percent(listing),
            deal_velocity=deal_velocity(listing, market_avg),
            margin_vs_retail=margin_vs_retail(listing, benchmark),
            negotiation_floor=negotiation_floor(listing),
            exit_price=exit_price(benchmark),
        )

    @classmethod
    def for_analysis(cls, analysis: MarketAnalysis) -> list[DealInsights]:
        return [
            cls.for_listing(l, analysis.average_price, analysis.back_market_price)
            for l in analysis.listings
        ]
