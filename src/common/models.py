"""Shared Pydantic data models for iTrack Sniper.

These models define the data contracts between the scanner (analysis
service output) and the vault (local store + remote mirror). JSON uses the
camelCase field names the analysis service is asked to produce.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# === Enums ===

class PhoneModel(str, Enum):
    """Product models the scanner knows how to search for."""
    IPHONE_16_PRO_MAX = "iPhone 16 Pro Max"
    IPHONE_16_PRO = "iPhone 16 Pro"
    IPHONE_16 = "iPhone 16"
    IPHONE_15_PRO_MAX = "iPhone 15 Pro Max"
    IPHONE_15_PRO = "iPhone 15 Pro"
    IPHONE_15 = "iPhone 15"
    IPHONE_14 = "iPhone 14"
    IPHONE_13 = "iPhone 13"


class MarketTrend(str, Enum):
    """Price direction reported by the analysis service."""
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


class DealScore(str, Enum):
    """Categorical deal quality."""
    GREAT = "Great"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"


_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Listings ===

class GroundingSource(BaseModel):
    """Citation attached to an analysis-service response."""
    title: str
    uri: str


class ListingDraft(BaseModel):
    """A listing as returned by the extraction request, before ingestion."""

    model_config = _CAMEL

    title: str
    price: str
    price_num: float = Field(ge=0, description="Asking price in EUR")
    # Missing or null URLs are dropped by the ad-URL filter, not rejected here
    url: str | None = None
    risk_score: int = Field(ge=0, le=100, description="0-100, 100 is highest risk")
    profit_potential: float = Field(description="Estimated EUR profit, may be negative")

    location: str | None = None
    time_posted: str | None = None
    storage_gb: str | None = None
    battery_health: str | None = None
    is_vb: bool | None = None
    condition: str | None = None
    image_url: str | None = None
    deal_score: DealScore | None = None
    agent_comment: str | None = None
    arbitrage_potential: str | None = None
    seller_insights: str | None = None

    @field_validator("risk_score", mode="before")
    @classmethod
    def clamp_risk_score(cls, v: Any) -> Any:
        """Model scores are heuristic; round and clamp them into 0-100."""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return v
        return max(0, min(100, int(round(v))))

    @field_validator("deal_score", mode="before")
    @classmethod
    def parse_deal_score(cls, v: Any) -> Any:
        if v is None or isinstance(v, DealScore):
            return v
        label = str(v).strip().capitalize()
        if label in DealScore._value2member_map_:
            return label
        return None


class Listing(ListingDraft):
    """A single classified ad observation with its ingestion identifier."""

    id: str


class ExtractionPayload(BaseModel):
    """JSON body of the listing-extraction response."""

    model_config = _CAMEL

    listings: list[ListingDraft] = Field(default_factory=list)
    market_trend: MarketTrend = MarketTrend.STABLE
    summary: str = ""

    @field_validator("market_trend", mode="before")
    @classmethod
    def parse_trend(cls, v: Any) -> Any:
        if isinstance(v, MarketTrend):
            return v
        label = str(v or "").strip().lower()
        if label in MarketTrend._value2member_map_:
            return label
        return MarketTrend.STABLE

    @field_validator("summary", mode="before")
    @classmethod
    def none_summary(cls, v: Any) -> Any:
        return v or ""


# === Scan result ===

class MarketAnalysis(BaseModel):
    """Result of one scan for one product model."""

    model_config = _CAMEL

    model: PhoneModel
    average_price: int = 0
    back_market_price: int = 0
    arbitrage_spread: int = 0
    listings: list[Listing] = Field(default_factory=list)
    sources: list[GroundingSource] = Field(default_factory=list)
    summary: str = ""
    agent_recommendation: str = ""
    market_trend: MarketTrend = MarketTrend.STABLE
    scanned_at: datetime = Field(default_factory=datetime.now)

    @property
    def market_sentiment(self) -> str:
        """BUY SIGNAL when the sampled market trades below the retail floor."""
        if self.average_price < self.back_market_price:
            return "BUY SIGNAL"
        return "NEUTRAL"


# === Configuration records ===

class CloudConfig(BaseModel):
    """Remote mirror credentials as stored in the local config table."""
    url: str = ""
    key: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.url.strip() and self.key.strip())
