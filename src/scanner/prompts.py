"""Prompts for the benchmark lookup, listing extraction and negotiation requests.

The analysis service computes every score (risk, profit, trend); these
prompts only describe what to compute and the JSON shape to return.
"""

from __future__ import annotations

from src.common.models import Listing

SYSTEM_PROMPT = """\
You are a professional used-iPhone wholesaler working the German secondhand market.
Only report listings and prices you actually found. Never invent URLs."""

# Fixed German opener used when the negotiation request yields nothing
NEGOTIATION_FALLBACK = "Hallo, was ist Ihr letzter Preis bei Abholung heute?"

BENCHMARK_SOURCE_TITLE = "BackMarket Pricing Reference"
EXTRACTION_SOURCE_TITLE = "Market Source"


def build_benchmark_prompt(model: str, benchmark_site: str) -> str:
    """Build the single-number retail benchmark question."""
    return (
        f'Find the absolute lowest retail price for a refurbished "{model}" '
        f'in "Excellent" condition on {benchmark_site}. Return only the number.'
    )


def build_extraction_prompt(
    model: str,
    benchmark: int,
    *,
    listing_count: int,
    overhead: int,
    source_site: str,
) -> str:
    """Build the listing-extraction prompt.

    Args:
        model: Product model to scan for.
        benchmark: Retail benchmark in EUR (0 when the lookup failed).
        listing_count: How many recent ads to extract.
        overhead: EUR deducted from the benchmark when estimating profit.
        source_site: Classifieds site to scan.

    Returns:
        Formatted user prompt string.
    """
    return f"""\
Deep-scan {source_site} for the {listing_count} most recent "{model}" ads.

DEALER-ONLY EXTRACTION RULES:
1. EXTRAPOLATE: Read the WHOLE listing description. Look for account age, battery health (Akkukapazität), storage size, and "Festpreis" vs "VB".
2. PROFIT ALGO: Calculate "profitPotential" by subtracting the price from the retail benchmark of €{benchmark} minus €{overhead} for overhead.
3. RISK ALGO: Assign a "riskScore" (0-100). High risk if: brand new account, price too low, or text looks like a template.
4. MARKET TREND: Is this model's price generally rising, falling, or stable?
5. URL: "url" must be the canonical ad URL on {source_site}.

Return JSON in this format:
{{
  "listings": [{{
    "title": string, "price": string, "priceNum": number, "location": string, "url": string,
    "storageGb": string, "batteryHealth": string, "isVb": boolean,
    "riskScore": number, "profitPotential": number, "sellerInsights": string,
    "dealScore": "Great/Good/Fair/Poor", "agentComment": string, "arbitragePotential": string
  }}],
  "marketTrend": "rising/falling/stable",
  "summary": "Dealer-level market intelligence summary"
}}"""


def build_negotiation_prompt(listing: Listing) -> str:
    """Build the German negotiation-opener request for one listing."""
    leverage = (
        f"the {listing.battery_health} battery"
        if listing.battery_health
        else "competition"
    )
    return (
        f"Negotiate a lower price for {listing.title} at {listing.price}. "
        f'Use "Dealer logic": highlight {leverage} and offer an immediate '
        f"cash pickup in German."
    )


def build_recommendation(
    model: str,
    trend: str,
    *,
    max_risk: int,
    min_profit: int,
) -> str:
    """Strategy line attached to every analysis."""
    return (
        f"STRATEGY: Focus on {model} listings with risk < {max_risk} "
        f"and profit > {min_profit}€. Current trend: {trend}."
    )
