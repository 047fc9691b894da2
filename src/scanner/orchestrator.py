"""Scan orchestrator — benchmark lookup, listing extraction, validation, merge.

One scan issues two dependent requests to the analysis service:
1. A grounded single-number lookup of the refurbished retail benchmark.
2. A grounded JSON extraction of recent classifieds listings, with the
   benchmark in the prompt so profit estimates are computed against it.

The result is a MarketAnalysis; persisting it is the caller's job.

Usage:
    orchestrator = ScanOrchestrator(create_analysis_client())
    analysis = await orchestrator.scan(PhoneModel.IPHONE_15_PRO)
    await store.save_scan(analysis.model, analysis)
"""

from __future__ import annotations

import json
import logging
import math
import time
from datetime import datetime

from pydantic import ValidationError

from src.common.config import Settings, settings as default_settings
from src.common.models import (
    ExtractionPayload,
    GroundingSource,
    Listing,
    ListingDraft,
    MarketAnalysis,
    PhoneModel,
)

from .analysis_client import AnalysisClient
from .prompts import (
    BENCHMARK_SOURCE_TITLE,
    EXTRACTION_SOURCE_TITLE,
    NEGOTIATION_FALLBACK,
    build_benchmark_prompt,
    build_extraction_prompt,
    build_negotiation_prompt,
    build_recommendation,
)
from .validation import filter_valid_listings, load_json_object, parse_price_number

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY = "Scan complete."


class ScanError(RuntimeError):
    """Listing extraction failed; nothing from this scan should be persisted."""


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for prices."""
    return int(math.floor(value + 0.5))


def average_price(listings: list[ListingDraft]) -> int:
    """Unweighted mean of price_num, rounded; 0 for an empty sequence."""
    if not listings:
        return 0
    return round_half_up(sum(l.price_num for l in listings) / len(listings))


def assign_ids(drafts: list[ListingDraft], timestamp_ms: int | None = None) -> list[Listing]:
    """Give each validated listing a batch-unique id.

    Ids combine batch position and ingestion time, so the same ad seen in
    two scans gets two different ids.
    """
    stamp = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return [
        Listing(id=f"listing-{index}-{stamp}", **draft.model_dump())
        for index, draft in enumerate(drafts)
    ]


def _titled(sources: list[GroundingSource], default_title: str) -> list[GroundingSource]:
    return [
        s if s.title else GroundingSource(title=default_title, uri=s.uri)
        for s in sources
    ]


class ScanOrchestrator:
    """Builds MarketAnalysis records from analysis-service responses."""

    def __init__(self, client: AnalysisClient, config: Settings | None = None) -> None:
        self.client = client
        self.config = config or default_settings

    async def scan(self, model: PhoneModel) -> MarketAnalysis:
        """Run one scan for a product model.

        Raises:
            ScanError: The extraction request failed or returned data that
                does not match the listing schema.
        """
        model = PhoneModel(model)
        logger.info("Scanning %s", model.value)

        benchmark, benchmark_sources = await self._fetch_benchmark(model)
        payload, extraction_sources = await self._fetch_listings(model, benchmark)

        validated = filter_valid_listings(
            payload.listings, self.config.scanner.ad_url_marker
        )
        listings = assign_ids(validated)
        avg = average_price(listings)

        analysis = MarketAnalysis(
            model=model,
            average_price=avg,
            back_market_price=benchmark,
            arbitrage_spread=benchmark - avg,
            listings=listings,
            sources=benchmark_sources + extraction_sources,
            summary=payload.summary or DEFAULT_SUMMARY,
            agent_recommendation=build_recommendation(
                model.value,
                payload.market_trend.value,
                max_risk=self.config.scanner.max_recommended_risk,
                min_profit=self.config.scanner.min_recommended_profit,
            ),
            market_trend=payload.market_trend,
            scanned_at=datetime.now(),
        )
        logger.info(
            "Scan %s: %d/%d listings valid, avg €%d, benchmark €%d, spread €%d",
            model.value, len(listings), len(payload.listings),
            avg, benchmark, analysis.arbitrage_spread,
        )
        return analysis

    async def negotiate(self, listing: Listing) -> str:
        """Generate a German negotiation opener for a listing.

        Never raises: an empty answer or a failed request yields the fixed
        fallback opener.
        """
        try:
            response = await self.client.generate(build_negotiation_prompt(listing))
        except Exception:
            logger.warning(
                "Negotiation generation failed for %s", listing.id, exc_info=True
            )
            return NEGOTIATION_FALLBACK
        return response.text.strip() or NEGOTIATION_FALLBACK

    # --- Requests ---

    async def _fetch_benchmark(self, model: PhoneModel) -> tuple[int, list[GroundingSource]]:
        """Retail benchmark lookup; degrades to (0, []) on any failure."""
        prompt = build_benchmark_prompt(model.value, self.config.scanner.benchmark_site)
        try:
            response = await self.client.generate(prompt, grounded=True)
        except Exception:
            logger.warning("Benchmark lookup failed for %s", model.value, exc_info=True)
            return 0, []

        price = parse_price_number(response.text)
        if price is None:
            logger.warning(
                "No number in benchmark answer for %s: %r", model.value, response.text[:100]
            )
            return 0, []
        return price, _titled(response.sources, BENCHMARK_SOURCE_TITLE)

    async def _fetch_listings(
        self, model: PhoneModel, benchmark: int
    ) -> tuple[ExtractionPayload, list[GroundingSource]]:
        scanner = self.config.scanner
        prompt = build_extraction_prompt(
            model.value,
            benchmark,
            listing_count=scanner.listing_count,
            overhead=scanner.overhead_eur,
            source_site=scanner.source_site,
        )
        schema = ExtractionPayload.model_json_schema(by_alias=True)

        try:
            response = await self.client.generate(
                prompt, grounded=True, response_schema=schema
            )
        except Exception as e:
            logger.error("Deep scan failure for %s: %s", model.value, e)
            raise ScanError(f"Listing extraction failed for {model.value}: {e}") from e

        try:
            payload = ExtractionPayload.model_validate(load_json_object(response.text))
        except (json.JSONDecodeError, ValueError, ValidationError) as e:
            logger.error(
                "Unparsable extraction payload for %s: %s", model.value, response.text[:200]
            )
            raise ScanError(f"Invalid extraction payload for {model.value}: {e}") from e

        return payload, _titled(response.sources, EXTRACTION_SOURCE_TITLE)
