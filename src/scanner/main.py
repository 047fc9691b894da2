"""CLI entry point for market scans.

Usage:
    # Scan one model and print the analysis:
    python -m src.scanner.main --model "iPhone 15 Pro"

    # Scan, persist to the local store (and cloud mirror if configured):
    python -m src.scanner.main --model "iPhone 15 Pro" --save

    # Export to data/exports/scan_<model>_<time>.json and draft an opener for listing #2:
    python -m src.scanner.main --model "iPhone 15 Pro" --json --negotiate 2

    # Export to an explicit path:
    python -m src.scanner.main --model "iPhone 15 Pro" \
        --json data/exports/scan_iphone15pro.json --negotiate 2
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from src.common.config import DATA_EXPORTS_DIR, Settings
from src.common.logging import setup_logging
from src.common.models import MarketAnalysis, PhoneModel
from src.vault.local_store import LocalStore

from .analysis_client import create_analysis_client
from .insights import DealInsights
from .orchestrator import ScanError, ScanOrchestrator

logger = logging.getLogger(__name__)


def _print_analysis(analysis: MarketAnalysis) -> None:
    """Print a human-readable summary of a scan."""
    print(f"\n{'=' * 72}")
    print(f"  {analysis.model.value} INTEL  ({analysis.scanned_at:%Y-%m-%d %H:%M})")
    print(f"{'=' * 72}")
    print(f"  Avg market price:   €{analysis.average_price}")
    print(f"  Retail benchmark:   €{analysis.back_market_price}")
    sign = "+" if analysis.arbitrage_spread > 0 else ""
    print(f"  Arbitrage spread:   {sign}€{analysis.arbitrage_spread}")
    print(f"  Sentiment / trend:  {analysis.market_sentiment} / {analysis.market_trend.value}")
    print(f"  Listings filtered:  {len(analysis.listings)}")
    print(f"\n  {analysis.summary}")
    print(f"  {analysis.agent_recommendation}\n")

    if analysis.listings:
        print(f"  {'#':>2}  {'Title':<34} {'Price':>8} {'Risk':>5} {'Profit':>7}  {'Tier':<8}")
        print(f"  {'-' * 2}  {'-' * 34} {'-' * 8} {'-' * 5} {'-' * 7}  {'-' * 8}")
        insights = DealInsights.for_analysis(analysis)
        for i, (listing, hint) in enumerate(zip(analysis.listings, insights)):
            title = listing.title if len(listing.title) <= 34 else listing.title[:31] + "..."
            print(
                f"  {i:>2}  {title:<34} {listing.price_num:>8.0f} "
                f"{listing.risk_score:>5} {listing.profit_potential:>7.0f}  {hint.profit_tier:<8}"
            )
        print()

    if analysis.sources:
        print("  Grounding sources:")
        for source in analysis.sources:
            print(f"    - {source.title}: {source.uri}")
        print()


def _default_export_path(analysis: MarketAnalysis) -> Path:
    slug = analysis.model.value.lower().replace(" ", "_")
    return DATA_EXPORTS_DIR / f"scan_{slug}_{analysis.scanned_at:%Y%m%d_%H%M%S}.json"


async def _run(args: argparse.Namespace) -> int:
    config = Settings.load()
    if args.provider:
        config.llm.provider = args.provider

    try:
        client = create_analysis_client(config)
    except ValueError as e:
        logger.error("Cannot create analysis client: %s", e)
        return 1

    orchestrator = ScanOrchestrator(client, config)
    try:
        analysis = await orchestrator.scan(PhoneModel(args.model))
    except ScanError as e:
        logger.error("%s", e)
        return 1

    _print_analysis(analysis)

    if args.json is not None:
        out = Path(args.json) if args.json else _default_export_path(analysis)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(analysis.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        logger.info("Analysis written to %s", out)

    if args.save:
        store = await LocalStore.open(args.db or config.database.db_path)
        await store.save_scan(analysis.model, analysis)
        await store.close()

    if args.negotiate is not None:
        if not 0 <= args.negotiate < len(analysis.listings):
            logger.error("No listing #%d in this scan", args.negotiate)
            return 1
        message = await orchestrator.negotiate(analysis.listings[args.negotiate])
        print(f"  Negotiation opener:\n    {message}\n")

    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Scan the classifieds market for used iPhones",
    )
    parser.add_argument(
        "--model",
        type=str,
        required=True,
        choices=[m.value for m in PhoneModel],
        help="Product model to scan",
    )
    parser.add_argument(
        "--save",
        action="store_true",
        default=False,
        help="Persist the scan to the local store (and cloud mirror if configured)",
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="SQLite path (default: settings.database.db_path)",
    )
    parser.add_argument(
        "--json",
        type=str,
        nargs="?",
        const="",
        default=None,
        help="Write the analysis as JSON to this path (default: data/exports/)",
    )
    parser.add_argument(
        "--negotiate",
        type=int,
        default=None,
        help="Print a negotiation opener for listing number N",
    )
    parser.add_argument(
        "--provider",
        type=str,
        choices=["openai", "anthropic"],
        default=None,
        help="Analysis service provider (default: settings.llm.provider)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    setup_logging("DEBUG" if args.verbose else None)
    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
