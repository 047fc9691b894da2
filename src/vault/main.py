"""CLI entry point for browsing and configuring the local store.

Usage:
    python -m src.vault.main archive [--model "iPhone 15 Pro"]
    python -m src.vault.main watchlist
    python -m src.vault.main toggle listing-3-1760870000000
    python -m src.vault.main cloud-config
    python -m src.vault.main cloud-config --url https://xyz.supabase.co --key eyJ...
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from src.common.config import settings
from src.common.logging import setup_logging
from src.common.models import Listing, PhoneModel

from .local_store import LocalStore

logger = logging.getLogger(__name__)


def _print_listings(title: str, listings: list[Listing]) -> None:
    print(f"\n  {title}: {len(listings)} indexed records")
    if not listings:
        print()
        return
    print(f"  {'Id':<28} {'Title':<34} {'Price':>8} {'Risk':>5}")
    print(f"  {'-' * 28} {'-' * 34} {'-' * 8} {'-' * 5}")
    for l in listings:
        name = l.title if len(l.title) <= 34 else l.title[:31] + "..."
        print(f"  {l.id:<28} {name:<34} {l.price_num:>8.0f} {l.risk_score:>5}")
    print()


def _mask(secret: str) -> str:
    if len(secret) <= 8:
        return "*" * len(secret)
    return secret[:4] + "..." + secret[-4:]


async def _find_listing(store: LocalStore, listing_id: str) -> Listing | None:
    for listing in await store.get_watchlist():
        if listing.id == listing_id:
            return listing
    for listing in await store.get_archive():
        if listing.id == listing_id:
            return listing
    return None


async def _run(args: argparse.Namespace) -> int:
    store = await LocalStore.open(args.db or settings.database.db_path)
    try:
        if args.command == "archive":
            _print_listings("HISTORY ARCHIVE", await store.get_archive(args.model))
        elif args.command == "watchlist":
            _print_listings("WATCHLIST", await store.get_watchlist())
        elif args.command == "toggle":
            listing = await _find_listing(store, args.listing_id)
            if listing is None:
                logger.error("Unknown listing id: %s", args.listing_id)
                return 1
            added = await store.toggle_watchlist(listing)
            print(f"  {'Added to' if added else 'Removed from'} watchlist: {listing.title}")
        elif args.command == "cloud-config":
            if args.url is not None or args.key is not None:
                current = await store.get_cloud_config()
                enabled = await store.set_cloud_config(
                    args.url if args.url is not None else current.url,
                    args.key if args.key is not None else current.key,
                )
                print(f"  External DB: {'SYNCED' if enabled else 'LOCAL ONLY'}")
            else:
                config = await store.get_cloud_config()
                print(f"  URL:  {config.url or '-'}")
                print(f"  Key:  {_mask(config.key) if config.key else '-'}")
                print(f"  External DB: {'SYNCED' if store.is_cloud_enabled() else 'LOCAL ONLY'}")
    finally:
        await store.close()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Browse the listing archive and watchlist, configure cloud sync",
    )
    parser.add_argument("--db", type=str, default=None, help="SQLite path")
    sub = parser.add_subparsers(dest="command", required=True)

    archive = sub.add_parser("archive", help="All stored listings, most expensive first")
    archive.add_argument(
        "--model", type=str, default=None, choices=[m.value for m in PhoneModel]
    )

    sub.add_parser("watchlist", help="Bookmarked listings")

    toggle = sub.add_parser("toggle", help="Bookmark / un-bookmark a listing")
    toggle.add_argument("listing_id", type=str)

    cloud = sub.add_parser("cloud-config", help="Show or set Supabase credentials")
    cloud.add_argument("--url", type=str, default=None)
    cloud.add_argument("--key", type=str, default=None)

    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    setup_logging("DEBUG" if args.verbose else None)
    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
