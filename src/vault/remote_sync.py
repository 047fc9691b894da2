"""Remote Sync — best-effort Supabase mirror of local writes.

The local store is authoritative. Every remote call here runs behind its
own error boundary: failures (auth, network, schema mismatch) are logged and
discarded, never raised to the caller and never rolled back locally.

Prerequisites (in the Supabase project):
    - `listings` table keyed by `id` with columns title, price_num, location,
      url, storage_gb, battery_health, risk_score, profit_potential, model
    - `watchlist` table keyed by `listing_id` with columns title, price_num, url

Usage:
    context = CloudContext.connect(CloudConfig(url=..., key=...))
    sync = RemoteSync(context)
    await sync.mirror_listings("iPhone 15 Pro", analysis.listings)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from src.common.models import CloudConfig, Listing

logger = logging.getLogger(__name__)

LISTINGS_TABLE = "listings"
WATCHLIST_TABLE = "watchlist"

ClientFactory = Callable[[str, str], Any]


def _supabase_client_factory(url: str, key: str) -> Any:
    from supabase import create_client

    return create_client(url, key)


@dataclass(frozen=True)
class CloudContext:
    """A remote client bound to one credential set."""

    url: str
    key: str
    client: Any

    @classmethod
    def connect(
        cls,
        config: CloudConfig,
        client_factory: Optional[ClientFactory] = None,
    ) -> Optional[CloudContext]:
        """Build a context, or None when credentials are incomplete or rejected."""
        if not config.is_complete:
            return None
        factory = client_factory or _supabase_client_factory
        try:
            client = factory(config.url.strip(), config.key.strip())
        except Exception as e:
            logger.warning("Could not create cloud client for %s: %s", config.url, e)
            return None
        logger.info("Cloud sync connected: %s", config.url)
        return cls(url=config.url.strip(), key=config.key.strip(), client=client)


def listing_to_remote_row(model: str, listing: Listing) -> dict:
    """Map a listing to the remote `listings` table columns."""
    return {
        "id": listing.id,
        "title": listing.title,
        "price_num": listing.price_num,
        "location": listing.location,
        "url": listing.url,
        "storage_gb": listing.storage_gb,
        "battery_health": listing.battery_health,
        "risk_score": listing.risk_score,
        "profit_potential": listing.profit_potential,
        "model": model,
    }


class RemoteSync:
    """Mirrors archive and watchlist writes to the remote store."""

    def __init__(self, context: CloudContext) -> None:
        self.context = context

    async def mirror_listings(self, model: str, listings: list[Listing]) -> bool:
        """Upsert listings on conflicting id. Returns False on any failure."""
        if not listings:
            return True
        rows = [listing_to_remote_row(model, l) for l in listings]

        def _upsert() -> None:
            (
                self.context.client.table(LISTINGS_TABLE)
                .upsert(rows, on_conflict="id")
                .execute()
            )

        ok = await self._run("upsert %d listings" % len(rows), _upsert)
        if ok:
            logger.info("Cloud sync: %d listings mirrored for %s", len(rows), model)
        return ok

    async def mirror_watchlist_add(self, listing: Listing) -> bool:
        row = {
            "listing_id": listing.id,
            "title": listing.title,
            "price_num": listing.price_num,
            "url": listing.url,
        }

        def _upsert() -> None:
            (
                self.context.client.table(WATCHLIST_TABLE)
                .upsert(row, on_conflict="listing_id")
                .execute()
            )

        return await self._run(f"watchlist add {listing.id}", _upsert)

    async def mirror_watchlist_remove(self, listing_id: str) -> bool:
        def _delete() -> None:
            (
                self.context.client.table(WATCHLIST_TABLE)
                .delete()
                .eq("listing_id", listing_id)
                .execute()
            )

        return await self._run(f"watchlist remove {listing_id}", _delete)

    async def _run(self, label: str, call: Callable[[], None]) -> bool:
        # supabase-py's client is blocking; keep it off the event loop
        try:
            await asyncio.to_thread(call)
        except Exception as e:
            logger.warning("Cloud sync failed (%s): %s", label, e)
            return False
        return True
