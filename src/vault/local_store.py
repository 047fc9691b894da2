"""Local Store — durable on-device persistence for scans, watchlist and config.

Three SQLite tables: the full listing archive, the user's watchlist and a
config key/value table holding the cloud credentials. Every operation is
async (sqlite work runs in a worker thread) and each mutation is a single
transaction. When cloud credentials are configured, writes are mirrored to
the remote store in background tasks after the local write commits.

Usage:
    store = await LocalStore.open()
    await store.save_scan(analysis.model, analysis)
    archive = await store.get_archive()
    await store.wait_for_sync()
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Coroutine, Optional, TypeVar

from src.common.config import settings
from src.common.database import get_connection, init_db
from src.common.models import CloudConfig, Listing, MarketAnalysis, PhoneModel

from .remote_sync import ClientFactory, CloudContext, RemoteSync

logger = logging.getLogger(__name__)

T = TypeVar("T")

CLOUD_URL_KEY = "supabase_url"
CLOUD_KEY_KEY = "supabase_key"


def _model_name(model: PhoneModel | str) -> str:
    return model.value if isinstance(model, Enum) else str(model)


def _row_to_listing(row: sqlite3.Row) -> Listing:
    return Listing.model_validate_json(row["payload"])


class LocalStore:
    """Archive, watchlist and config tables with an optional cloud mirror."""

    def __init__(
        self,
        db_path: str | Path | None = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.db_path = Path(db_path or settings.database.db_path)
        self._client_factory = client_factory
        self._schema_ready = False
        self._sync: Optional[RemoteSync] = None
        self._pending: set[asyncio.Task] = set()

    @classmethod
    async def open(
        cls,
        db_path: str | Path | None = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> LocalStore:
        """Create the schema and activate cloud sync from stored credentials."""
        store = cls(db_path, client_factory)
        await asyncio.to_thread(store._ensure_schema)
        store._activate_sync(await store.get_cloud_config())
        return store

    # --- Archive ---

    async def save_scan(self, model: PhoneModel | str, analysis: MarketAnalysis) -> int:
        """Upsert every listing of a scan by id, then mirror to the cloud.

        A repeated id replaces the stored record entirely.

        Returns:
            Number of listings written locally.
        """
        model_name = _model_name(model)
        listings = list(analysis.listings)
        rows = [
            (l.id, model_name, l.title, l.price_num, l.model_dump_json(by_alias=True))
            for l in listings
        ]

        def _write(conn: sqlite3.Connection) -> None:
            conn.executemany(
                """
                INSERT OR REPLACE INTO listings (id, model, title, price_num, payload, updated_at)
                VALUES (?, ?, ?, ?, ?, datetime('now'))
                """,
                rows,
            )

        await self._execute(_write)
        logger.info("Saved %d listings for %s", len(rows), model_name)

        if self._sync is not None and listings:
            self._spawn(self._sync.mirror_listings(model_name, listings))
        return len(rows)

    async def get_archive(self, model: PhoneModel | str | None = None) -> list[Listing]:
        """All archived listings, most expensive first."""

        def _read(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            if model is None:
                return conn.execute(
                    "SELECT payload FROM listings ORDER BY price_num DESC"
                ).fetchall()
            return conn.execute(
                "SELECT payload FROM listings WHERE model = ? ORDER BY price_num DESC",
                (_model_name(model),),
            ).fetchall()

        return [_row_to_listing(r) for r in await self._execute(_read)]

    # --- Watchlist ---

    async def toggle_watchlist(self, listing: Listing) -> bool:
        """Bookmark or un-bookmark a listing.

        Returns:
            True if the listing was added, False if it was removed.
        """

        def _toggle(conn: sqlite3.Connection) -> bool:
            cur = conn.execute("DELETE FROM watchlist WHERE id = ?", (listing.id,))
            if cur.rowcount > 0:
                return False
            conn.execute(
                "INSERT INTO watchlist (id, title, price_num, payload) VALUES (?, ?, ?, ?)",
                (listing.id, listing.title, listing.price_num, listing.model_dump_json(by_alias=True)),
            )
            return True

        added = await self._execute(_toggle)
        logger.info("Watchlist %s: %s", "added" if added else "removed", listing.id)

        if self._sync is not None:
            if added:
                self._spawn(self._sync.mirror_watchlist_add(listing))
            else:
                self._spawn(self._sync.mirror_watchlist_remove(listing.id))
        return added

    async def is_in_watchlist(self, listing_id: str) -> bool:
        def _exists(conn: sqlite3.Connection) -> bool:
            row = conn.execute(
                "SELECT 1 FROM watchlist WHERE id = ?", (listing_id,)
            ).fetchone()
            return row is not None

        return await self._execute(_exists)

    async def get_watchlist(self) -> list[Listing]:
        """Snapshot of bookmarked listings (no guaranteed order)."""

        def _read(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            return conn.execute("SELECT payload FROM watchlist").fetchall()

        return [_row_to_listing(r) for r in await self._execute(_read)]

    # --- Cloud config ---

    async def get_cloud_config(self) -> CloudConfig:
        def _read(conn: sqlite3.Connection) -> dict[str, str]:
            rows = conn.execute(
                "SELECT key, value FROM config WHERE key IN (?, ?)",
                (CLOUD_URL_KEY, CLOUD_KEY_KEY),
            ).fetchall()
            return {r["key"]: r["value"] for r in rows}

        values = await self._execute(_read)
        return CloudConfig(
            url=values.get(CLOUD_URL_KEY, ""),
            key=values.get(CLOUD_KEY_KEY, ""),
        )

    async def set_cloud_config(self, url: str, key: str) -> bool:
        """Store cloud credentials and reconnect with them immediately.

        In-flight mirror calls on the previous client are left to finish.

        Returns:
            Whether cloud sync is active with the new credentials.
        """

        def _write(conn: sqlite3.Connection) -> None:
            conn.executemany(
                "INSERT OR REPLACE INTO config (key, value) VALUES (?, ?)",
                [(CLOUD_URL_KEY, url), (CLOUD_KEY_KEY, key)],
            )

        await self._execute(_write)
        self._activate_sync(CloudConfig(url=url, key=key))
        return self.is_cloud_enabled()

    def is_cloud_enabled(self) -> bool:
        return self._sync is not None

    # --- Background mirroring ---

    async def wait_for_sync(self) -> None:
        """Wait for every in-flight mirror task, including ones spawned meanwhile."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        await self.wait_for_sync()

    def _activate_sync(self, config: CloudConfig) -> None:
        context = CloudContext.connect(config, self._client_factory)
        self._sync = RemoteSync(context) if context is not None else None
        if self._sync is None:
            logger.info("Cloud sync inactive, storing locally only")

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    # --- SQLite plumbing ---

    def _ensure_schema(self) -> None:
        if not self._schema_ready:
            init_db(self.db_path)
            self._schema_ready = True

    def _with_connection(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        self._ensure_schema()
        conn = get_connection(self.db_path)
        try:
            with conn:
                return fn(conn)
        finally:
            conn.close()

    async def _execute(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        return await asyncio.to_thread(self._with_connection, fn)
