"""Tests for the best-effort Supabase mirror."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

from src.common.models import CloudConfig
from src.vault.remote_sync import (
    LISTINGS_TABLE,
    WATCHLIST_TABLE,
    CloudContext,
    RemoteSync,
    listing_to_remote_row,
)


def _sync(client) -> RemoteSync:
    return RemoteSync(CloudContext(url="https://x.supabase.co", key="k", client=client))


class TestCloudContext:
    def test_incomplete_config_returns_none(self):
        factory = MagicMock()
        assert CloudContext.connect(CloudConfig(url="https://x", key=""), factory) is None
        factory.assert_not_called()

    def test_connect_strips_credentials(self):
        factory = MagicMock(return_value="client")
        context = CloudContext.connect(CloudConfig(url=" https://x ", key=" k "), factory)
        factory.assert_called_once_with("https://x", "k")
        assert context.client == "client"
        assert context.url == "https://x"

    def test_factory_failure_returns_none(self):
        factory = MagicMock(side_effect=Exception("Invalid API key"))
        assert CloudContext.connect(CloudConfig(url="https://x", key="bad"), factory) is None

    @patch("supabase.create_client")
    def test_default_factory_uses_supabase(self, mock_create):
        mock_create.return_value = MagicMock()
        context = CloudContext.connect(CloudConfig(url="https://x.supabase.co", key="k"))
        mock_create.assert_called_once_with("https://x.supabase.co", "k")
        assert context is not None


class TestListingToRemoteRow:
    def test_columns(self, make_listing):
        row = listing_to_remote_row("iPhone 15 Pro", make_listing("listing-0-1", 800))
        assert set(row) == {
            "id", "title", "price_num", "location", "url", "storage_gb",
            "battery_health", "risk_score", "profit_potential", "model",
        }
        assert row["id"] == "listing-0-1"
        assert row["model"] == "iPhone 15 Pro"
        assert row["price_num"] == 800


class TestRemoteSync:
    def test_mirror_listings_upserts_on_id(self, make_listing):
        mock_client = MagicMock()
        listings = [make_listing("listing-0-1"), make_listing("listing-1-1")]

        ok = asyncio.run(_sync(mock_client).mirror_listings("iPhone 15 Pro", listings))

        assert ok is True
        mock_client.table.assert_called_once_with(LISTINGS_TABLE)
        rows = mock_client.table.return_value.upsert.call_args.args[0]
        assert [r["id"] for r in rows] == ["listing-0-1", "listing-1-1"]
        assert mock_client.table.return_value.upsert.call_args.kwargs["on_conflict"] == "id"
        mock_client.table.return_value.upsert.return_value.execute.assert_called_once()

    def test_mirror_empty_is_noop(self):
        mock_client = MagicMock()
        assert asyncio.run(_sync(mock_client).mirror_listings("iPhone 15 Pro", [])) is True
        mock_client.table.assert_not_called()

    def test_failure_returns_false(self, make_listing):
        mock_client = MagicMock()
        mock_client.table.return_value.upsert.return_value.execute.side_effect = Exception(
            "relation \"listings\" does not exist"
        )
        ok = asyncio.run(_sync(mock_client).mirror_listings("iPhone 15 Pro", [make_listing()]))
        assert ok is False

    def test_watchlist_add_and_remove(self, fake_supabase, make_listing):
        sync = _sync(fake_supabase)
        listing = make_listing("listing-3-1", 750)

        assert asyncio.run(sync.mirror_watchlist_add(listing)) is True
        assert asyncio.run(sync.mirror_watchlist_remove("listing-3-1")) is True

        table, row, conflict = fake_supabase.upserts[0]
        assert table == WATCHLIST_TABLE
        assert conflict == "listing_id"
        assert row["listing_id"] == "listing-3-1"
        assert row["price_num"] == 750
        assert fake_supabase.deletes == [(WATCHLIST_TABLE, "listing_id", "listing-3-1")]
