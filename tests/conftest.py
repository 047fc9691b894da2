"""Shared test fixtures for iTrack Sniper."""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Ensure src is importable
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.common.database import init_db
from src.common.models import Listing, MarketAnalysis, MarketTrend, PhoneModel
from src.scanner.analysis_client import AnalysisResponse


class FakeAnalysisClient:
    """Scripted analysis client.

    Each ``generate`` call pops the next scripted reply: an AnalysisResponse
    is returned, an Exception instance is raised.
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls: list[dict] = []

    async def generate(self, prompt, *, grounded=False, response_schema=None):
        self.calls.append(
            {"prompt": prompt, "grounded": grounded, "response_schema": response_schema}
        )
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeSupabaseClient:
    """Records table/upsert/delete chains like supabase-py's query builder."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.upserts: list[tuple[str, object, str]] = []
        self.deletes: list[tuple[str, str, object]] = []

    def table(self, name):
        return _FakeQuery(self, name)


class _FakeQuery:
    def __init__(self, client, table):
        self.client = client
        self.table = table
        self._op = None

    def upsert(self, rows, on_conflict=""):
        self._op = ("upsert", rows, on_conflict)
        return self

    def delete(self):
        self._op = ("delete",)
        return self

    def eq(self, column, value):
        self._op = ("delete", column, value)
        return self

    def execute(self):
        if self.client.fail:
            raise ConnectionError("remote unreachable")
        if self._op[0] == "upsert":
            self.client.upserts.append((self.table, self._op[1], self._op[2]))
        else:
            self.client.deletes.append((self.table, self._op[1], self._op[2]))
        return None


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Path to an initialized temporary SQLite database."""
    path = tmp_path / "test_sniper.db"
    init_db(path)
    return path


@pytest.fixture
def make_listing():
    """Factory for listings with sensible defaults."""

    def _make(id: str = "listing-0-1", price_num: float = 800, **overrides) -> Listing:
        data = {
            "id": id,
            "title": f"iPhone 15 Pro {id}",
            "price": f"{price_num:.0f} €",
            "price_num": price_num,
            "url": "https://www.kleinanzeigen.de/s-anzeige/iphone-15-pro/2876543210-173-4567",
            "risk_score": 20,
            "profit_potential": 100,
            "battery_health": "90%",
        }
        data.update(overrides)
        return Listing(**data)

    return _make


@pytest.fixture
def sample_analysis(make_listing) -> MarketAnalysis:
    listings = [
        make_listing("listing-0-1", 800),
        make_listing("listing-1-1", 1000),
        make_listing("listing-2-1", 900),
    ]
    return MarketAnalysis(
        model=PhoneModel.IPHONE_15_PRO,
        average_price=900,
        back_market_price=1000,
        arbitrage_spread=100,
        listings=listings,
        summary="Scan complete.",
        agent_recommendation="STRATEGY: test",
        market_trend=MarketTrend.STABLE,
        scanned_at=datetime(2025, 10, 19, 12, 0),
    )


@pytest.fixture
def fake_client_cls():
    return FakeAnalysisClient


@pytest.fixture
def fake_supabase():
    return FakeSupabaseClient()


@pytest.fixture
def response():
    """Shorthand constructor for AnalysisResponse."""
    return AnalysisResponse


@pytest.fixture
def failing_supabase():
    """Remote client whose every request raises."""
    return FakeSupabaseClient(fail=True)
