"""End-to-end tests: scan -> persist -> browse, through the library and the CLIs.

The analysis service and the remote store are faked; SQLite is real.
"""

from __future__ import annotations

import asyncio
import json
import sys

import pytest

from fixtures.sample_scan_data import BENCHMARK_ANSWER, SAMPLE_EXTRACTION
from src.common.config import Settings
from src.common.models import MarketAnalysis, PhoneModel
from src.scanner import main as scanner_main
from src.scanner.orchestrator import ScanOrchestrator
from src.vault import main as vault_main
from src.vault.local_store import LocalStore


def _scripted_client(fake_client_cls, response, *extra):
    return fake_client_cls(
        response(BENCHMARK_ANSWER),
        response(json.dumps(SAMPLE_EXTRACTION)),
        *extra,
    )


class TestScanToArchive:
    def test_scan_save_and_browse(self, db_path, fake_client_cls, response, fake_supabase):
        client = _scripted_client(fake_client_cls, response)

        async def scenario():
            analysis = await ScanOrchestrator(client, Settings()).scan(PhoneModel.IPHONE_15_PRO)
            store = await LocalStore.open(db_path, client_factory=lambda u, k: fake_supabase)
            await store.set_cloud_config("https://x.supabase.co", "anon")
            await store.save_scan(analysis.model, analysis)
            await store.toggle_watchlist(analysis.listings[0])
            await store.close()
            return analysis, await store.get_archive(), await store.get_watchlist()

        analysis, archive, watchlist = asyncio.run(scenario())

        assert [l.price_num for l in archive] == [1000, 900, 800]
        assert {l.id for l in archive} == {l.id for l in analysis.listings}
        assert watchlist == [analysis.listings[0]]
        listing_rows = [rows for table, rows, _ in fake_supabase.upserts if table == "listings"]
        assert len(listing_rows) == 1 and len(listing_rows[0]) == 3

    def test_failed_scan_persists_nothing(self, db_path, fake_client_cls, response):
        from src.scanner.orchestrator import ScanError

        client = fake_client_cls(response(BENCHMARK_ANSWER), response("not json"))

        async def scenario():
            store = await LocalStore.open(db_path)
            try:
                analysis = await ScanOrchestrator(client, Settings()).scan(PhoneModel.IPHONE_15_PRO)
            except ScanError:
                analysis = None
            if analysis is not None:
                await store.save_scan(analysis.model, analysis)
            return await store.get_archive()

        assert asyncio.run(scenario()) == []

    def test_rescan_creates_new_records(self, db_path, fake_client_cls, response):
        first = _scripted_client(fake_client_cls, response)
        second = _scripted_client(fake_client_cls, response)

        async def scenario():
            store = await LocalStore.open(db_path)
            for client in (first, second):
                analysis = await ScanOrchestrator(client, Settings()).scan(PhoneModel.IPHONE_15_PRO)
                await store.save_scan(analysis.model, analysis)
                # Ids embed the ingestion millisecond
                await asyncio.sleep(0.002)
            return await store.get_archive()

        assert len(asyncio.run(scenario())) == 6


class TestCli:
    def test_scanner_cli(self, db_path, tmp_path, fake_client_cls, response, monkeypatch, capsys):
        client = _scripted_client(fake_client_cls, response, response("Hallo, 720 € heute bar?"))
        monkeypatch.setattr(scanner_main, "create_analysis_client", lambda config: client)
        out_json = tmp_path / "exports" / "scan.json"
        monkeypatch.setattr(
            sys, "argv",
            [
                "main", "--model", "iPhone 15 Pro", "--save", "--db", str(db_path),
                "--json", str(out_json), "--negotiate", "0",
            ],
        )

        with pytest.raises(SystemExit) as exc:
            scanner_main.main()

        assert exc.value.code == 0
        out = capsys.readouterr().out
        assert "iPhone 15 Pro INTEL" in out
        assert "BUY SIGNAL" in out
        assert "Hallo, 720 € heute bar?" in out

        exported = MarketAnalysis.model_validate_json(out_json.read_text(encoding="utf-8"))
        assert exported.average_price == 900
        assert "averagePrice" in json.loads(out_json.read_text(encoding="utf-8"))

        archive = asyncio.run(LocalStore(db_path).get_archive())
        assert len(archive) == 3

    def test_scanner_cli_scan_error_exits_1(self, fake_client_cls, response, monkeypatch):
        client = fake_client_cls(response("1000"), RuntimeError("boom"))
        monkeypatch.setattr(scanner_main, "create_analysis_client", lambda config: client)
        monkeypatch.setattr(sys, "argv", ["main", "--model", "iPhone 13"])

        with pytest.raises(SystemExit) as exc:
            scanner_main.main()
        assert exc.value.code == 1

    def test_scanner_cli_default_export_dir(
        self, tmp_path, fake_client_cls, response, monkeypatch
    ):
        client = _scripted_client(fake_client_cls, response)
        monkeypatch.setattr(scanner_main, "create_analysis_client", lambda config: client)
        monkeypatch.setattr(scanner_main, "DATA_EXPORTS_DIR", tmp_path / "exports")
        monkeypatch.setattr(sys, "argv", ["main", "--model", "iPhone 15 Pro", "--json"])

        with pytest.raises(SystemExit) as exc:
            scanner_main.main()

        assert exc.value.code == 0
        written = list((tmp_path / "exports").glob("scan_iphone_15_pro_*.json"))
        assert len(written) == 1
        assert json.loads(written[0].read_text(encoding="utf-8"))["averagePrice"] == 900

    def test_scanner_cli_missing_api_key_exits_1(self, monkeypatch, caplog):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setattr(
            sys, "argv", ["main", "--model", "iPhone 13", "--provider", "openai"]
        )

        with pytest.raises(SystemExit) as exc:
            scanner_main.main()

        assert exc.value.code == 1
        assert "OPENAI_API_KEY" in caplog.text

    def test_vault_cli_archive_and_toggle(self, db_path, sample_analysis, monkeypatch, capsys):
        asyncio.run(LocalStore(db_path).save_scan(sample_analysis.model, sample_analysis))

        monkeypatch.setattr(sys, "argv", ["main", "--db", str(db_path), "archive"])
        with pytest.raises(SystemExit) as exc:
            vault_main.main()
        assert exc.value.code == 0
        assert "3 indexed records" in capsys.readouterr().out

        monkeypatch.setattr(sys, "argv", ["main", "--db", str(db_path), "toggle", "listing-1-1"])
        with pytest.raises(SystemExit):
            vault_main.main()
        assert "Added to watchlist" in capsys.readouterr().out
        assert asyncio.run(LocalStore(db_path).is_in_watchlist("listing-1-1"))

    def test_vault_cli_unknown_id(self, db_path, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["main", "--db", str(db_path), "toggle", "missing"])
        with pytest.raises(SystemExit) as exc:
            vault_main.main()
        assert exc.value.code == 1
