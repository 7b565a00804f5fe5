"""Tests for the command line interface."""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from funding_ingest import __version__
from funding_ingest.__main__ import main, parse_args
from funding_ingest.core.exceptions import DiscoveryFatalError
from funding_ingest.core.models import ProgramStatus
from funding_ingest.core.store import JsonFileRecordStore
from funding_ingest.pipeline.summary import RunSummary


def interrupted_run(coro):
    coro.close()
    raise KeyboardInterrupt


class TestParseArgs:
    """Tests for argument parsing."""

    def test_discover_options(self):
        """Test discovery flags and camelCase options."""
        args = parse_args(
            ["discover", "--fromDate", "2025-01-01", "--toDate", "2025-01-31", "--maxPages", "5", "--dry-run"]
        )

        assert args.command == "discover"
        assert args.from_date == date(2025, 1, 1)
        assert args.to_date == date(2025, 1, 31)
        assert args.max_pages == 5
        assert args.dry_run is True
        assert args.resume is False

    def test_invalid_date(self):
        """Test that malformed dates are rejected by the parser."""
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["discover", "--fromDate", "31/01/2025"])
        assert exc_info.value.code == 2

    def test_process_flags_default_to_settings(self):
        """Test that unset process flags stay None so settings apply."""
        args = parse_args(["process"])
        assert args.maximize_enrichment is None
        assert args.use_expensive_model is None
        assert args.concurrency is None

        args = parse_args(["process", "--concurrency", "3", "--maximize-enrichment"])
        assert args.concurrency == 3
        assert args.maximize_enrichment is True

    def test_discover_process_flag(self):
        """Test the flag that chains processing onto discovery."""
        assert parse_args(["discover"]).process is False
        assert parse_args(["discover", "--process", "--source", "ntis"]).process is True

    def test_common_options_after_subcommand(self):
        """Test shared options on every subcommand."""
        args = parse_args(["expire", "--data-dir", "/tmp/ingest", "--log-level", "DEBUG", "--json-logs"])
        assert args.data_dir == "/tmp/ingest"
        assert args.log_level == "DEBUG"
        assert args.json_logs is True


class TestMain:
    """Tests for main exit codes."""

    def test_version(self, capsys):
        """Test --version output."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert f"funding-ingest {__version__}" in capsys.readouterr().out

    def test_no_command(self):
        """Test that a missing subcommand prints help and exits 2."""
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2

    def test_fatal_discovery_exit_code(self):
        """Test that a fatal discovery error exits 1."""
        with patch("funding_ingest.__main__.setup_logging"), patch(
            "funding_ingest.__main__.main_async",
            new=AsyncMock(side_effect=DiscoveryFatalError("listing unreachable", last_page=4)),
        ):
            with pytest.raises(SystemExit) as exc_info:
                main(["discover"])
        assert exc_info.value.code == 1

    def test_unexpected_error_exit_code(self):
        """Test that unexpected errors exit 1."""
        with patch("funding_ingest.__main__.setup_logging"), patch(
            "funding_ingest.__main__.main_async", new=AsyncMock(side_effect=RuntimeError("boom"))
        ):
            with pytest.raises(SystemExit) as exc_info:
                main(["process"])
        assert exc_info.value.code == 1

    def test_keyboard_interrupt_exit_code(self):
        """Test that Ctrl+C exits 130."""
        with patch("funding_ingest.__main__.setup_logging"), patch(
            "funding_ingest.__main__.asyncio.run", side_effect=interrupted_run
        ):
            with pytest.raises(SystemExit) as exc_info:
                main(["schedule"])
        assert exc_info.value.code == 130

    def test_expire_end_to_end(self, tmp_path, capsys):
        """Test the expire command against a data directory."""
        store = JsonFileRecordStore(str(tmp_path / "records.json"))
        store.upsert_canonical_program(
            "h1",
            {
                "source_id": "ntis",
                "url": "https://www.ntis.go.kr/rndgate/eg/un/ra/view.do?roRndUid=1",
                "title": "2024년 기술개발 지원사업",
                "deadline": datetime(2024, 12, 31, tzinfo=timezone.utc),
            },
        )

        with patch("funding_ingest.__main__.setup_logging"):
            with pytest.raises(SystemExit) as exc_info:
                main(["expire", "--data-dir", str(tmp_path)])

        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert '"stage": "expire"' in out
        assert '"expired": 1' in out
        reloaded = JsonFileRecordStore(str(tmp_path / "records.json"))
        assert reloaded.find_program("h1").status is ProgramStatus.EXPIRED

    def test_discover_with_process_chains_worker_pool(self, tmp_path, capsys):
        """Test that discover --process subscribes processing before discovery runs."""
        with patch("funding_ingest.__main__.setup_logging"), patch(
            "funding_ingest.orchestrator.IngestionPipeline"
        ) as pipeline_cls:
            pipeline = pipeline_cls.return_value
            pipeline.run_discovery = AsyncMock(return_value=RunSummary(stage="discovery"))
            with pytest.raises(SystemExit) as exc_info:
                main(["discover", "--process", "--source", "ntis", "--data-dir", str(tmp_path)])

        assert exc_info.value.code == 0
        pipeline.chain_processing.assert_called_once_with()
        assert pipeline.run_discovery.await_args.kwargs["source_id"] == "ntis"
        assert '"stage": "discovery"' in capsys.readouterr().out
