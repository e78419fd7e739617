"""Tests for the merchant scan CLI (cli/main.py).

``Settings.from_env`` and ``build_orchestrator`` are patched so every command
runs against pinned settings and a mocked orchestrator.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from cli.main import app
from conftest import make_settings
from pipeline.errors import MissingCheckpointError
from pipeline.models import (
    ClassificationResult,
    PipelineResult,
    ScrapedSite,
    SearchResult,
)
from pipeline.store import StageStore

runner = CliRunner()


def _classified(url: str = "https://shop.example/", violation: bool = True) -> ClassificationResult:
    return ClassificationResult(
        url=url,
        accepts_visa=violation,
        visa_evidence="",
        sells_adderall=violation,
        adderall_evidence="",
        is_licensed_pharmacy=not violation,
        license_evidence="",
        is_violation=violation,
        confidence="high",
        risk_score=88 if violation else 0,
        reasoning="Criteria met." if violation else "Clean.",
        needs_manual_review=False,
    )


@pytest.fixture
def cli_env(tmp_path):
    """Patch settings + orchestrator factory; yield (settings, orchestrator mock)."""
    settings = make_settings(tmp_path)
    orchestrator = MagicMock()
    orchestrator.run_discovery = AsyncMock(
        return_value=[SearchResult(title="Shop", url="https://shop.example/", snippet="", source_query="q")]
    )
    orchestrator.run_scrape = AsyncMock(
        return_value=[
            ScrapedSite(url="https://shop.example/", title="Shop", content="c"),
            ScrapedSite.failure("https://down.example/", "Timed out"),
        ]
    )
    orchestrator.run_classify = AsyncMock(return_value=[_classified(), _classified("https://ok.example/", False)])
    orchestrator.run_all = AsyncMock(return_value=[_classified()])
    with patch("cli.main.Settings.from_env", return_value=settings), patch(
        "cli.main.build_orchestrator", return_value=orchestrator
    ), patch("cli.main.setup_logging"):
        yield settings, orchestrator


class TestStageCommands:
    def test_search(self, cli_env):
        result = runner.invoke(app, ["search"])
        assert result.exit_code == 0
        assert "1 candidate site(s)" in result.output
        assert "https://shop.example/" in result.output

    def test_scrape_passes_limit(self, cli_env):
        _, orchestrator = cli_env
        result = runner.invoke(app, ["scrape", "--limit", "5"])
        assert result.exit_code == 0
        orchestrator.run_scrape.assert_awaited_once_with(limit=5)
        assert "1 scraped, 1 failed" in result.output
        assert "down.example" in result.output

    @pytest.mark.parametrize("command", ["scrape", "classify"])
    def test_negative_limit_is_rejected(self, cli_env, command):
        _, orchestrator = cli_env
        result = runner.invoke(app, [command, "--limit", "-1"])
        assert result.exit_code == 2
        orchestrator.run_scrape.assert_not_awaited()
        orchestrator.run_classify.assert_not_awaited()

    def test_classify_reports_summary(self, cli_env):
        _, orchestrator = cli_env
        result = runner.invoke(app, ["classify"])
        assert result.exit_code == 0
        orchestrator.run_classify.assert_awaited_once_with(limit=None)
        assert "Violations       : 1" in result.output
        assert "[ 88] https://shop.example/" in result.output

    def test_run(self, cli_env):
        result = runner.invoke(app, ["run"])
        assert result.exit_code == 0
        assert "Total classified : 1" in result.output


class TestErrors:
    def test_missing_credentials_exit_1(self, tmp_path):
        settings = make_settings(tmp_path, brightdata_user="", brightdata_password="")
        with patch("cli.main.Settings.from_env", return_value=settings), patch("cli.main.setup_logging"):
            result = runner.invoke(app, ["scrape"])
        assert result.exit_code == 1
        assert "BRIGHTDATA_USER" in result.output

    def test_missing_checkpoint_exit_1(self, cli_env):
        _, orchestrator = cli_env
        orchestrator.run_scrape.side_effect = MissingCheckpointError(
            "Search", "data/search-results.json", "Run `search` first."
        )
        result = runner.invoke(app, ["scrape"])
        assert result.exit_code == 1
        assert "Run `search` first." in result.output

    def test_invalid_single_url_exit_2(self, cli_env):
        _, orchestrator = cli_env
        result = runner.invoke(app, ["single", "ftp://example.com"])
        assert result.exit_code == 2
        orchestrator.run_single.assert_not_called()


class TestSingle:
    def test_single_normalises_and_prints(self, cli_env):
        _, orchestrator = cli_env
        orchestrator.run_single = AsyncMock(
            return_value=PipelineResult(
                search=SearchResult(title="", url="https://shop.example/", snippet="", source_query="single-test"),
                scraped=ScrapedSite(url="https://shop.example/", title="Shop", content="c"),
                classification=_classified(),
            )
        )
        result = runner.invoke(app, ["single", "shop.example"])
        assert result.exit_code == 0
        orchestrator.run_single.assert_awaited_once_with("https://shop.example/")
        assert "Status            : VIOLATION" in result.output
        assert "single-result.json" in result.output


class TestSummary:
    def test_summary_reads_checkpoint(self, cli_env):
        settings, _ = cli_env
        StageStore(settings.data_dir).save_classified([_classified(), _classified("https://ok.example/", False)])
        result = runner.invoke(app, ["summary"])
        assert result.exit_code == 0
        assert "Total classified : 2" in result.output
        assert "High confidence  : 1" in result.output

    def test_summary_without_checkpoint(self, cli_env):
        result = runner.invoke(app, ["summary"])
        assert result.exit_code == 1
        assert "Run `classify` first." in result.output
