"""Tests for pipeline.store.StageStore."""

from __future__ import annotations

import json

import pytest

from pipeline.errors import MissingCheckpointError, PipelineError
from pipeline.models import (
    ClassificationResult,
    Evidence,
    PipelineResult,
    ScrapedSite,
    SearchResult,
)
from pipeline.store import CLASSIFIED_FILE, SEARCH_FILE, SINGLE_FILE, StageStore


@pytest.fixture
def store(tmp_path) -> StageStore:
    return StageStore(tmp_path / "data")


def _search() -> SearchResult:
    return SearchResult(title="t", url="https://a.example/", snippet="s", source_query="q")


def _classified() -> ClassificationResult:
    return ClassificationResult(
        url="https://a.example/",
        accepts_visa=False,
        visa_evidence="",
        sells_adderall=False,
        adderall_evidence="",
        is_licensed_pharmacy=True,
        license_evidence="",
        is_violation=False,
        confidence="low",
        risk_score=0,
        reasoning="",
        needs_manual_review=True,
    )


class TestStageStore:
    def test_search_checkpoint(self, store):
        path = store.save_search([_search()])
        assert path.name == SEARCH_FILE
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == [{"title": "t", "url": "https://a.example/", "snippet": "s", "source": "q"}]
        assert store.load_search() == [_search()]

    def test_scraped_checkpoint_keeps_error_and_evidence(self, store):
        sites = [
            ScrapedSite(url="https://a.example/", title="A", content="c", evidence=Evidence(payment=["visa"])),
            ScrapedSite.failure("https://b.example/", "Timed out"),
        ]
        store.save_scraped(sites)
        loaded = store.load_scraped()
        assert loaded[0].evidence.payment == ["visa"]
        assert loaded[1].error == "Timed out"

    def test_classified_checkpoint(self, store):
        store.save_classified([_classified()])
        assert store.load_classified()[0].needs_manual_review is True

    def test_write_leaves_no_temp_files(self, store):
        store.save_search([_search()])
        store.save_search([])
        assert sorted(p.name for p in store.data_dir.iterdir()) == [SEARCH_FILE]
        assert store.load_search() == []

    @pytest.mark.parametrize(
        "loader, hint",
        [("load_search", "Run `search` first."), ("load_scraped", "Run `scrape` first."),
         ("load_classified", "Run `classify` first.")],
    )
    def test_missing_checkpoint(self, store, loader, hint):
        with pytest.raises(MissingCheckpointError) as exc_info:
            getattr(store, loader)()
        assert hint in str(exc_info.value)
        assert isinstance(exc_info.value, PipelineError)

    def test_corrupt_checkpoint(self, store):
        store.data_dir.mkdir(parents=True)
        store.path(CLASSIFIED_FILE).write_text("{oops", encoding="utf-8")
        with pytest.raises(PipelineError, match="not valid JSON"):
            store.load_classified()

    def test_single_result(self, store):
        scraped = ScrapedSite(url="https://a.example/", title="A", content="c")
        path = store.save_single(PipelineResult(search=_search(), scraped=scraped, classification=_classified()))
        data = json.loads(path.read_text(encoding="utf-8"))
        assert path.name == SINGLE_FILE
        assert set(data) == {"search", "scraped", "classification"}
        assert data["classification"]["is_violation"] is False
