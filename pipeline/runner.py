"""Stage orchestration.

:class:`PipelineOrchestrator` runs discovery, scraping and classification as
separate, resumable stages.  Each stage reads the checkpoint the previous
stage wrote and persists everything it produced, even when individual items
failed.  Single-URL mode scrapes and classifies one site inline without
touching the stage checkpoints.
"""

from __future__ import annotations

import logging
import time
from urllib.parse import urlsplit, urlunsplit

from pipeline.classifier import Classifier, LangChainOracle
from pipeline.config import Settings
from pipeline.discovery import (
    FilterChain,
    SearchProviderChain,
    build_default_chain,
    build_queries,
    discover,
    rank,
    validate_urls,
)
from pipeline.errors import ValidationError
from pipeline.models import (
    ClassificationResult,
    PipelineResult,
    ScrapedSite,
    SearchResult,
)
from pipeline.scraper import Scraper
from pipeline.store import StageStore

logger = logging.getLogger(__name__)

SINGLE_SOURCE = "single-test"


def normalize_url(raw: str) -> str:
    """Trim *raw* and default a missing scheme to ``https://``.

    Raises:
        ValidationError: Empty input, or nothing resembling a host.
    """
    text = (raw or "").strip()
    if not text:
        raise ValidationError("Empty URL provided.")
    if "://" not in text:
        text = f"https://{text}"
    try:
        parts = urlsplit(text)
        host = parts.hostname
    except ValueError as exc:
        raise ValidationError(f"Invalid URL {raw!r}: {exc}") from exc
    if parts.scheme not in ("http", "https") or not host or " " in host:
        raise ValidationError(f"Invalid URL {raw!r}")
    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", parts.query, parts.fragment))


class PipelineOrchestrator:
    """Wire the stages together around a :class:`StageStore`."""

    def __init__(
        self,
        settings: Settings,
        store: StageStore,
        search_chain: SearchProviderChain,
        scraper: Scraper,
        classifier: Classifier,
    ) -> None:
        self.settings = settings
        self.store = store
        self.search_chain = search_chain
        self.scraper = scraper
        self.classifier = classifier

    @classmethod
    def from_settings(cls, settings: Settings) -> "PipelineOrchestrator":
        """Build the default collaborators from *settings*."""
        return cls(
            settings=settings,
            store=StageStore(settings.data_dir),
            search_chain=build_default_chain(settings),
            scraper=Scraper(settings),
            classifier=Classifier(settings, LangChainOracle(settings)),
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    async def run_discovery(self) -> list[SearchResult]:
        cfg = self.settings
        started = time.monotonic()
        queries = build_queries()
        logger.info(
            "[search] %d queries via %s",
            len(queries), ", ".join(p.name for p in self.search_chain.providers) or "no providers",
        )

        found = await discover(
            queries,
            self.search_chain,
            results_per_query=cfg.search_results_per_query,
            query_delay=cfg.search_query_delay,
        )

        chain = FilterChain(
            strict_store_only=cfg.search_strict_store_only,
            include_forums=cfg.search_include_forums,
        )
        filtered, report = chain.apply(found)
        for step, removed in report.removed.items():
            if removed:
                logger.info("[search] filter %s removed %d", step, removed)

        if cfg.search_validate_urls:
            filtered = await validate_urls(filtered, timeout=cfg.url_validation_timeout)

        ranked = rank(filtered, max_results=cfg.search_max_results)
        self.store.save_search(ranked)
        logger.info(
            "[search] complete: %d unique, %d kept, %ds",
            len(found), len(ranked), int(time.monotonic() - started),
        )
        return ranked

    async def run_scrape(self, limit: int | None = None) -> list[ScrapedSite]:
        results = self.store.load_search()
        scraped = await self.scraper.scrape_many(
            results, limit=limit, delay=self.settings.scrape_delay
        )
        self.store.save_scraped(scraped)
        return scraped

    async def run_classify(self, limit: int | None = None) -> list[ClassificationResult]:
        sites = self.store.load_scraped()
        classified = await self.classifier.classify_many(
            sites, limit=limit, delay=self.settings.classify_delay
        )
        self.store.save_classified(classified)
        return classified

    async def run_all(self) -> list[ClassificationResult]:
        await self.run_discovery()
        await self.run_scrape()
        return await self.run_classify()

    async def run_single(self, url: str) -> PipelineResult:
        target = normalize_url(url)
        logger.info("[single] %s", target)

        search = SearchResult(title="", url=target, snippet="", source_query=SINGLE_SOURCE)
        scraped = await self.scraper.scrape_site(target)
        classification = await self.classifier.classify_site(scraped)

        result = PipelineResult(search=search, scraped=scraped, classification=classification)
        self.store.save_single(result)
        return result
