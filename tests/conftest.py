"""Shared fixtures: explicit settings and an in-memory fake browser.

Nothing here touches the network, a real browser or an LLM.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from pipeline.config import Settings
from pipeline.scraper.evidence import PAYMENT_DOM_SCRIPT
from pipeline.scraper.scrape import BODY_TEXT_SCRIPT


def make_settings(tmp_path: Path | None = None, **overrides) -> Settings:
    """Build settings with every value pinned, independent of the environment."""
    values = dict(
        serpapi_key="",
        brightdata_user="user",
        brightdata_password="secret",
        brightdata_host="brd.example:9222",
        openai_api_key="sk-test",
        llm_provider="openai",
        openai_chat_model="gpt-4o",
        ollama_chat_model="llama3",
        ollama_base_url="http://localhost:11434",
        classify_temperature=0.1,
        classify_timeout=5.0,
        classify_delay=0.0,
        search_max_results=100,
        search_results_per_query=20,
        search_validate_urls=False,
        search_strict_store_only=True,
        search_include_forums=False,
        search_query_delay=0.0,
        search_provider_timeout=5.0,
        search_retry_max=2,
        search_retry_base_delay=0.0,
        url_validation_timeout=1.0,
        scrape_connect_timeout=1.0,
        scrape_navigation_timeout=1.0,
        scrape_operation_timeout=1.0,
        scrape_page_wait=0.0,
        scrape_delay=0.0,
        pipeline_item_limit=20,
        data_dir=(tmp_path or Path("data")) / "data",
        log_level="INFO",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


# ---------------------------------------------------------------------------
# Fake browser
# ---------------------------------------------------------------------------

class FakeElement:
    def __init__(self) -> None:
        self.clicks = 0

    async def click(self, **kwargs) -> None:
        self.clicks += 1


class FakePage:
    """Just enough of a Playwright page for the scraper.

    *pages* maps a URL to ``(title, text, html, dom_hits)``; unknown URLs
    load an empty page.
    """

    def __init__(self, pages: dict, hang_on: set[str] | None = None, cart_button: bool = False):
        self._pages = pages
        self._hang_on = hang_on or set()
        self.current = ""
        self.visited: list[str] = []
        self.cart_button = FakeElement() if cart_button else None

    def _state(self):
        return self._pages.get(self.current, ("", "", "", []))

    async def goto(self, url: str, **kwargs) -> None:
        self.visited.append(url)
        if url in self._hang_on:
            await asyncio.sleep(60)
        self.current = url

    async def title(self) -> str:
        return self._state()[0]

    async def evaluate(self, script: str):
        title, text, html, hits = self._state()
        if script == BODY_TEXT_SCRIPT:
            return text
        if script == PAYMENT_DOM_SCRIPT:
            return hits
        raise AssertionError("unexpected script")

    async def content(self) -> str:
        return self._state()[2]

    async def query_selector(self, selector: str):
        if self.cart_button is not None and "add-to-cart" in selector:
            return self.cart_button
        return None


class FakeBrowser:
    def __init__(self, page: FakePage) -> None:
        self.page = page
        self.close_calls = 0

    async def new_page(self) -> FakePage:
        return self.page

    async def close(self) -> None:
        self.close_calls += 1


class FakeConnector:
    """Hands out one :class:`FakeBrowser` per ``connect`` call."""

    def __init__(self, page_factory=None, error: Exception | None = None) -> None:
        self._page_factory = page_factory or (lambda: FakePage({}))
        self._error = error
        self.browsers: list[FakeBrowser] = []

    async def connect(self) -> FakeBrowser:
        if self._error is not None:
            raise self._error
        browser = FakeBrowser(self._page_factory())
        self.browsers.append(browser)
        return browser


class SleepRecorder:
    """Drop-in for ``asyncio.sleep`` that records delays instead of waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)

    @property
    def total(self) -> float:
        return sum(self.calls)
