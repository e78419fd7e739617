"""Tests for the scraping stage (browser session, evidence mining, rate limit).

Mocking strategy:
- The remote browser is replaced by the in-memory fakes in ``conftest.py``;
  Playwright itself is never started.
- The scraper's ``sleep`` is a :class:`SleepRecorder`, so rate-limit delays
  are asserted without waiting for them.
- ``trafilatura.extract`` is patched in the BS4-fallback test to simulate the
  case where trafilatura returns nothing.
"""

from __future__ import annotations

import asyncio
from unittest.mock import patch

from conftest import FakeBrowser, FakeConnector, FakePage, SleepRecorder, make_settings
from pipeline.errors import ProviderError
from pipeline.models import Evidence, SearchResult
from pipeline.scraper.browser import BrowserSession, with_timeout
from pipeline.scraper.evidence import (
    HTML_VISA_NOTE,
    extract_text_evidence,
    html_payment_evidence,
    label_dom_hits,
    lines_matching,
    merge_payment,
)
from pipeline.scraper.extractor import _visible_lines, text_from_html, title_from_html
from pipeline.scraper.scrape import Scraper


# ---------------------------------------------------------------------------
# Fixtures / constants
# ---------------------------------------------------------------------------

STORE_URL = "https://rx-express-meds.example/cart"

_STORE_TEXT = """\
RxExpress Online Pharmacy
Adderall 30mg - $4.50 per pill
Add to cart
We accept Visa and Mastercard
No prescription needed
Fast shipping worldwide
"""

_STORE_HTML = """\
<html><head><title>Adderall 30mg | RxExpress</title></head>
<body><main><p>Adderall 30mg</p><img src="/img/visa.png" alt="Visa"></main></body></html>
"""

_SIMPLE_HTML = """\
<!DOCTYPE html>
<html>
<head><title>Test Page</title></head>
<body>
  <script>var tracking = 1;</script>
  <main>
    <p>This is the main content of the test page.</p>
    <p>Generic Adderall 20mg in stock.</p>
  </main>
</body>
</html>
"""


def _store_pages() -> dict:
    return {
        STORE_URL: ("Adderall 30mg | RxExpress", _STORE_TEXT, _STORE_HTML, ['alt="Visa" src="/img/visa.png"']),
        "https://rx-express-meds.example/checkout/": (
            "Checkout", "Pay with Visa", "<div class='payment-methods'>Visa</div>", ["Visa Mastercard"],
        ),
    }


def _hit(url: str) -> SearchResult:
    return SearchResult(title="", url=url, snippet="", source_query="q")


# ---------------------------------------------------------------------------
# Evidence mining
# ---------------------------------------------------------------------------

class TestEvidence:
    def test_lines_matching_caps_and_trims(self) -> None:
        text = "\n".join(f"  visa line {i}  " for i in range(10))
        lines = lines_matching(text, ["visa"], cap=3)
        assert lines == ["visa line 0", "visa line 1", "visa line 2"]

    def test_text_evidence_per_category(self) -> None:
        ev = extract_text_evidence(_STORE_TEXT, _STORE_HTML)
        assert ev.payment == ["We accept Visa and Mastercard"]
        assert "Adderall 30mg - $4.50 per pill" in ev.product
        assert "Add to cart" in ev.product
        assert ev.licensing == ["No prescription needed"]

    def test_html_visa_note_when_text_is_silent(self) -> None:
        ev = extract_text_evidence("Adderall 30mg", _STORE_HTML)
        assert ev.payment == [HTML_VISA_NOTE]

    def test_no_note_without_visa_anywhere(self) -> None:
        assert extract_text_evidence("hello", "<html></html>").payment == []

    def test_labels(self) -> None:
        assert html_payment_evidence(_STORE_HTML, "landing") == [f"[landing] {HTML_VISA_NOTE}"]
        assert label_dom_hits(["visa", " ", "amex"], "x") == ["[x] visa", "[x] amex"]
        assert label_dom_hits(None, "x") == []

    def test_merge_payment_caps_at_six(self) -> None:
        ev = merge_payment(Evidence(payment=["a"]), [f"b{i}" for i in range(10)], ["c"])
        assert ev.payment == ["a", "b0", "b1", "b2", "b3", "b4"]


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class TestExtractor:
    def test_extracts_title(self) -> None:
        assert title_from_html(_SIMPLE_HTML) == "Test Page"
        assert title_from_html("<html></html>") == ""

    def test_visible_lines_strip_scripts(self) -> None:
        text = _visible_lines(_SIMPLE_HTML)
        assert "Generic Adderall 20mg in stock." in text.splitlines()
        assert "tracking" not in text

    def test_bs4_used_when_trafilatura_returns_nothing(self) -> None:
        with patch("pipeline.scraper.extractor.trafilatura.extract", return_value=None):
            text = text_from_html(_SIMPLE_HTML)
        assert "main content" in text

    def test_empty_html(self) -> None:
        assert text_from_html("   ") == ""


# ---------------------------------------------------------------------------
# Browser session
# ---------------------------------------------------------------------------

class TestBrowserSession:
    async def test_releases_exactly_once(self, settings) -> None:
        connector = FakeConnector()
        async with BrowserSession(connector, settings) as session:
            assert session.connected.ok
            await session.release()
        await session.release()
        assert session.released
        assert connector.browsers[0].close_calls == 1

    async def test_connect_failure_does_not_raise(self, settings) -> None:
        connector = FakeConnector(error=ConnectionError("refused"))
        async with BrowserSession(connector, settings) as session:
            assert not session.connected.ok
            assert "refused" in session.connected.error
        assert not session.released

    async def test_new_page_requires_connection(self, settings) -> None:
        session = BrowserSession(FakeConnector(error=ConnectionError("x")), settings)
        async with session:
            try:
                await session.new_page()
            except ProviderError as exc:
                assert "not connected" in str(exc)
            else:
                raise AssertionError("expected ProviderError")

    async def test_with_timeout(self) -> None:
        out = await with_timeout(asyncio.sleep(5), 0.01, "slow op")
        assert not out.ok
        assert "Timed out" in out.error and "slow op" in out.error
        assert (await with_timeout(asyncio.sleep(0, result=7), 1, "fast")).value == 7


# ---------------------------------------------------------------------------
# Scraper
# ---------------------------------------------------------------------------

class TestScrapeSite:
    async def test_store_page_yields_visa_payment_evidence(self, settings) -> None:
        pages = _store_pages()
        page = FakePage(pages, cart_button=True)
        connector = FakeConnector(lambda: page)
        scraper = Scraper(settings, connector=connector, sleep=SleepRecorder())

        site = await scraper.scrape_site(STORE_URL)

        assert site.error is None
        assert site.title == "Adderall 30mg | RxExpress"
        assert "Add to cart" in site.content
        assert site.html == _STORE_HTML
        assert any("visa" in item.lower() for item in site.evidence.payment)
        assert '[landing] alt="Visa" src="/img/visa.png"' in site.evidence.payment
        assert len(site.evidence.payment) <= 6
        assert page.cart_button.clicks == 1
        assert page.visited == [
            STORE_URL,
            "https://rx-express-meds.example/cart/",
            "https://rx-express-meds.example/checkout/",
        ]
        assert connector.browsers[0].close_calls == 1

    async def test_empty_inner_text_falls_back_to_html(self, settings) -> None:
        page = FakePage({"https://a.example/": ("", "", _SIMPLE_HTML, [])})
        scraper = Scraper(settings, connector=FakeConnector(lambda: page), sleep=SleepRecorder())
        with patch("pipeline.scraper.extractor.trafilatura.extract", return_value=None):
            site = await scraper.scrape_site("https://a.example/")
        assert site.title == "Test Page"
        assert "Adderall" in site.content
        assert site.evidence.product

    async def test_connect_failure_is_recorded(self, settings) -> None:
        scraper = Scraper(
            settings,
            connector=FakeConnector(error=ConnectionError("auth failed")),
            sleep=SleepRecorder(),
        )
        site = await scraper.scrape_site("https://a.example/")
        assert site.failed
        assert "auth failed" in site.error
        assert site.evidence.payment == []

    async def test_navigation_timeout_releases_browser(self, tmp_path) -> None:
        settings = make_settings(tmp_path, scrape_navigation_timeout=0.05)
        page = FakePage({}, hang_on={"https://slow.example/"})
        connector = FakeConnector(lambda: page)
        site = await Scraper(settings, connector=connector, sleep=SleepRecorder()).scrape_site(
            "https://slow.example/"
        )
        assert site.error and "Timed out" in site.error
        assert site.content == "" and site.title == ""
        assert connector.browsers[0].close_calls == 1

    async def test_each_url_gets_its_own_session(self, settings) -> None:
        connector = FakeConnector(lambda: FakePage(_store_pages()))
        scraper = Scraper(settings, connector=connector, sleep=SleepRecorder())
        await scraper.scrape_many([_hit(STORE_URL), _hit(STORE_URL)], delay=0)
        assert len(connector.browsers) == 2
        assert all(isinstance(b, FakeBrowser) and b.close_calls == 1 for b in connector.browsers)


class TestScrapeMany:
    async def test_rate_limit_between_items(self, tmp_path) -> None:
        settings = make_settings(tmp_path, scrape_delay=3.0)
        sleep = SleepRecorder()
        scraper = Scraper(settings, connector=FakeConnector(error=ConnectionError("x")), sleep=sleep)

        sites = await scraper.scrape_many([_hit(f"https://s{i}.example/") for i in range(3)])

        assert len(sites) == 3
        assert sleep.calls == [3.0, 3.0]
        assert sleep.total >= 6.0

    async def test_limit_and_order(self, settings) -> None:
        scraper = Scraper(settings, connector=FakeConnector(error=ConnectionError("x")), sleep=SleepRecorder())
        hits = [_hit(f"https://s{i}.example/") for i in range(5)]
        sites = await scraper.scrape_many(hits, limit=2)
        assert [s.url for s in sites] == ["https://s0.example/", "https://s1.example/"]

    async def test_zero_limit_opens_no_sessions(self, settings) -> None:
        connector = FakeConnector(lambda: FakePage(_store_pages()))
        scraper = Scraper(settings, connector=connector, sleep=SleepRecorder())
        hits = [_hit(f"https://s{i}.example/") for i in range(30)]
        assert await scraper.scrape_many(hits, limit=0) == []
        assert await scraper.scrape_many(hits, limit=-1) == []
        assert connector.browsers == []

    async def test_failed_items_do_not_abort(self, settings) -> None:
        page = FakePage(_store_pages())
        calls = {"n": 0}

        class FlakyConnector(FakeConnector):
            async def connect(self):
                calls["n"] += 1
                if calls["n"] == 1:
                    raise ConnectionError("first fails")
                return await super().connect()

        scraper = Scraper(settings, connector=FlakyConnector(lambda: page), sleep=SleepRecorder())
        sites = await scraper.scrape_many([_hit("https://bad.example/"), _hit(STORE_URL)])
        assert sites[0].error and not sites[1].error
