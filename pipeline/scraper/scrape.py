"""Scrape candidate storefronts for payment, product and licensing evidence.

Per URL the scraper

1. opens a fresh remote browser session,
2. loads the page, waits for it to settle, and captures title, text and HTML,
3. mines text evidence for all three categories,
4. mines payment logos / payment-method blocks from the landing page DOM,
5. tries to add something to the cart (best effort, silent on failure),
6. visits ``/cart/`` and ``/checkout/`` and mines payment evidence there,
7. closes the session.

``scrape_site`` never raises: any failure ends up in ``ScrapedSite.error``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Sequence
from urllib.parse import urljoin

from pipeline.config import Settings
from pipeline.models import Evidence, ScrapedSite, SearchResult, utc_now
from pipeline.scraper.browser import BrowserConnector, BrowserSession, PlaywrightConnector
from pipeline.scraper.evidence import (
    PAYMENT_DOM_SCRIPT,
    extract_text_evidence,
    html_payment_evidence,
    label_dom_hits,
    merge_payment,
)
from pipeline.scraper.extractor import text_from_html, title_from_html

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

# Runs inside the page: drop non-visible nodes, return the body's text.
BODY_TEXT_SCRIPT = """
() => {
  document.querySelectorAll('script, style, noscript').forEach(el => el.remove());
  return document.body ? document.body.innerText : '';
}
"""

ADD_TO_CART_SELECTORS = [
    'button[name="add-to-cart"]',
    "button.single_add_to_cart_button",
    "button.add_to_cart_button",
    "a.add_to_cart_button",
    'form.cart button[type="submit"]',
]

CHECKOUT_PATHS = ["/cart/", "/checkout/"]

ADD_TO_CART_WAIT = 1.5
LANDING_LABEL = "landing"


class Scraper:
    """Scrape URLs one at a time through a remote browser.

    Args:
        settings: Timeouts and delays are read from here.
        connector: Opens browser connections.  Defaults to the Playwright CDP
            connector for the configured scraping browser.
        sleep: Awaitable used for every fixed wait (settle, rate limit).
    """

    def __init__(
        self,
        settings: Settings,
        connector: BrowserConnector | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._connector = connector or PlaywrightConnector(settings)
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Single URL
    # ------------------------------------------------------------------
    async def scrape_site(self, url: str) -> ScrapedSite:
        """Scrape *url*; failures are reported in the returned record."""
        logger.info("[scrape] %s", url)
        try:
            async with BrowserSession(self._connector, self._settings) as session:
                if not session.connected.ok:
                    return self._failed(url, session.connected.error)
                return await self._scrape_with(session, url)
        except Exception as exc:  # noqa: BLE001
            return self._failed(url, f"unexpected scraper error: {exc!r}")

    def _failed(self, url: str, error: str | None) -> ScrapedSite:
        logger.error("[scrape] ✗ %s: %s", url, error)
        return ScrapedSite.failure(url, error or "scrape failed")

    async def _scrape_with(self, session: BrowserSession, url: str) -> ScrapedSite:
        cfg = self._settings
        nav_ms = int(cfg.scrape_navigation_timeout * 1000)

        page_out = await session.step(session.new_page(), "new page")
        if not page_out.ok:
            return self._failed(url, page_out.error)
        page = page_out.value

        loaded = await session.step(
            page.goto(url, wait_until="domcontentloaded", timeout=nav_ms),
            "page load",
            timeout=cfg.scrape_navigation_timeout,
        )
        if not loaded.ok:
            return self._failed(url, loaded.error)
        await self._sleep(cfg.scrape_page_wait)

        title_out = await session.step(page.title(), "page title")
        if not title_out.ok:
            return self._failed(url, title_out.error)
        text_out = await session.step(page.evaluate(BODY_TEXT_SCRIPT), "content extraction")
        if not text_out.ok:
            return self._failed(url, text_out.error)
        html_out = await session.step(page.content(), "page content")
        if not html_out.ok:
            return self._failed(url, html_out.error)

        html: str = html_out.value or ""
        content = str(text_out.value or "").strip()
        if not content:
            content = text_from_html(html, url).strip()
        title = str(title_out.value or "").strip() or title_from_html(html)

        evidence = extract_text_evidence(content, html)
        landing_dom = await self._dom_payment_evidence(session, page, LANDING_LABEL)
        evidence = merge_payment(
            evidence, landing_dom, html_payment_evidence(html, LANDING_LABEL)
        )

        added = await self._try_add_to_cart(session, page)
        logger.debug("[scrape] add-to-cart %s", "clicked" if added else "not found")

        evidence = await self._visit_checkout_pages(session, page, url, evidence)

        logger.info("[scrape] ✓ %s (%d chars)", url, len(content))
        return ScrapedSite(
            url=url,
            title=title,
            content=content,
            html=html,
            evidence=evidence,
            scraped_at=utc_now(),
        )

    # ------------------------------------------------------------------
    # Evidence helpers
    # ------------------------------------------------------------------
    async def _dom_payment_evidence(self, session: BrowserSession, page: Any, label: str) -> list[str]:
        outcome = await session.step(page.evaluate(PAYMENT_DOM_SCRIPT), f"payment DOM ({label})")
        if not outcome.ok:
            logger.debug("[scrape] %s", outcome.error)
            return []
        return label_dom_hits(outcome.value, label)

    async def _try_add_to_cart(self, session: BrowserSession, page: Any) -> bool:
        for selector in ADD_TO_CART_SELECTORS:
            found = await session.step(page.query_selector(selector), f"find {selector}")
            if not found.ok or found.value is None:
                continue
            clicked = await session.step(found.value.click(delay=50), f"click {selector}")
            if clicked.ok:
                await self._sleep(ADD_TO_CART_WAIT)
                return True
        return False

    async def _visit_checkout_pages(
        self, session: BrowserSession, page: Any, url: str, evidence: Evidence
    ) -> Evidence:
        cfg = self._settings
        nav_ms = int(cfg.scrape_navigation_timeout * 1000)

        for path in CHECKOUT_PATHS:
            target = urljoin(url, path)
            loaded = await session.step(
                page.goto(target, wait_until="domcontentloaded", timeout=nav_ms),
                f"load {target}",
                timeout=cfg.scrape_navigation_timeout,
            )
            if not loaded.ok:
                logger.debug("[scrape] %s", loaded.error)
                continue
            await self._sleep(cfg.scrape_page_wait)

            html_out = await session.step(page.content(), f"content {target}")
            if not html_out.ok:
                logger.debug("[scrape] %s", html_out.error)
                continue
            dom = await self._dom_payment_evidence(session, page, target)
            evidence = merge_payment(evidence, dom, html_payment_evidence(html_out.value or "", target))
        return evidence

    # ------------------------------------------------------------------
    # Many URLs
    # ------------------------------------------------------------------
    async def scrape_many(
        self,
        results: Sequence[SearchResult],
        limit: int | None = None,
        delay: float | None = None,
    ) -> list[ScrapedSite]:
        """Scrape the first *limit* results in order, *delay* seconds apart."""
        limit = self._settings.pipeline_item_limit if limit is None else limit
        delay = self._settings.scrape_delay if delay is None else delay
        batch = list(results)[:max(limit, 0)]

        logger.info("[scrape] will scrape %d of %d site(s)", len(batch), len(results))
        started = time.monotonic()
        scraped: list[ScrapedSite] = []

        for i, result in enumerate(batch):
            logger.info(
                "[scrape] [%d/%d] elapsed %ds", i + 1, len(batch), int(time.monotonic() - started)
            )
            scraped.append(await self.scrape_site(result.url))
            if i < len(batch) - 1 and delay > 0:
                await self._sleep(delay)

        failed = sum(1 for site in scraped if site.error)
        logger.info(
            "[scrape] complete: %d succeeded, %d failed, %ds",
            len(scraped) - failed, failed, int(time.monotonic() - started),
        )
        return scraped
