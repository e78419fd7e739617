"""Remote headless-browser session management.

The scraping browser runs remotely (Bright Data Scraping Browser) and is
reached over the Chrome DevTools Protocol.  Playwright is imported lazily so
the rest of the package, and the test suite, never need a browser install.

:class:`BrowserSession` is the only way the scraper touches a browser.  It is
an async context manager that

* connects on entry, recording the result in ``session.connected`` rather
  than raising,
* runs each page operation through :meth:`BrowserSession.step`, which bounds
  it with a timeout and returns an :class:`~pipeline.models.Outcome`,
* closes the browser exactly once on exit, whatever happened inside.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Protocol, TypeVar

from pipeline.config import Settings
from pipeline.errors import ProviderError
from pipeline.models import Outcome

logger = logging.getLogger(__name__)

T = TypeVar("T")

VIEWPORT = {"width": 1920, "height": 1080}


class BrowserHandle(Protocol):
    async def new_page(self) -> Any: ...

    async def close(self) -> None: ...


class BrowserConnector(Protocol):
    async def connect(self) -> BrowserHandle: ...


# ---------------------------------------------------------------------------
# Playwright implementation
# ---------------------------------------------------------------------------

class _PlaywrightBrowser:
    """Browser connected over CDP plus the Playwright driver that owns it."""

    def __init__(self, playwright: Any, browser: Any) -> None:
        self._playwright = playwright
        self._browser = browser

    async def new_page(self) -> Any:
        contexts = self._browser.contexts
        context = contexts[0] if contexts else await self._browser.new_context()
        page = await context.new_page()
        await page.set_viewport_size(VIEWPORT)
        return page

    async def close(self) -> None:
        try:
            await self._browser.close()
        finally:
            await self._playwright.stop()


class PlaywrightConnector:
    """Connect to the remote scraping browser with ``connect_over_cdp``."""

    def __init__(self, settings: Settings) -> None:
        self._endpoint = settings.browser_endpoint
        self._timeout_ms = int(settings.scrape_connect_timeout * 1000)

    async def connect(self) -> BrowserHandle:
        from playwright.async_api import async_playwright  # noqa: PLC0415

        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.connect_over_cdp(
                self._endpoint, timeout=self._timeout_ms
            )
        except BaseException:
            await playwright.stop()
            raise
        return _PlaywrightBrowser(playwright, browser)


# ---------------------------------------------------------------------------
# Timeout helper
# ---------------------------------------------------------------------------

async def with_timeout(awaitable: Awaitable[T], timeout: float, label: str) -> Outcome[T]:
    """Await *awaitable* for at most *timeout* seconds.

    Timeouts and errors become ``Outcome.failure`` labelled with *label*.
    """
    try:
        value = await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError:
        return Outcome.failure(
            ProviderError("browser", f"Timed out after {timeout:g}s during {label}")
        )
    except Exception as exc:  # noqa: BLE001
        return Outcome.failure(ProviderError("browser", f"{label} failed: {exc}"))
    return Outcome.success(value)


# ---------------------------------------------------------------------------
# Scoped session
# ---------------------------------------------------------------------------

class BrowserSession:
    """One browser connection, used for exactly one URL.

    Usage::

        async with BrowserSession(connector, settings) as session:
            if not session.connected.ok:
                ...
            page = await session.step(session.new_page(), "new page")
    """

    def __init__(self, connector: BrowserConnector, settings: Settings) -> None:
        self._connector = connector
        self._connect_timeout = settings.scrape_connect_timeout
        self._operation_timeout = settings.scrape_operation_timeout
        self._browser: BrowserHandle | None = None
        self._released = False
        self.connected: Outcome[BrowserHandle] = Outcome.failure("not connected")

    async def __aenter__(self) -> "BrowserSession":
        self.connected = await with_timeout(
            self._connector.connect(), self._connect_timeout, "browser connect"
        )
        if self.connected.ok:
            self._browser = self.connected.value
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.release()

    @property
    def released(self) -> bool:
        return self._released

    async def release(self) -> None:
        """Close the browser.  Safe to call more than once; closes at most once."""
        if self._browser is None or self._released:
            return
        self._released = True
        outcome = await with_timeout(
            self._browser.close(), self._operation_timeout, "browser close"
        )
        if not outcome.ok:
            logger.warning("[scrape] %s", outcome.error)

    async def new_page(self) -> Any:
        if self._browser is None:
            raise ProviderError("browser", "session is not connected")
        return await self._browser.new_page()

    async def step(
        self, awaitable: Awaitable[T], label: str, timeout: float | None = None
    ) -> Outcome[T]:
        """Run one page operation under the operation timeout."""
        return await with_timeout(awaitable, timeout or self._operation_timeout, label)
