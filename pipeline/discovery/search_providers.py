"""Web search abstraction with automatic failover.

Provider priority (highest to lowest):
  1. SerpAPI: Google organic results over a REST API; requires SERPAPI_KEY.
  2. DuckDuckGo: free, scraping-based; retried with exponential backoff.

All providers share a common interface:
``await search(query, max_results) -> Outcome[list[SearchResult]]``.
A provider never raises: transport errors, bad payloads and rate limits all
come back as ``Outcome.failure``.  The ``SearchProviderChain`` tries each
provider in order and returns the first non-empty result set.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

import httpx
from duckduckgo_search import DDGS
from duckduckgo_search.exceptions import DuckDuckGoSearchException, RatelimitException

from pipeline.config import Settings
from pipeline.errors import ProviderError
from pipeline.models import Outcome, SearchResult

logger = logging.getLogger(__name__)

SERPAPI_URL = "https://serpapi.com/search.json"

# Geographic location / interface language for every query
SEARCH_COUNTRY = "us"
SEARCH_LANGUAGE = "en"


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class SearchProvider(ABC):
    """Abstract base class for a single search provider."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name."""

    @abstractmethod
    async def search(self, query: str, max_results: int = 20) -> Outcome[list[SearchResult]]:
        """Return organic results for *query*.  Must not raise."""


# ---------------------------------------------------------------------------
# SerpAPI provider
# ---------------------------------------------------------------------------

class SerpApiProvider(SearchProvider):
    """SerpAPI Google engine.

    Skipped by :func:`build_default_chain` when ``settings.serpapi_key`` is
    empty.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    @property
    def name(self) -> str:
        return "SerpAPI"

    async def search(self, query: str, max_results: int = 20) -> Outcome[list[SearchResult]]:
        params = {
            "engine": "google",
            "q": query,
            "api_key": self._settings.serpapi_key,
            "num": max_results,
            "gl": SEARCH_COUNTRY,
            "hl": SEARCH_LANGUAGE,
        }
        try:
            async with httpx.AsyncClient(timeout=self._settings.search_provider_timeout) as client:
                resp = await client.get(SERPAPI_URL, params=params)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            return Outcome.failure(ProviderError(self.name, repr(exc)))

        if "error" in data and not data.get("organic_results"):
            return Outcome.failure(ProviderError(self.name, str(data["error"])))

        results: list[SearchResult] = []
        for item in data.get("organic_results") or []:
            link = (item.get("link") or "").strip()
            if not link:
                continue
            results.append(
                SearchResult(
                    title=item.get("title") or "",
                    url=link,
                    snippet=item.get("snippet") or "",
                    source_query=query,
                )
            )
        return Outcome.success(results)


# ---------------------------------------------------------------------------
# DuckDuckGo provider (with exponential backoff)
# ---------------------------------------------------------------------------

class DuckDuckGoProvider(SearchProvider):
    """Wrapper around ``duckduckgo_search.DDGS`` with retry on rate-limit.

    ``DDGS`` is synchronous, so each attempt runs in a worker thread to keep
    the event loop free.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    @property
    def name(self) -> str:
        return "DuckDuckGo"

    def _text_search(self, query: str, max_results: int) -> list[dict]:
        with DDGS(timeout=int(self._settings.search_provider_timeout)) as ddgs:
            return list(
                ddgs.text(
                    query,
                    region=f"{SEARCH_COUNTRY}-{SEARCH_LANGUAGE}",
                    max_results=max_results,
                )
                or []
            )

    async def search(self, query: str, max_results: int = 20) -> Outcome[list[SearchResult]]:
        base_delay = self._settings.search_retry_base_delay
        max_retries = self._settings.search_retry_max

        for attempt in range(max_retries + 1):
            try:
                raw = await asyncio.to_thread(self._text_search, query, max_results)
            except RatelimitException as exc:
                if attempt < max_retries:
                    delay = base_delay * (2 ** attempt)
                    logger.warning(
                        "[DuckDuckGo] rate-limited (attempt %d/%d); retrying in %.0fs",
                        attempt + 1, max_retries, delay,
                    )
                    await asyncio.sleep(delay)
                    continue
                return Outcome.failure(ProviderError(self.name, f"rate-limited: {exc}"))
            except DuckDuckGoSearchException as exc:
                return Outcome.failure(ProviderError(self.name, str(exc)))
            except Exception as exc:  # noqa: BLE001
                return Outcome.failure(ProviderError(self.name, repr(exc)))

            results = [
                SearchResult(
                    title=item.get("title") or "",
                    url=item["href"].strip(),
                    snippet=item.get("body") or "",
                    source_query=query,
                )
                for item in raw
                if (item.get("href") or "").strip()
            ]
            return Outcome.success(results)

        return Outcome.failure(ProviderError(self.name, "retries exhausted"))


# ---------------------------------------------------------------------------
# Provider chain
# ---------------------------------------------------------------------------

class SearchProviderChain:
    """Try providers in order; return the first non-empty result list.

    Fails only when every provider failed.  If at least one provider
    answered (even with nothing), the chain succeeds with an empty list.
    """

    def __init__(self, providers: list[SearchProvider]) -> None:
        self._providers = providers

    @property
    def providers(self) -> list[SearchProvider]:
        return list(self._providers)

    async def search(self, query: str, max_results: int = 20) -> Outcome[list[SearchResult]]:
        errors: list[str] = []
        answered = False
        for provider in self._providers:
            outcome = await provider.search(query, max_results=max_results)
            if not outcome.ok:
                logger.warning("[search] %s failed: %s", provider.name, outcome.error)
                errors.append(outcome.error or provider.name)
                continue
            answered = True
            if outcome.value:
                return outcome
        if answered or not self._providers:
            return Outcome.success([])
        return Outcome.failure("; ".join(errors))


# ---------------------------------------------------------------------------
# Default chain factory
# ---------------------------------------------------------------------------

def build_default_chain(settings: Settings) -> SearchProviderChain:
    """SerpAPI (if key) → DuckDuckGo."""
    providers: list[SearchProvider] = []
    if settings.serpapi_key:
        providers.append(SerpApiProvider(settings))
    providers.append(DuckDuckGoProvider(settings))
    return SearchProviderChain(providers)
