"""Noise reduction over raw search results.

Every filter is a pure per-item predicate wrapped as
``Sequence[SearchResult] -> list[SearchResult]``.  Filters never look at
each other's output, so the chain is idempotent and its order only changes
the per-filter removal counts reported in :class:`FilterReport`.

Filters, in chain order:

``non_web``       : non-http(s) URLs and document downloads (.pdf, .docx …)
``blocklisted``   : .edu/.gov hosts, fundraising/reference/academic hosts
                    and paths
``informational`` : titles/snippets with editorial, nonprofit or forum words
``legitimate``    : well-known pharmacy chains and health/news publishers
``store``         : (strict mode) must look like a storefront selling the
                    product, and not like an article
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Sequence
from urllib.parse import urlsplit

import httpx

from pipeline.models import SearchResult

logger = logging.getLogger(__name__)

Predicate = Callable[[SearchResult], bool]

# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------

BLOCKED_EXTENSIONS = (".pdf", ".doc", ".docx", ".ppt", ".pptx", ".xls", ".xlsx", ".csv", ".txt")

BLOCKED_HOST_FRAGMENTS = [
    "givingday",
    "neoncrm",
    "networkforgood",
    "onecause",
    "donorbox",
    "givebutter",
    "classy",
    "answers.com",
    "fundraise",
    "p2p",
    "amazon.",
    "ncbi.nlm.nih.gov",
    "nih.gov",
    "springer",
    "sciencedirect",
    "jstor",
    "pubmed",
]

BLOCKED_PATH_FRAGMENTS = [
    "/donate",
    "/fundraise",
    "/fundraising",
    "/p2p",
    "/givingday",
    "/campaign",
    "/crowdfund",
]

INFORMATIONAL_KEYWORDS = [
    "fundraiser",
    "donation",
    "nonprofit",
    "crowdfunding",
    "giving day",
    "charity",
    "blog",
    "news",
    "review",
    "reviews",
    "forum",
    "reddit",
    "symptoms",
    "side effects",
    "dosage",
    "wikipedia",
    "webmd",
    "healthline",
    "telehealth",
    "clinic",
    "consultation",
    "appointment",
    "press release",
    "journal",
    "study",
    "studies",
    "paper",
    "research",
    "clinical trial",
    "systematic review",
    "meta-analysis",
    "university",
    "hospital",
]

LEGITIMATE_DOMAINS = [
    "cvs.com",
    "walgreens.com",
    "riteaid.com",
    "webmd.com",
    "healthline.com",
    "mayoclinic.org",
    "nih.gov",
    "fda.gov",
    "nytimes.com",
    "cnn.com",
    "forbes.com",
]

SOCIAL_DOMAINS = [
    "reddit.com",
    "facebook.com",
    "twitter.com",
    "youtube.com",
]

STORE_SIGNALS = [
    "buy",
    "order",
    "add to cart",
    "cart",
    "checkout",
    "shop",
    "store",
    "price",
    "visa",
    "mastercard",
    "credit card",
    "debit card",
    "payment",
    "shipping",
    "delivery",
    "online pharmacy",
    "pharmacy",
]

STORE_PATH_FRAGMENTS = [
    "/product",
    "/cart",
    "/checkout",
    "/shop",
    "/store",
    "/buy",
    "/order",
    "/category",
    "/product-category",
]

PRODUCT_SIGNALS = [
    "adderall",
    "adderall xr",
    "amphetamine",
    "amphetamine salts",
    "dextroamphetamine",
    "generic adderall",
]

# Checked by the strict store filter only; tuned separately from
# INFORMATIONAL_KEYWORDS.
STORE_INFO_SIGNALS = [
    "review",
    "reviews",
    "forum",
    "reddit",
    "blog",
    "news",
    "study",
    "symptoms",
    "side effects",
    "dosage",
    "wikipedia",
    "webmd",
    "healthline",
    "telehealth",
    "clinic",
    "consultation",
    "appointment",
]

_PRICE_RE = re.compile(r"\$\s?\d")
_DOSAGE_RE = re.compile(r"\b\d{1,3}\s?mg\b")


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def _split(url: str):
    """``urlsplit`` that returns ``None`` instead of raising on junk input."""
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    return parts


def _text(result: SearchResult) -> str:
    return f"{result.title} {result.snippet}".lower()


def _host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


def is_web_page(result: SearchResult) -> bool:
    parts = _split(result.url)
    if parts is None or parts.scheme.lower() not in ("http", "https"):
        return False
    path = parts.path.lower()
    return not path.endswith(BLOCKED_EXTENSIONS)


def is_not_blocklisted(result: SearchResult) -> bool:
    parts = _split(result.url)
    if parts is None:
        return False
    host = (parts.hostname or "").lower()
    path = parts.path.lower()
    if host.endswith(".edu") or host.endswith(".gov"):
        return False
    if any(fragment in host for fragment in BLOCKED_HOST_FRAGMENTS):
        return False
    return not any(fragment in path for fragment in BLOCKED_PATH_FRAGMENTS)


def is_not_informational(result: SearchResult) -> bool:
    title = result.title.lower()
    snippet = result.snippet.lower()
    return not any(kw in title or kw in snippet for kw in INFORMATIONAL_KEYWORDS)


def make_legitimate_predicate(include_forums: bool = False) -> Predicate:
    """Build the known-legitimate predicate.

    Social/forum hosts are blocked too unless *include_forums* is set.
    """
    blocked = list(LEGITIMATE_DOMAINS)
    if not include_forums:
        blocked += SOCIAL_DOMAINS

    def is_not_legitimate(result: SearchResult) -> bool:
        parts = _split(result.url)
        if parts is None:
            return False
        host = (parts.hostname or "").lower()
        return not any(_host_matches(host, domain) for domain in blocked)

    return is_not_legitimate


def has_store_signals(result: SearchResult) -> bool:
    haystack = _text(result)
    url = result.url.lower()

    has_store = (
        any(term in haystack for term in STORE_SIGNALS)
        or any(fragment in url for fragment in STORE_PATH_FRAGMENTS)
        or bool(_PRICE_RE.search(haystack))
    )
    has_product = any(term in haystack for term in PRODUCT_SIGNALS) or bool(
        _DOSAGE_RE.search(haystack)
    )
    has_info = any(term in haystack for term in STORE_INFO_SIGNALS)
    return has_store and has_product and not has_info


# ---------------------------------------------------------------------------
# Sequence filters
# ---------------------------------------------------------------------------

def _apply(predicate: Predicate, results: Sequence[SearchResult]) -> list[SearchResult]:
    return [r for r in results if predicate(r)]


def filter_non_web(results: Sequence[SearchResult]) -> list[SearchResult]:
    return _apply(is_web_page, results)


def filter_blocklisted(results: Sequence[SearchResult]) -> list[SearchResult]:
    return _apply(is_not_blocklisted, results)


def filter_informational(results: Sequence[SearchResult]) -> list[SearchResult]:
    return _apply(is_not_informational, results)


def filter_legitimate(
    results: Sequence[SearchResult], include_forums: bool = False
) -> list[SearchResult]:
    return _apply(make_legitimate_predicate(include_forums), results)


def filter_store(results: Sequence[SearchResult]) -> list[SearchResult]:
    return _apply(has_store_signals, results)


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------

@dataclass
class FilterReport:
    """How many results each filter removed.  Diagnostics only."""

    input_count: int = 0
    removed: dict[str, int] = field(default_factory=dict)

    @property
    def output_count(self) -> int:
        return self.input_count - sum(self.removed.values())


class FilterChain:
    """Apply the noise filters in a fixed order.

    Args:
        strict_store_only: Include the ``store`` filter.
        include_forums: Let social/forum hosts through the ``legitimate``
            filter.
    """

    def __init__(self, strict_store_only: bool = True, include_forums: bool = False) -> None:
        self._steps: list[tuple[str, Predicate]] = [
            ("non_web", is_web_page),
            ("blocklisted", is_not_blocklisted),
            ("informational", is_not_informational),
            ("legitimate", make_legitimate_predicate(include_forums)),
        ]
        if strict_store_only:
            self._steps.append(("store", has_store_signals))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self._steps]

    def apply(self, results: Sequence[SearchResult]) -> tuple[list[SearchResult], FilterReport]:
        report = FilterReport(input_count=len(results))
        current = list(results)
        for name, predicate in self._steps:
            kept = _apply(predicate, current)
            report.removed[name] = len(current) - len(kept)
            if report.removed[name]:
                logger.info("[filter] %s removed %d result(s)", name, report.removed[name])
            current = kept
        return current, report

    def __call__(self, results: Sequence[SearchResult]) -> list[SearchResult]:
        return self.apply(results)[0]


# ---------------------------------------------------------------------------
# Optional existence check
# ---------------------------------------------------------------------------

_VALIDATION_HEADERS = {"User-Agent": "Mozilla/5.0"}


async def validate_url(client: httpx.AsyncClient, url: str) -> bool:
    """``HEAD`` *url*; valid when 2xx and HTML (or no content type).

    Any transport error or timeout counts as invalid.  Never retried.
    """
    try:
        resp = await client.head(url)
    except httpx.HTTPError as exc:
        logger.debug("[validate] %s unreachable: %r", url, exc)
        return False
    if not resp.is_success:
        return False
    content_type = resp.headers.get("content-type", "")
    return not content_type or "text/html" in content_type


async def validate_urls(
    results: Sequence[SearchResult], timeout: float = 5.0
) -> list[SearchResult]:
    """Keep only results whose URL passes :func:`validate_url`, one at a time."""
    validated: list[SearchResult] = []
    async with httpx.AsyncClient(
        headers=_VALIDATION_HEADERS,
        timeout=timeout,
        follow_redirects=True,
    ) as client:
        for result in results:
            try:
                ok = await asyncio.wait_for(validate_url(client, result.url), timeout)
            except asyncio.TimeoutError:
                ok = False
            if ok:
                validated.append(result)

    removed = len(results) - len(validated)
    if removed:
        logger.info("[validate] removed %d URL(s) that failed validation", removed)
    return validated
