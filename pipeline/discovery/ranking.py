"""Quality ranking of filtered search results."""

from __future__ import annotations

from typing import Sequence

from pipeline.models import SearchResult

POSITIVE_KEYWORDS = [
    "pharmacy",
    "online pharmacy",
    "checkout",
    "cart",
    "add to cart",
    "visa",
    "credit card",
    "mastercard",
    "overnight",
    "shipping",
    "no prescription",
    "rx",
    "adderall",
    "amphetamine",
    "dextroamphetamine",
    "generic adderall",
    "buy",
    "order",
    "price",
    "delivery",
    "payment",
]

NEGATIVE_KEYWORDS = [
    "blog",
    "news",
    "review",
    "reviews",
    "forum",
    "reddit",
    "symptoms",
    "side effects",
    "press release",
    "journal",
    "university",
    "hospital",
    "nonprofit",
    "fundraiser",
    "donation",
    "charity",
]

POSITIVE_WEIGHT = 2
NEGATIVE_WEIGHT = 3


def quality_score(result: SearchResult) -> int:
    """+2 per positive keyword, -3 per negative keyword in title, snippet and URL."""
    haystack = f"{result.title} {result.snippet} {result.url}".lower()
    score = 0
    for term in POSITIVE_KEYWORDS:
        if term in haystack:
            score += POSITIVE_WEIGHT
    for term in NEGATIVE_KEYWORDS:
        if term in haystack:
            score -= NEGATIVE_WEIGHT
    return score


def rank(results: Sequence[SearchResult], max_results: int = 0) -> list[SearchResult]:
    """Sort by descending score, ties in input order; cap when *max_results* > 0."""
    ranked = sorted(results, key=quality_score, reverse=True)
    if max_results > 0:
        return ranked[:max_results]
    return ranked
