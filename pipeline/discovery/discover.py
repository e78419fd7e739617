"""Run every catalog query and collect unique search results."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, Sequence

from pipeline.models import Outcome, SearchResult

logger = logging.getLogger(__name__)


class Searcher(Protocol):
    async def search(self, query: str, max_results: int = 20) -> Outcome[list[SearchResult]]:
        ...


def dedupe_by_url(results: Sequence[SearchResult]) -> list[SearchResult]:
    """Drop repeated URLs, keeping the first occurrence and original order."""
    seen: set[str] = set()
    unique: list[SearchResult] = []
    for result in results:
        if result.url in seen:
            continue
        seen.add(result.url)
        unique.append(result)
    return unique


async def discover(
    queries: Sequence[str],
    searcher: Searcher,
    *,
    results_per_query: int = 20,
    query_delay: float = 0.0,
) -> list[SearchResult]:
    """Search each query in turn and return URL-unique results.

    Queries run strictly one after another.  A failing query is logged and
    contributes nothing; it never aborts the run.

    Args:
        queries: Full query strings (see :func:`~pipeline.discovery.queries.build_queries`).
        searcher: Anything with an async ``search(query, max_results)``
            returning an :class:`~pipeline.models.Outcome`.
        results_per_query: ``max_results`` passed to the searcher.
        query_delay: Seconds to wait between consecutive queries.

    Returns:
        Results in first-seen order, no URL repeated.
    """
    collected: list[SearchResult] = []

    for i, query in enumerate(queries):
        logger.info("[search] (%d/%d) %s", i + 1, len(queries), query[:120])
        outcome = await searcher.search(query, max_results=results_per_query)
        if outcome.ok:
            found = outcome.value or []
            logger.info("[search] found %d result(s)", len(found))
            collected.extend(found)
        else:
            logger.error("[search] query failed: %s", outcome.error)

        if query_delay > 0 and i < len(queries) - 1:
            await asyncio.sleep(query_delay)

    unique = dedupe_by_url(collected)
    logger.info(
        "[search] %d unique URL(s) from %d quer%s",
        len(unique), len(queries), "y" if len(queries) == 1 else "ies",
    )
    return unique
