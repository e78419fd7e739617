"""Discovery package: query catalog, search providers, noise filters, ranking."""

from pipeline.discovery.discover import dedupe_by_url, discover
from pipeline.discovery.filters import FilterChain, FilterReport, validate_urls
from pipeline.discovery.queries import build_queries
from pipeline.discovery.ranking import quality_score, rank
from pipeline.discovery.search_providers import SearchProviderChain, build_default_chain

__all__ = [
    "build_queries",
    "discover",
    "dedupe_by_url",
    "FilterChain",
    "FilterReport",
    "validate_urls",
    "quality_score",
    "rank",
    "SearchProviderChain",
    "build_default_chain",
]
