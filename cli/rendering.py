"""Plain-text rendering of stage results for the CLI."""

from __future__ import annotations

from typing import List

from pipeline.classifier import ClassificationSummary
from pipeline.models import ClassificationResult, ScrapedSite, SearchResult


def _tick(flag: bool) -> str:
    return "✓" if flag else "✗"


def render_search(results: List[SearchResult], limit: int = 10) -> str:
    lines = [f"{len(results)} candidate site(s)"]
    for i, r in enumerate(results[:limit], start=1):
        lines.append(f"  {i:>3}. {r.url}")
        if r.title:
            lines.append(f"       {r.title[:100]}")
    if len(results) > limit:
        lines.append(f"  … {len(results) - limit} more")
    return "\n".join(lines)


def render_scrape(sites: List[ScrapedSite]) -> str:
    failed = [s for s in sites if s.error]
    lines = [f"{len(sites) - len(failed)} scraped, {len(failed)} failed"]
    for site in failed:
        lines.append(f"  ✗ {site.url}: {site.error}")
    return "\n".join(lines)


def render_summary(summary: ClassificationSummary) -> str:
    return (
        f"  Total classified : {summary.total}\n"
        f"  Violations       : {summary.violations}\n"
        f"  High confidence  : {summary.high_confidence}\n"
        f"  Needs review     : {summary.needs_review}"
    )


def render_violations(results: List[ClassificationResult]) -> str:
    violations = [r for r in results if r.is_violation]
    if not violations:
        return "No violations found."
    lines = ["Violations:"]
    for r in sorted(violations, key=lambda r: r.risk_score, reverse=True):
        lines.append(f"  [{r.risk_score:>3}] {r.url}  ({r.confidence})")
    return "\n".join(lines)


def render_classification(result: ClassificationResult) -> str:
    status = "VIOLATION" if result.is_violation else "Clean"
    return "\n".join(
        [
            f"  Status            : {status}",
            f"  Confidence        : {result.confidence} (risk score: {result.risk_score})",
            f"  Accepts Visa      : {_tick(result.accepts_visa)}",
            f"  Sells Adderall    : {_tick(result.sells_adderall)}",
            f"  Licensed Pharmacy : {_tick(result.is_licensed_pharmacy)}",
            f"  Needs Review      : {'Yes' if result.needs_manual_review else 'No'}",
            f"  Reasoning         : {result.reasoning}",
        ]
    )
