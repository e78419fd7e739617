"""Classify scraped sites as violations (or not).

A site is a violation only when it accepts Visa, sells Adderall *and* is
not a licensed pharmacy.  The oracle's own ``is_violation`` flag can veto a
violation but never create one; disagreement is routed to manual review.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from pipeline.classifier.oracle import ClassificationOracle, Judgment, parse_judgment
from pipeline.classifier.prompt import build_classification_prompt
from pipeline.classifier.shortcuts import (
    conservative_result,
    detect_forum_or_wiki,
    failed_scrape_result,
    forum_result,
)
from pipeline.config import Settings
from pipeline.errors import ParseError
from pipeline.models import ClassificationResult, ScrapedSite, utc_now

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

FAILED_EVIDENCE_NOTE = "Classification unavailable"


@dataclass
class ClassificationSummary:
    """Headline counts; ``high_confidence`` counts violations only."""

    total: int = 0
    violations: int = 0
    high_confidence: int = 0
    needs_review: int = 0


def summarize(results: Sequence[ClassificationResult]) -> ClassificationSummary:
    return ClassificationSummary(
        total=len(results),
        violations=sum(1 for r in results if r.is_violation),
        high_confidence=sum(1 for r in results if r.is_violation and r.confidence == "high"),
        needs_review=sum(1 for r in results if r.needs_manual_review),
    )


def result_from_judgment(url: str, judgment: Judgment) -> ClassificationResult:
    """Turn a validated oracle judgment into a result.

    The violation flag is recomputed from the three criteria.
    """
    criteria_met = (
        judgment.accepts_visa
        and judgment.sells_adderall
        and not judgment.is_licensed_pharmacy
    )
    oracle_agrees = judgment.is_violation is None or judgment.is_violation == criteria_met
    is_violation = criteria_met and judgment.is_violation is not False

    needs_review = (
        judgment.needs_manual_review
        or not oracle_agrees
        or judgment.confidence == "low"
    )
    return ClassificationResult(
        url=url,
        accepts_visa=judgment.accepts_visa,
        visa_evidence=judgment.visa_evidence,
        sells_adderall=judgment.sells_adderall,
        adderall_evidence=judgment.adderall_evidence,
        is_licensed_pharmacy=judgment.is_licensed_pharmacy,
        license_evidence=judgment.license_evidence,
        is_violation=is_violation,
        confidence=judgment.confidence,  # type: ignore[arg-type]
        risk_score=judgment.risk_score,  # type: ignore[arg-type]
        reasoning=judgment.reasoning,
        needs_manual_review=needs_review,
        classified_at=utc_now(),
    )


class Classifier:
    """Classify sites one at a time through a :class:`ClassificationOracle`."""

    def __init__(
        self,
        settings: Settings,
        oracle: ClassificationOracle,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._oracle = oracle
        self._sleep = sleep

    async def classify_site(self, site: ScrapedSite) -> ClassificationResult:
        signal = detect_forum_or_wiki(site)
        if signal:
            logger.info("[classify] %s: skipped (%s)", site.url, signal)
            return forum_result(site, signal)

        if site.failed:
            logger.info("[classify] %s: no content, conservative result", site.url)
            return failed_scrape_result(site)

        outcome = await self._oracle.judge(build_classification_prompt(site))
        if not outcome.ok:
            return self._fallback(site.url, outcome.error or "oracle failed")

        try:
            judgment = parse_judgment(outcome.value or "")
        except ParseError as exc:
            return self._fallback(site.url, str(exc))

        result = result_from_judgment(site.url, judgment)
        logger.info(
            "[classify] %s: violation=%s confidence=%s risk=%d",
            site.url, result.is_violation, result.confidence, result.risk_score,
        )
        return result

    def _fallback(self, url: str, detail: str) -> ClassificationResult:
        logger.error("[classify] ✗ %s: %s", url, detail)
        return conservative_result(
            url,
            reasoning=f"Classification failed: {detail}",
            evidence_note=FAILED_EVIDENCE_NOTE,
        )

    async def classify_many(
        self,
        sites: Sequence[ScrapedSite],
        limit: int | None = None,
        delay: float | None = None,
    ) -> list[ClassificationResult]:
        """Classify the first *limit* sites in order, *delay* seconds apart."""
        limit = self._settings.pipeline_item_limit if limit is None else limit
        delay = self._settings.classify_delay if delay is None else delay
        batch = list(sites)[:max(limit, 0)]

        logger.info("[classify] will classify %d of %d site(s)", len(batch), len(sites))
        started = time.monotonic()
        results: list[ClassificationResult] = []

        for i, site in enumerate(batch):
            logger.info("[classify] [%d/%d] %s", i + 1, len(batch), site.url)
            results.append(await self.classify_site(site))
            if i < len(batch) - 1 and delay > 0:
                await self._sleep(delay)

        summary = summarize(results)
        logger.info(
            "[classify] complete: %d violation(s), %d high confidence, %d need review, %ds",
            summary.violations, summary.high_confidence, summary.needs_review,
            int(time.monotonic() - started),
        )
        return results
