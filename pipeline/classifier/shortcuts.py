"""Deterministic classifications that never reach the oracle."""

from __future__ import annotations

from urllib.parse import urlsplit

from pipeline.models import ClassificationResult, ScrapedSite, utc_now

FORUM_DOMAINS = [
    "answers.com",
    "reddit.com",
    "quora.com",
    "stackexchange.com",
    "stackoverflow.com",
    "wikihow.com",
    "wikipedia.org",
]

# Q&A / wiki page furniture.  Separate from the discovery noise vocabularies.
FORUM_SIGNALS = [
    "add your answer",
    "related questions",
    "ask a question",
    "community guidelines",
    "unanswered",
    "wiki user",
    "leaderboard",
    "top categories",
]

MIN_FORUM_SIGNALS = 2


def _host(url: str) -> str:
    try:
        return (urlsplit(url.strip()).hostname or "").lower()
    except ValueError:
        return ""


def detect_forum_or_wiki(site: ScrapedSite) -> str | None:
    """Describe why *site* looks like a forum or wiki page, else ``None``."""
    host = _host(site.url)
    for domain in FORUM_DOMAINS:
        if host == domain or host.endswith("." + domain):
            return f"Forum/wiki domain detected: {domain}"

    title = site.title.lower()
    content = site.content.lower()
    matched = [s for s in FORUM_SIGNALS if s in title or s in content]
    if len(matched) >= MIN_FORUM_SIGNALS:
        return f"Forum/wiki content signals: {', '.join(matched)}"
    return None


def forum_result(site: ScrapedSite, signal: str) -> ClassificationResult:
    return ClassificationResult(
        url=site.url,
        accepts_visa=False,
        visa_evidence=signal,
        sells_adderall=False,
        adderall_evidence=signal,
        is_licensed_pharmacy=True,
        license_evidence=signal,
        is_violation=False,
        confidence="low",
        risk_score=0,
        reasoning=f"Forum/wiki content detected; skipped classification. {signal}",
        needs_manual_review=True,
        classified_at=utc_now(),
    )


def conservative_result(url: str, reasoning: str, evidence_note: str) -> ClassificationResult:
    """Fallback verdict: not a violation, assumed licensed, needs review."""
    return ClassificationResult(
        url=url,
        accepts_visa=False,
        visa_evidence=evidence_note,
        sells_adderall=False,
        adderall_evidence=evidence_note,
        is_licensed_pharmacy=True,
        license_evidence=f"Cannot determine - {evidence_note.lower()}",
        is_violation=False,
        confidence="low",
        risk_score=0,
        reasoning=reasoning,
        needs_manual_review=True,
        classified_at=utc_now(),
    )


def failed_scrape_result(site: ScrapedSite) -> ClassificationResult:
    return conservative_result(
        site.url,
        reasoning=site.error or "No content to analyze",
        evidence_note="No content available",
    )
