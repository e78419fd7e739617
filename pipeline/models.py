"""Data models shared by every pipeline stage.

These are plain dataclasses, not ORM models.  The store serialises them to
and from JSON via ``to_dict`` / ``from_dict``; persisted key names follow the
camelCase layout the dashboard reads (``scrapedAt``, ``classifiedAt``).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, Iterable, Literal, Optional, TypeVar

MAX_EVIDENCE_ITEMS = 6
CONFIDENCE_LEVELS = ("high", "medium", "low")

Confidence = Literal["high", "medium", "low"]

T = TypeVar("T")


def utc_now() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def ordered_union(*groups: Iterable[str], cap: int = MAX_EVIDENCE_ITEMS) -> list[str]:
    """Merge *groups* keeping first-appearance order, without duplicates.

    The result is truncated to *cap* entries.
    """
    seen: set[str] = set()
    merged: list[str] = []
    for group in groups:
        for item in group:
            if item in seen:
                continue
            seen.add(item)
            merged.append(item)
            if len(merged) >= cap:
                return merged
    return merged


# ---------------------------------------------------------------------------
# Explicit success / failure value
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a call to an external collaborator.

    Exactly one of ``value`` / ``error`` is meaningful: ``ok`` tells which.
    """

    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str | BaseException) -> "Outcome[T]":
        if isinstance(error, BaseException):
            message = str(error) or type(error).__name__
        else:
            message = error
        return cls(error=message or "unknown error")


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SearchResult:
    """One organic search hit."""

    title: str
    url: str
    snippet: str
    source_query: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "snippet": self.snippet,
            "source": self.source_query,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchResult":
        return cls(
            title=data.get("title", ""),
            url=data["url"],
            snippet=data.get("snippet", ""),
            source_query=data.get("source", data.get("source_query", "")),
        )


# ---------------------------------------------------------------------------
# Scraping
# ---------------------------------------------------------------------------

@dataclass
class Evidence:
    """Short snippets supporting each of the three criteria."""

    payment: list[str] = field(default_factory=list)
    product: list[str] = field(default_factory=list)
    licensing: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.payment = ordered_union(self.payment)
        self.product = ordered_union(self.product)
        self.licensing = ordered_union(self.licensing)

    def merge(
        self,
        payment: Iterable[str] = (),
        product: Iterable[str] = (),
        licensing: Iterable[str] = (),
    ) -> "Evidence":
        """Return a new :class:`Evidence` with the extra items appended."""
        return Evidence(
            payment=ordered_union(self.payment, payment),
            product=ordered_union(self.product, product),
            licensing=ordered_union(self.licensing, licensing),
        )

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "payment": list(self.payment),
            "product": list(self.product),
            "licensing": list(self.licensing),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Evidence":
        data = data or {}
        return cls(
            payment=list(data.get("payment") or []),
            product=list(data.get("product") or []),
            licensing=list(data.get("licensing") or []),
        )


@dataclass
class ScrapedSite:
    """Everything captured from one URL by the scraper."""

    url: str
    title: str
    content: str
    evidence: Evidence = field(default_factory=Evidence)
    scraped_at: str = field(default_factory=utc_now)
    html: Optional[str] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        """``True`` when there is nothing usable to classify."""
        return bool(self.error) or not self.content.strip()

    @classmethod
    def failure(cls, url: str, error: str) -> "ScrapedSite":
        return cls(url=url, title="", content="", error=error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "url": self.url,
            "title": self.title,
            "content": self.content,
            "evidence": self.evidence.to_dict(),
            "scrapedAt": self.scraped_at,
        }
        if self.html is not None:
            data["html"] = self.html
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScrapedSite":
        return cls(
            url=data["url"],
            title=data.get("title", ""),
            content=data.get("content", ""),
            evidence=Evidence.from_dict(data.get("evidence")),
            scraped_at=data.get("scrapedAt", ""),
            html=data.get("html"),
            error=data.get("error"),
        )


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

@dataclass
class ClassificationResult:
    """Verdict for one scraped site.

    ``risk_score`` is clamped to ``[0, 100]`` and ``confidence`` coerced to
    one of :data:`CONFIDENCE_LEVELS` on construction, whatever the caller
    passed in.
    """

    url: str
    accepts_visa: bool
    visa_evidence: str
    sells_adderall: bool
    adderall_evidence: str
    is_licensed_pharmacy: bool
    license_evidence: str
    is_violation: bool
    confidence: Confidence
    risk_score: int
    reasoning: str
    needs_manual_review: bool
    classified_at: str = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        try:
            raw = float(self.risk_score)
        except (TypeError, ValueError):
            raw = 0.0
        score = int(round(raw)) if math.isfinite(raw) else 0
        self.risk_score = max(0, min(100, score))
        confidence = str(self.confidence).strip().lower()
        self.confidence = confidence if confidence in CONFIDENCE_LEVELS else "low"  # type: ignore[assignment]

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "accepts_visa": self.accepts_visa,
            "visa_evidence": self.visa_evidence,
            "sells_adderall": self.sells_adderall,
            "adderall_evidence": self.adderall_evidence,
            "is_licensed_pharmacy": self.is_licensed_pharmacy,
            "license_evidence": self.license_evidence,
            "is_violation": self.is_violation,
            "confidence": self.confidence,
            "risk_score": self.risk_score,
            "reasoning": self.reasoning,
            "needs_manual_review": self.needs_manual_review,
            "classifiedAt": self.classified_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClassificationResult":
        return cls(
            url=data["url"],
            accepts_visa=bool(data.get("accepts_visa", False)),
            visa_evidence=data.get("visa_evidence", ""),
            sells_adderall=bool(data.get("sells_adderall", False)),
            adderall_evidence=data.get("adderall_evidence", ""),
            is_licensed_pharmacy=bool(data.get("is_licensed_pharmacy", True)),
            license_evidence=data.get("license_evidence", ""),
            is_violation=bool(data.get("is_violation", False)),
            confidence=data.get("confidence", "low"),
            risk_score=data.get("risk_score", 0),
            reasoning=data.get("reasoning", ""),
            needs_manual_review=bool(data.get("needs_manual_review", True)),
            classified_at=data.get("classifiedAt", ""),
        )


@dataclass
class PipelineResult:
    """Aggregate produced by single-URL mode."""

    search: SearchResult
    scraped: ScrapedSite
    classification: ClassificationResult

    def to_dict(self) -> dict[str, Any]:
        return {
            "search": self.search.to_dict(),
            "scraped": self.scraped.to_dict(),
            "classification": self.classification.to_dict(),
        }
