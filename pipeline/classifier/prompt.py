"""Prompt synthesis for the classification oracle."""

from __future__ import annotations

from pipeline.models import ScrapedSite

CONTENT_EXCERPT_CHARS = 8000
EVIDENCE_SEPARATOR = " | "
NO_EVIDENCE = "None captured"

SYSTEM_PROMPT = (
    "You are an expert analyst detecting illegal drug sales through payment "
    "networks. Respond ONLY with valid JSON, no markdown formatting."
)

_CRITERIA = """\
ANALYZE EACH CRITERION:

CRITERION 1 - Accepts Visa:
- Look for: Visa logos, "Visa accepted" text, payment method lists, checkout pages
- Be specific about WHERE you found the evidence
- Strong evidence: "Footer shows Visa/Mastercard logos", "Payment page lists Visa"
- Weak evidence: Generic "credit cards accepted" (could imply Visa but not explicit)

CRITERION 2 - Sells Adderall:
- Look for: Product listings, "Buy Adderall", pricing, add-to-cart buttons, dosage info (10mg, 20mg, 30mg)
- Distinguish between SELLING vs. informational content about Adderall
- Strong evidence: "Product page: Adderall 30mg - $X.XX with Add to Cart"
- Weak evidence: Blog post mentioning Adderall (informational, not sales)

CRITERION 3 - NOT Licensed Pharmacy:
RED FLAGS (suggest NOT licensed):
- "No prescription required/needed"
- Missing DEA/pharmacy license number
- Ships controlled substances internationally without restrictions
- Suspicious/missing contact info
- Generic template design
- Recently registered domain

GREEN FLAGS (suggest licensed - NOT a violation):
- Known pharmacy chain (CVS, Walgreens, etc.)
- DEA registration number visible (format: XX1234563)
- Requires prescription upload
- NABP VIPPS certified
- Established healthcare provider

CONFIDENCE SCORING:
- High (90-100): All criteria have explicit, clear evidence
- Medium (60-89): Some criteria have strong evidence, others moderate/implied
- Low (0-59): Ambiguous evidence, missing key information, or site error/unavailable

RESPONSE REQUIREMENTS:
- Be descriptive. Reasoning should be 2-4 sentences and mention where evidence was found.
- When citing evidence, specify the page/source if known (e.g., "landing page", "checkout", or the URL shown in the evidence labels).
- If evidence is weak or inferred, say so explicitly.

RESPOND WITH VALID JSON (no markdown, no code blocks):
{
  "accepts_visa": true or false,
  "visa_evidence": "Specific quote or element found + where it was found (page/URL)",

  "sells_adderall": true or false,
  "adderall_evidence": "Specific quote or element found + where it was found (page/URL)",

  "is_licensed_pharmacy": true or false,
  "license_evidence": "Evidence found or reason for determination + where it was found (page/URL)",

  "is_violation": true or false,
  "confidence": "high" or "medium" or "low",
  "risk_score": 0-100,
  "reasoning": "2-4 sentence summary with page/source references",
  "needs_manual_review": true or false
}"""


def _joined(items: list[str]) -> str:
    return EVIDENCE_SEPARATOR.join(items) or NO_EVIDENCE


def build_classification_prompt(site: ScrapedSite) -> str:
    """Build the user prompt for *site*.

    The page text is cut to :data:`CONTENT_EXCERPT_CHARS` so the prompt stays
    bounded whatever the page size.
    """
    evidence = site.evidence
    return (
        "You are analyzing a website for potential Visa payment network violations.\n\n"
        "CRITICAL: A site is ONLY violating if ALL THREE criteria are true:\n"
        "1. Accepts Visa as payment method\n"
        "2. Sells Adderall (Schedule II controlled substance)\n"
        "3. Is NOT a licensed/legitimate pharmacy\n\n"
        "WEBSITE DATA:\n"
        f"URL: {site.url}\n"
        f"Title: {site.title}\n"
        "Evidence Extracts:\n"
        f"- Payment: {_joined(evidence.payment)}\n"
        f"- Product: {_joined(evidence.product)}\n"
        f"- Licensing: {_joined(evidence.licensing)}\n"
        "Content:\n"
        f"{site.content[:CONTENT_EXCERPT_CHARS]}\n\n"
        f"{_CRITERIA}"
    )
