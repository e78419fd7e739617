"""Evidence mining over scraped page text, HTML and DOM.

Evidence is a short line of page text (or a DOM description) supporting one
of the three criteria.  Each category is capped at
:data:`~pipeline.models.MAX_EVIDENCE_ITEMS` entries.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Sequence

from pipeline.models import MAX_EVIDENCE_ITEMS, Evidence

PAYMENT_KEYWORDS = [
    "visa",
    "mastercard",
    "credit card",
    "payment methods",
    "checkout",
    "accepted cards",
]

PRODUCT_KEYWORDS = [
    "adderall",
    "amphetamine",
    "dextroamphetamine",
    "adderall xr",
    "generic adderall",
    "add to cart",
    "price",
    "mg",
]

LICENSING_KEYWORDS = [
    "dea",
    "nabp",
    "vipps",
    "pharmacy license",
    "licensed pharmacy",
    "prescription required",
    "no prescription",
    "rx required",
    "upload prescription",
]

HTML_VISA_NOTE = "Visa keyword found in HTML (possible logo or payment icon)."

# Raw DOM hits returned by the in-page script before labelling
MAX_DOM_HITS = 10

# Runs inside the page: payment logos and payment-method containers.
PAYMENT_DOM_SCRIPT = """
() => {
  const results = [];
  const imgSelectors = [
    'img[src*="visa"]', 'img[alt*="visa"]',
    'img[src*="mastercard"]', 'img[alt*="mastercard"]',
    'img[src*="amex"]', 'img[alt*="amex"]',
    'img[src*="discover"]', 'img[alt*="discover"]',
  ];
  const textSelectors = [
    '.payment-methods',
    '.accepted-cards',
    '.checkout-icons',
    '.woocommerce-checkout-payment',
    '.woocommerce-checkout-review-order',
  ];
  imgSelectors.forEach(selector => {
    document.querySelectorAll(selector).forEach(node => {
      const src = node.getAttribute('src') || '';
      const alt = node.getAttribute('alt') || '';
      const parts = [];
      if (alt) parts.push(`alt="${alt}"`);
      if (src) parts.push(`src="${src}"`);
      if (parts.length > 0) results.push(parts.join(' '));
    });
  });
  textSelectors.forEach(selector => {
    document.querySelectorAll(selector).forEach(node => {
      const text = (node.textContent || '').trim();
      if (text) results.push(text);
    });
  });
  return Array.from(new Set(results)).slice(0, %d);
}
""" % MAX_DOM_HITS

_LINE_SPLIT_RE = re.compile(r"\n+")


def lines_matching(
    text: str, keywords: Sequence[str], cap: int = MAX_EVIDENCE_ITEMS
) -> list[str]:
    """Return up to *cap* trimmed, non-empty lines containing any keyword."""
    matches: list[str] = []
    for raw in _LINE_SPLIT_RE.split(text):
        line = raw.strip()
        if not line:
            continue
        lower = line.lower()
        if any(keyword in lower for keyword in keywords):
            matches.append(line)
            if len(matches) >= cap:
                break
    return matches


def extract_text_evidence(content: str, html: str) -> Evidence:
    """Mine the three categories from page text.

    When no payment line mentions a card brand but the raw HTML does, a note
    is recorded instead (the brand is usually in a logo's ``src``/``alt``).
    """
    payment = lines_matching(content, PAYMENT_KEYWORDS)
    product = lines_matching(content, PRODUCT_KEYWORDS)
    licensing = lines_matching(content, LICENSING_KEYWORDS)

    if not payment and "visa" in html.lower():
        payment.append(HTML_VISA_NOTE)

    return Evidence(payment=payment, product=product, licensing=licensing)


def html_payment_evidence(html: str, label: str) -> list[str]:
    """Labelled note when *html* mentions Visa anywhere."""
    if "visa" in html.lower():
        return [f"[{label}] {HTML_VISA_NOTE}"]
    return []


def label_dom_hits(raw: Any, label: str) -> list[str]:
    """Prefix raw in-page hits with *label*; tolerate odd return values."""
    if not isinstance(raw, (list, tuple)):
        return []
    hits = [str(item).strip() for item in raw if str(item).strip()]
    return [f"[{label}] {item}" for item in hits][:MAX_EVIDENCE_ITEMS]


def merge_payment(evidence: Evidence, *groups: Iterable[str]) -> Evidence:
    """Append payment evidence from several sources, in order."""
    extra: list[str] = []
    for group in groups:
        extra.extend(group)
    return evidence.merge(payment=extra)
