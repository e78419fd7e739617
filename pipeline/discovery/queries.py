"""Search query catalog.

High-precision queries combine product, intent, payment and red-flag
phrases.  Every base query is suffixed with negative operators that push
fundraising, academic, reference and editorial pages out of the results.
"""

from __future__ import annotations

BASE_QUERIES = [
    '"buy adderall online" "no prescription" "visa"',
    '"order adderall" "no prescription" "credit card"',
    '"adderall" "add to cart" "online pharmacy"',
    '"adderall xr" "buy online" "visa"',
    '"generic adderall" "buy" "credit card"',
    '"adderall 30mg" "order online" "visa"',
    '"amphetamine salts" "buy online" "credit card"',
    '"dextroamphetamine" "buy online" "no prescription"',
    '"buy adderall online" "overnight shipping" "credit card"',
]

NEGATIVE_SITE_OPERATORS = [
    "-site:.edu",
    "-site:.gov",
    "-site:donorbox.org",
    "-site:networkforgood.com",
    "-site:neoncrm.com",
    "-site:onecause.com",
    "-site:givebutter.com",
    "-site:classy.org",
    "-site:answers.com",
    "-site:amazon.com",
    "-site:amazon.co.uk",
    "-site:amazon.ca",
    "-site:amazon.de",
    "-site:amazon.in",
    "-site:ncbi.nlm.nih.gov",
    "-site:nih.gov",
    "-site:springer.com",
    "-site:sciencedirect.com",
    "-site:jstor.org",
    "-site:pubmed.ncbi.nlm.nih.gov",
]

NEGATIVE_INURL_OPERATORS = [
    "-inurl:donate",
    "-inurl:fundraise",
    "-inurl:fundraising",
    "-inurl:p2p",
    "-inurl:givingday",
    "-inurl:campaign",
]

NEGATIVE_TEXT_OPERATORS = [
    "-review",
    "-reviews",
    "-forum",
    "-reddit",
    "-blog",
    "-news",
    "-study",
    "-symptoms",
    '-"side effects"',
    "-wikipedia",
    "-webmd",
    "-healthline",
    '-"clinical trial"',
]


def negative_operators() -> str:
    """Return every negative operator joined into one query suffix."""
    return " ".join(
        NEGATIVE_SITE_OPERATORS + NEGATIVE_INURL_OPERATORS + NEGATIVE_TEXT_OPERATORS
    )


def build_queries(base_queries: list[str] | None = None) -> list[str]:
    """Return the full query strings, one per base query, in catalog order."""
    suffix = negative_operators()
    return [f"{base} {suffix}".strip() for base in (base_queries or BASE_QUERIES)]
