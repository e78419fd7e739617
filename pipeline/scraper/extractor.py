"""Text/title recovery from raw HTML.

Used when the in-page ``innerText`` evaluation comes back empty (pages that
render into shadow DOM or iframes) or the page reports no title.
"""

from __future__ import annotations

import re

import trafilatura

_TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)

_INVISIBLE_TAGS = ["script", "style", "noscript", "template"]


def _visible_lines(html: str) -> str:
    """Newline-separated visible text of the page's main container.

    Prefers ``<main>``, then ``<article>``, then ``<body>``.  Lines stay
    separate because evidence mining works per line.
    """
    from bs4 import BeautifulSoup  # noqa: PLC0415

    soup = BeautifulSoup(html, "html.parser")
    for node in soup(_INVISIBLE_TAGS):
        node.decompose()
    root = soup.find("main") or soup.find("article") or soup.body or soup
    return root.get_text(separator="\n", strip=True)


def text_from_html(html: str, url: str | None = None) -> str:
    """Readable text of *html*: trafilatura first, BeautifulSoup when it yields nothing."""
    if not html.strip():
        return ""

    extracted = trafilatura.extract(
        html,
        url=url,
        include_tables=True,
        include_links=False,
        include_images=False,
        include_comments=False,
    )
    return extracted or _visible_lines(html) or ""


def title_from_html(html: str) -> str:
    """Text of the first ``<title>`` tag, or ``""``."""
    found = _TITLE_RE.search(html)
    return found.group(1).strip() if found else ""
