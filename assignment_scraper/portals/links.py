# assignment_scraper/portals/links.py
"""
Assignment link discovery over the rendered assignment-center HTML.

Three tiers, strictest first; a tier is only consulted when every stricter
tier came back empty:

1. ``link_precise``  the detail-page URL shape
2. ``link_loose``    anything under the assignment path
3. keyword           any anchor whose text or href mentions ``link_keyword``
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Sequence, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from ..config import Selectors
from ..models import AssignmentLink

logger = logging.getLogger(__name__)

_SKIP_SCHEMES = ("mailto:", "javascript:", "tel:")


def dedupe_links(links: Iterable[AssignmentLink]) -> List[AssignmentLink]:
    """Drop repeated URLs, keeping the first occurrence (and its text) in order."""
    seen = set()
    out: List[AssignmentLink] = []
    for link in links:
        if link.url in seen:
            continue
        seen.add(link.url)
        out.append(link)
    return out


def _to_links(anchors: Iterable[Tag], page_url: str) -> List[AssignmentLink]:
    out = []
    for a in anchors:
        href = (a.get("href") or "").strip()
        if not href or href.lower().startswith(_SKIP_SCHEMES):
            continue
        text = " ".join(a.get_text(" ", strip=True).split())
        out.append(AssignmentLink(url=urljoin(page_url, href), text=text))
    return out


def _select(soup: BeautifulSoup, selector: str) -> List[Tag]:
    try:
        return soup.select(selector)
    except SelectorSyntaxError as e:
        logger.warning("link selector %r is not valid CSS: %s", selector, e)
        return []


def _keyword_anchors(soup: BeautifulSoup, keyword: str) -> List[Tag]:
    kw = keyword.lower()
    return [
        a for a in soup.find_all("a", href=True)
        if kw in a.get_text(" ", strip=True).lower() or kw in a["href"].lower()
    ]


def link_tiers(soup: BeautifulSoup, selectors: Selectors) -> Sequence[Tuple[str, Callable[[], List[Tag]]]]:
    return (
        ("precise", lambda: _select(soup, selectors.link_precise)),
        ("loose", lambda: _select(soup, selectors.link_loose)),
        ("keyword", lambda: _keyword_anchors(soup, selectors.link_keyword)),
    )


def discover_links(soup: BeautifulSoup, page_url: str, selectors: Selectors) -> List[AssignmentLink]:
    for name, query in link_tiers(soup, selectors):
        links = dedupe_links(_to_links(query(), page_url))
        if links:
            logger.info("found %d assignment links (%s tier)", len(links), name)
            return links
        logger.debug("%s tier matched nothing", name)
    return []
