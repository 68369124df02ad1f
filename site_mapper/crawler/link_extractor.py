# site_mapper/crawler/link_extractor.py
"""
Link extraction and URL normalization utilities for SiteMapper.

Only root-relative (``/path``), protocol-relative (``//host/path``) and
absolute ``http(s)://`` hrefs are followed. Relative paths such as
``about.html`` are dropped on purpose, so the extractor may under-collect.
"""
from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Set, Union
from urllib.parse import quote, urlsplit, urlunsplit

from bs4 import BeautifulSoup
from bs4.element import Tag

from site_mapper.crawler.models import Link, Origin
from site_mapper.exceptions import ParseError

__all__ = ("iter_hrefs", "normalize_url", "resolve_link", "extract_links")

logger = logging.getLogger("SiteMapper")

_ABSOLUTE_PREFIXES = ("http://", "https://")
# anything outside these (and the unreserved set) is percent-encoded
_PATH_SAFE = "/%:@!$&'()*+,;="
_QUERY_SAFE = _PATH_SAFE + "?"


def iter_hrefs(html: Union[bytes, str]) -> Iterator[str]:
    """Yield raw ``href`` values of ``<a>`` elements in document order."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        href = tag.get("href")
        if isinstance(href, str):
            yield href


def normalize_url(url: str) -> str:
    """
    Lowercase scheme and host, drop the fragment, turn an empty path into ``/``.
    Characters that are not valid in a URL (controls, spaces, non-ASCII) are
    percent-encoded in path and query; existing escapes are kept.
    """
    parts = urlsplit(url)
    path = quote(parts.path or "/", safe=_PATH_SAFE)
    query = quote(parts.query, safe=_QUERY_SAFE)
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, query, ""))


def resolve_link(link: Link, origin: Origin) -> Optional[str]:
    """Turn a raw href into an absolute same-origin PageURL, or None if it is discarded."""
    href = link.href.strip()
    if href.startswith("//"):
        href = f"{origin.scheme}:{href}"
    elif href.startswith("/"):
        href = f"{origin}{href}"
    elif not href.lower().startswith(_ABSOLUTE_PREFIXES):
        return None
    try:
        url = normalize_url(href)
    except ValueError as exc:
        logger.debug("Skipping malformed href %r on %s: %s", link.href, link.source, exc)
        return None
    return url if origin.matches(url) else None


def extract_links(
    html: Union[bytes, str], origin: Origin, source: Optional[str] = None
) -> List[str]:
    """
    Extract the distinct same-origin URLs referenced by a page.

    The result keeps first-occurrence document order. Raises
    :class:`ParseError` if the markup cannot be parsed at all.
    """
    try:
        hrefs = list(iter_hrefs(html))
    except Exception as exc:
        raise ParseError(source or str(origin), f"unparseable HTML: {exc}") from exc

    seen: Set[str] = set()
    links: List[str] = []
    for href in hrefs:
        url = resolve_link(Link(href, source), origin)
        if url is not None and url not in seen:
            seen.add(url)
            links.append(url)
    return links
