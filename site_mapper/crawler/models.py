# site_mapper/crawler/models.py
"""
Data models for the SiteMapper crawler.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional
from urllib.parse import urlsplit

from site_mapper.exceptions import CrawlError, SeedUnreachable

__all__ = ("Origin", "Link", "PageData", "CrawlResult", "FetchFn")


@dataclass(frozen=True, slots=True)
class Origin:
    """Scheme + host pair identifying one website."""

    scheme: str
    host: str

    @classmethod
    def from_url(cls, url: str) -> Origin:
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"not an absolute URL: {url!r}")
        return cls(parts.scheme.lower(), parts.netloc.lower())

    def matches(self, url: str) -> bool:
        """Return True if *url* has the same scheme and host as this origin."""
        try:
            parts = urlsplit(url)
        except ValueError:
            return False
        return parts.scheme.lower() == self.scheme and parts.netloc.lower() == self.host

    def __str__(self) -> str:
        return f"{self.scheme}://{self.host}"


@dataclass(frozen=True, slots=True)
class Link:
    """Raw href together with the page it was found on."""

    href: str
    source: Optional[str] = None


@dataclass(slots=True)
class PageData:
    """Outcome of a successful fetch."""

    url: str
    final_url: str
    content: bytes
    status: int = 200
    content_type: str = "text/html"

    @property
    def is_html(self) -> bool:
        # servers that omit Content-Type are assumed to serve HTML
        return not self.content_type or "html" in self.content_type.lower()


FetchFn = Callable[[str], Awaitable[PageData]]


@dataclass(slots=True)
class CrawlResult:
    """Pages discovered by one crawl, in first-discovery order, plus per-page errors."""

    seed: str
    origin: Optional[Origin] = None
    pages: List[str] = field(default_factory=list)
    errors: Dict[str, CrawlError] = field(default_factory=dict)
    pending: List[str] = field(default_factory=list)
    cancelled: bool = False
    fatal: Optional[SeedUnreachable] = None

    @property
    def ok(self) -> bool:
        return self.fatal is None

    @property
    def fetched(self) -> List[str]:
        """Discovered pages that were fetched without error."""
        skip = set(self.errors) | set(self.pending)
        return [url for url in self.pages if url not in skip]
