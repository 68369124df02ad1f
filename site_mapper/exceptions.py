# site_mapper/exceptions.py
"""
Error taxonomy for the SiteMapper crawler.

Only :class:`SeedUnreachable` is fatal for a crawl; everything else is
recorded against the page it happened on.
"""
from __future__ import annotations

from typing import Optional

__all__ = ("CrawlError", "FetchError", "ParseError", "SeedUnreachable")


class CrawlError(Exception):
    """Base class for errors recorded during a crawl."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class FetchError(CrawlError):
    """Network failure, timeout or non-2xx status for a single page."""

    def __init__(
        self,
        url: str,
        reason: str,
        *,
        status: Optional[int] = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(url, reason)
        self.status = status
        self.retryable = retryable


class ParseError(CrawlError):
    """The page markup could not be parsed at all."""


class SeedUnreachable(CrawlError):
    """The seed URL could not be fetched, so no origin can be established."""

    def __init__(self, url: str, cause: CrawlError) -> None:
        super().__init__(url, f"seed unreachable ({cause.reason})")
        self.cause = cause
        self.status = getattr(cause, "status", None)
