# File: tests/helpers.py
"""Shared test doubles: a canned-page fetch capability and an HTML builder."""
import asyncio
from typing import Dict, List, Optional, Union

from site_mapper.crawler.models import PageData
from site_mapper.exceptions import FetchError

ROOT = "https://example.com/"


def html_page(*hrefs: str) -> str:
    """Build a tiny HTML document with one anchor per href."""
    anchors = "".join(f'<a href="{h}">{h}</a>' for h in hrefs)
    return f"<html><body>{anchors}</body></html>"


class StubFetch:
    """
    Fake fetch capability: maps URLs to canned HTML, redirects and errors.

    Unknown URLs raise a non-retryable 404 FetchError.
    """

    def __init__(
        self,
        pages: Optional[Dict[str, str]] = None,
        *,
        redirects: Optional[Dict[str, str]] = None,
        errors: Optional[Dict[str, Union[int, BaseException]]] = None,
        delays: Optional[Dict[str, float]] = None,
        content_types: Optional[Dict[str, str]] = None,
        default_delay: float = 0.0,
    ) -> None:
        self.pages = pages or {}
        self.redirects = redirects or {}
        self.errors = errors or {}
        self.delays = delays or {}
        self.content_types = content_types or {}
        self.default_delay = default_delay
        self.calls: List[str] = []
        self.active = 0
        self.max_active = 0

    async def __call__(self, url: str) -> PageData:
        self.calls.append(url)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            delay = self.delays.get(url, self.default_delay)
            if delay:
                await asyncio.sleep(delay)
            err = self.errors.get(url)
            if isinstance(err, BaseException):
                raise err
            if err is not None:
                raise FetchError(url, f"HTTP {err}", status=err, retryable=err >= 500)
            final = self.redirects.get(url, url)
            if final not in self.pages:
                raise FetchError(url, "HTTP 404", status=404)
            return PageData(
                url=url,
                final_url=final,
                content=self.pages[final].encode("utf-8"),
                content_type=self.content_types.get(final, "text/html"),
            )
        finally:
            self.active -= 1
