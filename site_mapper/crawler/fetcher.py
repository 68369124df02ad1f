# site_mapper/crawler/fetcher.py
"""
Fetcher module: the aiohttp transport behind the crawler's fetch capability.

One call is one attempt; retries and the overall page timeout belong to the
crawler.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional, Sequence

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_mapper.config import CrawlerConfig
from site_mapper.crawler.models import PageData
from site_mapper.exceptions import FetchError

__all__ = ("Fetcher",)


class Fetcher:
    """Handles HTTP fetching with rate limit and timeout."""

    _RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)

    def __init__(self, config: CrawlerConfig, session: Optional[ClientSession] = None) -> None:
        self.config = config
        self.session = session
        self._owns_session = session is None
        self.logger = logging.getLogger("SiteMapper")
        self._rate_lock = asyncio.Lock()
        self._last_request_ts = 0.0

    async def __aenter__(self) -> Fetcher:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.config.timeout),
                headers={"User-Agent": self.config.user_agent},
                raise_for_status=False,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    async def __call__(self, url: str) -> PageData:
        return await self.fetch(url)

    async def fetch(self, url: str) -> PageData:
        """
        GET *url*, following redirects.

        Returns PageData on a 2xx response; raises FetchError otherwise.
        429/5xx, connection errors and timeouts are marked retryable.
        """
        if not self.session:
            raise RuntimeError("Session not initialized")
        await self._wait_for_rate_limit()
        try:
            async with self.session.get(url, allow_redirects=True) as resp:
                status = resp.status
                if status in self._RETRY_STATUS:
                    raise FetchError(url, f"HTTP {status}", status=status, retryable=True)
                if not 200 <= status < 300:
                    raise FetchError(url, f"HTTP {status}", status=status)
                body = await resp.read()
                ctype = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
                self.logger.debug("Fetched %s -> %s (%d bytes)", url, resp.url, len(body))
                return PageData(
                    url=url,
                    final_url=str(resp.url),
                    content=body,
                    status=status,
                    content_type=ctype,
                )
        except asyncio.TimeoutError as exc:
            raise FetchError(url, "timed out", retryable=True) from exc
        except ClientError as exc:
            raise FetchError(url, str(exc) or type(exc).__name__, retryable=True) from exc

    async def _wait_for_rate_limit(self) -> None:
        if not self.config.rate_limit:
            return
        interval = 1 / self.config.rate_limit
        async with self._rate_lock:
            now = time.monotonic()
            wait = interval - (now - self._last_request_ts)
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_request_ts = time.monotonic()
