# site_mapper/crawler/crawler.py
"""
Breadth-first, same-origin site crawler.

The crawler owns the visited set and the frontier. Fetches for one depth
layer run in a small pool of worker tasks that report back over a queue;
only the coordinating coroutine decides what gets enqueued, so layer N is
fully collected before layer N+1 is built and discovery order never depends
on which fetch finished first.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, List, Optional, Set, Tuple, Union

from site_mapper.config import CrawlerConfig
from site_mapper.crawler.link_extractor import extract_links, normalize_url
from site_mapper.crawler.models import CrawlResult, FetchFn, Origin, PageData
from site_mapper.exceptions import CrawlError, FetchError, ParseError, SeedUnreachable

__all__ = ("SiteCrawler",)

Outcome = Union[PageData, CrawlError]


class SiteCrawler:
    """Depth-bounded BFS crawler driven by an injected fetch capability."""

    def __init__(
        self,
        fetch: FetchFn,
        *,
        max_depth: int = 3,
        concurrency: int = 8,
        timeout: float = 10.0,
        retry_times: int = 0,
        retry_backoff: float = 0.5,
        max_pages: Optional[int] = None,
        drain_timeout: float = 5.0,
    ) -> None:
        if max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if timeout <= 0:
            raise ValueError("timeout must be > 0")
        self.fetch = fetch
        self.max_depth = max_depth
        self.concurrency = concurrency
        self.timeout = timeout
        self.retry_times = retry_times
        self.retry_backoff = retry_backoff
        self.max_pages = max_pages
        self.drain_timeout = drain_timeout
        self.logger = logging.getLogger("SiteMapper")

    @classmethod
    def from_config(cls, fetch: FetchFn, config: CrawlerConfig) -> SiteCrawler:
        return cls(
            fetch,
            max_depth=config.max_depth,
            concurrency=config.concurrency,
            timeout=config.timeout,
            retry_times=config.retry_times,
            retry_backoff=config.retry_backoff,
            max_pages=config.max_pages,
            drain_timeout=config.drain_timeout,
        )

    async def crawl(self, seed: str, cancel: Optional[asyncio.Event] = None) -> CrawlResult:
        """
        Crawl the site reachable from *seed*.

        The origin is taken from the seed's final URL after redirects. A seed
        that cannot be fetched yields a result with ``fatal`` set and no
        pages; every other failure is recorded per page in ``errors``.
        Setting *cancel* stops dispatching fetches and returns what has been
        collected so far.
        """
        if cancel is None:
            cancel = asyncio.Event()
        self.logger.info("Start crawl: %s (max depth %d)", seed, self.max_depth)
        start = time.monotonic()
        result = CrawlResult(seed=seed)

        outcome = await self._fetch_page(seed)
        if isinstance(outcome, CrawlError):
            result.fatal = SeedUnreachable(seed, outcome)
            self.logger.error("Seed %s unreachable: %s", seed, outcome.reason)
            return result

        root = normalize_url(outcome.final_url)
        origin = Origin.from_url(root)
        result.origin = origin
        if root != normalize_url(seed):
            self.logger.info("Seed resolved to %s", root)
        visited: Set[str] = {root, normalize_url(seed)}
        result.pages.append(root)

        depth = 0
        layer = [root]
        outcomes: Dict[str, Outcome] = {root: outcome}
        while layer:
            cancelled = cancel.is_set()
            next_layer = self._process_layer(
                layer, outcomes, depth, origin, visited, result, expand=not cancelled
            )
            if cancelled:
                result.cancelled = True
                result.pending.extend(url for url in layer if url not in outcomes)
                break
            if not next_layer:
                break
            depth += 1
            layer = next_layer
            self.logger.debug("Depth %d: %d pages to fetch", depth, len(layer))
            outcomes = await self._fetch_layer(layer, cancel)

        duration = time.monotonic() - start
        self.logger.info(
            "Finished: %d pages, %d errors in %.2f s%s",
            len(result.pages),
            len(result.errors),
            duration,
            " (cancelled)" if result.cancelled else "",
        )
        return result

    def _process_layer(
        self,
        layer: List[str],
        outcomes: Dict[str, Outcome],
        depth: int,
        origin: Origin,
        visited: Set[str],
        result: CrawlResult,
        *,
        expand: bool,
    ) -> List[str]:
        """Record the layer's errors and return newly discovered pages in frontier order."""
        next_layer: List[str] = []
        for url in layer:
            outcome = outcomes.get(url)
            if outcome is None:
                continue
            if isinstance(outcome, CrawlError):
                result.errors[url] = outcome
                continue
            if depth > 0 and not origin.matches(outcome.final_url):
                result.errors[url] = FetchError(
                    url, f"redirected off-origin to {outcome.final_url}", status=outcome.status
                )
                self.logger.warning("Not following %s: redirected to %s", url, outcome.final_url)
                continue
            if not expand or depth >= self.max_depth or not outcome.is_html or self._full(result):
                continue
            try:
                links = extract_links(outcome.content, origin, source=url)
            except ParseError as exc:
                self.logger.warning("Failed to parse %s: %s", url, exc.reason)
                result.errors[url] = exc
                continue
            for link in links:
                if link in visited:
                    continue
                if self._full(result):
                    self.logger.info("Page limit %d reached", self.max_pages)
                    break
                visited.add(link)
                result.pages.append(link)
                next_layer.append(link)
        return next_layer

    def _full(self, result: CrawlResult) -> bool:
        return self.max_pages is not None and len(result.pages) >= self.max_pages

    async def _fetch_layer(self, urls: List[str], cancel: asyncio.Event) -> Dict[str, Outcome]:
        """Fetch *urls* with the worker pool; may return early with a partial map on cancel."""
        work: asyncio.Queue[str] = asyncio.Queue()
        for url in urls:
            work.put_nowait(url)
        results: asyncio.Queue[Tuple[str, Outcome]] = asyncio.Queue()
        workers = [
            asyncio.create_task(self._worker(work, results, cancel))
            for _ in range(min(self.concurrency, len(urls)))
        ]
        outcomes: Dict[str, Outcome] = {}
        try:
            while len(outcomes) < len(urls):
                item = await self._next_result(results, cancel)
                if item is None:
                    break
                url, outcome = item
                outcomes[url] = outcome
            if len(outcomes) == len(urls):
                return outcomes

            # workers stop taking work once cancel is set, so this count is final
            dispatched = len(urls) - work.qsize()
            self.logger.info(
                "Crawl cancelled, waiting up to %.1f s for %d in-flight fetches",
                self.drain_timeout,
                dispatched - len(outcomes),
            )
            loop = asyncio.get_running_loop()
            deadline = loop.time() + self.drain_timeout
            while len(outcomes) < dispatched:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                try:
                    url, outcome = await asyncio.wait_for(results.get(), timeout=remaining)
                except asyncio.TimeoutError:
                    break
                outcomes[url] = outcome
            return outcomes
        finally:
            for w in workers:
                w.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

    async def _worker(
        self,
        work: asyncio.Queue[str],
        results: asyncio.Queue[Tuple[str, Outcome]],
        cancel: asyncio.Event,
    ) -> None:
        while not cancel.is_set():
            try:
                url = work.get_nowait()
            except asyncio.QueueEmpty:
                return
            outcome = await self._fetch_page(url)
            results.put_nowait((url, outcome))

    @staticmethod
    async def _next_result(
        results: asyncio.Queue[Tuple[str, Outcome]], cancel: asyncio.Event
    ) -> Optional[Tuple[str, Outcome]]:
        """Wait for the next worker report, or None once *cancel* is set."""
        getter = asyncio.ensure_future(results.get())
        stopper = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({getter, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopper.cancel()
        if getter.done():
            return getter.result()
        getter.cancel()
        return None

    async def _fetch_page(self, url: str) -> Outcome:
        """Fetch one page with timeout and retries; failures are returned, not raised."""
        attempts = 0
        while True:
            try:
                return await asyncio.wait_for(self.fetch(url), timeout=self.timeout)
            except asyncio.TimeoutError:
                error = FetchError(url, f"timed out after {self.timeout:g} s", retryable=True)
            except FetchError as exc:
                error = exc
            except Exception as exc:
                self.logger.exception("Unexpected error fetching %s", url)
                error = FetchError(url, f"{type(exc).__name__}: {exc}")
            attempts += 1
            if not error.retryable or attempts > self.retry_times:
                self.logger.warning("Failed %s: %s", url, error.reason)
                return error
            backoff = min(60.0, self.retry_backoff * 2 ** (attempts - 1))
            self.logger.debug(
                "Retry %d/%d for %s after %.2f s", attempts, self.retry_times, url, backoff
            )
            await asyncio.sleep(backoff)
