# === FILE: site_mapper/scanner.py ===
"""
Wrapper that runs one crawl over HTTP.
"""
import asyncio
from typing import Optional

from site_mapper.config import CrawlerConfig
from site_mapper.crawler.crawler import SiteCrawler
from site_mapper.crawler.fetcher import Fetcher
from site_mapper.crawler.models import CrawlResult
from site_mapper.logger import logger


async def start_crawl(cfg: CrawlerConfig, cancel: Optional[asyncio.Event] = None) -> CrawlResult:
    """
    Open an aiohttp-backed Fetcher, crawl from ``cfg.base_url`` and return the result.

    Parameters
    ----------
    cfg : CrawlerConfig
        Crawl configuration.
    cancel : asyncio.Event, optional
        When set, the crawl stops dispatching fetches and returns early.

    Returns
    -------
    CrawlResult
        Discovered pages in BFS order plus per-page errors.
    """
    logger.debug("Crawl settings: %s", cfg.model_dump_json())
    async with Fetcher(cfg) as fetcher:
        crawler = SiteCrawler.from_config(fetcher, cfg)
        return await crawler.crawl(cfg.seed, cancel=cancel)

__all__ = ["start_crawl"]
