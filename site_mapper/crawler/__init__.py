"""site_mapper.crawler: link extraction, fetching and breadth-first traversal."""
from site_mapper.crawler.crawler import SiteCrawler
from site_mapper.crawler.link_extractor import extract_links, normalize_url
from site_mapper.crawler.models import CrawlResult, Link, Origin, PageData

__all__ = [
    "SiteCrawler",
    "extract_links",
    "normalize_url",
    "CrawlResult",
    "Link",
    "Origin",
    "PageData",
]
