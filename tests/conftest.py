# File: tests/conftest.py
import logging

import pytest

from site_mapper.config import CrawlerConfig


@pytest.fixture()
def basic_config() -> CrawlerConfig:
    """Return a basic valid CrawlerConfig for crawler tests."""
    return CrawlerConfig(
        base_url="http://example.com",
        max_depth=1,
        timeout=2.0,
        user_agent="TestAgent/1.0",
    )


@pytest.fixture(autouse=True)
def reset_logger():
    """CLI runs attach handlers to temporary streams; drop them after each test."""
    yield
    lg = logging.getLogger("SiteMapper")
    for handler in list(lg.handlers):
        lg.removeHandler(handler)
        handler.close()
    lg.propagate = True
    lg.setLevel(logging.NOTSET)
