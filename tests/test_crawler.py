# File: tests/test_crawler.py
# Breadth-first crawler tests against a stub fetch capability
from __future__ import annotations

import asyncio

import pytest

import site_mapper.crawler.crawler as crawler_module
from site_mapper.crawler.crawler import SiteCrawler
from site_mapper.crawler.models import Origin
from site_mapper.exceptions import FetchError, ParseError, SeedUnreachable
from site_mapper.parser.sitemap_parser import parse_sitemap
from site_mapper.report.sitemap_report import render_sitemap

from helpers import ROOT, StubFetch, html_page

A = ROOT
B = "https://example.com/b"
C = "https://example.com/c"
D = "https://example.com/d"


def diamond() -> StubFetch:
    return StubFetch(
        {
            A: html_page("/b", "/c"),
            B: html_page("/d"),
            C: html_page("/d", "https://example.com/b"),
            D: html_page("/"),
        }
    )


# --------------------------------------------------------------------------- #
#                               Traversal order                               #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_diamond_discovery_order_and_single_fetch():
    fetch = diamond()
    result = await SiteCrawler(fetch, max_depth=2).crawl(A)

    assert result.ok
    assert result.origin == Origin("https", "example.com")
    assert result.pages == [A, B, C, D]
    assert fetch.calls.count(D) == 1
    assert result.errors == {}


@pytest.mark.asyncio()
async def test_max_depth_zero_returns_only_seed():
    fetch = diamond()
    result = await SiteCrawler(fetch, max_depth=0).crawl(A)

    assert result.pages == [A]
    assert fetch.calls == [A]


@pytest.mark.asyncio()
async def test_depth_bound_stops_at_layer():
    fetch = diamond()
    result = await SiteCrawler(fetch, max_depth=1).crawl(A)

    assert result.pages == [A, B, C]
    assert D not in fetch.calls


@pytest.mark.asyncio()
async def test_order_follows_frontier_not_completion():
    fetch = diamond()
    # B finishes last, yet its child is discovered before C's children
    fetch.pages[C] = html_page("/e")
    fetch.pages["https://example.com/e"] = html_page()
    fetch.delays[B] = 0.1
    result = await SiteCrawler(fetch, max_depth=2, concurrency=4).crawl(A)

    assert result.pages == [A, B, C, D, "https://example.com/e"]


@pytest.mark.asyncio()
async def test_no_duplicates_in_cyclic_site():
    pages = {
        f"https://example.com/p{i}": html_page(*(f"/p{j}" for j in range(10)), "/", "/p3#frag")
        for i in range(10)
    }
    pages[A] = html_page("/p0", "/p1", "/")
    fetch = StubFetch(pages)
    result = await SiteCrawler(fetch, max_depth=5).crawl(A)

    assert len(result.pages) == len(set(result.pages)) == 11
    assert sorted(fetch.calls) == sorted(set(fetch.calls))


# --------------------------------------------------------------------------- #
#                                Seed & origin                                #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_seed_server_error_is_fatal():
    fetch = StubFetch(errors={A: 500})
    result = await SiteCrawler(fetch).crawl(A)

    assert not result.ok
    assert isinstance(result.fatal, SeedUnreachable)
    assert result.fatal.status == 500
    assert result.pages == []
    assert result.origin is None


@pytest.mark.asyncio()
async def test_origin_comes_from_redirected_seed():
    final = "https://www.example.com/"
    fetch = StubFetch(
        {
            final: html_page("/x", "http://example.com/y", "https://www.example.com/z"),
            "https://www.example.com/x": html_page(),
            "https://www.example.com/z": html_page(),
        },
        redirects={"http://example.com/": final},
    )
    result = await SiteCrawler(fetch, max_depth=1).crawl("http://example.com/")

    assert result.origin == Origin("https", "www.example.com")
    assert result.pages == [final, "https://www.example.com/x", "https://www.example.com/z"]
    assert fetch.calls.count("http://example.com/") == 1
    assert final not in fetch.calls


@pytest.mark.asyncio()
async def test_seed_without_path_is_normalized():
    fetch = StubFetch({A: html_page("/b")}, redirects={"https://example.com": A})
    result = await SiteCrawler(fetch, max_depth=0).crawl("https://example.com")
    assert result.pages == [A]


@pytest.mark.asyncio()
async def test_discovered_link_redirecting_off_origin_is_not_followed():
    fetch = StubFetch(
        {A: html_page("/out"), "https://other.com/landing": html_page("/secret")},
        redirects={"https://example.com/out": "https://other.com/landing"},
    )
    result = await SiteCrawler(fetch, max_depth=3).crawl(A)

    assert result.pages == [A, "https://example.com/out"]
    assert isinstance(result.errors["https://example.com/out"], FetchError)
    assert "https://example.com/secret" not in fetch.calls


# --------------------------------------------------------------------------- #
#                              Per-page failures                              #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_page_failure_does_not_abort_crawl():
    fetch = StubFetch(
        {A: html_page("/b", "/c"), C: html_page("/d"), D: html_page()},
        errors={B: 500},
    )
    result = await SiteCrawler(fetch, max_depth=3).crawl(A)

    assert result.pages == [A, B, C, D]
    assert list(result.errors) == [B]
    assert result.errors[B].status == 500
    assert result.fetched == [A, C, D]


@pytest.mark.asyncio()
async def test_missing_page_is_recorded():
    fetch = StubFetch({A: html_page("/missing")})
    result = await SiteCrawler(fetch, max_depth=1).crawl(A)

    err = result.errors["https://example.com/missing"]
    assert err.status == 404
    assert not err.retryable


@pytest.mark.asyncio()
async def test_slow_page_times_out():
    fetch = StubFetch({A: html_page("/b", "/c"), B: html_page(), C: html_page()}, delays={B: 2.0})
    result = await SiteCrawler(fetch, max_depth=1, timeout=0.1).crawl(A)

    assert result.pages == [A, B, C]
    assert "timed out" in result.errors[B].reason
    assert C not in result.errors


@pytest.mark.asyncio()
async def test_retry_recovers_flaky_page():
    attempts = {"n": 0}
    stub = StubFetch({A: html_page("/flaky"), "https://example.com/flaky": html_page()})

    async def flaky(url):
        if url.endswith("/flaky"):
            attempts["n"] += 1
            if attempts["n"] <= 2:
                raise FetchError(url, "HTTP 503", status=503, retryable=True)
        return await stub(url)

    crawler = SiteCrawler(flaky, max_depth=1, retry_times=2, retry_backoff=0)
    result = await crawler.crawl(A)

    assert result.errors == {}
    assert attempts["n"] == 3


@pytest.mark.asyncio()
async def test_non_retryable_error_is_not_retried():
    fetch = StubFetch({A: html_page("/gone")}, errors={"https://example.com/gone": 410})
    result = await SiteCrawler(fetch, max_depth=1, retry_times=3, retry_backoff=0).crawl(A)

    assert fetch.calls.count("https://example.com/gone") == 1
    assert result.errors["https://example.com/gone"].status == 410


@pytest.mark.asyncio()
async def test_unexpected_exception_becomes_fetch_error():
    fetch = StubFetch({A: html_page("/boom")}, errors={"https://example.com/boom": KeyError("x")})
    result = await SiteCrawler(fetch, max_depth=1).crawl(A)

    err = result.errors["https://example.com/boom"]
    assert isinstance(err, FetchError)
    assert "KeyError" in err.reason


@pytest.mark.asyncio()
async def test_parse_error_is_recorded_per_page(monkeypatch):
    real_extract = crawler_module.extract_links

    def extract(html, origin, source=None):
        if source == B:
            raise ParseError(source, "unparseable HTML")
        return real_extract(html, origin, source)

    monkeypatch.setattr(crawler_module, "extract_links", extract)
    result = await SiteCrawler(diamond(), max_depth=2).crawl(A)

    assert isinstance(result.errors[B], ParseError)
    # D is still reached through C
    assert result.pages == [A, B, C, D]


@pytest.mark.asyncio()
async def test_non_html_page_has_no_children():
    fetch = diamond()
    fetch.content_types[B] = "application/pdf"
    fetch.pages[C] = html_page()
    result = await SiteCrawler(fetch, max_depth=2).crawl(A)

    assert result.pages == [A, B, C]
    assert result.errors == {}


@pytest.mark.asyncio()
async def test_unsafe_characters_in_hrefs_still_give_a_valid_sitemap():
    ctrl = "https://example.com/a%01b"
    space = "https://example.com/a%20b"
    fetch = StubFetch({A: html_page("/a\x01b", "/a b", "/ok"), ctrl: html_page(), space: html_page()})
    result = await SiteCrawler(fetch, max_depth=1).crawl(A)

    assert result.pages == [A, ctrl, space, "https://example.com/ok"]
    assert parse_sitemap(render_sitemap(result.pages)) == result.pages


# --------------------------------------------------------------------------- #
#                         Limits, concurrency, cancel                         #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_max_pages_caps_discovery():
    links = [f"/p{i}" for i in range(10)]
    pages = {A: html_page(*links)}
    pages.update({f"https://example.com/p{i}": html_page() for i in range(10)})
    result = await SiteCrawler(StubFetch(pages), max_depth=1, max_pages=4).crawl(A)

    assert result.pages == [A] + [f"https://example.com/p{i}" for i in range(3)]


@pytest.mark.parametrize("concurrency", [1, 3])
@pytest.mark.asyncio()
async def test_concurrency_is_bounded(concurrency):
    links = [f"/p{i}" for i in range(6)]
    pages = {A: html_page(*links)}
    pages.update({f"https://example.com/p{i}": html_page() for i in range(6)})
    fetch = StubFetch(pages, default_delay=0.02)
    result = await SiteCrawler(fetch, max_depth=1, concurrency=concurrency).crawl(A)

    assert len(result.pages) == 7
    assert fetch.max_active == concurrency


@pytest.mark.asyncio()
async def test_cancel_waits_for_in_flight_fetches():
    fetch = diamond()
    fetch.delays.update({B: 0.3, C: 0.3})
    cancel = asyncio.Event()
    asyncio.get_running_loop().call_later(0.05, cancel.set)
    result = await SiteCrawler(fetch, max_depth=3, concurrency=2, drain_timeout=2.0).crawl(
        A, cancel=cancel
    )

    assert result.cancelled
    assert result.pages == [A, B, C]
    assert result.pending == []
    assert D not in fetch.calls


@pytest.mark.asyncio()
async def test_cancel_abandons_after_drain_deadline():
    fetch = diamond()
    fetch.delays.update({B: 1.0, C: 1.0})
    cancel = asyncio.Event()
    asyncio.get_running_loop().call_later(0.05, cancel.set)
    result = await SiteCrawler(fetch, max_depth=3, concurrency=1, drain_timeout=0).crawl(
        A, cancel=cancel
    )

    assert result.cancelled
    assert result.pages == [A, B, C]
    assert result.pending == [B, C]
    assert fetch.calls == [A, B]


@pytest.mark.asyncio()
async def test_cancel_before_start_keeps_seed():
    cancel = asyncio.Event()
    cancel.set()
    fetch = diamond()
    result = await SiteCrawler(fetch, max_depth=3).crawl(A, cancel=cancel)

    assert result.cancelled
    assert result.pages == [A]
    assert fetch.calls == [A]


@pytest.mark.parametrize(
    "kwargs",
    [{"max_depth": -1}, {"concurrency": 0}, {"timeout": 0}],
)
def test_invalid_arguments(kwargs):
    with pytest.raises(ValueError):
        SiteCrawler(StubFetch(), **kwargs)


def test_from_config(basic_config):
    crawler = SiteCrawler.from_config(StubFetch(), basic_config)
    assert crawler.max_depth == 1
    assert crawler.concurrency == 8
    assert crawler.timeout == 2.0
