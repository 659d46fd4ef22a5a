from __future__ import annotations

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from book_scraper import selectors
from book_scraper.errors import DeadlineExceeded, ExtractionFailed, MissingInput, NavigationTimeout, ScraperError
from book_scraper.models.book import BookRecord

from tests.conftest import DETAIL_URL, build_extractor, detail_page
from tests.fakes import FakeLauncher, FakePage, FakeRoute

ISBN = "9781847399960"


def _pages(*pages):
    """Page factory handing out the given pages in order, repeating the last."""
    queue = list(pages)

    def factory():
        return queue.pop(0) if len(queue) > 1 else queue[0]

    return factory


def test_end_to_end_stub_detail_page():
    launcher = FakeLauncher(page_factory=detail_page)
    extractor = build_extractor(launcher)

    record = asyncio.run(extractor.extract(ISBN))

    assert isinstance(record, BookRecord)
    assert record.identifier == ISBN
    assert record.title == "Example Title"
    assert record.published_full == "March 2, 2010 by Acme Press"
    assert record.average_rating is None
    assert record.rating_count is None
    body = record.to_response()
    assert body["publishedFull"] == "March 2, 2010 by Acme Press"
    assert body["averageRating"] is None


def test_navigation_searches_for_identifier_and_blocks_heavy_assets():
    page = detail_page()
    extractor = build_extractor(FakeLauncher(page_factory=lambda: page))

    asyncio.run(extractor.extract("978 1847"))

    assert page.visited == ["https://www.goodreads.com/search?q=978+1847"]

    async def route(resource_type):
        fake = FakeRoute(resource_type)
        await page.route_handler(fake)
        return fake.outcome

    assert asyncio.run(route("image")) == "aborted"
    assert asyncio.run(route("font")) == "aborted"
    assert asyncio.run(route("document")) == "continued"
    assert asyncio.run(route("script")) == "continued"


def test_identifier_is_echoed_without_normalization():
    identifier = "  0-684-80122-1 "
    extractor = build_extractor(FakeLauncher(page_factory=detail_page))
    assert asyncio.run(extractor.extract(identifier)).identifier == identifier


def test_search_result_page_is_disambiguated():
    def open_detail(page):
        page.url = DETAIL_URL
        page.elements[selectors.TITLE] = ["Clicked Through"]

    def factory():
        return FakePage(
            elements={selectors.RESULT_LINK: ["Clicked Through"]},
            on_click={selectors.RESULT_LINK: open_detail},
        )

    record = asyncio.run(build_extractor(FakeLauncher(page_factory=factory)).extract(ISBN))
    assert record.title == "Clicked Through"


def test_details_panel_is_opened_before_gated_fields():
    def open_panel(page):
        page.elements[selectors.ORIGINAL_TITLE_DETAIL] = ["Originaltitel"]
        page.elements[selectors.SERIES_DETAIL] = ["The Saga (#2)"]
        page.elements[selectors.LANGUAGE_DETAIL] = ["English"]

    page = detail_page(buttons={"Book details & editions": open_panel})
    record = asyncio.run(build_extractor(FakeLauncher(page_factory=lambda: page)).extract(ISBN))

    assert "Book details & editions" in page.clicks
    assert record.original_title == "Originaltitel"
    assert record.series == "The Saga"
    assert record.language == "English"


def test_missing_identifier_never_touches_the_browser():
    launcher = FakeLauncher(page_factory=detail_page)
    extractor = build_extractor(launcher)
    for value in (None, "", "   "):
        with pytest.raises(MissingInput):
            asyncio.run(extractor.extract(value))
    assert launcher.launches == 0


def test_sequential_calls_reuse_one_browser():
    launcher = FakeLauncher(page_factory=detail_page)
    extractor = build_extractor(launcher)

    async def scenario():
        await extractor.extract(ISBN)
        await extractor.extract(ISBN)

    asyncio.run(scenario())
    assert launcher.launches == 1
    assert all(ctx.closed for ctx in launcher.browsers[0].contexts)


def test_disconnect_between_calls_triggers_one_relaunch():
    launcher = FakeLauncher(page_factory=detail_page)
    extractor = build_extractor(launcher)

    async def scenario():
        await extractor.extract(ISBN)
        launcher.browsers[0].disconnect()
        return await extractor.extract(ISBN)

    record = asyncio.run(scenario())
    assert record.title == "Example Title"
    assert launcher.launches == 2


def test_first_attempt_failure_is_retried_transparently():
    broken = FakePage(goto_error=PlaywrightError("net::ERR_CONNECTION_RESET"))
    launcher = FakeLauncher(page_factory=_pages(broken, detail_page()))
    extractor = build_extractor(launcher)

    record = asyncio.run(extractor.extract(ISBN))

    assert record.title == "Example Title"
    # the first browser is invalidated before the retry
    assert launcher.launches == 2
    assert launcher.browsers[0].closed is True
    assert launcher.browsers[0].contexts[0].closed is True
    assert launcher.browsers[1].contexts[0].closed is True


def test_two_failures_surface_one_extraction_failed():
    launcher = FakeLauncher(page_factory=lambda: FakePage(goto_error=PlaywrightError("net::ERR_NAME_NOT_RESOLVED")))
    extractor = build_extractor(launcher)

    with pytest.raises(ExtractionFailed) as excinfo:
        asyncio.run(extractor.extract(ISBN))

    assert excinfo.value.attempts == 2
    assert isinstance(excinfo.value.cause, PlaywrightError)
    assert "ERR_NAME_NOT_RESOLVED" in str(excinfo.value)
    contexts = [ctx for browser in launcher.browsers for ctx in browser.contexts]
    assert len(contexts) == 2
    assert all(ctx.closed for ctx in contexts)


def test_missing_hydration_marker_is_a_navigation_timeout():
    launcher = FakeLauncher(page_factory=lambda: FakePage(landing_url=DETAIL_URL))
    extractor = build_extractor(launcher)

    with pytest.raises(ExtractionFailed) as excinfo:
        asyncio.run(extractor.extract(ISBN))
    assert isinstance(excinfo.value.cause, NavigationTimeout)
    assert excinfo.value.cause.label == "detail page hydration"


def test_overall_deadline_bounds_the_whole_scrape(monkeypatch):
    from book_scraper.config import Config

    monkeypatch.setattr(Config, "MIN_TIMEOUT_MS", 10)
    launcher = FakeLauncher(page_factory=detail_page, delay=1)
    extractor = build_extractor(launcher, launch_timeout_ms=5000)

    with pytest.raises(DeadlineExceeded) as excinfo:
        asyncio.run(extractor.extract(ISBN, timeout_ms=50))
    assert excinfo.value.label == "scrape"
    assert excinfo.value.timeout_ms == 50


def test_warmup_loads_home_page_and_closes_context():
    page = FakePage()
    launcher = FakeLauncher(page_factory=lambda: page)
    extractor = build_extractor(launcher)

    assert asyncio.run(extractor.warmup()) == "warmed"
    assert page.visited == ["https://www.goodreads.com"]
    assert launcher.browsers[0].contexts[0].closed is True


def test_undecodable_structured_block_does_not_sink_the_scrape():
    nested = "[" * 100000 + "]" * 100000
    html = (
        f'<html><head><script type="application/ld+json">{nested}</script>'
        '<script type="application/ld+json">'
        '{"@type": "Book", "name": "Example Title", "datePublished": "2010-03-02", "publisher": "Acme Press"}'
        "</script></head><body></body></html>"
    )
    launcher = FakeLauncher(page_factory=lambda: detail_page(html=html))

    record = asyncio.run(build_extractor(launcher).extract(ISBN))

    assert record.title == "Example Title"
    assert record.published_full == "March 2, 2010 by Acme Press"
    assert launcher.launches == 1


def test_warmup_navigation_error_becomes_scraper_error():
    launcher = FakeLauncher(page_factory=lambda: FakePage(goto_error=PlaywrightError("net::ERR_NAME_NOT_RESOLVED")))

    with pytest.raises(ScraperError, match="ERR_NAME_NOT_RESOLVED"):
        asyncio.run(build_extractor(launcher).warmup())
    assert launcher.browsers[0].contexts[0].closed is True
