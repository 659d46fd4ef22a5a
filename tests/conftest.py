from __future__ import annotations

import json

import pytest

from book_scraper import selectors
from book_scraper.adapters.browser_session import BrowserSessionManager
from book_scraper.config import Config
from book_scraper.layers.extraction import BookExtractor

from tests.fakes import FakeLauncher, FakePage

DETAIL_URL = "https://www.goodreads.com/book/show/12345-example-title"


async def no_sleep(_seconds: float) -> None:
    return None


def jsonld(*objects) -> str:
    scripts = "".join(
        f'<script type="application/ld+json">{json.dumps(obj)}</script>' for obj in objects
    )
    return f"<html><head>{scripts}</head><body></body></html>"


def detail_page(**overrides) -> FakePage:
    """A hydrated detail page with a title and one JSON-LD Book block."""
    options = {
        "elements": {selectors.TITLE: ["Example Title"]},
        "html": jsonld({
            "@context": "https://schema.org",
            "@type": "Book",
            "name": "Example Title",
            "datePublished": "2010-03-02",
            "publisher": {"@type": "Organization", "name": "Acme Press"},
        }),
        "landing_url": DETAIL_URL,
    }
    options.update(overrides)
    return FakePage(**options)


def build_extractor(launcher: FakeLauncher, **kwargs) -> BookExtractor:
    sessions = BrowserSessionManager(launcher=launcher, launch_timeout_ms=kwargs.pop("launch_timeout_ms", 2000))
    return BookExtractor(sessions, sleep=no_sleep, **kwargs)


@pytest.fixture(autouse=True)
def fast_config(monkeypatch):
    monkeypatch.setattr(Config, "DETAILS_GRACE_MS", 20)
    monkeypatch.setattr(Config, "RETRY_PAUSE_MS", 0)
    monkeypatch.setattr(Config, "CATALOG_BASE_URL", "https://www.goodreads.com")
    yield
