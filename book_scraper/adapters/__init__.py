"""Adapters package initialization."""
from book_scraper.adapters.browser_session import BrowserSessionManager, PlaywrightLauncher
from book_scraper.adapters.structured_data import StructuredDataRecord, parse_structured_data

__all__ = [
    "BrowserSessionManager",
    "PlaywrightLauncher",
    "StructuredDataRecord",
    "parse_structured_data",
]
