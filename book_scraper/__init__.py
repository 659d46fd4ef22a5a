"""Book Metadata Scraper: resilient headless-browser extraction of book records."""

__version__ = "1.0.0"
