"""Models package initialization."""
from book_scraper.models.book import BookRecord, ExtractionRequest, ErrorResponse

__all__ = ["BookRecord", "ExtractionRequest", "ErrorResponse"]
