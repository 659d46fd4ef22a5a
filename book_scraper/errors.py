"""
Error types for the Book Metadata Scraper.

Every error surfaced to a caller derives from ScraperError and carries a
human-readable message plus the HTTP status the API layer answers with.
"""
from typing import Optional


class ScraperError(Exception):
    """Base class for all scraper failures."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingInput(ScraperError):
    """No identifier was supplied."""

    status_code = 400


class DeadlineExceeded(ScraperError):
    """An operation did not settle within its wall-clock budget."""

    def __init__(self, label: str, timeout_ms: int):
        super().__init__(f"{label} timed out after {timeout_ms}ms")
        self.label = label
        self.timeout_ms = timeout_ms


class LaunchTimeout(DeadlineExceeded):
    """The shared browser did not start in time."""


class NavigationTimeout(DeadlineExceeded):
    """A page failed to load or disambiguate in time."""


class LaunchError(ScraperError):
    """The automation engine reported a startup failure."""


class ExtractionFailed(ScraperError):
    """Terminal failure after the retry budget was spent."""

    def __init__(self, cause: Exception, attempts: Optional[int] = None):
        detail = str(cause) or type(cause).__name__
        if attempts:
            message = f"extraction failed after {attempts} attempts: {detail}"
        else:
            message = f"extraction failed: {detail}"
        super().__init__(message)
        self.cause = cause
        self.attempts = attempts
