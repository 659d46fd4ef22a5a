"""
Configuration management for the Book Metadata Scraper.
Handles environment variables and application settings.
"""
import os
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()


def _env_list(name: str, default: str) -> List[str]:
    """Read a comma-separated environment variable into a list."""
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    """Application configuration loaded from environment variables."""

    # Server settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "10000"))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    VERSION: str = "1.0.0"

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")  # json or console

    # Per-request budget (milliseconds), clamped into [MIN, MAX]
    DEFAULT_TIMEOUT_MS: int = int(os.getenv("DEFAULT_TIMEOUT_MS", "30000"))
    MIN_TIMEOUT_MS: int = int(os.getenv("MIN_TIMEOUT_MS", "5000"))
    MAX_TIMEOUT_MS: int = int(os.getenv("MAX_TIMEOUT_MS", "60000"))

    # Inner budgets, each shorter than the request budget
    LAUNCH_TIMEOUT_MS: int = int(os.getenv("LAUNCH_TIMEOUT_MS", "20000"))
    NAVIGATION_TIMEOUT_MS: int = int(os.getenv("NAVIGATION_TIMEOUT_MS", "18000"))
    RESULT_LINK_TIMEOUT_MS: int = int(os.getenv("RESULT_LINK_TIMEOUT_MS", "10000"))
    HYDRATION_TIMEOUT_MS: int = int(os.getenv("HYDRATION_TIMEOUT_MS", "8000"))
    ACTION_TIMEOUT_MS: int = int(os.getenv("ACTION_TIMEOUT_MS", "4000"))
    OVERLAY_TIMEOUT_MS: int = int(os.getenv("OVERLAY_TIMEOUT_MS", "2500"))
    EXPAND_TIMEOUT_MS: int = int(os.getenv("EXPAND_TIMEOUT_MS", "2000"))
    DETAILS_GRACE_MS: int = int(os.getenv("DETAILS_GRACE_MS", "700"))
    WARMUP_TIMEOUT_MS: int = int(os.getenv("WARMUP_TIMEOUT_MS", "20000"))

    # Retry policy
    MAX_ATTEMPTS: int = int(os.getenv("MAX_ATTEMPTS", "2"))
    RETRY_PAUSE_MS: int = int(os.getenv("RETRY_PAUSE_MS", "400"))

    # Browser settings
    BROWSER_HEADLESS: bool = os.getenv("BROWSER_HEADLESS", "true").lower() == "true"
    BROWSER_ARGS: List[str] = _env_list(
        "BROWSER_ARGS",
        "--no-sandbox,--disable-dev-shm-usage,--disable-gpu,--disable-extensions,--no-zygote",
    )
    BLOCK_RESOURCE_TYPES: List[str] = _env_list("BLOCK_RESOURCE_TYPES", "image,font,media")
    KEEP_STYLESHEETS: bool = os.getenv("KEEP_STYLESHEETS", "false").lower() == "true"
    USER_AGENT: str = os.getenv(
        "USER_AGENT",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/123.0 Safari/537.36",
    )
    PLAYWRIGHT_BROWSERS_PATH: Optional[str] = os.getenv("PLAYWRIGHT_BROWSERS_PATH")

    # Target catalog
    CATALOG_BASE_URL: str = os.getenv("CATALOG_BASE_URL", "https://www.goodreads.com")

    @classmethod
    def clamp_timeout(cls, timeout_ms: Optional[int]) -> int:
        """
        Resolve a caller-supplied request budget.

        Missing or non-positive values use DEFAULT_TIMEOUT_MS; everything
        else is clamped into [MIN_TIMEOUT_MS, MAX_TIMEOUT_MS].
        """
        if timeout_ms is None or timeout_ms <= 0:
            return cls.DEFAULT_TIMEOUT_MS
        return max(cls.MIN_TIMEOUT_MS, min(cls.MAX_TIMEOUT_MS, timeout_ms))

    @classmethod
    def blocked_resource_types(cls) -> List[str]:
        """Return resource types aborted during navigation."""
        blocked = list(cls.BLOCK_RESOURCE_TYPES)
        if not cls.KEEP_STYLESHEETS and "stylesheet" not in blocked:
            blocked.append("stylesheet")
        return blocked

    @classmethod
    def search_url(cls, query: str) -> str:
        """Search page URL for an already-encoded query."""
        return f"{cls.CATALOG_BASE_URL.rstrip('/')}/search?q={query}"


config = Config()
