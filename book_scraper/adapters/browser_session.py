"""
Browser session adapter for the Book Metadata Scraper.
Owns the one shared headless browser: lazy launch, reuse across requests,
launch deduplication and recreation after a disconnect or failure.
"""
import asyncio
import os
from typing import Any, Dict, List, Optional

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from book_scraper.config import config
from book_scraper.errors import LaunchError, LaunchTimeout
from book_scraper.utils.deadline import best_effort, with_deadline
from book_scraper.utils.logger import LayerLogger


class PlaywrightLauncher:
    """
    Starts Chromium through the Playwright driver.

    The driver itself is started once and kept until stop(); each launch()
    returns a fresh Browser.
    """

    def __init__(self, headless: Optional[bool] = None, args: Optional[List[str]] = None):
        self.headless = config.BROWSER_HEADLESS if headless is None else headless
        self.args = list(config.BROWSER_ARGS if args is None else args)
        self._playwright: Optional[Playwright] = None
        if config.PLAYWRIGHT_BROWSERS_PATH:
            os.environ.setdefault("PLAYWRIGHT_BROWSERS_PATH", config.PLAYWRIGHT_BROWSERS_PATH)

    async def launch(self) -> Browser:
        """Launch a new headless Chromium."""
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        return await self._playwright.chromium.launch(headless=self.headless, args=self.args)

    async def stop(self):
        """Stop the Playwright driver."""
        playwright, self._playwright = self._playwright, None
        if playwright is not None:
            await playwright.stop()


class BrowserSessionManager:
    """
    Session lifecycle for the shared browser.

    Key principles:
    - At most one launch in flight; concurrent callers await the same task
    - The current handle is replaced by plain assignment, never half-built
    - A disconnect clears the handle so the next caller relaunches
    - Contexts are handed out per attempt and owned by the caller
    """

    def __init__(
        self,
        launcher: Optional[Any] = None,
        launch_timeout_ms: Optional[int] = None,
        context_options: Optional[Dict[str, Any]] = None,
    ):
        self.launcher = launcher or PlaywrightLauncher()
        self.launch_timeout_ms = launch_timeout_ms or config.LAUNCH_TIMEOUT_MS
        self.context_options = context_options or {"user_agent": config.USER_AGENT}
        self.logger = LayerLogger("browser_session")
        self.launch_count = 0
        self._browser: Optional[Browser] = None
        self._launching: Optional[asyncio.Task] = None

    @property
    def is_connected(self) -> bool:
        """True when a live browser handle is held."""
        browser = self._browser
        return browser is not None and browser.is_connected()

    async def get_browser(self) -> Browser:
        """
        Return the shared browser, launching it if needed.

        Raises:
            LaunchTimeout: The launch did not finish within its budget
            LaunchError: The engine failed to start
        """
        browser = self._browser
        if browser is not None and browser.is_connected():
            return browser

        # No await between the check and the assignment: the latch is atomic
        # with respect to other coroutines on this loop.
        if self._launching is None:
            self._launching = asyncio.ensure_future(self._launch_once())
            self._launching.add_done_callback(self._retrieve_launch_result)
        else:
            self.logger.log_decision(
                decision="await_inflight_launch",
                reason="launch already in progress",
            )

        return await with_deadline(
            asyncio.shield(self._launching),
            self.launch_timeout_ms,
            "Chromium launch",
            LaunchTimeout,
        )

    async def _launch_once(self) -> Browser:
        self.logger.log_action("browser_launch", "started", launch_number=self.launch_count + 1)
        try:
            self.launch_count += 1
            try:
                browser = await self.launcher.launch()
            except PlaywrightError as e:
                self.logger.log_error(str(e), error_type="launch_error")
                raise LaunchError(f"Chromium launch failed: {e}") from e
            browser.on("disconnected", self._on_disconnected)
            self._browser = browser
            self.logger.log_action("browser_launch", "completed", launch_number=self.launch_count)
            return browser
        finally:
            self._launching = None

    def _retrieve_launch_result(self, task: asyncio.Task):
        # Waiters may all have timed out; consume the outcome so it is not
        # reported as an unretrieved task exception.
        if not task.cancelled():
            task.exception()

    def _on_disconnected(self, browser: Browser):
        """Handle the engine's disconnect event for a launched browser."""
        if self._browser is browser:
            self._browser = None
            self.logger.log_action("browser_disconnected", "detected")

    async def acquire_context(self) -> BrowserContext:
        """
        Create a fresh context on the shared browser.

        A context failure on an existing handle marks it poisoned: it is
        closed, dropped, and exactly one fresh launch is attempted.
        """
        browser = await self.get_browser()
        try:
            return await browser.new_context(**self.context_options)
        except PlaywrightError as e:
            self.logger.log_fallback(
                from_source="existing_browser",
                to_source="fresh_launch",
                reason=f"context creation failed: {e}",
            )
            await self.invalidate(browser)

        browser = await self.get_browser()
        return await browser.new_context(**self.context_options)

    async def invalidate(self, browser: Optional[Browser] = None):
        """
        Drop the shared handle and close it, ignoring close errors.

        When a specific browser is given, only that handle is dropped; a
        newer one installed meanwhile is left alone.
        """
        if browser is None:
            browser = self._browser
        if browser is None:
            return
        if self._browser is browser:
            self._browser = None
        self.logger.log_action("browser_invalidate", "started")
        await best_effort(browser.close(), "close browser")

    async def warm_up(self) -> bool:
        """Launch ahead of the first request; failures are only logged."""
        try:
            await self.get_browser()
        except (LaunchError, LaunchTimeout) as e:
            self.logger.log_error(str(e), error_type="warm_launch_failed")
            return False
        self.logger.log_action("warm_launch", "completed")
        return True

    async def shutdown(self):
        """Close the browser and stop the driver."""
        await self.invalidate()
        stop = getattr(self.launcher, "stop", None)
        if stop is not None:
            await best_effort(stop(), "stop playwright")
