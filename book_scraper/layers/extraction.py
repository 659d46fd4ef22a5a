"""
Extraction Orchestrator for the Book Metadata Scraper.
Sequences navigation, disambiguation, concurrent field extraction and
record assembly, and owns the retry policy.
"""
import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional
from urllib.parse import quote_plus

from playwright.async_api import BrowserContext, Page, Route
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from book_scraper import selectors
from book_scraper.adapters.browser_session import BrowserSessionManager
from book_scraper.adapters.structured_data import (
    StructuredDataRecord,
    extract_jsonld_blocks,
    parse_structured_data,
)
from book_scraper.config import config
from book_scraper.errors import ExtractionFailed, MissingInput, NavigationTimeout, ScraperError
from book_scraper.layers.field_chain import (
    GATE_DESCRIPTION,
    GATE_DETAILS,
    ExtractionSource,
    FieldChain,
)
from book_scraper.models.book import BookRecord, ExtractionRequest
from book_scraper.utils.deadline import best_effort, succeeded, with_deadline
from book_scraper.utils.logger import LayerLogger


class ExtractionState(str, Enum):
    """Where an attempt currently is; used for logging failures."""
    START = "start"
    NAVIGATING = "navigating"
    DISAMBIGUATING = "disambiguating"
    EXTRACTING = "extracting"
    ASSEMBLING = "assembling"
    DONE = "done"
    FAILED = "failed"


class BookExtractor:
    """
    Extraction Orchestrator.

    One extract() call runs up to max_attempts attempts of the whole
    navigation-to-assembly sequence. Before the retry the shared browser is
    invalidated so a poisoned process does not taint it. Every attempt
    closes its own context, whatever the outcome.
    """

    def __init__(
        self,
        sessions: BrowserSessionManager,
        chain: Optional[FieldChain] = None,
        max_attempts: Optional[int] = None,
        retry_pause_ms: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.sessions = sessions
        self.chain = chain or FieldChain()
        self.max_attempts = max_attempts or config.MAX_ATTEMPTS
        self.retry_pause_ms = config.RETRY_PAUSE_MS if retry_pause_ms is None else retry_pause_ms
        self.sleep = sleep
        self.logger = LayerLogger("extraction")

    async def extract(self, identifier: Optional[str], timeout_ms: Optional[int] = None) -> BookRecord:
        """
        Extract the book record for an identifier.

        Args:
            identifier: Caller-supplied id (e.g. an ISBN), echoed unchanged
            timeout_ms: Overall budget; clamped by configuration

        Raises:
            MissingInput: Identifier missing or blank
            DeadlineExceeded: The overall budget ran out
            ExtractionFailed: Every attempt failed
        """
        if identifier is None or not identifier.strip():
            raise MissingInput("Missing ?identifier=")

        request = ExtractionRequest(
            identifier=identifier,
            deadline_ms=config.clamp_timeout(timeout_ms),
        )
        self.logger.log_action(
            "extraction",
            "started",
            identifier=request.identifier,
            deadline_ms=request.deadline_ms,
        )
        return await with_deadline(self._run_with_retry(request), request.deadline_ms, "scrape")

    async def _run_with_retry(self, request: ExtractionRequest) -> BookRecord:
        for attempt in range(1, self.max_attempts + 1):
            try:
                record = await self._attempt(request, attempt)
            except Exception as e:
                if attempt >= self.max_attempts:
                    self.logger.log_error(
                        str(e),
                        error_type=type(e).__name__,
                        identifier=request.identifier,
                        attempt=attempt,
                        state=ExtractionState.FAILED.value,
                    )
                    raise ExtractionFailed(e, attempts=attempt) from e

                self.logger.log_fallback(
                    from_source=f"attempt_{attempt}",
                    to_source=f"attempt_{attempt + 1}",
                    reason=f"{type(e).__name__}: {e}",
                    identifier=request.identifier,
                )
                await self.sessions.invalidate()
                await self.sleep(self.retry_pause_ms / 1000)
                continue

            self.logger.log_action(
                "extraction",
                "completed",
                identifier=request.identifier,
                attempt=attempt,
            )
            return record

        # max_attempts < 1 is a configuration error
        raise ExtractionFailed(RuntimeError("no attempts configured"), attempts=0)

    async def _attempt(self, request: ExtractionRequest, attempt: int) -> BookRecord:
        state = ExtractionState.START
        context: Optional[BrowserContext] = None
        try:
            context = await self.sessions.acquire_context()
            page = await context.new_page()
            await self._prepare_page(page)

            state = ExtractionState.NAVIGATING
            await self._navigate(page, request.identifier)

            state = ExtractionState.DISAMBIGUATING
            await self._open_detail_page(page)

            state = ExtractionState.EXTRACTING
            values = await self._extract_fields(page)

            state = ExtractionState.ASSEMBLING
            record = self._assemble(request.identifier, values)
            state = ExtractionState.DONE
            return record
        except Exception as e:
            self.logger.log_error(
                str(e),
                error_type=type(e).__name__,
                identifier=request.identifier,
                attempt=attempt,
                state=state.value,
            )
            raise
        finally:
            if context is not None:
                await best_effort(context.close(), "close context")

    # =========================================================================
    # NAVIGATION
    # =========================================================================

    async def _prepare_page(self, page: Page):
        """Default timeouts and resource blocking."""
        page.set_default_navigation_timeout(config.NAVIGATION_TIMEOUT_MS)
        page.set_default_timeout(config.ACTION_TIMEOUT_MS)
        blocked = set(config.blocked_resource_types())

        async def block_heavy_assets(route: Route):
            if route.request.resource_type in blocked:
                await route.abort()
            else:
                await route.continue_()

        await page.route("**/*", block_heavy_assets)

    async def _navigation_step(self, operation: Awaitable, label: str, timeout_ms: int):
        """Run a navigation step; engine timeouts become NavigationTimeout."""
        try:
            return await with_deadline(operation, timeout_ms, label, NavigationTimeout)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(label, timeout_ms) from e

    async def _navigate(self, page: Page, identifier: str):
        url = config.search_url(quote_plus(identifier))
        self.logger.log_action("navigate", "started", url=url)
        await self._navigation_step(
            page.goto(url, wait_until="domcontentloaded"),
            "search navigation",
            config.NAVIGATION_TIMEOUT_MS,
        )
        await best_effort(
            page.locator(selectors.OVERLAY_CLOSE).first.click(timeout=config.OVERLAY_TIMEOUT_MS),
            "dismiss overlay",
        )

    async def _follow_first_result(self, page: Page):
        link = page.locator(selectors.RESULT_LINK).first
        await link.wait_for(state="visible", timeout=config.RESULT_LINK_TIMEOUT_MS)
        await link.click()
        await page.wait_for_load_state("domcontentloaded")

    async def _open_detail_page(self, page: Page):
        """From a search result page, follow the first result; then wait for hydration."""
        if selectors.DETAIL_PATH not in page.url:
            self.logger.log_decision(
                decision="follow_first_result",
                reason="search did not redirect to a detail page",
                url=page.url,
            )
            await self._navigation_step(
                self._follow_first_result(page),
                "search result",
                config.RESULT_LINK_TIMEOUT_MS + config.NAVIGATION_TIMEOUT_MS,
            )

        await self._navigation_step(
            page.wait_for_selector(selectors.HYDRATION_MARKER, timeout=config.HYDRATION_TIMEOUT_MS),
            "detail page hydration",
            config.HYDRATION_TIMEOUT_MS,
        )

    # =========================================================================
    # EXTRACTION
    # =========================================================================

    async def _load_structured_data(self, page: Page) -> Optional[StructuredDataRecord]:
        html = await best_effort(
            with_deadline(page.content(), config.ACTION_TIMEOUT_MS, "page content"),
            "read page content",
        )
        return parse_structured_data(extract_jsonld_blocks(html))

    async def _expand_description(self, page: Page) -> bool:
        return await succeeded(
            page.locator(selectors.DESCRIPTION_MORE_BUTTON).click(timeout=config.EXPAND_TIMEOUT_MS),
            "expand description",
        )

    async def _details_visible(self, page: Page, timeout_ms: int) -> bool:
        marker = page.locator(selectors.DETAILS_VISIBLE).first
        if timeout_ms <= 0:
            return bool(await best_effort(marker.is_visible(), "check details visible"))
        return await succeeded(
            with_deadline(marker.wait_for(state="visible", timeout=timeout_ms), timeout_ms, "details panel"),
            "wait details panel",
        )

    async def _open_details(self, page: Page) -> bool:
        """Best-effort: open the collapsed book details panel."""
        if await self._details_visible(page, 0):
            return True
        for label in selectors.DETAILS_BUTTON_LABELS:
            button = page.locator("button", has_text=label).first
            if not await succeeded(button.wait_for(state="visible", timeout=1000), "find details button"):
                continue
            if not await succeeded(button.click(timeout=800), "click details button"):
                continue
            await self.sleep(0.35)
            if await self._details_visible(page, 900):
                self.logger.log_action("details_panel", "opened", label=label.pattern)
                return True
        return False

    async def _extract_fields(self, page: Page) -> dict:
        gates = {
            GATE_DESCRIPTION: asyncio.ensure_future(self._expand_description(page)),
            GATE_DETAILS: asyncio.ensure_future(self._open_details(page)),
        }
        source = ExtractionSource(
            page,
            structured=self._load_structured_data(page),
            gates=gates,
            grace_ms=config.DETAILS_GRACE_MS,
            body_timeout_ms=config.ACTION_TIMEOUT_MS,
        )
        try:
            return await self.chain.extract_all(source)
        finally:
            await source.close()

    def _assemble(self, identifier: str, values: dict) -> BookRecord:
        record = BookRecord(identifier=identifier, **values)
        self.logger.log_fields(
            identifier=identifier,
            fields_present=record.get_present_fields(),
            fields_missing=record.get_missing_fields(),
        )
        return record

    # =========================================================================
    # WARMUP
    # =========================================================================

    async def warmup(self, timeout_ms: Optional[int] = None) -> str:
        """
        Pre-launch the browser and load the catalog home page once.

        Raises:
            ScraperError: Launch, navigation or deadline failure, with the
                engine message as its text
        """
        budget = timeout_ms or config.WARMUP_TIMEOUT_MS
        try:
            await with_deadline(self._warm_page(), budget, "warmup")
        except PlaywrightError as e:
            self.logger.log_error(str(e), error_type="warmup_failed")
            raise ScraperError(str(e) or type(e).__name__) from e
        return "warmed"

    async def _warm_page(self):
        context = await self.sessions.acquire_context()
        try:
            page = await context.new_page()
            page.set_default_navigation_timeout(config.NAVIGATION_TIMEOUT_MS)
            page.set_default_timeout(config.ACTION_TIMEOUT_MS)
            await page.goto(config.CATALOG_BASE_URL, wait_until="domcontentloaded")
        finally:
            await best_effort(context.close(), "close context")
