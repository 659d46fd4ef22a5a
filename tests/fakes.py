"""In-memory stand-ins for the Playwright objects the scraper talks to."""
from __future__ import annotations

import asyncio
from typing import Callable, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError


def _parts(selector: str) -> List[str]:
    return [part.strip() for part in selector.split(",") if part.strip()]


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str, has_text=None):
        self.page = page
        self.selector = selector
        self.has_text = has_text

    @property
    def first(self) -> "FakeLocator":
        return self

    def _texts(self) -> List[str]:
        if self.has_text is not None:
            return [label for label in self.page.buttons if self.has_text.search(label)]
        texts: List[str] = []
        for part in _parts(self.selector):
            texts.extend(self.page.elements.get(part, []))
        return texts

    def _missing(self, timeout=None):
        return PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {self.selector}")

    async def _delay(self):
        delay = self.page.delays.get(self.selector)
        if delay:
            await asyncio.sleep(delay)

    async def text_content(self, timeout=None) -> Optional[str]:
        await self._delay()
        texts = self._texts()
        if not texts:
            raise self._missing(timeout)
        return texts[0]

    async def inner_text(self, timeout=None) -> str:
        return await self.text_content(timeout=timeout)

    async def all_text_contents(self) -> List[str]:
        await self._delay()
        return self._texts()

    async def get_attribute(self, name: str, timeout=None) -> Optional[str]:
        await self._delay()
        key = (self.selector, name)
        if key not in self.page.attributes:
            raise self._missing(timeout)
        return self.page.attributes[key]

    async def is_visible(self) -> bool:
        return bool(self._texts())

    async def wait_for(self, state: str = "visible", timeout=None):
        if not self._texts():
            raise self._missing(timeout)

    async def click(self, timeout=None):
        texts = self._texts()
        if not texts:
            raise self._missing(timeout)
        self.page.clicks.append(self.selector if self.has_text is None else texts[0])
        handler = self.page.on_click.get(self.selector)
        if self.has_text is not None:
            handler = self.page.buttons.get(texts[0])
        if handler is not None:
            handler(self.page)


class FakeRoute:
    def __init__(self, resource_type: str):
        self.request = type("Request", (), {"resource_type": resource_type})()
        self.outcome: Optional[str] = None

    async def abort(self):
        self.outcome = "aborted"

    async def continue_(self):
        self.outcome = "continued"


class FakePage:
    """
    A page whose DOM is a dict of selector -> text contents.

    Missing selectors fail immediately with a Playwright timeout error.
    """

    def __init__(
        self,
        elements: Optional[Dict[str, List[str]]] = None,
        attributes: Optional[Dict[tuple, str]] = None,
        html: str = "",
        landing_url: Optional[str] = None,
        on_click: Optional[Dict[str, Callable[["FakePage"], None]]] = None,
        buttons: Optional[Dict[str, Callable[["FakePage"], None]]] = None,
        goto_error: Optional[Exception] = None,
        delays: Optional[Dict[str, float]] = None,
    ):
        self.elements = dict(elements or {})
        self.attributes = dict(attributes or {})
        self.html = html
        self.landing_url = landing_url
        self.on_click = dict(on_click or {})
        self.buttons = dict(buttons or {})
        self.goto_error = goto_error
        self.delays = dict(delays or {})
        self.url = "about:blank"
        self.visited: List[str] = []
        self.clicks: List[str] = []
        self.route_handler = None
        self.default_timeout = None
        self.default_navigation_timeout = None

    def set_default_timeout(self, timeout):
        self.default_timeout = timeout

    def set_default_navigation_timeout(self, timeout):
        self.default_navigation_timeout = timeout

    async def route(self, pattern, handler):
        self.route_handler = handler

    async def goto(self, url: str, wait_until=None, timeout=None):
        self.visited.append(url)
        if self.goto_error is not None:
            raise self.goto_error
        self.url = self.landing_url or url

    def locator(self, selector: str, has_text=None) -> FakeLocator:
        return FakeLocator(self, selector, has_text=has_text)

    async def wait_for_load_state(self, state=None, timeout=None):
        return None

    async def wait_for_selector(self, selector: str, timeout=None, state=None):
        if not self.locator(selector)._texts():
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")
        return object()

    async def content(self) -> str:
        return self.html


class FakeContext:
    def __init__(self, page_factory: Callable[[], FakePage]):
        self.page_factory = page_factory
        self.pages: List[FakePage] = []
        self.closed = False

    async def new_page(self) -> FakePage:
        page = self.page_factory()
        self.pages.append(page)
        return page

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, page_factory: Callable[[], FakePage], context_errors: int = 0):
        self.page_factory = page_factory
        self.context_errors = context_errors
        self.contexts: List[FakeContext] = []
        self.context_options: List[dict] = []
        self.connected = True
        self.closed = False
        self.handlers: Dict[str, List[Callable]] = {}

    def on(self, event: str, handler: Callable):
        self.handlers.setdefault(event, []).append(handler)

    def is_connected(self) -> bool:
        return self.connected

    def disconnect(self):
        """Simulate the engine dropping the browser process."""
        self.connected = False
        for handler in self.handlers.get("disconnected", []):
            handler(self)

    async def new_context(self, **options) -> FakeContext:
        if self.context_errors:
            self.context_errors -= 1
            raise PlaywrightError("Target page, context or browser has been closed")
        self.context_options.append(options)
        context = FakeContext(self.page_factory)
        self.contexts.append(context)
        return context

    async def close(self):
        self.closed = True
        self.connected = False


class FakeLauncher:
    """Hands out FakeBrowsers; counts launches."""

    def __init__(
        self,
        page_factory: Optional[Callable[[], FakePage]] = None,
        delay: float = 0.0,
        error: Optional[Exception] = None,
        context_errors: int = 0,
    ):
        self.page_factory = page_factory or FakePage
        self.delay = delay
        self.error = error
        self.context_errors = context_errors
        self.browsers: List[FakeBrowser] = []
        self.stopped = False

    @property
    def launches(self) -> int:
        return len(self.browsers)

    async def launch(self) -> FakeBrowser:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        browser = FakeBrowser(self.page_factory, context_errors=self.context_errors)
        self.context_errors = 0
        self.browsers.append(browser)
        return browser

    async def stop(self):
        self.stopped = True
