"""
Field Extraction Strategy Chain for the Book Metadata Scraper.

Each record field has an ordered list of strategies. The first strategy
that finishes inside its own timeout and yields a non-empty value after
post-processing wins; if none does, the field is absent. Fields are
resolved concurrently, strategies within a field sequentially.
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from playwright.async_api import Page

from book_scraper import selectors
from book_scraper.adapters.structured_data import StructuredDataRecord
from book_scraper.utils.deadline import best_effort, with_deadline
from book_scraper.utils.logger import LayerLogger
from book_scraper.utils.text import (
    choose_published,
    clean_list,
    clean_text,
    find_published_line,
    parse_count,
    parse_format,
    parse_page_count,
    parse_rating,
    strip_more,
    strip_sequence_marker,
)

# Gate names
GATE_DESCRIPTION = "description"
GATE_DETAILS = "details"


class ExtractionSource:
    """
    Everything a strategy can read from during one attempt.

    Structured data and body text are loaded once and shared between
    fields; gates are page interactions that some fields wait on for at
    most grace_ms.
    """

    def __init__(
        self,
        page: Page,
        structured: Optional[Awaitable[Optional[StructuredDataRecord]]] = None,
        gates: Optional[Dict[str, "asyncio.Future"]] = None,
        grace_ms: int = 700,
        body_timeout_ms: int = 4000,
    ):
        self.page = page
        self.gates = gates or {}
        self.grace_ms = grace_ms
        self.body_timeout_ms = body_timeout_ms
        self._structured = asyncio.ensure_future(structured) if structured is not None else None
        self._body_text: Optional[asyncio.Future] = None

    async def structured_data(self) -> Optional[StructuredDataRecord]:
        if self._structured is None:
            return None
        return await asyncio.shield(self._structured)

    async def body_text(self) -> Optional[str]:
        if self._body_text is None:
            self._body_text = asyncio.ensure_future(best_effort(
                self.page.locator(selectors.BODY).inner_text(timeout=self.body_timeout_ms),
                "read body text",
            ))
        return await asyncio.shield(self._body_text)

    async def wait_gate(self, name: str):
        """Wait until the named interaction settles or the grace period ends."""
        gate = self.gates.get(name)
        if gate is None or gate.done():
            return
        await asyncio.wait({gate}, timeout=self.grace_ms / 1000)

    def pending(self) -> List["asyncio.Future"]:
        tasks = list(self.gates.values())
        if self._structured is not None:
            tasks.append(self._structured)
        if self._body_text is not None:
            tasks.append(self._body_text)
        return [t for t in tasks if not t.done()]

    async def close(self):
        """Cancel whatever is still running; results are no longer needed."""
        pending = self.pending()
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


# =========================================================================
# STRATEGIES
# =========================================================================


class Strategy:
    """One way of reading a raw field value."""

    timeout_ms: int = 4000

    async def read(self, source: ExtractionSource) -> Any:
        raise NotImplementedError

    def describe(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class DomText(Strategy):
    """Text content of the first element matching a selector."""
    selector: str
    timeout_ms: int = 4000

    async def read(self, source: ExtractionSource) -> Any:
        return await source.page.locator(self.selector).first.text_content(timeout=self.timeout_ms)

    def describe(self) -> str:
        return f"dom_text:{self.selector}"


@dataclass(frozen=True)
class DomTexts(Strategy):
    """Text contents of every element matching a selector, in document order."""
    selector: str
    timeout_ms: int = 4000

    async def read(self, source: ExtractionSource) -> Any:
        return await source.page.locator(self.selector).all_text_contents()

    def describe(self) -> str:
        return f"dom_texts:{self.selector}"


@dataclass(frozen=True)
class DomAttribute(Strategy):
    """An attribute of the first element matching a selector."""
    selector: str
    attribute: str
    timeout_ms: int = 4000

    async def read(self, source: ExtractionSource) -> Any:
        return await source.page.locator(self.selector).first.get_attribute(
            self.attribute, timeout=self.timeout_ms
        )

    def describe(self) -> str:
        return f"dom_attribute:{self.selector}@{self.attribute}"


@dataclass(frozen=True)
class StructuredValue(Strategy):
    """A value derived from the page's JSON-LD book object."""
    attribute: str
    timeout_ms: int = 4000

    async def read(self, source: ExtractionSource) -> Any:
        record = await source.structured_data()
        if record is None:
            return None
        return getattr(record, self.attribute)

    def describe(self) -> str:
        return f"structured:{self.attribute}"


@dataclass(frozen=True)
class BodyPattern(Strategy):
    """A value found by scanning the rendered page text."""
    finder: Callable[[str], Optional[str]]
    timeout_ms: int = 4000

    async def read(self, source: ExtractionSource) -> Any:
        text = await source.body_text()
        return self.finder(text) if text else None

    def describe(self) -> str:
        return f"body_pattern:{getattr(self.finder, '__name__', 'finder')}"


@dataclass(frozen=True)
class FieldSpec:
    """A record field: its strategies, post-processing and optional gate."""
    name: str
    strategies: Tuple[Strategy, ...]
    postprocess: Callable[[Any], Any] = clean_text
    gate: Optional[str] = None


def published_value(raw: Any) -> Optional[str]:
    """Publication line from a single string or a list of candidates."""
    if isinstance(raw, (list, tuple)):
        return choose_published(raw)
    return clean_text(raw)


def is_present(value: Any) -> bool:
    return value is not None and value != "" and value != []


FIELD_CHAIN: Tuple[FieldSpec, ...] = (
    FieldSpec("title", (
        DomText(selectors.TITLE, 6000),
        DomText(selectors.TITLE_LEGACY, 3500),
        StructuredValue("title"),
    ), postprocess=strip_sequence_marker),
    FieldSpec("subtitle", (
        DomText(selectors.SUBTITLE, 3500),
        DomText(selectors.SUBTITLE_LEGACY, 3500),
        DomText(selectors.SUBTITLE_TITLE_SECTION, 3500),
        DomText(selectors.SUBTITLE_TEST_ID_SECTION, 3500),
    )),
    FieldSpec("original_title", (
        DomText(selectors.ORIGINAL_TITLE_CONTENT, 4000),
        DomText(selectors.ORIGINAL_TITLE_DETAIL, 3500),
    ), gate=GATE_DETAILS),
    FieldSpec("author", (
        DomText(selectors.AUTHOR, 6000),
        DomText(selectors.AUTHOR_TEST_ID, 3500),
        StructuredValue("author"),
    )),
    FieldSpec("cover_url", (
        DomAttribute(selectors.COVER_META, "content", 3000),
        StructuredValue("cover_url"),
        DomAttribute(selectors.COVER_IMAGE, "src", 2000),
    )),
    FieldSpec("average_rating", (
        DomText(selectors.RATING, 5000),
        StructuredValue("rating_value"),
    ), postprocess=parse_rating),
    FieldSpec("rating_count", (
        DomText(selectors.RATINGS_COUNT, 5000),
        StructuredValue("rating_count"),
    ), postprocess=parse_count),
    FieldSpec("description", (
        DomText(selectors.DESCRIPTION, 6000),
        DomText(selectors.DESCRIPTION_LEGACY, 3500),
        StructuredValue("description"),
    ), postprocess=strip_more, gate=GATE_DESCRIPTION),
    FieldSpec("categories", (
        DomTexts(selectors.GENRES, 5000),
        DomTexts(selectors.GENRES_LINKS, 3000),
    ), postprocess=clean_list),
    FieldSpec("language", (
        DomText(selectors.LANGUAGE_DETAIL, 5000),
        StructuredValue("language"),
    ), gate=GATE_DETAILS),
    FieldSpec("format", (
        DomText(selectors.PAGES_FORMAT, 4000),
        DomText(selectors.FORMAT_DETAIL, 4000),
        StructuredValue("book_format"),
    ), postprocess=parse_format),
    FieldSpec("page_count", (
        DomText(selectors.PAGES_FORMAT, 4000),
        DomText(selectors.FORMAT_DETAIL, 4000),
        StructuredValue("page_count"),
    ), postprocess=parse_page_count),
    FieldSpec("series", (
        DomText(selectors.SERIES_DETAIL, 5000),
    ), postprocess=strip_sequence_marker, gate=GATE_DETAILS),
    FieldSpec("published_full", (
        StructuredValue("published_full"),
        DomTexts(selectors.PUBLISHED_DETAIL, 4000),
        DomTexts(selectors.PUBLICATION_INFO, 3000),
        BodyPattern(find_published_line, 4000),
    ), postprocess=published_value, gate=GATE_DETAILS),
)


class FieldChain:
    """
    Runs the strategy table against one page.

    Strategy failures (engine errors, timeouts) only mean "try the next
    one"; they are never raised from here.
    """

    def __init__(self, fields: Sequence[FieldSpec] = FIELD_CHAIN):
        self.fields = tuple(fields)
        self.logger = LayerLogger("field_chain")

    async def extract_field(self, spec: FieldSpec, source: ExtractionSource) -> Tuple[Any, Optional[str]]:
        """
        Resolve one field.

        Returns:
            (value, strategy description) or (None, None) when absent
        """
        if spec.gate:
            await source.wait_gate(spec.gate)

        for strategy in spec.strategies:
            label = f"{spec.name}:{strategy.describe()}"
            raw = await best_effort(
                with_deadline(strategy.read(source), strategy.timeout_ms, label),
                label,
            )
            if raw is None:
                continue
            value = spec.postprocess(raw)
            if is_present(value):
                return value, strategy.describe()
        return None, None

    async def extract_all(self, source: ExtractionSource) -> Dict[str, Any]:
        """Resolve every field concurrently and return name -> value."""
        results = await asyncio.gather(*(self.extract_field(spec, source) for spec in self.fields))

        values: Dict[str, Any] = {}
        sources: Dict[str, str] = {}
        for spec, (value, strategy) in zip(self.fields, results):
            values[spec.name] = value
            if strategy:
                sources[spec.name] = strategy

        self.logger.log_action(
            "field_extraction",
            "completed",
            resolved=sources,
            absent=[name for name, value in values.items() if value is None],
        )
        return values
