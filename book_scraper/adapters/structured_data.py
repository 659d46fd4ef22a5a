"""
Structured-data (JSON-LD) adapter for the Book Metadata Scraper.
Reads schema.org blocks embedded in a detail page and derives fallback
values for the record fields.
"""
import calendar
import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from bs4 import BeautifulSoup

from book_scraper.utils.logger import LayerLogger
from book_scraper.utils.text import clean_text, parse_count, parse_rating

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

_ISO_PARTIAL_DATE = re.compile(r"^(\d{4})(?:-(\d{2}))?(?:-(\d{2}))?(?:T[\d:.]+(?:Z|[+-]\d{2}:?\d{2})?)?$")
_BOOK_TYPE = re.compile(r"\bbook\b", re.IGNORECASE)

logger = LayerLogger("structured_data")


@dataclass
class StructuredDataRecord:
    """
    Flattened JSON-LD pool of one page and the canonical book object.

    The derived attributes are already normalized; each one is None when
    the book object does not provide it.
    """
    nodes: List[Dict[str, Any]]
    book: Dict[str, Any]
    title: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None
    published_full: Optional[str] = None
    cover_url: Optional[str] = None
    language: Optional[str] = None
    book_format: Optional[str] = None
    page_count: Optional[int] = None
    rating_value: Optional[float] = None
    rating_count: Optional[int] = None
    isbn: Optional[str] = None
    types_found: List[str] = field(default_factory=list)


def extract_jsonld_blocks(html: Optional[str]) -> List[str]:
    """Return the raw text of every <script type="application/ld+json">."""
    if not html:
        return []
    soup = BeautifulSoup(html, "lxml")
    blocks = []
    for script in soup.find_all("script", type="application/ld+json"):
        text = script.string or script.get_text()
        if text and text.strip():
            blocks.append(text)
    return blocks


def flatten_jsonld(data: Any, into: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
    """
    Flatten JSON-LD into a list of objects in document order.

    Arrays expand; every object is recorded before its own values are
    visited, so @graph members and nested entities all end up in the pool.
    """
    nodes = [] if into is None else into
    stack = [data]
    while stack:
        item = stack.pop()
        if isinstance(item, list):
            stack.extend(reversed(item))
        elif isinstance(item, dict):
            nodes.append(item)
            stack.extend(reversed(list(item.values())))
    return nodes


def is_book_type(type_tag: Any) -> bool:
    """True when an @type (string or list of strings) names a Book."""
    if isinstance(type_tag, str):
        return bool(_BOOK_TYPE.search(type_tag))
    if isinstance(type_tag, list):
        return any(isinstance(t, str) and _BOOK_TYPE.search(t) for t in type_tag)
    return False


def find_book(nodes: Sequence[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Return the first Book-typed object, scanning in document order."""
    for node in nodes:
        if is_book_type(node.get("@type")):
            return node
    return None


def format_iso_date(value: Any) -> Optional[str]:
    """
    Format an ISO partial date for display.

    "2020" -> "2020", "2020-05" -> "May 2020", "2020-05-14" -> "May 14, 2020".
    Anything else, including an impossible month or day, gives None.
    """
    text = clean_text(value)
    if text is None:
        return None
    match = _ISO_PARTIAL_DATE.match(text)
    if not match:
        return None
    year, month, day = match.groups()
    if month is None:
        return year
    month_number = int(month)
    if not 1 <= month_number <= 12:
        return None
    month_name = MONTH_NAMES[month_number - 1]
    if day is None:
        return f"{month_name} {year}"
    day_number = int(day)
    if not 1 <= day_number <= calendar.monthrange(int(year), month_number)[1]:
        return None
    return f"{month_name} {day_number}, {year}"


def _first_name(value: Any) -> Optional[str]:
    """Name of a string, a {"name": ...} object, or the first named list entry."""
    if isinstance(value, str):
        return clean_text(value)
    if isinstance(value, dict):
        return clean_text(value.get("name"))
    if isinstance(value, list):
        for item in value:
            if isinstance(item, dict) and item.get("name"):
                return clean_text(item["name"])
            if isinstance(item, str) and item.strip():
                return clean_text(item)
    return None


def _first_url(value: Any) -> Optional[str]:
    """URL of an image given as a string, ImageObject, or list of either."""
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, dict):
        value = value.get("url") or value.get("contentUrl")
    return clean_text(value) if isinstance(value, str) else None


def _strip_markup(value: Any) -> Optional[str]:
    """Descriptions in JSON-LD may carry HTML; keep only the text."""
    text = clean_text(value)
    if text is None or "<" not in text:
        return text
    return clean_text(BeautifulSoup(text, "lxml").get_text(" "))


def published_from_book(book: Dict[str, Any]) -> Optional[str]:
    """Build "<date> by <publisher>" (or just the date) from a book object."""
    date_text = format_iso_date(book.get("datePublished"))
    publisher = _first_name(book.get("publisher"))
    if date_text and publisher:
        return f"{date_text} by {publisher}"
    return date_text


def parse_structured_data(raw_blocks: Optional[Sequence[str]]) -> Optional[StructuredDataRecord]:
    """
    Parse JSON-LD blocks and locate the canonical book.

    Blocks that are not valid JSON, or nest too deeply to decode, are
    skipped. Returns None when no
    Book-typed object exists in any block.

    Args:
        raw_blocks: Raw text of each ld+json script, in document order

    Returns:
        StructuredDataRecord or None
    """
    unique: List[Dict[str, Any]] = []
    seen = set()
    skipped = 0
    for raw in raw_blocks or []:
        try:
            block_nodes = flatten_jsonld(json.loads(raw))
            keyed = [(json.dumps(node, sort_keys=True, default=str), node) for node in block_nodes]
        except (TypeError, ValueError, RecursionError):
            # not JSON, or nested deeper than the decoder allows
            skipped += 1
            continue
        for key, node in keyed:
            if key in seen:
                continue
            seen.add(key)
            unique.append(node)

    types_found = [str(n.get("@type")) for n in unique if n.get("@type")]
    book = find_book(unique)
    if book is None:
        logger.log_action(
            "structured_data_parse",
            "no_book_found",
            blocks=len(raw_blocks or []),
            skipped_blocks=skipped,
            types_found=types_found,
        )
        return None

    rating = book.get("aggregateRating")
    if not isinstance(rating, dict):
        rating = {}

    record = StructuredDataRecord(
        nodes=unique,
        book=book,
        title=clean_text(book.get("name")),
        author=_first_name(book.get("author")),
        description=_strip_markup(book.get("description")),
        published_full=published_from_book(book),
        cover_url=_first_url(book.get("image")),
        language=_first_name(book.get("inLanguage")),
        book_format=clean_text(book.get("bookFormat")),
        page_count=parse_count(book.get("numberOfPages")),
        rating_value=parse_rating(rating.get("ratingValue")),
        rating_count=parse_count(rating.get("ratingCount")),
        isbn=clean_text(book.get("isbn")),
        types_found=types_found,
    )
    logger.log_action(
        "structured_data_parse",
        "completed",
        total_nodes=len(unique),
        skipped_blocks=skipped,
        has_published=record.published_full is not None,
    )
    return record
