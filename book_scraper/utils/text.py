"""
Text normalization and value post-processing.

All functions are pure. Anything that cannot be parsed comes back as None,
never as a default value.
"""
import math
import re
from typing import Any, Iterable, List, Optional

_WHITESPACE = re.compile(r"\s+")
_SEQUENCE_MARKER = re.compile(r"\s*\([^()]*#\d+(?:\.\d+)?(?:-\d+(?:\.\d+)?)?\)\s*$")
_MORE_SUFFIX = re.compile(r"\s*(?:\.{3}|…)\s*more\s*$", re.IGNORECASE)
_MORE_ENTRY = re.compile(r"^(?:\.{3}|…)\s*more$", re.IGNORECASE)
_REISSUE_NOTE = re.compile(r"^first published", re.IGNORECASE)
_BY_PUBLISHER = re.compile(r"\sby\s", re.IGNORECASE)
_DECIMAL = re.compile(r"-?\d+(?:\.\d+)?")
_COUNT = re.compile(r"-?\d[\d,]*")
_PAGES = re.compile(r"(\d[\d,]*)\s*pages?\b", re.IGNORECASE)
_PUBLISHED_LINE = re.compile(r"([A-Za-z]+\s+\d{1,2},\s*\d{4}\s+by\s+.+)$", re.IGNORECASE)
_BULLET_TAIL = re.compile(r"\s*[•·].*$")


def clean_text(value: Any) -> Optional[str]:
    """Collapse whitespace runs to one space and trim; empty becomes None."""
    if value is None:
        return None
    text = _WHITESPACE.sub(" ", str(value)).strip()
    return text or None


def strip_sequence_marker(value: Any) -> Optional[str]:
    """Drop a trailing series marker such as "(#3.5)" or "(Discworld, #2)"."""
    text = clean_text(value)
    if text is None:
        return None
    return clean_text(_SEQUENCE_MARKER.sub("", text))


def strip_more(value: Any) -> Optional[str]:
    """Drop a trailing "...more" truncation marker."""
    text = clean_text(value)
    if text is None:
        return None
    return clean_text(_MORE_SUFFIX.sub("", text))


def clean_list(values: Optional[Iterable[Any]]) -> Optional[List[str]]:
    """Normalize a list of labels, dropping blanks and "...more" entries."""
    if not values:
        return None
    cleaned = []
    for value in values:
        text = clean_text(value)
        if text and not _MORE_ENTRY.match(text):
            cleaned.append(text)
    return cleaned or None


def choose_published(candidates: Optional[Iterable[Any]]) -> Optional[str]:
    """
    Pick one publication line out of several.

    Reissue notes ("First published ...") are ignored. A "<date> by
    <publisher>" line wins; otherwise the last candidate in document order.
    """
    if not candidates:
        return None
    cleaned = [text for text in (clean_text(c) for c in candidates) if text]
    cleaned = [text for text in cleaned if not _REISSUE_NOTE.match(text)]
    if not cleaned:
        return None
    for text in cleaned:
        if _BY_PUBLISHER.search(text):
            return text
    return cleaned[-1]


def find_published_line(body_text: Any) -> Optional[str]:
    """Scan free page text for a "Month D, YYYY by Publisher" line."""
    if not body_text:
        return None
    for line in str(body_text).split("\n"):
        match = _PUBLISHED_LINE.search(line.strip())
        if match:
            return clean_text(_BULLET_TAIL.sub("", match.group(1)))
    return None


def parse_rating(value: Any) -> Optional[float]:
    """Parse an average rating; None unless finite and non-negative."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _DECIMAL.search(str(value))
        if not match:
            return None
        number = float(match.group(0))
    if not math.isfinite(number) or number < 0:
        return None
    return number


def parse_count(value: Any) -> Optional[int]:
    """Parse a count such as "12,345 ratings" by keeping its digits."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value) or value < 0:
            return None
        return int(value)
    match = _COUNT.search(str(value))
    if not match or match.group(0).startswith("-"):
        return None
    return int(match.group(0).replace(",", ""))


def parse_page_count(value: Any) -> Optional[int]:
    """Parse the page count out of a "336 pages, Hardcover" line."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return parse_count(value)
    text = clean_text(value)
    if text is None:
        return None
    match = _PAGES.search(text)
    if match:
        return parse_count(match.group(1))
    if text.isdigit():
        return int(text)
    return None


def parse_format(value: Any) -> Optional[str]:
    """Extract the binding from "336 pages, Hardcover" or a schema.org URL."""
    text = clean_text(value)
    if text is None:
        return None
    if "schema.org/" in text:
        text = text.rsplit("/", 1)[-1]
        # GraphicNovel -> Graphic Novel
        text = re.sub(r"(?<=[a-z])(?=[A-Z])", " ", text)
        return clean_text(text)
    match = _PAGES.search(text)
    if match:
        return clean_text(text[match.end():].lstrip(" ,;"))
    return text
