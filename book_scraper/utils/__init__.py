"""Utils package initialization."""
from book_scraper.utils.logger import get_logger, LayerLogger, set_trace_id, get_trace_id
from book_scraper.utils.deadline import with_deadline, best_effort, succeeded
from book_scraper.utils.text import clean_text

__all__ = [
    "get_logger",
    "LayerLogger",
    "set_trace_id",
    "get_trace_id",
    "with_deadline",
    "best_effort",
    "succeeded",
    "clean_text",
]
