"""Layers package initialization."""
from book_scraper.layers.field_chain import FIELD_CHAIN, FieldChain, FieldSpec, ExtractionSource
from book_scraper.layers.extraction import BookExtractor, ExtractionState

__all__ = [
    "FIELD_CHAIN",
    "FieldChain",
    "FieldSpec",
    "ExtractionSource",
    "BookExtractor",
    "ExtractionState",
]
