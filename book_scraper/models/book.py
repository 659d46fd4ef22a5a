"""
Book models for the Book Metadata Scraper.
BookRecord is the single output contract of the extraction pipeline,
regardless of which strategy produced each field.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ExtractionRequest(BaseModel):
    """One inbound scrape: the caller's identifier and its overall budget."""
    model_config = ConfigDict(frozen=True)

    identifier: str
    deadline_ms: int = Field(gt=0)


class BookRecord(BaseModel):
    """
    Extracted book metadata.

    Every field but the identifier is optional; a missing field never fails
    the extraction. Serialized with camelCase keys.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    identifier: str
    title: Optional[str] = None
    subtitle: Optional[str] = None
    original_title: Optional[str] = None
    author: Optional[str] = None
    cover_url: Optional[str] = None
    average_rating: Optional[float] = Field(default=None, ge=0.0, allow_inf_nan=False)
    rating_count: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None
    categories: Optional[List[str]] = None
    language: Optional[str] = None
    format: Optional[str] = None
    page_count: Optional[int] = Field(default=None, ge=0)
    series: Optional[str] = None
    published_full: Optional[str] = None

    def get_present_fields(self) -> List[str]:
        """Return names of populated optional fields."""
        return [
            name for name in type(self).model_fields
            if name != "identifier" and getattr(self, name) not in (None, [], "")
        ]

    def get_missing_fields(self) -> List[str]:
        """Return names of optional fields left empty."""
        present = self.get_present_fields()
        return [
            name for name in type(self).model_fields
            if name != "identifier" and name not in present
        ]

    def to_response(self) -> dict:
        """JSON body for the API, camelCase keys, absent fields as null."""
        return self.model_dump(by_alias=True)


class ErrorResponse(BaseModel):
    """Error body returned by the API."""
    error: str
