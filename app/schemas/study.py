"""
Pydantic models for Neurosynth API data structures.
Provides a typed view over loosely-typed study records and the JSON responses of this app.
"""

from typing import Any

from pydantic import BaseModel, Field

from app.utils.helpers import (
    AUTHOR_KEYS,
    JOURNAL_KEYS,
    TITLE_KEYS,
    YEAR_KEYS,
    format_authors,
    get_field,
    parse_year,
)


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


class StudyView(BaseModel):
    """Display fields extracted from a study record; missing fields are empty strings."""

    title: str = Field("", description="Study title")
    year: str = Field("", description="Publication year as sent by the API")
    authors: str = Field("", description="Comma-separated author list")
    journal: str = Field("", description="Journal or venue")
    year_value: int | None = Field(None, description="Parsed publication year, if any")

    @classmethod
    def from_record(cls, record: Any) -> "StudyView":
        year = get_field(record, YEAR_KEYS)
        return cls(
            title=_as_text(get_field(record, TITLE_KEYS)),
            year=_as_text(year),
            authors=format_authors(get_field(record, AUTHOR_KEYS)),
            journal=_as_text(get_field(record, JOURNAL_KEYS)),
            year_value=parse_year(year),
        )

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Functional imaging of pain",
                "year": "2004",
                "authors": "Smith J, Doe A",
                "journal": "NeuroImage",
                "year_value": 2004,
            }
        }


class TermsResponse(BaseModel):
    """Response from /api/terms."""

    terms: list[str] = Field(default_factory=list, description="All known terms")


class RelatedTermsResponse(BaseModel):
    """Response from /api/terms/{term}."""

    term: str = Field(..., description="The term that was looked up")
    related: list[str] = Field(default_factory=list, description="Related terms, most similar first")


class StudiesResponse(BaseModel):
    """Response from /api/query/{query}/studies."""

    query: str = Field(..., description="Query as entered")
    prepared_query: str = Field(..., description="Query as sent to the remote API")
    count: int = Field(0, description="Number of studies after filtering")
    studies: list[StudyView] = Field(default_factory=list, description="Filtered and sorted studies")
    seq: int | None = Field(None, description="Client sequence number, echoed back unchanged")
