"""
Input validation schemas for API parameters.
Provides strict validation for user inputs before anything is sent to the remote API.
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from services.boolean_query import INCOMPLETE_QUERY_MESSAGE, is_runnable_query


class TermParam(BaseModel):
    """Validated term for a related-terms lookup."""

    term: str = Field(..., min_length=1, max_length=200, description="Term to look up")

    @field_validator("term")
    @classmethod
    def validate_term(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Term cannot be empty")
        return v


class BooleanQueryParam(BaseModel):
    """Validated boolean study query."""

    query: str = Field(..., min_length=1, max_length=500, description="Boolean study query")

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        """Reject blank and incomplete queries (dangling operator, unbalanced parentheses or quotes)."""
        v = v.strip()
        if not v:
            raise ValueError("Query cannot be empty")
        if not is_runnable_query(v):
            raise ValueError(INCOMPLETE_QUERY_MESSAGE)
        return v


class StudyFilterParam(BaseModel):
    """Validated year range and sort direction for study results."""

    year_from: int | None = Field(default=None, ge=0, le=9999, description="Earliest year, inclusive")
    year_to: int | None = Field(default=None, ge=0, le=9999, description="Latest year, inclusive")
    sort: Literal["asc", "desc"] = Field(default="desc", description="Sort direction by year")

    @field_validator("year_from", "year_to", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """HTML forms send empty strings for untouched year inputs."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        try:
            return int(str(v).strip())
        except (ValueError, TypeError):
            raise ValueError(f"Invalid year: {v}")

    @field_validator("sort", mode="before")
    @classmethod
    def normalize_sort(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return "desc"
        return str(v).strip().lower()

    @model_validator(mode="after")
    def check_range(self) -> "StudyFilterParam":
        if self.year_from is not None and self.year_to is not None and self.year_from > self.year_to:
            raise ValueError("year_from must not be greater than year_to")
        return self

