"""
Pydantic schemas for type-safe data structures.
Gives loosely-typed API payloads a validated shape for templates and JSON responses.
"""

from app.schemas.study import (
    RelatedTermsResponse,
    StudiesResponse,
    StudyView,
    TermsResponse,
)
from app.schemas.validation import (
    INCOMPLETE_QUERY_MESSAGE,
    BooleanQueryParam,
    StudyFilterParam,
    TermParam,
)

__all__ = [
    # Response schemas
    "StudyView",
    "TermsResponse",
    "RelatedTermsResponse",
    "StudiesResponse",
    # Validation schemas
    "INCOMPLETE_QUERY_MESSAGE",
    "TermParam",
    "BooleanQueryParam",
    "StudyFilterParam",
]
