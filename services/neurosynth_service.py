"""
Neurosynth API endpoint bindings.
Maps the three remote endpoints to direct HTTP requests using core.http.neurosynth_request.

Endpoints:
- GET /terms
- GET /terms/{term}
- GET /query/{query}/studies
"""

import logging
from typing import Any

from core.http import decode_json_response, neurosynth_request, quote_path_segment
from services.cache import get_related_cache, get_studies_cache, get_terms_cache

logger = logging.getLogger(__name__)


# --- Terms API ---

def get_terms(use_cache: bool = True) -> Any:
    """List every known term. Returns the decoded payload in whatever shape the API sends."""
    def load() -> Any:
        return decode_json_response(neurosynth_request("GET", "/terms"))

    if not use_cache:
        return load()
    return get_terms_cache().get_or_load("terms", load)


def get_related_terms(term: str, use_cache: bool = True) -> Any:
    """Get the terms associated with a single term (list, scored records or score map)."""
    path = f"/terms/{quote_path_segment(term)}"

    def load() -> Any:
        return decode_json_response(neurosynth_request("GET", path))

    if not use_cache:
        return load()
    return get_related_cache().get_or_load(f"related:{term}", load)


# --- Query API ---

def get_query_studies(query: str, use_cache: bool = True) -> Any:
    """
    Run a boolean study search.

    The query is sent verbatim as a path segment, so callers should prepare it
    with services.boolean_query.normalize_boolean_query first.
    """
    path = f"/query/{quote_path_segment(query)}/studies"

    def load() -> Any:
        return decode_json_response(neurosynth_request("GET", path))

    if not use_cache:
        return load()
    return get_studies_cache().get_or_load(f"studies:{query}", load)
