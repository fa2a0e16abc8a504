import logging
from typing import Any, Dict, List, Optional

from services import neurosynth_service
from services.boolean_query import is_runnable_query, normalize_boolean_query
from services.normalizer import (
    filter_and_sort_studies,
    normalize_related,
    normalize_terms,
    to_studies_array,
)

logger = logging.getLogger(__name__)


def fetch_terms() -> List[str]:
    """Fetch the full term list."""
    data = neurosynth_service.get_terms()
    terms = normalize_terms(data)
    logger.info("Fetched %s terms from Neurosynth API", len(terms))
    return terms


def fetch_related_terms(term: str) -> List[str]:
    """Fetch terms related to a term, most similar first."""
    term = (term or "").strip()
    if not term:
        raise ValueError("Term is required for related-terms lookup")
    data = neurosynth_service.get_related_terms(term)
    related = normalize_related(data)
    logger.debug("Term %r has %s related terms", term, len(related))
    return related


def prepare_query(query: str) -> str:
    """
    Validate and normalize a boolean query for transmission.

    Raises ValueError for blank or incomplete queries.
    """
    query = (query or "").strip()
    if not query:
        raise ValueError("Query is required for study search")
    if not is_runnable_query(query):
        raise ValueError(f"Incomplete query: {query!r}")
    return normalize_boolean_query(query)


def fetch_studies(query: str) -> List[Dict[str, Any]]:
    """Run a boolean study search and return the raw study records, unfiltered."""
    prepared = prepare_query(query)
    data = neurosynth_service.get_query_studies(prepared)
    studies = to_studies_array(data)
    logger.info("Query %r returned %s studies", prepared, len(studies))
    return studies


def search_studies(
    query: str,
    year_from: Optional[int] = None,
    year_to: Optional[int] = None,
    sort: str = "desc",
) -> List[Dict[str, Any]]:
    """
    Search studies with a boolean query, then filter by year range and sort by year.
    """
    studies = fetch_studies(query)
    return filter_and_sort_studies(studies, year_from=year_from, year_to=year_to, sort=sort)
