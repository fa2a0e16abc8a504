"""
Normalization of API payloads into plain Python values.

The related-terms endpoint answers in several shapes (a list of terms, a list of
scored records, or a term -> score map, optionally wrapped in a container key).
The payload is first classified into an explicit RelatedShape and only then
decoded, so every shape has exactly one code path.
"""

import logging
import math
import re
from enum import Enum
from typing import Any, Iterable, List, Optional, Tuple

from app.utils.helpers import record_year

logger = logging.getLogger(__name__)

# Checked in order; the first key present with a non-null value wins
RELATED_CONTAINER_KEYS = ("related", "related_terms", "associations", "terms", "data")
SCORE_KEY = "jaccard"
RECORD_TERM_KEYS = ("term", "name", "id")

_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|[+-]?Infinity)")


class RelatedShape(str, Enum):
    """Discriminant for related-terms payloads."""

    TERM_LIST = "term_list"
    SCORED_RECORDS = "scored_records"
    SCORE_MAP = "score_map"
    UNKNOWN = "unknown"


def parse_score(value: Any) -> Optional[float]:
    """
    Parse a similarity score from a number or numeric string.

    Strings are read up to the end of their leading number ("0.5x" -> 0.5).
    Returns None for booleans, NaN, non-numeric strings and other types.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        score = float(value)
    elif isinstance(value, str):
        match = _LEADING_FLOAT.match(value)
        if not match:
            return None
        score = float(match.group(1).replace("Infinity", "inf"))
    else:
        return None
    return None if math.isnan(score) else score


def _score_order_key(score: Optional[float], tiebreak: str) -> Tuple[int, float, str]:
    # Valid scores first (descending), then invalid ones by ascending term.
    # Equal valid scores share a key, so the stable sort keeps input order.
    if score is None:
        return (1, 0.0, tiebreak)
    return (0, -score, "")


def unwrap_related_payload(data: Any) -> Any:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in RELATED_CONTAINER_KEYS:
            if data.get(key) is not None:
                return data[key]
    return data


def classify_related_payload(payload: Any) -> RelatedShape:
    if isinstance(payload, list):
        if not payload or isinstance(payload[0], str):
            return RelatedShape.TERM_LIST
        if isinstance(payload[0], dict):
            return RelatedShape.SCORED_RECORDS
        return RelatedShape.UNKNOWN
    if isinstance(payload, dict):
        return RelatedShape.SCORE_MAP
    return RelatedShape.UNKNOWN


def _record_term(record: Any) -> str:
    if isinstance(record, dict):
        for key in RECORD_TERM_KEYS:
            value = record.get(key)
            if value is not None:
                return str(value)
    return ""


def _decode_scored_records(records: List[Any]) -> List[str]:
    scored = []
    for record in records:
        raw = record.get(SCORE_KEY) if isinstance(record, dict) else None
        scored.append((_record_term(record), parse_score(raw)))
    scored.sort(key=lambda item: _score_order_key(item[1], item[0]))
    return [term for term, _ in scored]


def _decode_score_map(mapping: dict) -> List[str]:
    scored = []
    for term, value in mapping.items():
        raw = value.get(SCORE_KEY) if isinstance(value, dict) else value
        scored.append((str(term), parse_score(raw)))
    scored.sort(key=lambda item: _score_order_key(item[1], item[0]))
    return [term for term, _ in scored]


def normalize_related(data: Any) -> List[str]:
    """
    Turn a related-terms payload of any supported shape into an ordered term list.

    Examples:
        ["x", "y"]                                            -> ["x", "y"]
        {"x": 0.9, "y": 0.4}                                  -> ["x", "y"]
        [{"term": "x", "jaccard": 0.2}, {"term": "y", "jaccard": 0.8}] -> ["y", "x"]
    """
    payload = unwrap_related_payload(data)
    shape = classify_related_payload(payload)
    if shape is RelatedShape.TERM_LIST:
        return ["" if item is None else str(item) for item in payload]
    if shape is RelatedShape.SCORED_RECORDS:
        return _decode_scored_records(payload)
    if shape is RelatedShape.SCORE_MAP:
        return _decode_score_map(payload)
    logger.debug("Unrecognized related-terms payload of type %s", type(payload).__name__)
    return []


def normalize_terms(data: Any) -> List[str]:
    """Normalize the /terms payload: a plain list or a {"terms": [...]} wrapper; anything else is empty."""
    if isinstance(data, dict):
        data = data.get("terms")
    if isinstance(data, list):
        return ["" if item is None else str(item) for item in data]
    return []


def filter_terms(terms: Iterable[str], needle: Optional[str]) -> List[str]:
    """Case-insensitive substring filter; a blank needle keeps every term."""
    q = (needle or "").strip().lower()
    if not q:
        return list(terms)
    return [t for t in terms if q in str(t).lower()]


def to_studies_array(data: Any) -> List[Any]:
    """Extract the study list from a bare list or a {"results": [...]} / {"studies": [...]} wrapper."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("results", "studies"):
            if isinstance(data.get(key), list):
                return data[key]
    return []


def filter_and_sort_studies(
    studies: Iterable[Any],
    year_from: Optional[int] = None,
    year_to: Optional[int] = None,
    sort: Optional[str] = "desc",
) -> List[Any]:
    """
    Filter study records by an inclusive year range and sort them by year.

    When either bound is given, records without a parseable year are dropped.
    Without bounds they are kept and placed after every dated record, in their
    input order. Any sort value other than "asc" sorts newest first.
    """
    bounded = year_from is not None or year_to is not None
    descending = (sort or "desc").strip().lower() != "asc"

    kept = []
    for study in studies:
        year = record_year(study)
        if year is None:
            if bounded:
                continue
        else:
            if year_from is not None and year < year_from:
                continue
            if year_to is not None and year > year_to:
                continue
        kept.append((year, study))

    dated = [item for item in kept if item[0] is not None]
    undated = [study for year, study in kept if year is None]
    dated.sort(key=lambda item: item[0], reverse=descending)
    return [study for _, study in dated] + undated
