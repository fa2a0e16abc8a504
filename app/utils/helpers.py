"""
General helper functions for reading loosely-typed study records.
"""

import math
import re
from typing import Any, Iterable, Optional

YEAR_KEYS = ("year", "publication_year")
TITLE_KEYS = ("title", "name")
AUTHOR_KEYS = ("authors", "author_list", "authors_list", "author")
JOURNAL_KEYS = ("journal", "venue")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def get_field(record: Any, keys: Iterable[str]) -> Any:
    """
    Return the value of the first candidate key present on a record.

    Each key is tried as given and then upper-cased before moving on to the
    next one, so ["year", "publication_year"] matches "year", "YEAR",
    "publication_year", "PUBLICATION_YEAR" in that order.

    Args:
        record: Any value; only mappings can match
        keys: Candidate key names in priority order

    Returns:
        The stored value (which may itself be None), or "" if no key is present
    """
    if not isinstance(record, dict):
        return ""
    for key in keys:
        if key in record:
            return record[key]
        upper = key.upper()
        if upper in record:
            return record[upper]
    return ""


def parse_year(value: Any) -> Optional[int]:
    """Parse the leading integer of a year value ("2004", 2004, "2004a", 2004.0); None otherwise."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value)
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def record_year(record: Any) -> Optional[int]:
    return parse_year(get_field(record, YEAR_KEYS))


def format_authors(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join("" if a is None else str(a) for a in value)
    return str(value)
