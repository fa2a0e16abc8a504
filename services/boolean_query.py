"""
Boolean query preparation for the study search endpoint.

Queries are free text built from bare terms, quoted phrases, parentheses and
the operators AND / OR / NOT. Before a query is sent it is checked for
completeness (is_runnable_query) and rewritten so that bare operands are
explicitly grouped (normalize_boolean_query). Both are regex heuristics over the
raw string, not a parser: wrapping is a single left-to-right pass, so in a chain
like "a AND b AND c" only the first pair is grouped.
"""

import re
from typing import Optional, Tuple

OPERATORS = ("AND", "OR", "NOT")
INCOMPLETE_QUERY_MESSAGE = "Incomplete query (operator at end, unmatched quotes or parentheses)"

# A query ending in a bare operator is still being typed
_TRAILING_OPERATOR = re.compile(r"(?:^|\s)(AND|OR|NOT)\s*$", re.IGNORECASE)
_OPERATOR_SYMBOL = re.compile(r"^(AND|OR|NOT)$", re.IGNORECASE)
_WHITESPACE_RUN = re.compile(r"\s+")

# Bare operand: no whitespace, parentheses or quotes, and not itself an operator keyword
_TERM = r"(?!(?:AND|OR|NOT)(?=[\s)]|$))[^\s()\"']+"
_BINARY_PAIR = re.compile(
    rf"(^|[\s(])({_TERM})\s+(OR|AND)\s+({_TERM})(?=[\s)]|$)",
    re.IGNORECASE,
)
_NOT_OPERAND = re.compile(rf"(^|[\s(])NOT\s+({_TERM})(?=[\s)]|$)", re.IGNORECASE)

_ENDS_WITH_SPACE_OR_OPEN = re.compile(r"[\s(]$")
_ENDS_WITH_JOINER = re.compile(r"(AND|OR)\s+$", re.IGNORECASE)


def _parentheses_balanced(s: str) -> bool:
    depth = 0
    for ch in s:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def is_runnable_query(q: Optional[str]) -> bool:
    """
    Return True if a query looks complete enough to send.

    A query is incomplete when it is blank, ends with a bare AND/OR/NOT, has a
    ')' without a matching '(' or an unclosed '(', or has an odd number of
    double quotes.
    """
    s = (q or "").strip()
    if not s:
        return False
    if _TRAILING_OPERATOR.search(s):
        return False
    if not _parentheses_balanced(s):
        return False
    if s.count('"') % 2 == 1:
        return False
    return True


def normalize_boolean_query(q: Optional[str]) -> str:
    """
    Rewrite a query so bare operands of AND/OR/NOT are parenthesized.

    "a or b" -> "(a) OR (b)", "NOT a" -> "NOT (a)". Already grouped or quoted
    operands are left alone, so the function is a fixed point on its own output.
    """
    s = (q or "").strip()
    if not s:
        return s
    s = _WHITESPACE_RUN.sub(" ", s)
    s = _BINARY_PAIR.sub(
        lambda m: f"{m.group(1)}({m.group(2)}) {m.group(3).upper()} ({m.group(4)})",
        s,
    )
    s = _NOT_OPERAND.sub(lambda m: f"{m.group(1)}NOT ({m.group(2)})", s)
    return s


def insert_symbol(
    value: str,
    symbol: str,
    start: Optional[int] = None,
    end: Optional[int] = None,
) -> Tuple[str, int]:
    """
    Insert a toolbar symbol into a query, replacing the selection [start, end).

    Operators are upper-cased and padded with spaces where needed; any other
    symbol ("(", ")", '"') is inserted as-is. Returns (new_value, caret) with the
    caret placed right after the inserted text.
    """
    value = value or ""
    if start is None:
        start = len(value)
    start = max(0, min(start, len(value)))
    end = start if end is None else max(start, min(end, len(value)))
    before, after = value[:start], value[end:]

    text = str(symbol)
    if _OPERATOR_SYMBOL.match(text):
        needs_space_before = bool(before) and not before[-1].isspace() and not before.endswith("(")
        needs_space_after = not after or not (after[0].isspace() or after[0] == ")")
        text = f"{' ' if needs_space_before else ''}{text.upper()}{' ' if needs_space_after else ''}"

    new_value = before + text + after
    return new_value, len(before) + len(text)


def append_term_to_query(current: str, term: str) -> str:
    """
    Append a term to a query, joining with AND unless the query already ends
    with whitespace, an open parenthesis or a dangling AND/OR.
    """
    current = current or ""
    if not current.strip():
        return term
    needs_and = not _ENDS_WITH_SPACE_OR_OPEN.search(current) and not _ENDS_WITH_JOINER.search(current)
    if needs_and:
        return f"{current} AND {term}"
    return f"{current}{'' if current.endswith(' ') else ' '}{term}"
