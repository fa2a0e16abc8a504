"""
Unit tests for boolean query preparation.
"""

import pytest

from services.boolean_query import (
    append_term_to_query,
    insert_symbol,
    is_runnable_query,
    normalize_boolean_query,
)


class TestIsRunnableQuery:
    """Tests for the query completeness check."""

    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_blank_is_not_runnable(self, query):
        assert is_runnable_query(query) is False

    @pytest.mark.parametrize(
        "query",
        ["pain AND", "pain and ", "pain OR", "pain or\t", "NOT", "pain AND not  ", "(pain) Or"],
    )
    def test_trailing_operator_is_not_runnable(self, query):
        """Should reject queries ending with a bare operator in any case."""
        assert is_runnable_query(query) is False

    @pytest.mark.parametrize("query", ["(pain OR fear", "((a) AND b", "("])
    def test_unclosed_parenthesis_is_not_runnable(self, query):
        assert is_runnable_query(query) is False

    @pytest.mark.parametrize("query", ["a) OR (b", "pain)", ")("])
    def test_unmatched_closing_parenthesis_is_not_runnable(self, query):
        """A ')' before its '(' is rejected even if the totals balance."""
        assert is_runnable_query(query) is False

    @pytest.mark.parametrize("query", ['"visual cortex', 'pain AND "a" "b'])
    def test_odd_quote_count_is_not_runnable(self, query):
        assert is_runnable_query(query) is False

    @pytest.mark.parametrize(
        "query",
        [
            "pain",
            "pain AND fear",
            '"visual cortex" OR pain',
            "(pain OR fear) AND NOT memory",
            "land",
            "BRAND",
            "  pain  ",
        ],
    )
    def test_complete_queries_are_runnable(self, query):
        """Words merely ending in an operator's letters are not operators."""
        assert is_runnable_query(query) is True


class TestNormalizeBooleanQuery:
    """Tests for operand wrapping."""

    def test_wraps_or_pair(self):
        assert normalize_boolean_query("a OR b") == "(a) OR (b)"

    def test_wraps_not_operand(self):
        assert normalize_boolean_query("NOT a") == "NOT (a)"

    def test_operators_are_upper_cased(self):
        assert normalize_boolean_query("pain or fear") == "(pain) OR (fear)"
        assert normalize_boolean_query("not pain") == "NOT (pain)"

    def test_collapses_whitespace(self):
        assert normalize_boolean_query("  pain \t AND\n\nfear ") == "(pain) AND (fear)"

    def test_idempotent_on_wrapped_input(self):
        once = normalize_boolean_query("(a) OR (b)")
        assert once == "(a) OR (b)"
        assert normalize_boolean_query(once) == once

    def test_fixed_point_on_own_output(self):
        for query in ["a OR b", "NOT a", "a AND b AND c", "(a OR b) AND NOT c"]:
            once = normalize_boolean_query(query)
            assert normalize_boolean_query(once) == once

    def test_single_pass_wraps_first_pair_of_chain(self):
        """Chains are not regrouped; only the first adjacent pair is wrapped."""
        assert normalize_boolean_query("a AND b AND c") == "(a) AND (b) AND c"

    def test_two_separate_pairs_are_both_wrapped(self):
        assert normalize_boolean_query("a OR b c AND d") == "(a) OR (b) (c) AND (d)"

    def test_pair_inside_parentheses(self):
        assert normalize_boolean_query("(a OR b) AND c") == "((a) OR (b)) AND c"

    def test_quoted_phrases_are_not_wrapped(self):
        query = 'pain AND "visual cortex"'
        assert normalize_boolean_query(query) == query

    def test_operator_keyword_is_never_an_operand(self):
        assert normalize_boolean_query("a AND NOT b") == "a AND NOT (b)"

    def test_single_term_unchanged(self):
        assert normalize_boolean_query("amygdala") == "amygdala"

    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_blank_returns_empty(self, query):
        assert normalize_boolean_query(query) == ""


class TestInsertSymbol:
    """Tests for logic toolbar insertion."""

    def test_operator_gets_spacing_and_upper_case(self):
        assert insert_symbol("pain", "and") == ("pain AND ", 9)

    def test_no_extra_space_after_whitespace(self):
        assert insert_symbol("pain ", "OR") == ("pain OR ", 8)

    def test_no_space_after_open_parenthesis(self):
        assert insert_symbol("(", "NOT") == ("(NOT ", 5)

    def test_empty_value(self):
        assert insert_symbol("", "OR") == ("OR ", 3)

    def test_insert_at_caret_before_whitespace(self):
        assert insert_symbol("a  b", "AND", 1, 1) == ("a AND  b", 5)

    def test_insert_before_closing_parenthesis(self):
        assert insert_symbol("(a)", "OR", 2) == ("(a OR)", 5)

    def test_replaces_selection(self):
        assert insert_symbol("a b", "OR", 2, 3) == ("a OR ", 5)

    def test_non_operator_inserted_verbatim(self):
        assert insert_symbol("pain", "(") == ("pain(", 5)
        assert insert_symbol("pain ", '"') == ('pain "', 6)


class TestAppendTermToQuery:
    """Tests for adding a related term to the study query."""

    def test_empty_query_becomes_term(self):
        assert append_term_to_query("", "pain") == "pain"
        assert append_term_to_query("   ", "pain") == "pain"

    def test_joins_with_and(self):
        assert append_term_to_query("pain", "fear") == "pain AND fear"

    def test_after_dangling_operator(self):
        assert append_term_to_query("pain OR ", "fear") == "pain OR fear"
        assert append_term_to_query("pain and ", "fear") == "pain and fear"

    def test_after_open_parenthesis(self):
        assert append_term_to_query("pain AND (", "fear") == "pain AND ( fear"
