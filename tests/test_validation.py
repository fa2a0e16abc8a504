"""
Unit tests for input validation schemas.
"""

import pytest
from pydantic import ValidationError

from app.schemas.validation import (
    BooleanQueryParam,
    StudyFilterParam,
    TermParam,
)
from services.boolean_query import INCOMPLETE_QUERY_MESSAGE


class TestTermParam:
    """Tests for term validation."""

    def test_strips_whitespace(self):
        assert TermParam(term="  pain  ").term == "pain"

    def test_keeps_inner_spaces(self):
        assert TermParam(term="working memory").term == "working memory"

    @pytest.mark.parametrize("term", ["", "   ", "x" * 201])
    def test_invalid(self, term):
        with pytest.raises(ValidationError):
            TermParam(term=term)


class TestBooleanQueryParam:
    """Tests for boolean query validation."""

    @pytest.mark.parametrize("query", ["pain", "pain AND fear", '"visual cortex" OR (pain AND NOT fear)'])
    def test_valid(self, query):
        assert BooleanQueryParam(query=f" {query} ").query == query

    @pytest.mark.parametrize("query", ["pain AND", "(pain", 'pain "x', "pain)"])
    def test_incomplete(self, query):
        with pytest.raises(ValidationError) as exc_info:
            BooleanQueryParam(query=query)
        assert INCOMPLETE_QUERY_MESSAGE in str(exc_info.value)

    def test_blank(self):
        with pytest.raises(ValidationError):
            BooleanQueryParam(query="   ")


class TestStudyFilterParam:
    """Tests for year range and sort validation."""

    def test_defaults(self):
        params = StudyFilterParam()
        assert params.year_from is None
        assert params.year_to is None
        assert params.sort == "desc"

    def test_form_strings(self):
        params = StudyFilterParam(year_from="2000", year_to=" 2010 ", sort="ASC")
        assert params.year_from == 2000
        assert params.year_to == 2010
        assert params.sort == "asc"

    def test_blank_values(self):
        params = StudyFilterParam(year_from="", year_to="  ", sort="")
        assert params.year_from is None
        assert params.year_to is None
        assert params.sort == "desc"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"year_from": "abc"},
            {"year_to": "20.5"},
            {"year_from": -1},
            {"sort": "newest"},
            {"year_from": 2010, "year_to": 2000},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValidationError):
            StudyFilterParam(**kwargs)
