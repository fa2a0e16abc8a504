"""
Pytest configuration and shared fixtures.
"""

import json

import pytest
from pathlib import Path
from unittest.mock import MagicMock

from services.cache import clear_all_caches

# Project root for test data
PROJECT_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture(autouse=True)
def _clear_caches():
    """Every test starts with empty payload caches."""
    clear_all_caches()
    yield
    clear_all_caches()


@pytest.fixture
def make_response():
    """Factory for fake requests.Response objects."""
    def _make(body="", status_code=200, reason="OK", content_type="application/json"):
        response = MagicMock()
        response.status_code = status_code
        response.reason = reason
        response.headers = {"content-type": content_type} if content_type else {}
        response.text = body if isinstance(body, str) else json.dumps(body)
        return response
    return _make


@pytest.fixture
def sample_studies():
    """Study records in the loosely-typed shapes the API returns."""
    return [
        {"title": "Pain and the insula", "year": 2001, "authors": ["Smith J", "Doe A"], "journal": "NeuroImage"},
        {"title": "Undated abstract", "year": None, "authors": "Anon", "journal": ""},
        {"TITLE": "Early pain imaging", "YEAR": "1999", "AUTHOR": "Lee K", "VENUE": "Brain"},
        {"name": "Fear circuits", "publication_year": "2010", "author_list": ["Kim H"], "venue": "J Neurosci"},
    ]


@pytest.fixture
def scored_related_payload():
    """Related-terms payload as a wrapped list of scored records."""
    return {
        "related": [
            {"term": "nociceptive", "jaccard": 0.21},
            {"term": "painful", "jaccard": "0.48"},
            {"term": "somatosensory", "jaccard": 0.33},
            {"term": "unscored"},
        ]
    }
