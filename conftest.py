"""
Shared pytest fixtures.
"""
import pytest
from django.core.cache import cache
from rest_framework.test import APIClient


@pytest.fixture(autouse=True)
def clear_cache():
    """Clear cache before and after each test so rate limit counters don't leak."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """API client for making requests."""
    return APIClient()


@pytest.fixture
def contact_payload():
    return {
        'name': 'Ann',
        'email': 'ann@x.com',
        'message': 'I love this!',
        'website': '',
    }
