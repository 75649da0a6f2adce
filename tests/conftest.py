"""
Global pytest configuration and fixtures.

Provides the Flask application built with the testing configuration, its
test client, an in-memory record lookup holding roles and existing users,
and sample request payloads shared by the unit and integration suites.
"""

from typing import Any, Dict

import pytest

from user_requests.app import create_app
from user_requests.validation.lookup import InMemoryRecordLookup


@pytest.fixture
def lookup():
    """Record lookup with roles 1-3 and two existing users."""
    return InMemoryRecordLookup({
        'roles': [{'id': 1}, {'id': 2}, {'id': 3}],
        'users': [
            {'id': 1, 'username': 'alice'},
            {'id': 2, 'username': 'bob'},
        ],
    })


@pytest.fixture
def app(lookup):
    """
    Create Flask application instance for testing.

    Uses the testing configuration and the shared record lookup fixture so
    tests can seed records the request rules check against.
    """
    app = create_app('testing', record_lookup=lookup)
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    """Flask test client for HTTP endpoint testing."""
    return app.test_client()


@pytest.fixture
def create_payload() -> Dict[str, Any]:
    """Valid user creation payload."""
    return {
        'name': 'Carol Danvers',
        'username': 'carol',
        'password': 'secret',
        'roles': ['1', '2'],
        'status': 'active',
    }


@pytest.fixture
def update_payload() -> Dict[str, Any]:
    """Valid user update payload without a password change."""
    return {
        'name': 'Alice Liddell',
        'username': 'alice',
        'password': '',
        'roles': [2],
    }


@pytest.fixture
def list_query() -> Dict[str, Any]:
    """Valid listing parameters."""
    return {
        'search': 'ali',
        'orderBy': 'NAME',
        'per_page': '25',
        'filter': {'status': 'active'},
    }
