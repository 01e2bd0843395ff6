"""
Pytest configuration and shared fixtures

Provides a testing app whose hosted backend and vendor HTTP session are
MagicMock doubles, plus bearer tokens for an admin and a regular user.
"""

from unittest.mock import MagicMock

import pytest
import requests

from app import create_app
from core.exceptions import AuthorizationError
from core.hosted_backend import HostedBackend
from core.models import Table
from core.template_engine import FoundationTemplateEngine
from tests.helpers import USERS


@pytest.fixture
def profiles():
    """Profile rows keyed by user id"""
    return {
        'admin-1': {'id': 'admin-1', 'email': 'admin@ballfour.org', 'role': 'admin',
                    'created_at': '2024-01-01T00:00:00Z'},
        'user-2': {'id': 'user-2', 'email': 'member@ballfour.org', 'role': 'user',
                   'created_at': '2024-02-01T00:00:00Z'},
    }


@pytest.fixture
def backend(profiles):
    """Hosted backend double that knows the admin and user tokens"""
    mock = MagicMock(spec=HostedBackend)
    mock.configured = True

    def get_user(token):
        if token not in USERS:
            raise AuthorizationError('Invalid token')
        return USERS[token]

    def select_one(table, filters, columns='*'):
        if table == Table.PROFILES:
            return profiles.get(filters.get('id'))
        return None

    mock.get_user.side_effect = get_user
    mock.select_one.side_effect = select_one
    mock.select.return_value = []
    mock.insert.side_effect = lambda table, rows: rows
    mock.update.return_value = []
    mock.delete.return_value = []
    mock.count.return_value = 0
    return mock


@pytest.fixture
def http_session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def app(backend, http_session):
    """Create test Flask app"""
    return create_app('testing', backend=backend, http_session=http_session)


@pytest.fixture
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture
def template_engine():
    return FoundationTemplateEngine()
