"""
Tests for the hosted database/auth REST client
"""

from unittest.mock import MagicMock

import pytest

from core.exceptions import AuthorizationError, BackendError, ConfigurationError
from core.hosted_backend import HostedBackend
from tests.helpers import make_response

BASE_URL = 'https://test-project.supabase.co'


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def backend(session):
    return HostedBackend(BASE_URL + '/', 'service-key', session=session)


def test_get_user_uses_caller_token(backend, session):
    session.request.return_value = make_response(200, {'id': 'u1', 'email': 'a@ballfour.org'})

    user = backend.get_user('caller-token')

    assert user.id == 'u1'
    args, kwargs = session.request.call_args
    assert args == ('GET', BASE_URL + '/auth/v1/user')
    assert kwargs['headers']['Authorization'] == 'Bearer caller-token'
    assert kwargs['headers']['apikey'] == 'service-key'


def test_rejected_token_is_invalid_token(backend, session):
    session.request.return_value = make_response(401, {'msg': 'invalid JWT'})

    with pytest.raises(AuthorizationError) as exc_info:
        backend.get_user('expired')

    assert exc_info.value.message == 'Invalid token'


def test_select_builds_postgrest_filters(backend, session):
    session.request.return_value = make_response(200, [{'id': 1}])

    rows = backend.select('newsletter', {'unsubscribed': False, 'email': 'a@gmail.com'},
                          order='created_at.desc', limit=5)

    assert rows == [{'id': 1}]
    params = session.request.call_args[1]['params']
    assert params == {
        'select': '*',
        'unsubscribed': 'eq.false',
        'email': 'eq.a@gmail.com',
        'order': 'created_at.desc',
        'limit': 5,
    }


def test_insert_asks_for_representation(backend, session):
    session.request.return_value = make_response(201, [{'id': 9}])

    backend.insert('grant_applications', [{'child_name': 'Sam'}])

    kwargs = session.request.call_args[1]
    assert kwargs['headers']['Prefer'] == 'return=representation'
    assert kwargs['json'] == [{'child_name': 'Sam'}]


def test_postgrest_error_keeps_code(backend, session):
    session.request.return_value = make_response(
        409, {'code': '23505', 'message': 'duplicate key value violates unique constraint'}
    )

    with pytest.raises(BackendError) as exc_info:
        backend.insert('newsletter', [{'email': 'a@gmail.com'}])

    assert exc_info.value.status_code == 409
    assert exc_info.value.is_unique_violation
    assert exc_info.value.message.startswith('duplicate key')


def test_delete_requires_filters(backend):
    with pytest.raises(ValueError):
        backend.delete('newsletter', {})


def test_count_reads_content_range(backend, session):
    session.request.return_value = make_response(200, headers={'Content-Range': '0-24/42'})

    assert backend.count('newsletter', {'unsubscribed': False}) == 42
    assert session.request.call_args[1]['headers']['Prefer'] == 'count=exact'


def test_create_auth_user_confirms_email(backend, session):
    session.request.return_value = make_response(200, {'id': 'u2', 'email': 'new@ballfour.org'})

    user = backend.create_auth_user('new@ballfour.org', 'secret1')

    assert user.id == 'u2'
    assert session.request.call_args[1]['json']['email_confirm'] is True


def test_unconfigured_backend():
    backend = HostedBackend('', '', session=MagicMock())

    with pytest.raises(ConfigurationError):
        backend.select('notes')
