"""
Tests for grant application intake and decisions
"""

from unittest.mock import MagicMock

import pytest

from core.exceptions import BadRequestError, ConfigurationError, NotFoundError
from core.models import Table
from services.email_sender import DispatchResult, RecipientResult
from services.grants import GrantApplicationService

APPLICATION_ROW = {
    'id': 7,
    'child_name': 'Sam',
    'email': 'parent@gmail.com',
    'parent_name': 'Alex',
    'status': 'pending',
}


@pytest.fixture
def dispatcher():
    mock = MagicMock()
    mock.dispatch.return_value = DispatchResult([RecipientResult('parent@gmail.com', 'success')])
    return mock


@pytest.fixture
def service(backend, template_engine, dispatcher):
    return GrantApplicationService(backend, template_engine, dispatcher)


def test_submit_trims_and_nulls_optional_fields(service, backend):
    application = service.submit({
        'childName': '  Sam ',
        'email': 'parent@gmail.com',
        'phone': '   ',
        'parentName': ' Alex ',
    })

    backend.insert.assert_called_once_with(Table.GRANT_APPLICATIONS, [{
        'child_name': 'Sam',
        'email': 'parent@gmail.com',
        'phone': None,
        'parent_name': 'Alex',
        'additional_notes': None,
    }])
    assert application.status == 'pending'


@pytest.mark.parametrize('payload', [
    {'email': 'parent@gmail.com'},
    {'childName': 'Sam'},
    {'childName': 'Sam', 'email': 'not an email'},
])
def test_submit_rejects_incomplete_payload(service, backend, payload):
    with pytest.raises(BadRequestError):
        service.submit(payload)
    backend.insert.assert_not_called()


def test_granting_sends_approval_email(service, backend, dispatcher):
    backend.update.return_value = [dict(APPLICATION_ROW, status='granted')]

    result = service.update_status(7, 'granted')

    backend.update.assert_called_once_with(
        Table.GRANT_APPLICATIONS, {'status': 'granted'}, {'id': 7}
    )
    request = dispatcher.dispatch.call_args[0][0]
    assert request.recipients == ['parent@gmail.com']
    assert 'approved' in request.subject
    assert 'Dear Sam and Alex' in request.content
    assert result['email'] == {'sent': True, 'recipient': 'parent@gmail.com'}


def test_status_stands_when_decision_email_fails(service, backend, dispatcher):
    backend.update.return_value = [dict(APPLICATION_ROW, status='rejected')]
    dispatcher.dispatch.side_effect = ConfigurationError('Gmail configuration missing.', 500)

    result = service.update_status(7, 'rejected')

    assert result['success'] is True
    assert result['application']['status'] == 'rejected'
    assert result['email']['sent'] is False
    assert result['email']['error'] == 'Gmail configuration missing.'


def test_pending_sends_no_email(service, backend, dispatcher):
    backend.update.return_value = [APPLICATION_ROW]

    result = service.update_status(7, 'pending')

    assert 'email' not in result
    dispatcher.dispatch.assert_not_called()


def test_unknown_status_rejected(service, backend):
    with pytest.raises(BadRequestError):
        service.update_status(7, 'approved')
    backend.update.assert_not_called()


def test_update_unknown_application(service, backend):
    backend.update.return_value = []
    with pytest.raises(NotFoundError):
        service.update_status(99, 'granted')


def test_list_filters_by_status(service, backend):
    backend.select.return_value = [APPLICATION_ROW]

    applications = service.list_applications('pending')

    assert applications[0].child_name == 'Sam'
    backend.select.assert_called_once_with(
        Table.GRANT_APPLICATIONS, {'status': 'pending'}, order='created_at.desc'
    )
