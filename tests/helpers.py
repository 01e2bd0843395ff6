"""
Shared doubles for HTTP responses and vendor payloads
"""

import json
from unittest.mock import MagicMock

from core.models import AuthUser


def make_response(status=200, payload=None, text=None, headers=None):
    """requests.Response stand-in with the attributes the clients read"""
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.json.return_value = payload
    response.content = b'' if payload is None and not text else b'body'
    response.text = text if text is not None else (json.dumps(payload) if payload is not None else '')
    response.headers = headers or {}
    return response


def ga_rows(*rows):
    """GA4 runReport payload from (dimension values, metric values) tuples"""
    return {
        'rows': [
            {
                'dimensionValues': [{'value': v} for v in dimensions],
                'metricValues': [{'value': str(v)} for v in metrics],
            }
            for dimensions, metrics in rows
        ]
    }


ADMIN_TOKEN = 'admin-token'
USER_TOKEN = 'user-token'

ADMIN_HEADERS = {'Authorization': f'Bearer {ADMIN_TOKEN}'}
USER_HEADERS = {'Authorization': f'Bearer {USER_TOKEN}'}

USERS = {
    ADMIN_TOKEN: AuthUser(id='admin-1', email='admin@ballfour.org'),
    USER_TOKEN: AuthUser(id='user-2', email='member@ballfour.org'),
}
