# core/hosted_backend.py
"""
Client for the hosted database/auth provider (Supabase)

Talks to the auth admin API (GoTrue) and the table API (PostgREST) with the
service-role key. All row-level rules live in the hosted project; this client
only shapes requests and turns error payloads into BackendError.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from core.exceptions import AuthorizationError, BackendError, ConfigurationError
from core.models import AuthUser

logger = logging.getLogger(__name__)


def _filter_value(value: Any) -> str:
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    if value is None:
        return "is.null"
    return f"eq.{value}"


class HostedBackend:
    """Thin REST client for the hosted project"""

    def __init__(self, base_url: str, service_role_key: str,
                 timeout: float = 30, session: Optional[requests.Session] = None):
        self.base_url = (base_url or '').rstrip('/')
        self.service_role_key = service_role_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.service_role_key)

    def _headers(self, bearer: Optional[str] = None, **extra) -> Dict[str, str]:
        headers = {
            'apikey': self.service_role_key,
            'Authorization': f'Bearer {bearer or self.service_role_key}',
            'Content-Type': 'application/json',
        }
        headers.update(extra)
        return headers

    def _request(self, method: str, path: str, headers: Optional[Dict[str, str]] = None,
                 **kwargs) -> requests.Response:
        if not self.configured:
            raise ConfigurationError('Hosted backend is not configured', 500)

        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, headers=headers or self._headers(),
                timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.error(f"Hosted backend unreachable ({method} {path}): {e}")
            raise BackendError(f'Hosted backend unreachable: {e}', 502)

        if not response.ok:
            raise self._error_from(response)
        return response

    @staticmethod
    def _error_from(response: requests.Response) -> BackendError:
        code = None
        message = response.text or f'HTTP {response.status_code}'
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            message = (payload.get('message') or payload.get('msg')
                       or payload.get('error_description') or payload.get('error')
                       or message)
            raw_code = payload.get('code') or payload.get('error_code')
            code = str(raw_code) if raw_code is not None else None

        logger.warning(f"Hosted backend error {response.status_code}: {message}")
        return BackendError(message, response.status_code, code)

    @staticmethod
    def _json(response: requests.Response) -> Any:
        if not response.content:
            return None
        return response.json()

    # -- auth ---------------------------------------------------------------

    def get_user(self, access_token: str) -> AuthUser:
        """Resolve a caller's access token to the auth user it belongs to"""
        try:
            response = self._request('GET', '/auth/v1/user', headers=self._headers(access_token))
        except BackendError as e:
            logger.info(f"Access token rejected: {e.message}")
            raise AuthorizationError('Invalid token')

        payload = self._json(response) or {}
        if not payload.get('id'):
            raise AuthorizationError('Invalid token')
        return AuthUser.from_row(payload)

    def create_auth_user(self, email: str, password: str) -> AuthUser:
        response = self._request('POST', '/auth/v1/admin/users', json={
            'email': email,
            'password': password,
            'email_confirm': True,
        })
        payload = self._json(response) or {}
        # Older GoTrue versions nest the user
        user = payload.get('user', payload)
        if not user.get('id'):
            raise BackendError('Failed to create user')
        return AuthUser.from_row(user)

    def delete_auth_user(self, user_id: str) -> None:
        self._request('DELETE', f'/auth/v1/admin/users/{user_id}')

    # -- tables -------------------------------------------------------------

    def select(self, table: str, filters: Optional[Dict[str, Any]] = None,
               columns: str = '*', order: Optional[str] = None,
               limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Read rows from a table

        Args:
            table: Table name
            filters: Column equality filters
            columns: PostgREST select expression
            order: Order expression such as ``created_at.desc``
            limit: Maximum number of rows
        """
        params = {'select': columns}
        for column, value in (filters or {}).items():
            params[column] = _filter_value(value)
        if order:
            params['order'] = order
        if limit is not None:
            params['limit'] = limit

        response = self._request('GET', f'/rest/v1/{table}', params=params)
        return self._json(response) or []

    def select_one(self, table: str, filters: Dict[str, Any],
                   columns: str = '*') -> Optional[Dict[str, Any]]:
        rows = self.select(table, filters, columns=columns, limit=1)
        return rows[0] if rows else None

    def insert(self, table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        response = self._request(
            'POST', f'/rest/v1/{table}', json=rows,
            headers=self._headers(Prefer='return=representation')
        )
        return self._json(response) or []

    def update(self, table: str, values: Dict[str, Any],
               filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        params = {column: _filter_value(value) for column, value in filters.items()}
        response = self._request(
            'PATCH', f'/rest/v1/{table}', json=values, params=params,
            headers=self._headers(Prefer='return=representation')
        )
        return self._json(response) or []

    def delete(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        if not filters:
            raise ValueError('Refusing to delete without filters')
        params = {column: _filter_value(value) for column, value in filters.items()}
        response = self._request(
            'DELETE', f'/rest/v1/{table}', params=params,
            headers=self._headers(Prefer='return=representation')
        )
        return self._json(response) or []

    def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        params = {'select': '*'}
        for column, value in (filters or {}).items():
            params[column] = _filter_value(value)

        response = self._request(
            'HEAD', f'/rest/v1/{table}', params=params,
            headers=self._headers(Prefer='count=exact')
        )
        # Content-Range looks like "0-24/42" or "*/0"
        content_range = response.headers.get('Content-Range', '')
        total = content_range.rsplit('/', 1)[-1]
        return int(total) if total.isdigit() else 0
