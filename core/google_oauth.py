# core/google_oauth.py
"""
Google OAuth2 refresh-token exchange shared by the Analytics and Gmail clients
"""

import logging
from typing import Optional

import requests

from core.exceptions import VendorError

logger = logging.getLogger(__name__)


class GoogleOAuthClient:
    """Trades a long-lived refresh token for a short-lived access token"""

    TOKEN_URL = 'https://oauth2.googleapis.com/token'

    def __init__(self, client_id: str, client_secret: str, timeout: float = 30,
                 session: Optional[requests.Session] = None):
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def access_token(self, refresh_token: str) -> str:
        """
        Exchange a refresh token for an access token

        Raises:
            VendorError: (401) when the token endpoint rejects the exchange
        """
        if not refresh_token:
            raise VendorError('Refresh token not configured', 401)

        try:
            response = self.session.post(
                self.TOKEN_URL,
                data={
                    'client_id': self.client_id,
                    'client_secret': self.client_secret,
                    'refresh_token': refresh_token,
                    'grant_type': 'refresh_token',
                },
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Google token endpoint unreachable: {e}")
            raise VendorError(f'Failed to get access token: {e}', 401)

        if not response.ok:
            logger.error(f"Error refreshing access token: {response.status_code} {response.text}")
            raise VendorError(
                f'Failed to get access token: {response.status_code} - {response.text}',
                401, body=response.text
            )

        token = response.json().get('access_token')
        if not token:
            raise VendorError('Failed to get access token: response had no access_token', 401)
        return token
