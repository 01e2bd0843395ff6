# middleware/security.py
"""
Security Middleware for Request Processing
"""

from flask import current_app, g, request
from functools import wraps
import logging

from core.exceptions import AuthorizationError, BackendError
from core.models import Profile, Table

logger = logging.getLogger(__name__)


def security_headers(response):
    """Add security headers to all responses"""
    for header, value in current_app.config.get('SECURITY_HEADERS', {}).items():
        response.headers.setdefault(header, value)
    return response


def bearer_token() -> str:
    """Access token from the Authorization header"""
    auth_header = request.headers.get('Authorization')
    if not auth_header:
        raise AuthorizationError('No authorization header')

    token = auth_header.replace('Bearer ', '', 1).strip()
    if not token:
        raise AuthorizationError('Invalid token')
    return token


def require_admin(f=None, role_status_code: int = 400):
    """
    Decorator requiring a bearer token whose profile has the admin role

    Sets ``g.current_user`` and ``g.current_profile`` for the view. A missing
    or invalid token fails with 400; a non-admin caller fails with
    ``role_status_code``.
    """
    def decorator(view):
        @wraps(view)
        def decorated_function(*args, **kwargs):
            backend = current_app.backend
            user = backend.get_user(bearer_token())

            try:
                row = backend.select_one(Table.PROFILES, {'id': user.id},
                                         columns='id,email,role,created_at')
            except BackendError as e:
                logger.warning(f"Profile lookup failed for {user.id}: {e.message}")
                row = None

            profile = Profile.from_row(row) if row else None
            if profile is None or not profile.is_admin:
                logger.warning(
                    f"Admin access denied for {user.email or user.id} on {request.endpoint}"
                )
                raise AuthorizationError('Unauthorized: Admin access required', role_status_code)

            g.current_user = user
            g.current_profile = profile
            return view(*args, **kwargs)
        return decorated_function

    if f is not None:
        return decorator(f)
    return decorator
