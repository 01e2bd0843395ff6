# core/extensions.py
"""
Flask extensions shared by the application factory and the blueprints
"""

from flask import current_app
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Rate limiter for public form endpoints
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per hour", "100 per minute"]
)

cors = CORS()


def public_form_limit() -> str:
    """Limit string for unauthenticated write endpoints, read from config"""
    return current_app.config.get('PUBLIC_FORM_RATE_LIMIT', '10 per minute')
