# core/exceptions.py
"""
Exception hierarchy for the foundation site backend

Every error that should reach a caller carries the HTTP status it maps to;
the application error handler renders it as ``{"success": false, "error": ...}``.
"""

from typing import Optional


class FoundationError(Exception):
    """Base exception for caller-visible failures"""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'success': False, 'error': self.message}


class BadRequestError(FoundationError):
    """Invalid or missing request input"""
    status_code = 400


class AuthorizationError(FoundationError):
    """Missing bearer token, invalid token or insufficient role"""
    status_code = 400


class NotFoundError(FoundationError):
    status_code = 404


class ConfigurationError(FoundationError):
    """Vendor credentials or settings are missing"""
    status_code = 400


class VendorError(FoundationError):
    """A vendor API answered with a non-2xx status or could not be reached"""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 body: Optional[str] = None):
        super().__init__(message, status_code or 500)
        self.body = body


class BackendError(FoundationError):
    """The hosted database/auth provider rejected a request"""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 code: Optional[str] = None):
        super().__init__(message, status_code or 400)
        self.code = code

    @property
    def is_unique_violation(self) -> bool:
        return self.code == '23505'
