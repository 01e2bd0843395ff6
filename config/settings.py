# config/settings.py
"""
Environment-driven configuration for the foundation site backend

Every secret and vendor credential is read from the environment so the same
image runs in development, CI and production.
"""

import os


def _env_list(name: str, default: str = '') -> list:
    raw = os.environ.get(name, default)
    return [item.strip() for item in raw.split(',') if item.strip()]


class BaseConfig:
    """Settings shared by every environment"""

    VERSION = os.environ.get('APP_VERSION', '1.0.0')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_DIR = os.environ.get('LOG_DIR', 'logs')
    SLOW_REQUEST_THRESHOLD = 1000  # milliseconds

    # Hosted database / auth provider
    SUPABASE_URL = os.environ.get('SUPABASE_URL', '')
    SUPABASE_SERVICE_ROLE_KEY = os.environ.get('SUPABASE_SERVICE_ROLE_KEY', '')

    # Google OAuth client shared by Analytics and Gmail
    GA_CLIENT_ID = os.environ.get('GA_CLIENT_ID', '')
    GA_CLIENT_SECRET = os.environ.get('GA_CLIENT_SECRET', '')
    GA_REFRESH_TOKEN = os.environ.get('GA_REFRESH_TOKEN', '')
    # Numeric property id, not the G-XXXXXXX measurement id
    GA_PROPERTY_ID = os.environ.get('GA_PROPERTY_ID', '')

    # Gmail sending
    GMAIL_REFRESH_TOKEN = os.environ.get('GMAIL_REFRESH_TOKEN', '')
    GMAIL_USER = os.environ.get('GMAIL_USER', '')
    MAIL_SENDER_NAME = os.environ.get('MAIL_SENDER_NAME', 'BallFour Foundation')
    CONTACT_NOTIFY_EMAIL = os.environ.get('CONTACT_NOTIFY_EMAIL', '')

    # Metricool (LinkedIn analytics)
    METRICOOL_API_KEY = os.environ.get('METRICOOL_API_KEY', '')
    METRICOOL_USER_ID = os.environ.get('METRICOOL_USER_ID', '')
    METRICOOL_BLOG_ID = os.environ.get('METRICOOL_BLOG_ID', '')
    METRICOOL_TIMEZONE = os.environ.get('METRICOOL_TIMEZONE', 'America/Indianapolis')

    # WordPress blog
    WORDPRESS_API_URL = os.environ.get(
        'WORDPRESS_API_URL', 'https://blog.ballfour.org/wp-json/wp/v2'
    )

    # Outbound HTTP
    VENDOR_TIMEOUT = float(os.environ.get('VENDOR_TIMEOUT', 30))

    # Analytics report cache
    REDIS_URL = os.environ.get('REDIS_URL', '')
    ANALYTICS_CACHE_TTL = int(os.environ.get('ANALYTICS_CACHE_TTL', 300))

    # Rate limiting
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_HEADERS_ENABLED = True
    PUBLIC_FORM_RATE_LIMIT = os.environ.get('PUBLIC_FORM_RATE_LIMIT', '10 per minute')

    # CORS
    CORS_ORIGINS = _env_list('CORS_ORIGINS', 'http://localhost:5173')

    # Request limits
    MAX_CONTENT_LENGTH = 2 * 1024 * 1024  # 2MB

    # Security headers
    SECURITY_HEADERS = {
        'X-Content-Type-Options': 'nosniff',
        'X-Frame-Options': 'DENY',
        'Strict-Transport-Security': 'max-age=31536000; includeSubDomains',
        'Referrer-Policy': 'strict-origin-when-cross-origin',
        'Permissions-Policy': 'camera=(), microphone=(), geolocation=()'
    }


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class TestingConfig(BaseConfig):
    TESTING = True
    SUPABASE_URL = 'https://test-project.supabase.co'
    SUPABASE_SERVICE_ROLE_KEY = 'service-role-key'
    REDIS_URL = ''
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = 'memory://'
    CORS_ORIGINS = ['http://localhost:5173']


class ProductionConfig(BaseConfig):
    PREFERRED_URL_SCHEME = 'https'


CONFIGS = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}
