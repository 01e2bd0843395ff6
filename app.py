# app.py
"""
Flask Application Factory for the foundation site backend

The factory wires together:
- Environment-based configuration
- Clients for the hosted database/auth provider and vendor APIs
- Domain services (accounts, analytics, email, newsletter, grants, content)
- CORS, rate limiting and security headers
- JSON error envelope, health check and request logging
"""

import os
import logging
import logging.handlers
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix
import requests

from api.admin import admin_bp
from api.analytics import analytics_bp
from api.content import content_bp
from api.email import email_bp
from api.grants import grants_bp
from api.newsletter import newsletter_bp
from config.settings import CONFIGS
from core.exceptions import FoundationError
from core.extensions import cors, limiter
from core.google_oauth import GoogleOAuthClient
from core.hosted_backend import HostedBackend
from core.template_engine import FoundationTemplateEngine
from middleware.security import security_headers
from services.accounts import AdminAccountService
from services.analytics import AnalyticsCache
from services.contact import ContactFormService
from services.content import NotesService, WordPressClient
from services.email_sender import EmailDispatcher, EmailMessageBuilder, GmailClient
from services.google_analytics import GoogleAnalyticsClient, WebsiteAnalyticsService
from services.grants import GrantApplicationService
from services.linkedin_analytics import LinkedInAnalyticsService, MetricoolClient
from services.newsletter import NewsletterService


def setup_logging(app: Flask) -> None:
    """
    Configure application logging

    Logs go to stderr; development additionally keeps a rotating file.
    """
    app.logger.handlers.clear()

    formatter = logging.Formatter(
        fmt='%(asctime)s %(name)-20s %(levelname)-8s %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    log_level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    app.logger.setLevel(log_level)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(log_level)
    app.logger.addHandler(stream_handler)

    if app.config.get('DEBUG') and not app.config.get('TESTING'):
        log_dir = Path(app.config.get('LOG_DIR', 'logs'))
        log_dir.mkdir(exist_ok=True, parents=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / 'foundation.log',
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        )
        file_handler.setFormatter(logging.Formatter(
            fmt='%(asctime)s %(name)-20s %(levelname)-8s %(funcName)-15s:%(lineno)-4d %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        file_handler.setLevel(logging.DEBUG)
        app.logger.addHandler(file_handler)

    # Module loggers (core.*, services.*, api.*) share the app handlers
    for package in ('core', 'services', 'api', 'middleware'):
        package_logger = logging.getLogger(package)
        package_logger.setLevel(log_level)
        package_logger.handlers = list(app.logger.handlers)
        package_logger.propagate = False

    if not app.debug:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
        logging.getLogger('urllib3').setLevel(logging.WARNING)


def configure_services(app: Flask, backend: Optional[HostedBackend] = None,
                       http_session: Optional[requests.Session] = None) -> None:
    """
    Build vendor clients and domain services and attach them to the app

    Args:
        backend: Hosted backend client to use instead of one built from config
        http_session: Shared HTTP session for every vendor client
    """
    config = app.config
    timeout = config['VENDOR_TIMEOUT']

    app.backend = backend or HostedBackend(
        config['SUPABASE_URL'], config['SUPABASE_SERVICE_ROLE_KEY'],
        timeout=timeout, session=http_session
    )
    app.template_engine = FoundationTemplateEngine(config['MAIL_SENDER_NAME'])
    cache = AnalyticsCache.from_url(config['REDIS_URL'], ttl=config['ANALYTICS_CACHE_TTL'])

    oauth = GoogleOAuthClient(
        config['GA_CLIENT_ID'], config['GA_CLIENT_SECRET'],
        timeout=timeout, session=http_session
    )

    app.gmail = GmailClient(
        oauth,
        config['GMAIL_REFRESH_TOKEN'] or config['GA_REFRESH_TOKEN'],
        config['GMAIL_USER'],
        timeout=timeout, session=http_session
    )
    app.dispatcher = EmailDispatcher(
        app.gmail,
        EmailMessageBuilder(config['GMAIL_USER'], config['MAIL_SENDER_NAME'], app.template_engine)
    )

    app.website_analytics = WebsiteAnalyticsService(
        oauth,
        GoogleAnalyticsClient(config['GA_PROPERTY_ID'], timeout=timeout, session=http_session),
        config['GA_REFRESH_TOKEN'],
        cache=cache
    )
    app.linkedin_analytics = LinkedInAnalyticsService(
        MetricoolClient(
            config['METRICOOL_API_KEY'], config['METRICOOL_USER_ID'],
            config['METRICOOL_BLOG_ID'], timeout=timeout, session=http_session
        ),
        timezone=config['METRICOOL_TIMEZONE'],
        cache=cache
    )

    app.accounts = AdminAccountService(app.backend)
    app.newsletter = NewsletterService(app.backend, app.dispatcher)
    app.grants = GrantApplicationService(app.backend, app.template_engine, app.dispatcher)
    app.notes = NotesService(app.backend)
    app.wordpress = WordPressClient(
        config['WORDPRESS_API_URL'], app.template_engine,
        timeout=timeout, session=http_session
    )
    app.contact = ContactFormService(
        app.template_engine, app.dispatcher, config['CONTACT_NOTIFY_EMAIL']
    )

    if not app.backend.configured:
        app.logger.warning("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not set")
    app.logger.info("Services configured")


def configure_security(app: Flask) -> None:
    """CORS and rate limiting"""
    cors.init_app(
        app,
        origins=app.config.get('CORS_ORIGINS', ['http://localhost:5173']),
        supports_credentials=True,
        allow_headers=['Content-Type', 'Authorization', 'apikey', 'x-client-info']
    )
    limiter.init_app(app)
    app.logger.info("Security features configured")


def register_blueprints(app: Flask) -> None:
    """
    Register all application blueprints
    """
    for blueprint in (admin_bp, analytics_bp, email_bp, newsletter_bp, grants_bp, content_bp):
        app.register_blueprint(blueprint)

    app.logger.info("Application blueprints registered")


def configure_error_handlers(app: Flask) -> None:
    """
    Render every error as ``{"success": false, "error": ...}``
    """
    @app.errorhandler(FoundationError)
    def handle_foundation_error(error):
        if error.status_code >= 500:
            app.logger.error(f"{request.method} {request.path} failed: {error.message}")
        else:
            app.logger.warning(f"{request.method} {request.path} rejected: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(429)
    def rate_limit_exceeded(error):
        app.logger.warning(f"Rate limit exceeded for {request.remote_addr}")
        return jsonify({
            'success': False,
            'error': 'Too many requests. Please try again later.',
        }), 429

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return jsonify({'success': False, 'error': error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Handle unexpected exceptions"""
        app.logger.error(f"Unhandled exception: {e}", exc_info=True)
        return jsonify({
            'success': False,
            'error': 'An unexpected error occurred',
        }), 500


def configure_health_checks(app: Flask) -> None:
    @app.route('/health')
    def health_check():
        """Basic health check endpoint"""
        return jsonify({
            'status': 'healthy',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'version': app.config.get('VERSION', '1.0.0'),
            'components': {
                'hosted_backend': 'configured' if app.backend.configured else 'not configured',
                'gmail': 'configured' if app.gmail.configured else 'not configured',
            },
        })


def configure_request_middleware(app: Flask) -> None:
    """
    Request timing, admin access logging and security headers
    """
    @app.before_request
    def before_request():
        g.start_time = datetime.now(timezone.utc)

        if request.endpoint and request.endpoint.split('.')[0] in ('admin', 'email', 'analytics'):
            app.logger.info(f"Admin endpoint access: {request.endpoint} from {request.remote_addr}")

    @app.after_request
    def after_request(response):
        response = security_headers(response)

        if hasattr(g, 'start_time'):
            duration = (datetime.now(timezone.utc) - g.start_time).total_seconds() * 1000
            if duration > app.config.get('SLOW_REQUEST_THRESHOLD', 1000):
                app.logger.warning(f"Slow request ({duration:.0f}ms): {request.method} {request.path}")

        return response


def create_app(config_name: str = None, backend: Optional[HostedBackend] = None,
               http_session: Optional[requests.Session] = None) -> Flask:
    """
    Flask application factory

    Args:
        config_name: Configuration environment ('development', 'testing', 'production')
        backend: Hosted backend client override
        http_session: HTTP session shared by the vendor clients

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    config_name = config_name or os.environ.get('FLASK_ENV', 'production')
    app.config.from_object(CONFIGS.get(config_name, CONFIGS['production']))

    if config_name == 'production':
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    setup_logging(app)
    app.logger.info(f"Starting foundation backend in {config_name} mode")

    configure_services(app, backend=backend, http_session=http_session)
    configure_security(app)
    register_blueprints(app)
    configure_error_handlers(app)
    configure_health_checks(app)
    configure_request_middleware(app)

    app.logger.info("Flask application factory completed successfully")
    return app


if __name__ == '__main__':
    # Development server
    create_app('development').run(host='0.0.0.0', port=5000, debug=True)
