"""
Tests for application logging setup
"""

import logging
import logging.handlers

import pytest
from flask import Flask

from app import setup_logging

PACKAGES = ('core', 'services', 'api', 'middleware')


@pytest.fixture
def debug_app(tmp_path):
    app = Flask(__name__)
    app.config.update(DEBUG=True, TESTING=False, LOG_LEVEL='DEBUG', LOG_DIR=str(tmp_path))
    yield app
    for handler in app.logger.handlers:
        handler.close()
    for package in PACKAGES:
        logging.getLogger(package).handlers = []


def test_development_file_log_receives_service_logs(debug_app, tmp_path):
    setup_logging(debug_app)

    for package in PACKAGES:
        handlers = logging.getLogger(package).handlers
        assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in handlers)

    logging.getLogger('services.newsletter').info('Newsletter re-subscription: fan@gmail.com')
    for handler in debug_app.logger.handlers:
        handler.flush()

    assert 'Newsletter re-subscription' in (tmp_path / 'foundation.log').read_text()


def test_testing_config_has_no_file_log(tmp_path):
    app = Flask(__name__)
    app.config.update(DEBUG=True, TESTING=True, LOG_DIR=str(tmp_path / 'logs'))

    setup_logging(app)

    assert not any(
        isinstance(h, logging.handlers.RotatingFileHandler)
        for h in logging.getLogger('services').handlers
    )
    assert not (tmp_path / 'logs').exists()
