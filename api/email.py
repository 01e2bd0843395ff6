# api/email.py
"""
Email campaign endpoints
"""

from flask import Blueprint, current_app, g, jsonify, request
import logging

from middleware.security import require_admin
from services.email_sender import parse_email_request

email_bp = Blueprint('email', __name__)
logger = logging.getLogger(__name__)


@email_bp.route('/api/send-email', methods=['POST'])
@require_admin(role_status_code=403)
def send_email():
    """
    Send one message per recipient through Gmail

    Per-recipient failures are reported in ``results``; the request itself
    succeeds once dispatch has started.
    """
    current_app.dispatcher.ensure_configured()
    email_request = parse_email_request(request.get_json(silent=True))

    logger.info(
        f"{g.current_user.email} sending '{email_request.subject}' to "
        f"{len(email_request.recipients)} recipient(s)"
    )
    result = current_app.dispatcher.dispatch(email_request)
    return jsonify(result.to_dict())


@email_bp.route('/api/send-newsletter', methods=['POST'])
@require_admin
def send_newsletter():
    """Send a newsletter to active subscribers or to ``recipientEmails``"""
    result = current_app.newsletter.send_newsletter(request.get_json(silent=True))
    payload = result.to_dict()
    payload['message'] = 'Newsletter sent successfully'
    payload['recipients'] = len(result.results)
    return jsonify(payload)
