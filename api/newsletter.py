# api/newsletter.py
"""
Newsletter subscription and subscriber management endpoints
"""

from flask import Blueprint, current_app, jsonify, request
import logging

from core.extensions import limiter, public_form_limit
from middleware.security import require_admin

newsletter_bp = Blueprint('newsletter', __name__)
logger = logging.getLogger(__name__)


@newsletter_bp.route('/api/newsletter/subscribe', methods=['POST'])
@limiter.limit(public_form_limit)
def subscribe():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}
    result = current_app.newsletter.subscribe(data.get('email'), data.get('name'))
    return jsonify(result.to_dict())


@newsletter_bp.route('/api/subscribers', methods=['GET'])
@require_admin
def list_subscribers():
    status = request.args.get('status', 'active')
    subscribers = current_app.newsletter.list_subscribers(status)
    return jsonify({
        'success': True,
        'status': status,
        'subscribers': [s.to_dict() for s in subscribers],
    })


@newsletter_bp.route('/api/subscribers/<int:subscriber_id>/unsubscribe', methods=['POST'])
@require_admin
def unsubscribe(subscriber_id):
    subscriber = current_app.newsletter.set_unsubscribed(subscriber_id, True)
    return jsonify({'success': True, 'subscriber': subscriber.to_dict()})


@newsletter_bp.route('/api/subscribers/<int:subscriber_id>/resubscribe', methods=['POST'])
@require_admin
def resubscribe(subscriber_id):
    subscriber = current_app.newsletter.set_unsubscribed(subscriber_id, False)
    return jsonify({'success': True, 'subscriber': subscriber.to_dict()})


@newsletter_bp.route('/api/subscribers/<int:subscriber_id>', methods=['DELETE'])
@require_admin
def delete_subscriber(subscriber_id):
    """Permanently remove a subscriber"""
    current_app.newsletter.delete_subscriber(subscriber_id)
    return jsonify({'success': True, 'message': 'Subscriber deleted'})
