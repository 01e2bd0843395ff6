# api/grants.py
"""
Grant application intake and review endpoints
"""

from flask import Blueprint, current_app, jsonify, request
import logging

from core.extensions import limiter, public_form_limit
from middleware.security import require_admin

grants_bp = Blueprint('grants', __name__)
logger = logging.getLogger(__name__)


@grants_bp.route('/api/applications', methods=['POST'])
@limiter.limit(public_form_limit)
def submit_application():
    application = current_app.grants.submit(request.get_json(silent=True))
    return jsonify({'success': True, 'application': application.to_dict()}), 201


@grants_bp.route('/api/applications', methods=['GET'])
@require_admin
def list_applications():
    applications = current_app.grants.list_applications(request.args.get('status'))
    return jsonify({
        'success': True,
        'applications': [a.to_dict() for a in applications],
    })


@grants_bp.route('/api/applications/<int:application_id>/status', methods=['PATCH'])
@require_admin
def update_application_status(application_id):
    """Set the status; granted or rejected also emails the applicant"""
    data = request.get_json(silent=True) or {}
    return jsonify(current_app.grants.update_status(application_id, data.get('status')))


@grants_bp.route('/api/applications/<int:application_id>', methods=['DELETE'])
@require_admin
def delete_application(application_id):
    current_app.grants.delete(application_id)
    return jsonify({'success': True, 'message': 'Application deleted'})
