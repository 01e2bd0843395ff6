# api/admin.py
"""
Admin user management and dashboard overview endpoints
"""

from flask import Blueprint, current_app, g, jsonify, request
import logging

from core.models import ApplicationStatus, Role, Table
from middleware.security import require_admin

admin_bp = Blueprint('admin', __name__)
logger = logging.getLogger(__name__)


@admin_bp.route('/api/create-admin-user', methods=['POST'])
@require_admin
def create_admin_user():
    """Create a confirmed auth user with an admin profile"""
    data = request.get_json(silent=True) or {}
    user = current_app.accounts.create_admin_user(data.get('email'), data.get('password'))

    logger.info(f"{g.current_user.email} created admin {user.email}")
    return jsonify({
        'success': True,
        'message': 'Admin user created successfully',
        'user': {'id': user.id, 'email': user.email},
    })


@admin_bp.route('/api/delete-admin-user', methods=['POST'])
@require_admin
def delete_admin_user():
    """Delete a user's profile and auth account"""
    data = request.get_json(silent=True) or {}
    current_app.accounts.delete_admin_user(data.get('userId'), g.current_user.id)

    logger.info(f"{g.current_user.email} deleted user {data.get('userId')}")
    return jsonify({'success': True, 'message': 'User deleted successfully'})


@admin_bp.route('/api/admin-users', methods=['GET'])
@require_admin
def list_admin_users():
    admins = current_app.accounts.list_admins()
    return jsonify({'success': True, 'users': [admin.to_dict() for admin in admins]})


@admin_bp.route('/api/admin/overview', methods=['GET'])
@require_admin
def overview():
    """Record counts for the dashboard landing page"""
    backend = current_app.backend
    return jsonify({
        'success': True,
        'data': {
            'activeSubscribers': backend.count(Table.NEWSLETTER, {'unsubscribed': False}),
            'unsubscribedSubscribers': backend.count(Table.NEWSLETTER, {'unsubscribed': True}),
            'applications': backend.count(Table.GRANT_APPLICATIONS),
            'pendingApplications': backend.count(
                Table.GRANT_APPLICATIONS, {'status': ApplicationStatus.PENDING.value}
            ),
            'notes': backend.count(Table.NOTES),
            'admins': backend.count(Table.PROFILES, {'role': Role.ADMIN.value}),
        },
    })
