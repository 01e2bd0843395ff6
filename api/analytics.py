# api/analytics.py
"""
Analytics API endpoints for the admin dashboards
"""

from flask import Blueprint, current_app, jsonify, request
import logging

from middleware.security import require_admin
from services.analytics import resolve_window

# Create blueprint
analytics_bp = Blueprint('analytics', __name__)
logger = logging.getLogger(__name__)


def _window_from_request():
    return resolve_window(
        request.args.get('dateRange') or '7days',
        request.args.get('startDate'),
        request.args.get('endDate')
    )


def _force_refresh() -> bool:
    return request.args.get('refresh', 'false').lower() == 'true'


@analytics_bp.route('/api/get-analytics', methods=['GET'])
@require_admin
def get_analytics():
    """Website traffic report from Google Analytics"""
    service = current_app.website_analytics
    service.ensure_configured()

    report = service.report(_window_from_request(), force_refresh=_force_refresh())
    return jsonify({'success': True, 'data': report})


@analytics_bp.route('/api/get-linkedin-analytics', methods=['GET'])
@require_admin
def get_linkedin_analytics():
    """LinkedIn follower report from Metricool"""
    service = current_app.linkedin_analytics
    service.ensure_configured()

    report = service.report(_window_from_request(), force_refresh=_force_refresh())
    return jsonify({'success': True, 'data': report})
