# api/content.py
"""
Public content and contact endpoints
"""

from flask import Blueprint, current_app, jsonify, request
import logging

from core.extensions import limiter, public_form_limit

content_bp = Blueprint('content', __name__)
logger = logging.getLogger(__name__)


@content_bp.route('/api/notes', methods=['GET'])
def list_notes():
    featured = request.args.get('featured')
    featured = None if featured is None else featured.lower() == 'true'
    notes = current_app.notes.list_notes(featured)
    return jsonify({'success': True, 'notes': [n.to_dict() for n in notes]})


@content_bp.route('/api/notes/<int:note_id>', methods=['GET'])
def get_note(note_id):
    return jsonify({'success': True, 'note': current_app.notes.get_note(note_id).to_dict()})


@content_bp.route('/api/posts', methods=['GET'])
def list_posts():
    per_page = request.args.get('per_page', 100, type=int)
    posts = current_app.wordpress.list_posts(per_page)
    return jsonify({'success': True, 'posts': [p.to_dict() for p in posts]})


@content_bp.route('/api/posts/<int:post_id>', methods=['GET'])
def get_post(post_id):
    return jsonify({'success': True, 'post': current_app.wordpress.get_post(post_id).to_dict()})


@content_bp.route('/api/contact-form', methods=['POST'])
@limiter.limit(public_form_limit)
def contact_form():
    return jsonify(current_app.contact.submit(request.get_json(silent=True)))
