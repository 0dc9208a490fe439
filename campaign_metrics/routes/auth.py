"""
Auth routes — login, logout, current user.
"""
import logging
from flask import Blueprint, g, jsonify, request

from campaign_metrics.auth import login_user, logout_user
from campaign_metrics.services.db import authenticate

logger = logging.getLogger('routes.auth')

bp = Blueprint('auth', __name__)


@bp.route('/api/login', methods=['POST'])
def login():
    """Start a session for valid credentials."""
    data = request.get_json(silent=True) or request.form
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''

    if not username or not password:
        return jsonify({'error': 'Username and password are required', 'code': 'bad_request'}), 400

    user = authenticate(username, password)
    if user is None:
        logger.info("Failed login for %s", username)
        return jsonify({'error': 'Invalid username or password', 'code': 'unauthorized'}), 401

    login_user(user)
    logger.info("User %s logged in", user.id, extra={'user_id': user.id})
    return jsonify(user.to_dict())


@bp.route('/api/logout', methods=['POST'])
def logout():
    logout_user()
    return jsonify({'ok': True})


@bp.route('/api/user')
def current_user():
    """The logged-in user."""
    return jsonify(g.user.to_dict())
