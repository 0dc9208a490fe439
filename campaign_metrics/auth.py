"""
Session authentication — resolves the logged-in user into an explicit Caller.

Routes read `g.caller` and pass it into every core call; nothing below the
route layer touches the Flask session.
"""
import logging
from flask import g, jsonify, request, session

from campaign_metrics.services.db import get_user
from campaign_metrics.pipeline.base import Caller

logger = logging.getLogger('campaign_metrics.auth')

OPEN_PATHS = {'/health', '/api/login'}


def login_user(user):
    session.clear()
    session['user_id'] = user.id
    session.permanent = True


def logout_user():
    session.clear()


def load_caller():
    """before_request hook: populate g.caller or answer 401."""
    g.caller = None
    g.user = None
    if request.path in OPEN_PATHS or request.path.startswith('/static/'):
        return None

    user_id = session.get('user_id')
    user = get_user(user_id) if user_id is not None else None
    if user is None or not user.can_log_in():
        if user_id is not None:
            logger.info("Dropping session for unavailable user %s", user_id)
            session.clear()
        return jsonify({'error': 'Authentication required', 'code': 'unauthorized'}), 401

    g.user = user
    g.caller = Caller(user_id=user.id, role=user.role)
    return None

