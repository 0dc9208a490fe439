"""
Flask application factory.

Creates and configures the Flask app, registers all blueprints and the JSON
error handlers.
"""
import logging
from datetime import timedelta

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

logger = logging.getLogger('campaign_metrics')

# Multipart framing around the file itself
_MULTIPART_OVERHEAD = 64 * 1024


def create_app():
    """Create and configure the Flask application."""
    from campaign_metrics.config import SECRET_KEY, MAX_UPLOAD_BYTES
    from campaign_metrics.logging_config import configure_logging
    from campaign_metrics.errors import PipelineError, TooLarge

    app = Flask(__name__)

    configure_logging(app)

    app.secret_key = SECRET_KEY
    app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(days=7)
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_BYTES + _MULTIPART_OVERHEAD

    # ── Session auth ────────────────────────────────────────────────────
    from campaign_metrics.auth import load_caller
    app.before_request(load_caller)

    # ── Error handlers ──────────────────────────────────────────────────
    @app.errorhandler(PipelineError)
    def handle_pipeline_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(e):
        err = TooLarge(size=request.content_length, limit=MAX_UPLOAD_BYTES)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return jsonify({'error': e.description, 'code': e.name.lower().replace(' ', '_')}), e.code
        logger.error("Unhandled error on %s %s", request.method, request.path, exc_info=True)
        return jsonify({'error': 'Internal server error', 'code': 'internal_error'}), 500

    # Register blueprints
    from campaign_metrics.routes.auth import bp as auth_bp
    from campaign_metrics.routes.dashboard import bp as dashboard_bp
    from campaign_metrics.routes.uploads import bp as uploads_bp
    from campaign_metrics.routes.metrics import bp as metrics_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(uploads_bp)
    app.register_blueprint(metrics_bp)

    # Circuit breaker for the OpenAI insight calls
    from campaign_metrics.extensions import redis_client
    from campaign_metrics.services.circuit_breaker import init_breakers
    init_breakers(redis_client)

    # Import models so Base.metadata knows about them.
    # Schema is managed by Alembic — no init_db() call.
    from campaign_metrics.database import import_models
    import_models()

    return app
