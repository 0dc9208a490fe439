"""
Dashboard routes — health check, pipeline description.
"""
from flask import Blueprint, jsonify

from campaign_metrics.config import MAX_UPLOAD_BYTES, REQUIRED_COLUMNS, OPTIONAL_COLUMNS
from campaign_metrics.pipeline.base import get_pipeline_info
from campaign_metrics.pipeline.manager import STAGE_REGISTRY

bp = Blueprint('dashboard', __name__)


@bp.route('/health')
def health_check():
    """Health check endpoint."""
    return jsonify({"status": "healthy"}), 200


@bp.route('/api/pipeline')
def pipeline_info():
    """Stages, upload limit and expected columns for the upload page."""
    return jsonify({
        'stages': get_pipeline_info(STAGE_REGISTRY),
        'maxUploadBytes': MAX_UPLOAD_BYTES,
        'requiredColumns': [c.capitalize() for c in REQUIRED_COLUMNS],
        'optionalColumns': [c.capitalize() for c in OPTIONAL_COLUMNS],
    })
