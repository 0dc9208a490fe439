"""
Metric and insight routes — read-only views scoped to the caller.
"""
from flask import Blueprint, g, jsonify, request

from campaign_metrics.services.db import list_metrics, list_insights

bp = Blueprint('metrics', __name__)


@bp.route('/api/metrics/')
def metrics_list():
    """Metric records for the caller's uploads (all uploads for admins)."""
    upload_id = request.args.get('upload_id', type=int)
    return jsonify([m.to_dict() for m in list_metrics(g.caller, upload_id=upload_id)])


@bp.route('/api/insights/')
def insights_list():
    """Insight cards, optionally for one metric record."""
    metric_id = request.args.get('metric_id', type=int)
    return jsonify([i.to_dict() for i in list_insights(g.caller, metric_id=metric_id)])
