"""
Upload routes — receive CSV files, trigger processing, status, listing, deletion.
"""
import logging
from flask import Blueprint, g, jsonify, request

from campaign_metrics.config import PROCESS_MODE, PROCESS_ON_UPLOAD
from campaign_metrics.errors import InvalidFormat, PipelineError
from campaign_metrics.pipeline.receiver import receive_upload
from campaign_metrics.pipeline.manager import (
    process_upload, enqueue_processing, get_upload_status,
)
from campaign_metrics.services.db import list_uploads, delete_upload

logger = logging.getLogger('routes.uploads')

bp = Blueprint('uploads', __name__)

_TRUE = {'1', 'true', 'yes', 'on'}


def _flag(name):
    """Boolean flag from the query string, form, or JSON body. None when absent."""
    value = request.args.get(name)
    if value is None:
        value = request.form.get(name)
    if value is None:
        body = request.get_json(silent=True) or {}
        value = body.get(name) if isinstance(body, dict) else None
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE


def _trigger(upload_id):
    """
    Run (sync mode) or enqueue (queue mode) processing for an upload.

    Returns (body, status_code).
    """
    lenient = _flag('lenient')
    if PROCESS_MODE == 'queue':
        upload = enqueue_processing(g.caller, upload_id, skip_malformed=lenient)
        return {'upload': upload.to_dict(), 'metric': None}, 202

    record = process_upload(g.caller, upload_id, skip_malformed=lenient)
    return {
        'upload': get_upload_status(g.caller, upload_id),
        'metric': record.to_dict(),
    }, 200


@bp.route('/api/upload-csv/', methods=['POST'])
def upload_csv():
    """
    Receive a CSV file and, unless process=false is sent, run the pipeline on it.

    The PROCESS_ON_UPLOAD setting picks the behaviour when the flag is absent.
    """
    file = request.files.get('file')
    if file is None:
        raise InvalidFormat("No file uploaded (expected multipart field 'file')")

    upload = receive_upload(g.caller, file.filename, file.read(), file.mimetype)

    process = _flag('process')
    if process is None:
        process = PROCESS_ON_UPLOAD
    if not process:
        return jsonify(upload.to_dict()), 201

    try:
        body, status = _trigger(upload.id)
    except PipelineError as e:
        # The upload itself was stored; report it with the processing error
        body = {'upload': get_upload_status(g.caller, upload.id), 'metric': None, **e.to_dict()}
        return jsonify(body), e.status_code
    return jsonify(body), 201 if status == 200 else status


@bp.route('/api/upload-csv/')
def list_csv_uploads():
    """Uploads visible to the caller, newest first."""
    return jsonify([u.to_dict() for u in list_uploads(g.caller)])


@bp.route('/api/upload-csv/<int:upload_id>')
def upload_status(upload_id):
    """Status query. Clients poll this while an upload is processing."""
    return jsonify(get_upload_status(g.caller, upload_id))


@bp.route('/api/upload-csv/<int:upload_id>/process', methods=['POST'])
def process_csv_upload(upload_id):
    """Explicit process trigger for a received or failed upload."""
    body, status = _trigger(upload_id)
    return jsonify(body), status


@bp.route('/api/upload-csv/<int:upload_id>', methods=['DELETE'])
def delete_csv_upload(upload_id):
    """Delete an upload and its metrics. Rejected while processing."""
    delete_upload(g.caller, upload_id)
    return jsonify({'ok': True, 'id': upload_id})
