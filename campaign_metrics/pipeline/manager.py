"""
Pipeline Manager — runs one upload through the stage adapter registry.

    received → PARSING → COMPUTING → STORING → processed
                  └──────────┴──────────┴────→ failed

A process trigger first claims the upload with a compare-and-set on its status
(received/failed → parsing); a second trigger for the same upload finds the
claim taken and gets AlreadyProcessing. A claim older than STALE_CLAIM_SECONDS
is left over from a killed worker and can be taken again. Runs for different
uploads never share state. There are no internal retries: a failed upload
waits for a fresh trigger.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Type

from sqlalchemy import or_

from campaign_metrics.config import (
    CLAIMABLE_STATUSES, IN_FLIGHT_STATUSES, PROCESS_JOB_TIMEOUT, RQ_QUEUE_NAME, STALE_CLAIM_SECONDS,
)
from campaign_metrics.database import get_session
from campaign_metrics.errors import (
    PipelineError, AlreadyProcessing, StorageFailure, UploadNotFound,
)
from campaign_metrics.models.upload import Upload
from campaign_metrics.pipeline.base import Caller, StageAdapter, get_adapter
from campaign_metrics.pipeline.parser import ParseStage
from campaign_metrics.pipeline.calculator import ComputeStage
from campaign_metrics.pipeline.store import StoreStage
from campaign_metrics.services.db import get_upload
from campaign_metrics.services.insights import generate_insights
from campaign_metrics.services.notifications import notify_upload_processed, notify_upload_failed

logger = logging.getLogger('pipeline.manager')


# ── Stage registry ────────────────────────────────────────────────────────────
# Run order is insertion order; each key is also the upload status while it runs.

STAGE_REGISTRY: Dict[str, Type[StageAdapter]] = {
    'parsing':   ParseStage,
    'computing': ComputeStage,
    'storing':   StoreStage,
}


# ── Lazy RQ queue (avoids import-time Redis connection in sync mode) ─────────

_queue = None

def _get_queue():
    global _queue
    if _queue is None:
        from campaign_metrics.extensions import redis_client
        from rq import Queue
        _queue = Queue(RQ_QUEUE_NAME, connection=redis_client)
    return _queue


# ── Upload row helpers ───────────────────────────────────────────────────────

def _load_upload(upload_id: int) -> Upload:
    session = get_session()
    try:
        upload = session.get(Upload, upload_id)
        if upload is None:
            raise UploadNotFound(f"Upload {upload_id} not found")
        session.expunge(upload)
        return upload
    finally:
        session.close()


def _claim(upload_id: int) -> bool:
    """
    Move a received/failed upload, or one whose run died mid-stage, to 'parsing'.

    False if a live run holds it or it is already processed.
    """
    session = get_session()
    try:
        claimed = session.query(Upload).filter(
            Upload.id == upload_id,
            or_(
                Upload.status.in_(CLAIMABLE_STATUSES),
                Upload.stale_claim(IN_FLIGHT_STATUSES, STALE_CLAIM_SECONDS),
            ),
        ).update({
            'status': 'parsing',
            'claimed_at': datetime.now(timezone.utc),
            'error_code': None,
            'error_message': None,
            'skipped_rows': None,
        }, synchronize_session=False)
        session.commit()
        return claimed == 1
    except Exception as e:
        session.rollback()
        logger.error("Failed to claim upload %s", upload_id, exc_info=True)
        raise StorageFailure() from e
    finally:
        session.close()


def _update_upload(upload_id: int, **fields):
    session = get_session()
    try:
        session.query(Upload).filter(Upload.id == upload_id).update(fields, synchronize_session=False)
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def _mark_failed(upload_id: int, error: Exception, stage_timings: dict):
    code = error.code if isinstance(error, PipelineError) else 'internal_error'
    message = str(error) if isinstance(error, PipelineError) else 'Unexpected error while processing the file'
    try:
        _update_upload(
            upload_id,
            status='failed',
            processed=False,
            error_code=code,
            error_message=message,
            stage_timings=stage_timings,
        )
    except Exception:
        logger.error("Could not mark upload %s as failed", upload_id, exc_info=True)


# ── Public API ────────────────────────────────────────────────────────────────

def process_upload(caller: Caller, upload_id: int, skip_malformed: bool = None):
    """
    Claim an upload and run the whole pipeline for it in this request.

    Returns the stored MetricRecord.

    Raises:
        UploadNotFound:    no such upload, or not the caller's
        AlreadyProcessing: the upload is not in received/failed state
        PipelineError:     whatever stage error failed the run
    """
    get_upload(caller, upload_id)
    if not _claim(upload_id):
        raise AlreadyProcessing(f"Upload {upload_id} is already processing or processed")
    logger.info("Claimed upload %s for user %s", upload_id, caller.user_id,
                extra={'upload_id': upload_id, 'user_id': caller.user_id})
    return run_pipeline(upload_id, skip_malformed=skip_malformed)


def enqueue_processing(caller: Caller, upload_id: int, skip_malformed: bool = None) -> Upload:
    """
    Claim an upload and hand the pipeline run to an RQ worker.

    Returns the upload as claimed (status 'parsing'); clients poll its status.
    """
    get_upload(caller, upload_id)
    if not _claim(upload_id):
        raise AlreadyProcessing(f"Upload {upload_id} is already processing or processed")

    try:
        _get_queue().enqueue(run_pipeline_job, upload_id, skip_malformed,
                             job_timeout=PROCESS_JOB_TIMEOUT)
    except Exception as e:
        logger.error("Failed to enqueue upload %s", upload_id, exc_info=True)
        error = StorageFailure("Processing queue is unavailable. Please try again.")
        _mark_failed(upload_id, error, {})
        raise error from e

    logger.info("Enqueued upload %s", upload_id, extra={'upload_id': upload_id})
    return _load_upload(upload_id)


def get_upload_status(caller: Caller, upload_id: int) -> dict:
    """Status query: the upload's current state for polling clients."""
    return get_upload(caller, upload_id).to_dict()


# ── Pipeline runner ───────────────────────────────────────────────────────────

def run_pipeline(upload_id: int, skip_malformed: bool = None):
    """
    Execute parsing → computing → storing for an already-claimed upload.

    Each stage:
    1. Set the upload status to the stage name (committed, visible to polling)
    2. Call adapter.run(previous output, upload)
    3. Record the stage duration

    Anything raised between loading the upload and the store commit, status
    writes included, marks the upload failed with the error code and message,
    sends a failure notification and is re-raised.
    """
    stage_options = {'parsing': {'skip_malformed': skip_malformed}}
    timings = {}
    outputs = {}
    payload = None
    upload = None
    stage_name = 'parsing'
    started = time.monotonic()

    try:
        upload = _load_upload(upload_id)
        logger.info("Starting pipeline for upload %s (%s)", upload_id, upload.filename,
                    extra={'upload_id': upload_id})

        for stage_name in STAGE_REGISTRY:
            adapter = get_adapter(STAGE_REGISTRY, stage_name, **stage_options.get(stage_name, {}))
            started = time.monotonic()
            if stage_name != 'parsing':
                _update_upload(upload_id, status=stage_name, stage_timings=dict(timings))
            result = adapter.run(payload, upload)

            timings[stage_name] = round(time.monotonic() - started, 3)
            outputs[stage_name] = result.output
            payload = result.output

            if stage_name == 'parsing':
                _update_upload(upload_id, row_count=result.processed,
                               skipped_rows=list(result.output.skipped_lines) or None)

            logger.info("Stage '%s' done for upload %s (processed=%d, skipped=%d)",
                        stage_name, upload_id, result.processed, result.skipped,
                        extra={'upload_id': upload_id, 'stage': stage_name})
    except Exception as e:
        timings.setdefault(stage_name, round(time.monotonic() - started, 3))
        if isinstance(e, PipelineError):
            logger.warning("Upload %s failed at '%s': %s", upload_id, stage_name, e,
                           extra={'upload_id': upload_id, 'stage': stage_name})
        else:
            logger.error("Upload %s crashed at '%s'", upload_id, stage_name, exc_info=True,
                         extra={'upload_id': upload_id, 'stage': stage_name})
        _mark_failed(upload_id, e, timings)
        if upload is not None:
            notify_upload_failed(upload, stage_name, e)
        raise

    record = outputs['storing']

    # Post-commit bookkeeping; none of it can undo the processed flip
    try:
        _update_upload(upload_id, stage_timings=timings)
    except Exception:
        logger.warning("Could not save stage timings for upload %s", upload_id, exc_info=True)

    try:
        generate_insights(record, outputs['computing'])
    except Exception:
        logger.error("Insight generation failed for upload %s", upload_id, exc_info=True)

    notify_upload_processed(upload, record)
    logger.info("Upload %s processed (metric record %s)", upload_id, record.id,
                extra={'upload_id': upload_id})
    return record


def run_pipeline_job(upload_id: int, skip_malformed: bool = None):
    """RQ entry point. Pipeline errors are already recorded on the upload."""
    try:
        record = run_pipeline(upload_id, skip_malformed=skip_malformed)
        return record.id
    except PipelineError as e:
        logger.info("Queued run for upload %s ended in failure: %s", upload_id, e)
        return None
