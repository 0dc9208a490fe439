"""
Postgres query helpers — upload status, listings, deletion, login lookup.

Every helper takes an explicit Caller; clients only ever see their own rows,
admins see everything. A row owned by someone else is reported as not found.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import or_

from campaign_metrics.config import IN_FLIGHT_STATUSES, STALE_CLAIM_SECONDS
from campaign_metrics.database import get_session
from campaign_metrics.errors import ConflictingOperation, UploadNotFound
from campaign_metrics.models.insight import Insight
from campaign_metrics.models.metric_record import MetricRecord
from campaign_metrics.models.upload import Upload
from campaign_metrics.models.user import User
from campaign_metrics.pipeline.base import Caller
from campaign_metrics.services import storage

logger = logging.getLogger('services.db')


def _scoped(query, model, caller: Caller):
    if caller.is_admin:
        return query
    return query.filter(model.user_id == caller.user_id)


def _detach_all(session, rows):
    for row in rows:
        session.expunge(row)
    return rows


# ── Uploads ───────────────────────────────────────────────────────────────────

def get_upload(caller: Caller, upload_id: int) -> Upload:
    """Status query for one upload."""
    session = get_session()
    try:
        upload = session.get(Upload, upload_id)
        if upload is None or not caller.can_access(upload.user_id):
            raise UploadNotFound(f"Upload {upload_id} not found")
        session.expunge(upload)
        return upload
    finally:
        session.close()


def list_uploads(caller: Caller, limit: int = 100) -> List[Upload]:
    """Uploads visible to the caller, newest first."""
    session = get_session()
    try:
        query = _scoped(session.query(Upload), Upload, caller)
        rows = query.order_by(Upload.uploaded_at.desc(), Upload.id.desc()).limit(limit).all()
        return _detach_all(session, rows)
    finally:
        session.close()


def delete_upload(caller: Caller, upload_id: int) -> None:
    """
    Delete an upload with its metric records, their insights, and the stored blob.

    Raises:
        UploadNotFound:       no such upload, or not the caller's
        ConflictingOperation: a live pipeline run is in flight for it
    """
    session = get_session()
    try:
        upload = session.get(Upload, upload_id)
        if upload is None or not caller.can_access(upload.user_id):
            raise UploadNotFound(f"Upload {upload_id} not found")
        storage_key = upload.storage_key
        session.expunge(upload)

        metric_ids = [
            row.id for row in
            session.query(MetricRecord.id).filter(MetricRecord.csv_upload_id == upload_id).all()
        ]
        if metric_ids:
            session.query(Insight).filter(Insight.metric_id.in_(metric_ids)).delete(synchronize_session=False)
            session.query(MetricRecord).filter(MetricRecord.id.in_(metric_ids)).delete(synchronize_session=False)

        # Conditional on status so a run claimed since the read above wins;
        # a claim abandoned by a dead worker does not block deletion
        deleted = session.query(Upload).filter(
            Upload.id == upload_id,
            or_(
                Upload.status.notin_(IN_FLIGHT_STATUSES),
                Upload.stale_claim(IN_FLIGHT_STATUSES, STALE_CLAIM_SECONDS),
            ),
        ).delete(synchronize_session=False)
        if not deleted:
            session.rollback()
            raise ConflictingOperation(f"Upload {upload_id} is being processed and cannot be deleted")

        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    logger.info("Deleted upload %s (%d metric record(s))", upload_id, len(metric_ids),
                extra={'upload_id': upload_id, 'user_id': caller.user_id})
    storage.delete_object(storage_key)


# ── Metrics & insights ────────────────────────────────────────────────────────

def list_metrics(caller: Caller, upload_id: Optional[int] = None) -> List[MetricRecord]:
    """Metric records visible to the caller, optionally for one upload."""
    session = get_session()
    try:
        query = _scoped(session.query(MetricRecord), MetricRecord, caller)
        if upload_id is not None:
            query = query.filter(MetricRecord.csv_upload_id == upload_id)
        rows = query.order_by(MetricRecord.created_at.desc(), MetricRecord.id.desc()).all()
        return _detach_all(session, rows)
    finally:
        session.close()


def list_insights(caller: Caller, metric_id: Optional[int] = None) -> List[Insight]:
    """Insight cards visible to the caller, optionally for one metric record."""
    session = get_session()
    try:
        query = _scoped(session.query(Insight), Insight, caller)
        if metric_id is not None:
            query = query.filter(Insight.metric_id == metric_id)
        rows = query.order_by(Insight.created_at.desc(), Insight.id.desc()).all()
        return _detach_all(session, rows)
    finally:
        session.close()


# ── Users ─────────────────────────────────────────────────────────────────────

def authenticate(username: str, password: str) -> Optional[User]:
    """Return the user when credentials match and the account may log in."""
    session = get_session()
    try:
        user = session.query(User).filter_by(username=username).first()
        if user is None or not user.check_password(password) or not user.can_log_in():
            return None
        user.last_login = datetime.now(timezone.utc)
        session.commit()
        session.refresh(user)
        session.expunge(user)
        return user
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_user(user_id: int) -> Optional[User]:
    session = get_session()
    try:
        user = session.get(User, user_id)
        if user is not None:
            session.expunge(user)
        return user
    finally:
        session.close()
