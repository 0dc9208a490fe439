"""
Upload model — one submitted CSV file plus its processing status.

`status` walks received → parsing → computing → storing → processed, or
lands in failed. `processed` flips true only in the transaction that writes
the upload's MetricRecord.

A run that dies mid-stage leaves its claim behind; `stale_claim()` matches
such rows once the claim is old enough that no live worker can hold it.
"""
from datetime import datetime, timedelta, timezone

from sqlalchemy import Column, Integer, Text, Boolean, DateTime, JSON, ForeignKey, and_
from sqlalchemy.sql import func

from campaign_metrics.database import Base


class Upload(Base):
    __tablename__ = 'csv_uploads'

    id = Column(Integer, primary_key=True, autoincrement=True)
    filename = Column(Text, nullable=False)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    processed = Column(Boolean, nullable=False, default=False)
    status = Column(Text, nullable=False, default='received')
    storage_key = Column(Text, nullable=False)
    size_bytes = Column(Integer, default=0)
    row_count = Column(Integer, nullable=True)
    skipped_rows = Column(JSON, nullable=True)       # line numbers skipped in lenient mode
    error_code = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    stage_timings = Column(JSON, nullable=True)      # {stage: seconds}
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now())
    processed_at = Column(DateTime(timezone=True), nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)     # last time a run took the upload

    def to_dict(self):
        return {
            'id': self.id,
            'filename': self.filename,
            'userId': self.user_id,
            'processed': bool(self.processed),
            'status': self.status,
            'sizeBytes': self.size_bytes or 0,
            'rowCount': self.row_count,
            'skippedRows': self.skipped_rows or [],
            'error': {'code': self.error_code, 'message': self.error_message} if self.error_code else None,
            'stageTimings': self.stage_timings or {},
            'uploadedAt': self.uploaded_at.isoformat() if self.uploaded_at else None,
            'processedAt': self.processed_at.isoformat() if self.processed_at else None,
        }

    @classmethod
    def stale_claim(cls, in_flight_statuses, max_age_seconds):
        """Filter clause: mid-run uploads whose claim is older than max_age_seconds."""
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=max_age_seconds)
        return and_(cls.status.in_(in_flight_statuses), cls.claimed_at < cutoff)
