"""
Metrics store stage — MetricSummary → MetricRecord.

The record insert and the upload's processed flip share one transaction:
either both land or neither does. An earlier record for the same upload
(from a previous run) is replaced, together with its insights.
"""
import logging
from datetime import datetime, timezone

from campaign_metrics.database import get_session
from campaign_metrics.errors import PipelineError, StorageFailure, UploadNotFound
from campaign_metrics.models.insight import Insight
from campaign_metrics.models.metric_record import MetricRecord
from campaign_metrics.models.upload import Upload
from campaign_metrics.pipeline.base import StageAdapter, StageResult, MetricSummary

logger = logging.getLogger('pipeline.store')


def _delete_existing(session, upload_id: int) -> int:
    old_ids = [
        row.id for row in
        session.query(MetricRecord.id).filter(MetricRecord.csv_upload_id == upload_id).all()
    ]
    if not old_ids:
        return 0
    session.query(Insight).filter(Insight.metric_id.in_(old_ids)).delete(synchronize_session=False)
    session.query(MetricRecord).filter(MetricRecord.id.in_(old_ids)).delete(synchronize_session=False)
    session.flush()
    return len(old_ids)


def store_metrics(upload_id: int, summary: MetricSummary) -> MetricRecord:
    """
    Persist the summary for an upload and mark the upload processed.

    Returns the new MetricRecord, detached from its session.

    Raises:
        UploadNotFound: the upload row is gone
        StorageFailure: the transaction could not be committed
    """
    session = get_session()
    try:
        upload = session.get(Upload, upload_id)
        if upload is None:
            raise UploadNotFound(f"Upload {upload_id} not found")

        replaced = _delete_existing(session, upload_id)

        record = MetricRecord(
            user_id=upload.user_id,
            csv_upload_id=upload_id,
            conversion_rate=summary.conversion_rate,
            click_through_rate=summary.click_through_rate,
            roi=summary.roi,
            average_cpc=summary.average_cpc,
            total_impressions=summary.total_impressions,
            total_clicks=summary.total_clicks,
            total_conversions=summary.total_conversions,
            total_cost=summary.total_cost,
            total_revenue=summary.total_revenue,
            row_count=summary.row_count,
        )
        session.add(record)

        upload.processed = True
        upload.status = 'processed'
        upload.processed_at = datetime.now(timezone.utc)
        upload.row_count = summary.row_count
        upload.error_code = None
        upload.error_message = None

        session.commit()
        session.refresh(record)
        session.expunge(record)
    except PipelineError:
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        logger.error("Failed to store metrics for upload %s", upload_id, exc_info=True)
        raise StorageFailure("Metrics could not be saved. Please try again.") from e
    finally:
        session.close()

    if replaced:
        logger.info("Replaced %d earlier metric record(s) for upload %s", replaced, upload_id)
    return record


class StoreStage(StageAdapter):
    """Persist metrics and flip the upload to processed."""
    stage = 'storing'
    description = 'Save the metric record and mark the upload processed'

    def run(self, payload, upload) -> StageResult:
        record = store_metrics(upload.id, payload)
        logger.info("Stored metric record %s for upload %s", record.id, upload.id,
                    extra={'upload_id': upload.id, 'stage': self.stage})
        return StageResult(output=record, processed=1, meta={'metric_id': record.id})
