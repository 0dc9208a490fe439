"""
Notifications — Slack webhook integration for upload processing events.

Notification failure never blocks the pipeline.
"""
import logging
import requests

from campaign_metrics.config import SLACK_WEBHOOK_URL

logger = logging.getLogger('services.notifications')


def notify_upload_processed(upload, record):
    """Post the computed metrics for a processed upload to Slack."""
    if not SLACK_WEBHOOK_URL:
        return

    try:
        blocks = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": f"CSV processed — {upload.filename}",
                }
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Rows:* {record.row_count or 0}"},
                    {"type": "mrkdwn", "text": f"*CTR:* {record.click_through_rate}%"},
                    {"type": "mrkdwn", "text": f"*Conversion rate:* {record.conversion_rate}%"},
                    {"type": "mrkdwn", "text": f"*Avg CPC:* ${record.average_cpc}"},
                    {"type": "mrkdwn", "text": f"*ROI:* {record.roi}%"},
                ]
            },
        ]

        requests.post(SLACK_WEBHOOK_URL, json={"blocks": blocks}, timeout=10)
        logger.info("Upload %s processed notification sent", upload.id)

    except Exception:
        logger.error("Failed to send notification for upload %s", upload.id, exc_info=True)


def notify_upload_failed(upload, stage, error):
    """Post an upload processing failure alert to Slack."""
    if not SLACK_WEBHOOK_URL:
        return

    try:
        code = getattr(error, 'code', type(error).__name__)
        blocks = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": f"CSV processing FAILED — {upload.filename}",
                }
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Stage:* {stage or 'unknown'}"},
                    {"type": "mrkdwn", "text": f"*Code:* {code}"},
                ]
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*Error:* ```{str(error)[:500]}```"}
            },
        ]

        requests.post(SLACK_WEBHOOK_URL, json={"blocks": blocks}, timeout=10)
        logger.info("Upload %s failure notification sent", upload.id)

    except Exception:
        logger.error("Failed to send failure notification for upload %s", upload.id, exc_info=True)
