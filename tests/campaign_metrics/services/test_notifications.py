"""Tests for campaign_metrics.services.notifications — Slack webhook posts."""
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from campaign_metrics.errors import MissingColumn
from campaign_metrics.services.notifications import notify_upload_processed, notify_upload_failed

WEBHOOK = 'https://hooks.slack.test/T000/B000/XXX'


@pytest.fixture
def upload():
    return SimpleNamespace(id=12, filename='spring.csv')


@pytest.fixture
def record():
    return SimpleNamespace(
        row_count=2, click_through_rate=Decimal('4.80'), conversion_rate=Decimal('5.00'),
        average_cpc=Decimal('2.25'), roi=Decimal('166.67'),
    )


class TestNotifyUploadProcessed:

    @patch('campaign_metrics.services.notifications.requests.post')
    def test_no_webhook_no_post(self, mock_post, upload, record):
        notify_upload_processed(upload, record)
        mock_post.assert_not_called()

    @patch('campaign_metrics.services.notifications.SLACK_WEBHOOK_URL', WEBHOOK)
    @patch('campaign_metrics.services.notifications.requests.post')
    def test_posts_metrics(self, mock_post, upload, record):
        notify_upload_processed(upload, record)
        args, kwargs = mock_post.call_args
        assert args[0] == WEBHOOK
        assert kwargs['timeout'] == 10
        blocks = kwargs['json']['blocks']
        assert 'spring.csv' in blocks[0]['text']['text']
        texts = [f['text'] for f in blocks[1]['fields']]
        assert '*ROI:* 166.67%' in texts

    @patch('campaign_metrics.services.notifications.SLACK_WEBHOOK_URL', WEBHOOK)
    @patch('campaign_metrics.services.notifications.requests.post', side_effect=ConnectionError('down'))
    def test_post_failure_swallowed(self, _post, upload, record):
        notify_upload_processed(upload, record)


class TestNotifyUploadFailed:

    @patch('campaign_metrics.services.notifications.SLACK_WEBHOOK_URL', WEBHOOK)
    @patch('campaign_metrics.services.notifications.requests.post')
    def test_posts_stage_and_code(self, mock_post, upload):
        notify_upload_failed(upload, 'computing', MissingColumn(['cost']))
        blocks = mock_post.call_args[1]['json']['blocks']
        texts = [f['text'] for f in blocks[1]['fields']]
        assert '*Stage:* computing' in texts
        assert '*Code:* missing_column' in texts
        assert 'Missing required column(s): Cost' in blocks[2]['text']['text']

    @patch('campaign_metrics.services.notifications.SLACK_WEBHOOK_URL', WEBHOOK)
    @patch('campaign_metrics.services.notifications.requests.post')
    def test_plain_exception_uses_type_name(self, mock_post, upload):
        notify_upload_failed(upload, 'storing', RuntimeError('boom'))
        texts = [f['text'] for f in mock_post.call_args[1]['json']['blocks'][1]['fields']]
        assert '*Code:* RuntimeError' in texts
