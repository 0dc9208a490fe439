"""Tests for the User and Upload models."""
from datetime import datetime, timedelta, timezone

from campaign_metrics.models.upload import Upload
from campaign_metrics.models.user import User


class TestUser:

    def test_password_is_hashed(self):
        user = User(username='ana')
        user.set_password('hunter22')
        assert user.password_hash != 'hunter22'
        assert user.check_password('hunter22')
        assert not user.check_password('hunter23')

    def test_no_hash_never_matches(self):
        assert not User(username='ana', password_hash='').check_password('')

    def test_roles(self):
        assert User(role='admin').is_admin
        assert not User(role='client').is_admin

    def test_can_log_in(self):
        now = datetime(2026, 5, 1, tzinfo=timezone.utc)
        assert User(status='active').can_log_in(now)
        assert not User(status='inactive').can_log_in(now)
        assert User(status='active', expiration_date=now + timedelta(days=1)).can_log_in(now)
        assert not User(status='active', expiration_date=now - timedelta(days=1)).can_log_in(now)

    def test_naive_expiration_treated_as_utc(self):
        now = datetime(2026, 5, 1, tzinfo=timezone.utc)
        user = User(status='active', expiration_date=datetime(2026, 4, 30))
        assert not user.can_log_in(now)

    def test_to_dict_hides_password(self):
        user = User(id=3, username='ana', email='a@x.test', first_name='Ana', last_name='Ruiz',
                    role='client', status='active')
        data = user.to_dict()
        assert data['firstName'] == 'Ana'
        assert data['lastLogin'] is None
        assert 'password_hash' not in data and 'passwordHash' not in data


class TestUploadToDict:

    def test_error_block_only_when_failed(self):
        ok = Upload(id=1, filename='a.csv', user_id=2, processed=False, status='received')
        assert ok.to_dict()['error'] is None
        assert ok.to_dict()['skippedRows'] == []

        failed = Upload(id=1, filename='a.csv', user_id=2, processed=False, status='failed',
                        error_code='missing_column', error_message='Missing required column(s): Cost')
        assert failed.to_dict()['error'] == {
            'code': 'missing_column', 'message': 'Missing required column(s): Cost',
        }
