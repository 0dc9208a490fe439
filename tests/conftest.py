"""Shared test fixtures."""
from contextlib import ExitStack
from datetime import datetime, timedelta, timezone
from unittest.mock import patch, MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from campaign_metrics.database import Base, import_models
from campaign_metrics.pipeline.base import Caller, CsvRow, ParsedCsv

# Every module that does `from campaign_metrics.database import get_session`
SESSION_USERS = [
    'campaign_metrics.database',
    'campaign_metrics.pipeline.receiver',
    'campaign_metrics.pipeline.store',
    'campaign_metrics.pipeline.manager',
    'campaign_metrics.services.db',
    'campaign_metrics.services.insights',
]


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created, one connection shared by all sessions."""
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    import_models()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine)


@pytest.fixture(autouse=True)
def patch_get_session(session_factory):
    """Route every get_session() call to a fresh session on the test engine."""
    with ExitStack() as stack:
        for module in SESSION_USERS:
            stack.enter_context(patch(f'{module}.get_session', side_effect=session_factory))
        yield session_factory


@pytest.fixture
def db_session(session_factory):
    """Session for arranging and inspecting rows. Commit what production code must see."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def isolate_externals(tmp_path):
    """Local-disk storage under tmp_path; no R2, OpenAI or Slack."""
    with patch('campaign_metrics.services.storage.UPLOAD_DIR', str(tmp_path)), \
         patch('campaign_metrics.services.storage.r2_client', None), \
         patch('campaign_metrics.services.openai_client.client', None), \
         patch('campaign_metrics.services.notifications.SLACK_WEBHOOK_URL', None):
        yield tmp_path


@pytest.fixture
def mock_redis():
    """Mock Redis client. Returns a MagicMock with common Redis methods."""
    mock = MagicMock()
    mock.get.return_value = None
    mock.incr.return_value = 1
    with patch('campaign_metrics.extensions.redis_client', mock):
        yield mock


# ── Users ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def make_user(db_session):
    """Factory fixture — inserts a committed User and returns it."""
    from campaign_metrics.models.user import User

    def _make(username='client1', password='secret-pass', role='client', **overrides):
        user = User(username=username, role=role, email=f'{username}@example.com', **overrides)
        user.set_password(password)
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def client_user(make_user):
    return make_user('client1', role='client')


@pytest.fixture
def other_user(make_user):
    return make_user('client2', role='client')


@pytest.fixture
def admin_user(make_user):
    return make_user('admin', role='admin')


@pytest.fixture
def caller(client_user):
    return Caller(user_id=client_user.id, role='client')


@pytest.fixture
def other_caller(other_user):
    return Caller(user_id=other_user.id, role='client')


@pytest.fixture
def admin_caller(admin_user):
    return Caller(user_id=admin_user.id, role='admin')


# ── Uploads ───────────────────────────────────────────────────────────────────

@pytest.fixture
def make_upload(db_session):
    """Factory fixture — writes a blob to local storage and inserts its Upload row."""
    from campaign_metrics.models.upload import Upload
    from campaign_metrics.services import storage

    def _make(user, content=b'', filename='campaign.csv', status='received',
              uploaded_at=None, **overrides):
        key = storage.make_storage_key(user.id, filename)
        storage.put_object(key, content)
        upload = Upload(
            filename=filename,
            user_id=user.id,
            processed=status == 'processed',
            status=status,
            storage_key=key,
            size_bytes=len(content),
            uploaded_at=uploaded_at or datetime.now(timezone.utc),
            **overrides,
        )
        db_session.add(upload)
        db_session.commit()
        return upload
    return _make


@pytest.fixture
def reload(db_session):
    """Fetch the current committed state of a row by model and id."""
    def _reload(model, row_id):
        db_session.expire_all()
        return db_session.get(model, row_id)
    return _reload


@pytest.fixture
def timestamps():
    """Three strictly increasing upload times, oldest first."""
    base = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
    return [base + timedelta(minutes=i) for i in range(3)]


# ── CSV payloads ──────────────────────────────────────────────────────────────

@pytest.fixture
def campaign_csv():
    """Two campaigns with revenue: CTR 4.80, CVR 5.00, CPC 2.25, ROI 166.67."""
    return (
        b"Campaign,Impressions,Clicks,Conversions,Cost,Revenue\n"
        b"Spring Sale,10000,500,25,1200,3000\n"
        b"Brand Search,15000,700,35,1500,4200\n"
    )


@pytest.fixture
def zero_click_csv():
    return (
        b"Campaign,Impressions,Clicks,Conversions,Cost\n"
        b"Display Paused,1000,0,0,0\n"
    )


@pytest.fixture
def make_parsed():
    """Factory fixture — builds a ParsedCsv from a header and row lists."""
    def _make(columns, rows):
        return ParsedCsv(
            columns=list(columns),
            rows=[CsvRow(line_number=i + 2, values=dict(zip(columns, r))) for i, r in enumerate(rows)],
        )
    return _make


# ── Flask ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def app():
    """Flask test app."""
    from campaign_metrics import create_app
    app = create_app()
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def login(client):
    """Put a user id into the test client's session."""
    def _login(user):
        with client.session_transaction() as sess:
            sess['user_id'] = user.id
        return client
    return _login
