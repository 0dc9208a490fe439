"""
Centralized configuration — all env vars, limits, pipeline constants.
"""
import os


def _env_flag(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Flask session ────────────────────────────────────────────────────────────
SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-change-me')

# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── Cloudflare R2 ─────────────────────────────────────────────────────────────
R2_ACCESS_KEY_ID = os.getenv('R2_ACCESS_KEY_ID')
R2_SECRET_ACCESS_KEY = os.getenv('R2_SECRET_ACCESS_KEY')
R2_BUCKET_NAME = os.getenv('R2_BUCKET_NAME')
R2_ENDPOINT_URL = os.getenv('R2_ENDPOINT_URL')

# Local fallback when R2 is not configured
UPLOAD_DIR = os.getenv('UPLOAD_DIR', os.path.join(os.getcwd(), 'uploads'))

# ── Upload limits ─────────────────────────────────────────────────────────────
MAX_UPLOAD_BYTES = int(os.getenv('MAX_UPLOAD_BYTES', 5 * 1024 * 1024))
ALLOWED_CONTENT_TYPES = {'text/csv'}
ALLOWED_EXTENSIONS = {'.csv'}

# ── CSV parsing ───────────────────────────────────────────────────────────────
# False = abort on the first row whose field count differs from the header
CSV_SKIP_MALFORMED_ROWS = _env_flag('CSV_SKIP_MALFORMED_ROWS')

REQUIRED_COLUMNS = ['impressions', 'clicks', 'conversions', 'cost']
OPTIONAL_COLUMNS = ['revenue']

# ── Processing mode ───────────────────────────────────────────────────────────
# "sync"  → process trigger runs the pipeline inside the request
# "queue" → process trigger enqueues an RQ job and returns immediately
PROCESS_MODE = os.getenv('PROCESS_MODE', 'sync')
PROCESS_JOB_TIMEOUT = int(os.getenv('PROCESS_JOB_TIMEOUT', 600))
RQ_QUEUE_NAME = os.getenv('RQ_QUEUE_NAME', 'uploads')

# Run the pipeline as part of POST /api/upload-csv/ unless the client sends process=false
PROCESS_ON_UPLOAD = _env_flag('PROCESS_ON_UPLOAD', default=True)

# An in-flight claim older than this belongs to a dead worker and may be taken over
STALE_CLAIM_SECONDS = int(os.getenv('STALE_CLAIM_SECONDS', PROCESS_JOB_TIMEOUT + 60))

# ── OpenAI ────────────────────────────────────────────────────────────────────
OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
OPENAI_MODEL = os.getenv('OPENAI_MODEL', 'gpt-4o-mini')

# ── Slack notifications ──────────────────────────────────────────────────────
SLACK_WEBHOOK_URL = os.getenv('SLACK_WEBHOOK_URL')

# ── Roles ─────────────────────────────────────────────────────────────────────
ROLE_ADMIN = 'admin'
ROLE_CLIENT = 'client'
USER_ROLES = [ROLE_ADMIN, ROLE_CLIENT]

# ── Pipeline stage definitions ────────────────────────────────────────────────
PIPELINE_STAGES = [
    'parsing',
    'computing',
    'storing',
]

# A process trigger may only claim an upload in one of these states
CLAIMABLE_STATUSES = ['received', 'failed']

# Deletion is rejected while a run is in flight
IN_FLIGHT_STATUSES = list(PIPELINE_STAGES)

# ── Insight categories ───────────────────────────────────────────────────────
INSIGHT_CATEGORIES = ['conversion', 'audience', 'channel', 'spend']
