"""
Logging setup shared by the web app, the RQ worker and the scripts.

LOG_FORMAT=json emits one JSON object per line, carrying the upload_id,
user_id and stage attributes that pipeline code passes via `extra=`.
Anything else gives the human-readable text layout. LOG_LEVEL falls back to
INFO when unset or unknown.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone

TEXT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'
TEXT_DATEFMT = '%Y-%m-%d %H:%M:%S'

# Record attributes copied into JSON lines when a caller sets them
CONTEXT_FIELDS = ('upload_id', 'user_id', 'stage')

# HTTP / SDK loggers kept at WARNING so pipeline INFO lines stay readable
QUIET_LOGGERS = (
    'urllib3', 'botocore', 'boto3', 's3transfer',
    'openai', 'httpcore', 'httpx', 'werkzeug',
)


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record):
        payload = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        payload.update({
            name: getattr(record, name)
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        })
        if record.exc_info and record.exc_info[0] is not None:
            payload['exception'] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _level_from_env() -> int:
    level = logging.getLevelName(os.getenv('LOG_LEVEL', 'INFO').strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _formatter_from_env() -> logging.Formatter:
    if os.getenv('LOG_FORMAT', 'text').strip().lower() == 'json':
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT)


def configure_logging(app=None):
    """
    Install a single stderr handler on the root logger.

    Safe to call more than once; earlier handlers are replaced. When a Flask
    app is given its logger follows the same level.
    """
    level = _level_from_env()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(_formatter_from_env())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app is not None:
        app.logger.setLevel(level)
