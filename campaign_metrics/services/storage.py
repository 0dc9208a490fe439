"""
Upload blob storage — Cloudflare R2 when configured, local disk otherwise.

Objects are addressed by a storage key (e.g. "csv-uploads/7/<uuid>.csv").
Every failure surfaces as StorageFailure.
"""
import logging
import os
import uuid

from campaign_metrics.config import R2_BUCKET_NAME, UPLOAD_DIR
from campaign_metrics.errors import StorageFailure
from campaign_metrics.extensions import r2_client

logger = logging.getLogger('services.storage')

KEY_PREFIX = 'csv-uploads'


def make_storage_key(user_id: int, filename: str) -> str:
    """Unique key for a new upload; the original name is kept only in the DB."""
    ext = os.path.splitext(filename)[1].lower() or '.csv'
    return f"{KEY_PREFIX}/{user_id}/{uuid.uuid4().hex}{ext}"


def _local_path(key: str) -> str:
    path = os.path.normpath(os.path.join(UPLOAD_DIR, key))
    if not path.startswith(os.path.normpath(UPLOAD_DIR) + os.sep):
        raise StorageFailure(f"Invalid storage key: {key}")
    return path


def put_object(key: str, body: bytes, content_type: str = 'text/csv'):
    """Durably write an upload payload."""
    try:
        if r2_client:
            r2_client.put_object(
                Bucket=R2_BUCKET_NAME, Key=key,
                Body=body, ContentType=content_type,
            )
        else:
            path = _local_path(key)
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, 'wb') as fh:
                fh.write(body)
                fh.flush()
                os.fsync(fh.fileno())
        logger.info("Stored upload blob %s (%d bytes)", key, len(body))
    except StorageFailure:
        raise
    except Exception as e:
        logger.error("Error storing upload blob %s: %s", key, e)
        raise StorageFailure() from e


def get_object(key: str) -> bytes:
    """Read an upload payload back."""
    try:
        if r2_client:
            obj = r2_client.get_object(Bucket=R2_BUCKET_NAME, Key=key)
            return obj['Body'].read()
        with open(_local_path(key), 'rb') as fh:
            return fh.read()
    except StorageFailure:
        raise
    except Exception as e:
        logger.error("Error reading upload blob %s: %s", key, e)
        raise StorageFailure("Stored file could not be read") from e


def delete_object(key: str) -> bool:
    """Remove an upload payload. Returns False (and logs) on failure."""
    try:
        if r2_client:
            r2_client.delete_object(Bucket=R2_BUCKET_NAME, Key=key)
        else:
            path = _local_path(key)
            if os.path.exists(path):
                os.remove(path)
        logger.info("Deleted upload blob %s", key)
        return True
    except Exception as e:
        logger.error("Error deleting upload blob %s: %s", key, e)
        return False
