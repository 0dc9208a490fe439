"""
Upload receiver — validates an incoming file and records it as an Upload.

Nothing is written when validation fails. If the blob is written but the
database insert fails, the blob is removed again so storage never holds
orphaned files.
"""
import logging
import os

from campaign_metrics.config import (
    MAX_UPLOAD_BYTES, ALLOWED_CONTENT_TYPES, ALLOWED_EXTENSIONS,
)
from campaign_metrics.database import get_session
from campaign_metrics.errors import InvalidFormat, TooLarge, StorageFailure
from campaign_metrics.models.upload import Upload
from campaign_metrics.pipeline.base import Caller
from campaign_metrics.services import storage

logger = logging.getLogger('pipeline.receiver')


def is_csv(filename: str, content_type: str = None) -> bool:
    """CSV-shaped means a text/csv content type or a .csv filename."""
    if content_type:
        mime = content_type.split(';', 1)[0].strip().lower()
        if mime in ALLOWED_CONTENT_TYPES:
            return True
    ext = os.path.splitext(filename or '')[1].lower()
    return ext in ALLOWED_EXTENSIONS


def validate_upload(filename: str, size: int, content_type: str = None,
                    max_bytes: int = None):
    """Raise InvalidFormat / TooLarge for payloads the receiver must refuse."""
    if not filename or not filename.strip():
        raise InvalidFormat("No file name supplied")
    if not is_csv(filename, content_type):
        raise InvalidFormat(f"'{filename}' is not a CSV file")
    limit = MAX_UPLOAD_BYTES if max_bytes is None else max_bytes
    if size > limit:
        raise TooLarge(size=size, limit=limit)


def receive_upload(caller: Caller, filename: str, payload: bytes,
                   content_type: str = None) -> Upload:
    """
    Store a CSV payload and create its Upload record (status 'received').

    Raises:
        InvalidFormat:  not a CSV by name or content type
        TooLarge:       payload above MAX_UPLOAD_BYTES
        StorageFailure: blob or record could not be written
    """
    filename = os.path.basename((filename or '').replace('\\', '/'))
    validate_upload(filename, len(payload), content_type)

    key = storage.make_storage_key(caller.user_id, filename)
    storage.put_object(key, payload)

    session = get_session()
    try:
        upload = Upload(
            filename=filename,
            user_id=caller.user_id,
            processed=False,
            status='received',
            storage_key=key,
            size_bytes=len(payload),
        )
        session.add(upload)
        session.commit()
        session.refresh(upload)
        session.expunge(upload)
    except Exception as e:
        session.rollback()
        logger.error("Failed to record upload %s for user %s", filename, caller.user_id, exc_info=True)
        storage.delete_object(key)
        raise StorageFailure() from e
    finally:
        session.close()

    logger.info("Received upload %s (%s, %d bytes) for user %s",
                upload.id, filename, len(payload), caller.user_id,
                extra={'upload_id': upload.id, 'user_id': caller.user_id})
    return upload
