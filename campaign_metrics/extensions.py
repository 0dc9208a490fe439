"""
Process-wide clients: Redis (breaker state, RQ), R2 for upload blobs, OpenAI
for insight cards.

R2 and OpenAI are optional. When their credentials are missing the client is
None and callers use local disk / rule-based insights instead. Building the
Redis client does not open a connection.
"""
import logging
import redis
import boto3
from botocore.client import Config

from campaign_metrics.config import (
    REDIS_URL,
    R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY, R2_ENDPOINT_URL,
    OPENAI_API_KEY,
)

logger = logging.getLogger('campaign_metrics.extensions')


def _build_r2_client():
    if not (R2_ACCESS_KEY_ID and R2_SECRET_ACCESS_KEY and R2_ENDPOINT_URL):
        logger.info("R2 not configured; upload blobs go to UPLOAD_DIR")
        return None
    try:
        client = boto3.client(
            's3',
            endpoint_url=R2_ENDPOINT_URL,
            aws_access_key_id=R2_ACCESS_KEY_ID,
            aws_secret_access_key=R2_SECRET_ACCESS_KEY,
            config=Config(signature_version='s3v4', retries={'max_attempts': 3}),
            region_name='auto',
        )
    except Exception as e:
        logger.error("Could not create R2 client, falling back to UPLOAD_DIR: %s", e)
        return None
    logger.info("Upload blobs stored in R2 (%s)", R2_ENDPOINT_URL)
    return client


def _build_openai_client():
    if not OPENAI_API_KEY:
        logger.info("OpenAI not configured; insight cards use threshold rules")
        return None
    try:
        from openai import OpenAI
        return OpenAI(api_key=OPENAI_API_KEY, max_retries=1, timeout=30)
    except Exception as e:
        logger.error("Could not create OpenAI client: %s", e)
        return None


redis_client = redis.from_url(REDIS_URL, decode_responses=True)
r2_client = _build_r2_client()
openai_client = _build_openai_client()
