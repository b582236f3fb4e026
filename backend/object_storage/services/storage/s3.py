"""S3 storage backend: get/put via boto3 and presigned GET. Imported only when OBJECT_STORAGE_IMPLEMENTATION=s3 (avoids boto3 in local mode)."""
from __future__ import annotations

import logging
import math
from os import PathLike

from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from object_storage.core.config import Settings, get_settings
from object_storage.core.logging_redaction import redact_url
from object_storage.core.metrics import record_storage_error
from object_storage.services.storage.base import (
    DEFAULT_EXPIRES_IN_MS,
    InvalidKeyError,
    StorageBackend,
    validate_key,
)

logger = logging.getLogger(__name__)

# SigV4 presigned URLs must expire within 1 second .. 7 days
_MIN_EXPIRES_S = 1
_MAX_EXPIRES_S = 7 * 24 * 60 * 60
_NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")


def _get_client(settings: Settings):
    import boto3
    # Credentials come from the default chain: AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY,
    # ~/.aws/credentials, or an instance role.
    return boto3.client(
        "s3",
        region_name=settings.aws_region,
        endpoint_url=settings.s3_endpoint_url or None,
    )


def bucket_for_dataset(dataset: str, settings: Settings) -> str:
    """Map a dataset name to its configured bucket. Raise ValueError for unknown datasets or empty buckets."""
    buckets = {
        "profileimages": settings.s3_profile_images_bucket,
        "floorplans": settings.s3_floorplans_bucket,
    }
    if dataset not in buckets:
        raise ValueError(f"Unknown dataset '{dataset}' passed to S3Storage")
    bucket = buckets[dataset].strip()
    if not bucket:
        raise ValueError(f"S3 storage requires a bucket to be set for dataset '{dataset}'")
    return bucket


def _expires_in_seconds(expires_in_ms: int) -> int:
    return min(max(math.ceil(expires_in_ms / 1000), _MIN_EXPIRES_S), _MAX_EXPIRES_S)


def _error_code(exc: Exception) -> str | None:
    resp = getattr(exc, "response", None)
    return resp.get("Error", {}).get("Code") if isinstance(resp, dict) else None


class S3Storage(StorageBackend):
    """S3 backend: one bucket per dataset; blocking boto3 calls run in the threadpool."""

    implementation = "s3"

    def __init__(self, dataset: str, settings: Settings | None = None) -> None:
        super().__init__(dataset)
        settings = settings or get_settings()
        self._bucket = bucket_for_dataset(dataset, settings)
        # boto3 clients are thread-safe; one per backend for the process lifetime
        self._client = _get_client(settings)
        logger.info("S3Storage in use for %s (bucket %s)", dataset, self._bucket)

    async def get(self, key: str) -> bytes | None:
        try:
            validate_key(key)
        except InvalidKeyError:
            logger.warning("Rejected unsafe key %r for %s", key, self.dataset)
            return None
        try:
            resp = await run_in_threadpool(self._client.get_object, Bucket=self._bucket, Key=key)
            body = resp.get("Body")
            if body is None:
                return None
            return await run_in_threadpool(body.read)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                logger.info("Object not found: s3://%s/%s", self._bucket, key)
            else:
                logger.exception("Failed to get s3://%s/%s", self._bucket, key)
                record_storage_error(self.dataset, "get")
            return None
        except BotoCoreError:
            logger.exception("Failed to get s3://%s/%s", self._bucket, key)
            record_storage_error(self.dataset, "get")
            return None

    async def put(self, key: str, data: bytes) -> None:
        validate_key(key)
        await run_in_threadpool(self._client.put_object, Bucket=self._bucket, Key=key, Body=data)
        logger.debug("Stored s3://%s/%s (%d bytes)", self._bucket, key, len(data))

    async def put_from_path(self, key: str, source_path: str | PathLike) -> None:
        validate_key(key)
        # upload_file streams from disk (multipart for large files)
        await run_in_threadpool(self._client.upload_file, str(source_path), self._bucket, key)
        logger.debug("Uploaded %s to s3://%s/%s", source_path, self._bucket, key)

    async def get_signed_url(self, key: str, expires_in_ms: int | None = DEFAULT_EXPIRES_IN_MS) -> str | None:
        try:
            validate_key(key)
        except InvalidKeyError:
            logger.warning("Rejected unsafe key %r for %s", key, self.dataset)
            return None
        kwargs = {"Params": {"Bucket": self._bucket, "Key": key}}
        # S3 cannot mint unbounded links; without ExpiresIn boto3 uses its own default (1 hour)
        if expires_in_ms is not None:
            kwargs["ExpiresIn"] = _expires_in_seconds(expires_in_ms)
        try:
            url = await run_in_threadpool(self._client.generate_presigned_url, "get_object", **kwargs)
        except (ClientError, BotoCoreError):
            logger.exception("Failed to presign s3://%s/%s", self._bucket, key)
            record_storage_error(self.dataset, "get_signed_url")
            return None
        logger.debug("Presigned %s", redact_url(url))
        return url
