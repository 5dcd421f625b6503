"""
Object storage access.

The worker only needs three calls: read metadata, read bytes, and write
bytes together with metadata. `S3ObjectStore` implements them on top of a
boto3 client that the caller builds once and owns.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Protocol

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .exceptions import ObjectNotFound, StorageError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class ObjectStore(Protocol):
    def head_metadata(self, bucket: str, key: str) -> Dict[str, str]:
        ...

    def get_content(self, bucket: str, key: str) -> bytes:
        ...

    def put_content(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: str,
        metadata: Mapping[str, str],
    ) -> None:
        ...


def build_s3_client(settings: Settings):
    """
    Construct the S3 client from settings.

    Credentials are optional; when absent boto3 falls back to its default
    chain (environment, shared config, instance or function role).
    """
    session = boto3.session.Session()
    return session.client(
        service_name="s3",
        region_name=settings.aws_region,
        endpoint_url=settings.s3_endpoint_url,
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
        config=BotoConfig(
            signature_version="s3v4",
            retries={"max_attempts": settings.s3_max_attempts, "mode": "standard"},
        ),
    )


def _storage_error(operation: str, bucket: str, key: str, exc: Exception) -> StorageError:
    if isinstance(exc, ClientError):
        code = exc.response.get("Error", {}).get("Code", "")
        if code in _NOT_FOUND_CODES:
            return ObjectNotFound(operation, bucket, key, f"object not found ({code})")
        return StorageError(operation, bucket, key, f"{code}: {exc}")
    return StorageError(operation, bucket, key, str(exc))


class S3ObjectStore:
    """`ObjectStore` backed by an S3 (or S3-compatible) client."""

    def __init__(self, client) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3ObjectStore":
        return cls(build_s3_client(settings))

    def head_metadata(self, bucket: str, key: str) -> Dict[str, str]:
        try:
            response = self._client.head_object(Bucket=bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise _storage_error("HeadObject", bucket, key, exc) from exc
        return dict(response.get("Metadata") or {})

    def get_content(self, bucket: str, key: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=bucket, Key=key)
            body = response["Body"]
            try:
                return body.read()
            finally:
                body.close()
        except (BotoCoreError, ClientError) as exc:
            raise _storage_error("GetObject", bucket, key, exc) from exc

    def put_content(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: str,
        metadata: Mapping[str, str],
    ) -> None:
        try:
            self._client.put_object(
                Bucket=bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
                Metadata=dict(metadata),
            )
        except (BotoCoreError, ClientError) as exc:
            raise _storage_error("PutObject", bucket, key, exc) from exc
        logger.debug("Wrote %d bytes to s3://%s/%s", len(body), bucket, key)

    def close(self) -> None:
        self._client.close()
