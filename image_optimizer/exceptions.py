"""
Error taxonomy for the optimizer.

Every per-record failure is a `RecordProcessingError` subclass that carries
where it happened and the underlying cause. Pipeline stages hand these back
as values; only the batch dispatcher and the entry point that reads the
batch envelope raise them.
"""

from __future__ import annotations

from typing import Optional


class StorageError(Exception):
    """A storage-service call failed."""

    def __init__(self, operation: str, bucket: str, key: str, detail: str) -> None:
        super().__init__(f"{operation} s3://{bucket}/{key} failed: {detail}")
        self.operation = operation
        self.bucket = bucket
        self.key = key
        self.detail = detail


class ObjectNotFound(StorageError):
    """The referenced object does not exist."""


class RecordProcessingError(Exception):
    """Base class for failures that abort the batch."""

    stage = "record"

    def __init__(
        self,
        message: str,
        *,
        bucket: Optional[str] = None,
        key: Optional[str] = None,
        message_id: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.bucket = bucket
        self.key = key
        self.message_id = message_id
        self.cause = cause

    @property
    def location(self) -> str:
        if self.bucket and self.key:
            return f"{self.bucket}/{self.key}"
        return self.message_id or "<unknown>"


class ParseError(RecordProcessingError):
    stage = "parse"


class MetadataQueryError(RecordProcessingError):
    stage = "metadata"


class ContentFetchError(RecordProcessingError):
    stage = "fetch"


class TranscodeError(RecordProcessingError):
    stage = "transcode"


class StoreError(RecordProcessingError):
    stage = "store"
