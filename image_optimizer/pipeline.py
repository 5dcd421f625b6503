"""
Per-record optimization pipeline.

`process_record` is the unit of work the batch dispatcher runs for each
notification record:
metadata check -> (skip | fetch -> transcode -> store with marker).

Each stage returns a `StageResult` instead of raising, so the dispatcher
decides what a failure means for the rest of the batch.
"""

from __future__ import annotations

from enum import Enum
import logging
from typing import Callable

from .events import NotificationRecord
from .exceptions import (
    ContentFetchError,
    MetadataQueryError,
    StorageError,
    StoreError,
    TranscodeError,
)
from .results import RecordOutcome, RecordStatus, StageResult
from .storage import ObjectStore
from .transcoder import TranscodeOptions, transcode_image

logger = logging.getLogger(__name__)

OPTIMIZED_ATTRIBUTE = "optimized"
OPTIMIZED_VALUE = "true"

Transcoder = Callable[[bytes, TranscodeOptions], bytes]


class GateDecision(str, Enum):
    SKIP = "skip"
    PROCEED = "proceed"


def _failed(record: NotificationRecord, error) -> RecordOutcome:
    return RecordOutcome(
        bucket=record.bucket, key=record.key, status=RecordStatus.FAILED, error=error
    )


def check_marker(store: ObjectStore, record: NotificationRecord) -> StageResult[GateDecision]:
    """Decide skip vs. proceed from object metadata alone."""
    try:
        metadata = store.head_metadata(record.bucket, record.key)
    except StorageError as exc:
        return StageResult(
            error=MetadataQueryError(
                f"Metadata lookup failed for {record.bucket}/{record.key}: {exc}",
                bucket=record.bucket,
                key=record.key,
                message_id=record.message_id,
                cause=exc,
            )
        )
    if metadata.get(OPTIMIZED_ATTRIBUTE) == OPTIMIZED_VALUE:
        return StageResult(value=GateDecision.SKIP)
    return StageResult(value=GateDecision.PROCEED)


def fetch_content(store: ObjectStore, record: NotificationRecord) -> StageResult[bytes]:
    try:
        return StageResult(value=store.get_content(record.bucket, record.key))
    except StorageError as exc:
        return StageResult(
            error=ContentFetchError(
                f"Download failed for {record.bucket}/{record.key}: {exc}",
                bucket=record.bucket,
                key=record.key,
                message_id=record.message_id,
                cause=exc,
            )
        )


def transcode_content(
    data: bytes,
    record: NotificationRecord,
    options: TranscodeOptions,
    transcoder: Transcoder = transcode_image,
) -> StageResult[bytes]:
    try:
        return StageResult(value=transcoder(data, options))
    except Exception as exc:  # noqa: BLE001
        return StageResult(
            error=TranscodeError(
                f"Could not transcode {record.bucket}/{record.key}: {exc}",
                bucket=record.bucket,
                key=record.key,
                message_id=record.message_id,
                cause=exc,
            )
        )


def store_optimized(
    store: ObjectStore,
    record: NotificationRecord,
    data: bytes,
    options: TranscodeOptions,
) -> StageResult[None]:
    """Overwrite the original with the optimized bytes and the marker in one write."""
    try:
        store.put_content(
            record.bucket,
            record.key,
            data,
            content_type=options.format.content_type,
            metadata={OPTIMIZED_ATTRIBUTE: OPTIMIZED_VALUE},
        )
    except StorageError as exc:
        return StageResult(
            error=StoreError(
                f"Upload failed for {record.bucket}/{record.key}: {exc}",
                bucket=record.bucket,
                key=record.key,
                message_id=record.message_id,
                cause=exc,
            )
        )
    return StageResult()


def optimize_object(
    store: ObjectStore,
    record: NotificationRecord,
    options: TranscodeOptions,
    transcoder: Transcoder = transcode_image,
) -> RecordOutcome:
    """Fetch, transcode and store one object, stopping at the first failed stage."""
    fetched = fetch_content(store, record)
    if not fetched.ok:
        return _failed(record, fetched.error)

    transcoded = transcode_content(fetched.value, record, options, transcoder)
    if not transcoded.ok:
        return _failed(record, transcoded.error)

    stored = store_optimized(store, record, transcoded.value, options)
    if not stored.ok:
        return _failed(record, stored.error)

    logger.info(
        "Image optimized successfully: %s (%d -> %d bytes)",
        record.key,
        len(fetched.value),
        len(transcoded.value),
    )
    return RecordOutcome(bucket=record.bucket, key=record.key, status=RecordStatus.OPTIMIZED)


def process_record(
    store: ObjectStore,
    record: NotificationRecord,
    options: TranscodeOptions,
    transcoder: Transcoder = transcode_image,
) -> RecordOutcome:
    if not record.is_object_created:
        logger.info("Ignoring %s event for %s", record.event_name, record.key)
        return RecordOutcome(
            bucket=record.bucket,
            key=record.key,
            status=RecordStatus.SKIPPED,
            reason=f"event {record.event_name}",
        )

    gate = check_marker(store, record)
    if not gate.ok:
        return _failed(record, gate.error)
    if gate.value is GateDecision.SKIP:
        logger.info("Skipping already optimized image: %s", record.key)
        return RecordOutcome(
            bucket=record.bucket,
            key=record.key,
            status=RecordStatus.SKIPPED,
            reason="already optimized",
        )

    logger.info("Processing image: %s/%s", record.bucket, record.key)
    return optimize_object(store, record, options, transcoder)
