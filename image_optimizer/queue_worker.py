"""
Batch dispatcher.

Records are handled one at a time, in delivery order. The first failure
stops the loop and is raised to the host, which redelivers the whole batch;
records that already succeeded are skipped on redelivery by the metadata
marker.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from .events import parse_message
from .pipeline import Transcoder, process_record
from .results import BatchOutcome
from .storage import ObjectStore
from .transcoder import TranscodeOptions, transcode_image

logger = logging.getLogger(__name__)


def process_batch(
    messages: Iterable[Any],
    store: ObjectStore,
    options: TranscodeOptions,
    transcoder: Transcoder = transcode_image,
) -> BatchOutcome:
    """
    Process a batch of queue messages synchronously.

    Returns a `BatchOutcome` when every record was optimized or skipped.

    Raises:
        RecordProcessingError: the first record failure; remaining messages
            are not touched.
    """
    outcome = BatchOutcome()
    for message in messages:
        parsed = parse_message(message)
        if not parsed.ok:
            error = parsed.error
            logger.error("Error processing image: %s (%s)", error, error.location)
            raise error from error.cause

        for record in parsed.value:
            result = process_record(store, record, options, transcoder)
            if result.failed:
                error = result.error
                logger.error(
                    "Error processing image %s at %s stage: %s",
                    error.location,
                    error.stage,
                    error.cause or error,
                )
                raise error from error.cause
            outcome.outcomes.append(result)
    return outcome
