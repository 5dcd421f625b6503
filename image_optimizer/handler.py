"""
Lambda entry point.

The storage client is built once per process inside a `WorkerContext` and
reused across invocations. `handler` returns the success payload or raises,
which the queue trigger turns into a redelivery of the whole batch.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from threading import Lock
from typing import Any, Dict, Optional

from . import config
from .events import batch_messages
from .pipeline import Transcoder
from .queue_worker import process_batch
from .storage import ObjectStore, S3ObjectStore
from .transcoder import TranscodeOptions, transcode_image

logger = logging.getLogger(__name__)

_CONTEXT: Optional["WorkerContext"] = None
_LOCK = Lock()


@dataclass
class WorkerContext:
    store: ObjectStore
    options: TranscodeOptions
    transcoder: Transcoder = transcode_image

    @classmethod
    def from_settings(cls, settings: Optional[config.Settings] = None) -> "WorkerContext":
        settings = settings or config.get_settings()
        return cls(
            store=S3ObjectStore.from_settings(settings),
            options=TranscodeOptions.from_settings(settings),
        )

    def close(self) -> None:
        close = getattr(self.store, "close", None)
        if close is not None:
            close()


def get_worker_context() -> WorkerContext:
    """Return the process-wide context, building it on first use."""
    global _CONTEXT
    if _CONTEXT is not None:
        return _CONTEXT

    with _LOCK:
        if _CONTEXT is None:
            settings = config.get_settings()
            logging.getLogger().setLevel(
                getattr(logging, settings.log_level.upper(), logging.INFO)
            )
            _CONTEXT = WorkerContext.from_settings(settings)
            logger.info("Worker context initialized for region %s", settings.aws_region)
    return _CONTEXT


def reset_worker_context() -> None:
    """Dispose of the process-wide context (shutdown hook)."""
    global _CONTEXT
    with _LOCK:
        if _CONTEXT is not None:
            _CONTEXT.close()
            _CONTEXT = None


def handle_event(event: Any, worker: WorkerContext) -> Dict[str, Any]:
    envelope = batch_messages(event)
    if not envelope.ok:
        logger.error("Error reading batch: %s", envelope.error)
        raise envelope.error
    logger.info("Received %d message(s)", len(envelope.value))
    outcome = process_batch(envelope.value, worker.store, worker.options, worker.transcoder)
    logger.info(
        "Batch done: %d optimized, %d skipped",
        len(outcome.optimized),
        len(outcome.skipped),
    )
    return outcome.to_response()


def handler(event: Any, context: Any) -> Dict[str, Any]:
    """Lambda entry point triggered by the queue."""
    return handle_event(event, get_worker_context())
