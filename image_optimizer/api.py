"""
FastAPI layer for hosting the worker outside Lambda.

Endpoints:
 - GET /health
 - POST /invoke  (body: the batch event; non-2xx asks the sender to redeliver)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import Any, Dict

from fastapi import Body, Depends, FastAPI, HTTPException

from . import config
from .exceptions import RecordProcessingError
from .handler import WorkerContext, get_worker_context, handle_event, reset_worker_context

settings = config.get_settings()
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    reset_worker_context()


app = FastAPI(title="Image Optimizer Worker", version="0.1.0", lifespan=lifespan)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/invoke")
def invoke(
    event: Dict[str, Any] = Body(...),
    worker: WorkerContext = Depends(get_worker_context),
):
    try:
        return handle_event(event, worker)
    except RecordProcessingError as exc:
        logger.error("Batch failed at %s: %s", exc.location, exc)
        raise HTTPException(status_code=500, detail="Batch processing failed") from exc
