from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
import json
from typing import Dict, List, Mapping, Optional, Tuple

from PIL import Image
import pytest

from image_optimizer.exceptions import ObjectNotFound, StorageError


@dataclass
class StoredObject:
    body: bytes
    content_type: str = "image/jpeg"
    metadata: Dict[str, str] = field(default_factory=dict)


class FakeObjectStore:
    """In-memory `ObjectStore` that records every call."""

    def __init__(self) -> None:
        self.objects: Dict[Tuple[str, str], StoredObject] = {}
        self.calls: List[Tuple[str, str, str]] = []
        self.failures: Dict[Tuple[str, str], StorageError] = {}

    def add(
        self,
        bucket: str,
        key: str,
        body: bytes,
        metadata: Optional[Dict[str, str]] = None,
        content_type: str = "image/jpeg",
    ) -> None:
        self.objects[(bucket, key)] = StoredObject(body, content_type, dict(metadata or {}))

    def fail(self, operation: str, key: str, detail: str = "boom") -> None:
        self.failures[(operation, key)] = StorageError(operation, "bucket", key, detail)

    def calls_for(self, operation: str) -> List[str]:
        return [key for op, _, key in self.calls if op == operation]

    def _enter(self, operation: str, bucket: str, key: str) -> None:
        self.calls.append((operation, bucket, key))
        if (operation, key) in self.failures:
            raise self.failures[(operation, key)]

    def _get(self, operation: str, bucket: str, key: str) -> StoredObject:
        try:
            return self.objects[(bucket, key)]
        except KeyError:
            raise ObjectNotFound(operation, bucket, key, "object not found (404)") from None

    def head_metadata(self, bucket: str, key: str) -> Dict[str, str]:
        self._enter("head", bucket, key)
        return dict(self._get("head", bucket, key).metadata)

    def get_content(self, bucket: str, key: str) -> bytes:
        self._enter("get", bucket, key)
        return self._get("get", bucket, key).body

    def put_content(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: str,
        metadata: Mapping[str, str],
    ) -> None:
        self._enter("put", bucket, key)
        self.objects[(bucket, key)] = StoredObject(body, content_type, dict(metadata))


def make_image_bytes(
    width: int,
    height: int,
    fmt: str = "JPEG",
    mode: str = "RGB",
    color=(200, 30, 30),
    **save_params,
) -> bytes:
    image = Image.new(mode, (width, height), color)
    image.paste((20, 120, 220) if mode == "RGB" else color, (0, 0, width // 2, height // 2))
    buffer = BytesIO()
    image.save(buffer, format=fmt, **save_params)
    return buffer.getvalue()


def s3_record(bucket: str, key: str, event_name: str = "ObjectCreated:Put") -> dict:
    return {
        "eventSource": "aws:s3",
        "eventName": event_name,
        "s3": {"bucket": {"name": bucket}, "object": {"key": key, "size": 1}},
    }


def sqs_message(bucket: str, key: str, message_id: str = "msg-1", **kwargs) -> dict:
    return {
        "messageId": message_id,
        "eventSource": "aws:sqs",
        "body": json.dumps({"Records": [s3_record(bucket, key, **kwargs)]}),
    }


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes(2000, 1500)
