"""
Notification parsing.

A batch arrives as `{"Records": [...]}`. Each entry is either a queue
message whose `body` is an S3 event notification (optionally wrapped in an
SNS envelope), or an S3 event record delivered directly.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import re
from typing import Any, List, Mapping, Optional
from urllib.parse import unquote_plus

from pydantic import BaseModel, Field

from .exceptions import ParseError
from .results import StageResult

TEST_EVENT = "s3:TestEvent"
OBJECT_CREATED_PREFIX = "ObjectCreated:"

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class S3Bucket(BaseModel):
    name: str


class S3Object(BaseModel):
    key: str


class S3Entity(BaseModel):
    bucket: S3Bucket
    object_: S3Object = Field(alias="object")


class S3EventRecord(BaseModel):
    eventName: Optional[str] = None
    s3: S3Entity


class S3EventNotification(BaseModel):
    Records: List[S3EventRecord] = Field(default_factory=list)
    Event: Optional[str] = None


@dataclass(frozen=True)
class NotificationRecord:
    bucket: str
    key: str
    event_name: Optional[str] = None
    message_id: Optional[str] = None

    @property
    def is_object_created(self) -> bool:
        # Records without an event name are treated as uploads.
        return self.event_name is None or self.event_name.startswith(OBJECT_CREATED_PREFIX)


def decode_key(raw_key: str) -> str:
    """Reverse S3's form encoding: `+` is a space, then percent-decode as UTF-8."""
    if _BAD_ESCAPE.search(raw_key):
        raise ValueError(f"Malformed percent escape in key {raw_key!r}")
    return unquote_plus(raw_key, errors="strict")


def _unwrap_sns(payload: Any) -> Any:
    if isinstance(payload, dict) and payload.get("Type") == "Notification" and "Message" in payload:
        return json.loads(payload["Message"])
    return payload


def _to_record(event_record: S3EventRecord, message_id: Optional[str]) -> NotificationRecord:
    bucket = event_record.s3.bucket.name
    key = decode_key(event_record.s3.object_.key)
    if not bucket or not key:
        raise ValueError("Missing bucket or key")
    return NotificationRecord(
        bucket=bucket,
        key=key,
        event_name=event_record.eventName,
        message_id=message_id,
    )


def _parse(message: Any, message_id: Optional[str]) -> List[NotificationRecord]:
    if not isinstance(message, Mapping):
        raise TypeError("Message entry is not an object")

    if "s3" in message:
        notification = S3EventNotification.model_validate({"Records": [message]})
    else:
        body = message.get("body")
        if not isinstance(body, str):
            raise ValueError("Message has no body")
        payload = _unwrap_sns(json.loads(body))
        if not isinstance(payload, dict):
            raise ValueError("Message body is not a JSON object")
        if payload.get("Event") == TEST_EVENT:
            return []
        notification = S3EventNotification.model_validate(payload)
        if not notification.Records:
            raise ValueError("Message body has no Records")

    return [_to_record(r, message_id) for r in notification.Records]


def parse_message(message: Any) -> StageResult[List[NotificationRecord]]:
    """
    Turn one batch entry into the storage records it references.

    Every embedded S3 record is returned in order. Test events yield an
    empty list. Missing fields, bad JSON or an undecodable key produce a
    `ParseError` result.
    """
    message_id = message.get("messageId") if isinstance(message, Mapping) else None
    try:
        records = _parse(message, message_id)
    except (ValueError, TypeError) as exc:
        return StageResult(
            error=ParseError(
                f"Malformed notification record: {exc}",
                message_id=message_id,
                cause=exc,
            )
        )
    return StageResult(value=records)


def batch_messages(event: Any) -> StageResult[List[Any]]:
    """Return the ordered message entries of a host event."""
    records = event.get("Records") if isinstance(event, Mapping) else None
    if not isinstance(records, list):
        return StageResult(error=ParseError("Event has no Records list"))
    return StageResult(value=records)
