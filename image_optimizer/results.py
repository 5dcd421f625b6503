"""
Explicit result types passed between the pipeline stages and the dispatcher.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from .exceptions import RecordProcessingError

T = TypeVar("T")

SUCCESS_MESSAGE = "Batch processed successfully"


@dataclass(frozen=True)
class StageResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[RecordProcessingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RecordStatus(str, Enum):
    SKIPPED = "skipped"
    OPTIMIZED = "optimized"
    FAILED = "failed"


@dataclass(frozen=True)
class RecordOutcome:
    bucket: Optional[str]
    key: Optional[str]
    status: RecordStatus
    reason: Optional[str] = None
    error: Optional[RecordProcessingError] = None

    @property
    def failed(self) -> bool:
        return self.status is RecordStatus.FAILED


@dataclass
class BatchOutcome:
    """Result of a batch where every record was optimized or skipped."""

    outcomes: List[RecordOutcome] = field(default_factory=list)

    @property
    def optimized(self) -> List[str]:
        return [o.key for o in self.outcomes if o.status is RecordStatus.OPTIMIZED]

    @property
    def skipped(self) -> List[str]:
        return [o.key for o in self.outcomes if o.status is RecordStatus.SKIPPED]

    def to_response(self) -> Dict[str, Any]:
        """Render the Lambda-style success payload."""
        return {
            "statusCode": 200,
            "body": json.dumps(
                {
                    "message": SUCCESS_MESSAGE,
                    "optimized": self.optimized,
                    "skipped": self.skipped,
                }
            ),
        }
