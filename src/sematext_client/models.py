"""
Data models for the Sematext client.

Points feed the line protocol writer; log documents feed the bulk uploader.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, NamedTuple, Optional, Union

from pydantic import BaseModel, validator

# Closed set of field value types the encoder knows how to put on the wire.
# bool must be tested before int (bool is an int subclass).
FieldValue = Union[bool, int, float, str]

LogDocument = Dict[str, Any]


class Tag(NamedTuple):
    k: str
    v: str


class Point(BaseModel):
    """One metric observation: measurement, tags, typed fields, timestamp."""

    measurement: str
    tags: Dict[str, str] = {}
    fields: Dict[str, FieldValue]
    ts: Union[datetime, int]

    @validator("measurement")
    def _non_empty(cls, v):
        if not v:
            raise ValueError("measurement must not be empty")
        return v


@dataclass(frozen=True)
class BulkItemFailure:
    id: Optional[str]
    status: Optional[int]
    reason: str


@dataclass
class BulkResult:
    """What a single bulk call did. `failed` lists items the receiver rejected."""

    sent: int = 0
    status_code: Optional[int] = None
    failed: List[BulkItemFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        if self.status_code is None:
            return True
        return 200 <= self.status_code < 300 and not self.failed
