from __future__ import annotations

import datetime as dt
import uuid
from typing import List

from pydantic import BaseModel, ConfigDict, Field


def new_entry_id(timestamp: dt.datetime) -> str:
    """Millisecond timestamp prefix keeps ids ordered; the suffix keeps them unique."""
    millis = int(timestamp.timestamp() * 1000)
    return f"{millis}-{uuid.uuid4().hex[:8]}"


class HistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique identifier of the committed calculation.")
    expression: str = Field(..., description="Expression text exactly as it was committed.")
    result: str = Field(..., description="Canonical decimal result of the expression.")
    timestamp: dt.datetime = Field(..., description="Moment the expression was committed.")

    @classmethod
    def record(cls, expression: str, result: str, timestamp: dt.datetime) -> "HistoryEntry":
        return cls(
            id=new_entry_id(timestamp),
            expression=expression,
            result=result,
            timestamp=timestamp,
        )


class HistoryGroup(BaseModel):
    label: str = Field(..., description="Presentation label: Today, Yesterday or an ISO date.")
    day: dt.date = Field(..., description="Calendar day shared by every entry in the group.")
    entries: List[HistoryEntry] = Field(default_factory=list)


class HistoryResponse(BaseModel):
    sessionId: str = Field(..., description="Calculator session owning the history.")
    total: int = Field(..., ge=0)
    groups: List[HistoryGroup] = Field(default_factory=list)
