from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from cursorcalc.models.history import HistoryEntry

INSERTABLE_CHARACTERS = frozenset("0123456789.+-*/×÷() ")

EvaluationStatus = Literal["value", "empty", "invalid", "error"]


class CursorDirection(str, Enum):
    left = "left"
    right = "right"


class SessionMode(str, Enum):
    editing = "editing"
    result_shown = "result_shown"


class InsertRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=32, description="Fragment to splice in at the cursor.")

    @field_validator("text")
    @classmethod
    def validate_characters(cls, value: str) -> str:
        unexpected = sorted({char for char in value if char not in INSERTABLE_CHARACTERS})
        if unexpected:
            raise ValueError(f"Unsupported characters in fragment: {''.join(unexpected)!r}")
        return value


class MoveCursorRequest(BaseModel):
    direction: CursorDirection = Field(..., description="Direction to move the cursor by one character.")


class SetCursorRequest(BaseModel):
    position: int = Field(..., description="Requested cursor offset; clamped into the expression.")


class SessionSnapshot(BaseModel):
    sessionId: Optional[str] = Field(default=None, description="Calculator session identifier.")
    expressionText: str = Field(..., description="Expression exactly as typed.")
    cursorPosition: int = Field(..., ge=0)
    isResultShown: bool = Field(...)
    displayedResult: str = Field(..., description="Live preview or committed result.")
    lastCommittedExpression: Optional[str] = Field(default=None)
    mode: SessionMode = Field(...)
    evaluation: EvaluationStatus = Field(..., description="Status of the live evaluation of the expression.")


class CommitResponse(BaseModel):
    snapshot: SessionSnapshot
    entry: Optional[HistoryEntry] = Field(
        default=None, description="History entry created by the commit, absent when nothing was committed."
    )
