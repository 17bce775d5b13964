from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, List, Literal, Optional

from cursorcalc.core.exceptions import HistoryEntryNotFoundError
from cursorcalc.models.history import HistoryEntry, HistoryGroup
from cursorcalc.models.session import CursorDirection, SessionMode, SessionSnapshot
from cursorcalc.services.buffer import ExpressionBuffer
from cursorcalc.services.evaluator import NumericEvaluator
from cursorcalc.services.history import HistoryStore, InMemoryHistoryStore, group_history_by_day

logger = logging.getLogger("cursorcalc.session")

HistorySelectMode = Literal["expression", "result"]


def _local_now() -> dt.datetime:
    return dt.datetime.now().astimezone()


class CalculatorSession:
    """
    Editing/result-shown state machine wrapped around an :class:`ExpressionBuffer`.

    ``commit`` is the only way into the result-shown mode and the only producer
    of history entries. Any editing call afterwards drops back to editing, with
    a numeric insert starting a fresh expression.
    """

    def __init__(
        self,
        history: HistoryStore | None = None,
        *,
        evaluator: NumericEvaluator | None = None,
        select_mode: HistorySelectMode = "expression",
        clock: Callable[[], dt.datetime] = _local_now,
        max_length: int | None = None,
    ) -> None:
        self.history = history if history is not None else InMemoryHistoryStore()
        self.buffer = ExpressionBuffer(evaluator, max_length=max_length)
        self.select_mode = select_mode
        self.last_committed_expression: Optional[str] = None
        self._clock = clock

    @property
    def is_result_shown(self) -> bool:
        return self.buffer.is_result_shown

    @property
    def mode(self) -> SessionMode:
        return SessionMode.result_shown if self.buffer.is_result_shown else SessionMode.editing

    def insert(self, fragment: str) -> SessionSnapshot:
        self.buffer.insert(fragment)
        return self.snapshot()

    def delete_backward(self) -> SessionSnapshot:
        if self.buffer.is_result_shown:
            return self.clear()
        self.buffer.delete_backward()
        return self.snapshot()

    def move_cursor(self, direction: CursorDirection) -> SessionSnapshot:
        self.buffer.move_cursor(direction)
        return self.snapshot()

    def set_cursor(self, position: int) -> SessionSnapshot:
        # Tapping the expression while a result is displayed starts over.
        if self.buffer.is_result_shown:
            return self.clear()
        self.buffer.set_cursor(position)
        return self.snapshot()

    def toggle_percent(self) -> SessionSnapshot:
        self.buffer.toggle_percent()
        return self.snapshot()

    def toggle_sign(self) -> SessionSnapshot:
        self.buffer.toggle_sign()
        return self.snapshot()

    def commit(self) -> Optional[HistoryEntry]:
        expression = self.buffer.text
        outcome = self.buffer.outcome
        if self.buffer.is_result_shown or not expression.strip() or not outcome.is_value:
            logger.debug("session.commit.skipped", extra={"evaluation": outcome.kind.value})
            return None

        entry = HistoryEntry.record(expression, outcome.value, self._clock())
        self.history.append(entry)
        self.buffer.show_result(outcome.value)
        self.last_committed_expression = expression
        logger.info("session.commit", extra={"entry_id": entry.id, "result": entry.result})
        return entry

    def clear(self) -> SessionSnapshot:
        self.buffer.clear()
        self.last_committed_expression = None
        return self.snapshot()

    def select_history_entry(self, entry_id: str) -> SessionSnapshot:
        entry = self.history.get(entry_id)
        if entry is None:
            raise HistoryEntryNotFoundError(
                f"History entry '{entry_id}' does not exist.", details={"entryId": entry_id}
            )
        text = entry.result if self.select_mode == "result" else entry.expression
        self.buffer.load(text, entry.result)
        self.last_committed_expression = None
        return self.snapshot()

    def clear_history(self) -> int:
        removed = self.history.clear()
        logger.info("history.cleared", extra={"removed": removed})
        return removed

    def history_entries(self) -> List[HistoryEntry]:
        return self.history.all()

    def grouped_history(self, now: dt.datetime | None = None) -> List[HistoryGroup]:
        return group_history_by_day(self.history.all(), now or self._clock())

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            expressionText=self.buffer.text,
            cursorPosition=self.buffer.cursor,
            isResultShown=self.buffer.is_result_shown,
            displayedResult=self.buffer.preview,
            lastCommittedExpression=self.last_committed_expression,
            mode=self.mode,
            evaluation=self.buffer.outcome.kind.value,
        )
