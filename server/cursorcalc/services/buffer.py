from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import NamedTuple

from cursorcalc.core.exceptions import ExpressionTooLongError
from cursorcalc.models.session import CursorDirection
from cursorcalc.services.evaluator import EvaluationOutcome, NumericEvaluator, OutcomeKind
from cursorcalc.services.scanner import find_number_at, is_number_character, sign_prefix_at

INITIAL_PREVIEW = "0"
ERROR_PREVIEW = "Error"


class BufferState(NamedTuple):
    text: str
    cursor: int
    outcome: EvaluationOutcome


def format_plain_decimal(value: Decimal) -> str:
    rendered = format(value, "f")
    if "." in rendered:
        rendered = rendered.rstrip("0").rstrip(".")
    if rendered in ("-0", ""):
        return "0"
    return rendered


def percent_of(value: Decimal) -> Decimal:
    """Move the decimal point two places left without rounding to the context precision."""
    sign, digits, exponent = value.as_tuple()
    return Decimal((sign, digits, exponent - 2))


def _is_numeric_fragment(fragment: str) -> bool:
    return bool(fragment) and all(is_number_character(char) for char in fragment)


class ExpressionBuffer:
    """
    Editable expression text with an insertion cursor and a live preview.

    Every mutating operation re-evaluates the whole expression and returns the
    resulting :class:`BufferState`. Invalid or empty expressions leave the
    preview untouched; only a successful value or an undefined result replaces
    it. An edit that would push the text past ``max_length`` raises
    :class:`ExpressionTooLongError` and leaves the buffer unchanged.
    """

    def __init__(self, evaluator: NumericEvaluator | None = None, *, max_length: int | None = None) -> None:
        self._evaluator = evaluator or NumericEvaluator()
        self.max_length = max_length
        self.text = ""
        self.cursor = 0
        self.is_result_shown = False
        self.preview = INITIAL_PREVIEW
        self.outcome = EvaluationOutcome.empty()

    @property
    def state(self) -> BufferState:
        return BufferState(self.text, self.cursor, self.outcome)

    def insert(self, fragment: str) -> BufferState:
        if self.is_result_shown and _is_numeric_fragment(fragment):
            text = fragment
            cursor = len(fragment)
        else:
            text = self.text[: self.cursor] + fragment + self.text[self.cursor :]
            cursor = self.cursor + len(fragment)
        return self._apply(text, cursor)

    def delete_backward(self) -> BufferState:
        if self.is_result_shown:
            return self.clear()
        if self.cursor == 0:
            return self.state
        text = self.text[: self.cursor - 1] + self.text[self.cursor :]
        return self._apply(text, self.cursor - 1)

    def move_cursor(self, direction: CursorDirection) -> BufferState:
        step = -1 if CursorDirection(direction) is CursorDirection.left else 1
        self.cursor = self._clamp(self.cursor + step)
        return self.state

    def set_cursor(self, position: int) -> BufferState:
        self.cursor = self._clamp(position)
        return self.state

    def toggle_percent(self) -> BufferState:
        span = find_number_at(self.text, self.cursor)
        try:
            value = Decimal(span.slice(self.text)) if span is not None else None
        except InvalidOperation:
            value = None
        if value is None:
            self.is_result_shown = False
            return self.state
        replacement = format_plain_decimal(percent_of(value))
        text = self.text[: span.start] + replacement + self.text[span.end :]
        return self._apply(text, span.start + len(replacement))

    def toggle_sign(self) -> BufferState:
        span = find_number_at(self.text, self.cursor)
        if span is None:
            self.is_result_shown = False
            return self.state
        number = span.slice(self.text)
        sign = sign_prefix_at(self.text, span.start)
        if sign is not None:
            start = sign
            replacement = number
        else:
            start = span.start
            replacement = "-" + number
        text = self.text[:start] + replacement + self.text[span.end :]
        return self._apply(text, start + len(replacement))

    def clear(self) -> BufferState:
        self.text = ""
        self.cursor = 0
        self.is_result_shown = False
        self.preview = INITIAL_PREVIEW
        self.outcome = EvaluationOutcome.empty()
        return self.state

    def show_result(self, value: str) -> BufferState:
        self.is_result_shown = True
        self.preview = value
        self.cursor = 0
        return self.state

    def load(self, text: str, preview: str) -> BufferState:
        self.is_result_shown = False
        self.text = text
        self.cursor = len(text)
        self.outcome = self._evaluator.evaluate(text)
        self.preview = preview
        return self.state

    def _apply(self, text: str, cursor: int) -> BufferState:
        limit = self.max_length
        # Edits that shorten an over-long text, such as a loaded history entry, stay allowed.
        if limit is not None and len(text) > limit and len(text) > len(self.text):
            raise ExpressionTooLongError(
                f"Expression exceeds {limit} characters.",
                details={"limit": limit},
            )
        outcome = self._evaluator.evaluate(text)
        self.is_result_shown = False
        self.text = text
        self.cursor = self._clamp(cursor)
        self.outcome = outcome
        if outcome.kind is OutcomeKind.value:
            self.preview = outcome.value
        elif outcome.kind is OutcomeKind.error:
            self.preview = ERROR_PREVIEW
        return self.state

    def _clamp(self, position: int) -> int:
        return max(0, min(position, len(self.text)))
