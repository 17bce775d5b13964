from __future__ import annotations

import math
import operator
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List

from cursorcalc.core.exceptions import (
    EmptyExpressionError,
    InvalidExpressionError,
    UndefinedResultError,
)

DECIMAL_PLACES = 10
DISPLAY_OPERATORS = {"×": "*", "÷": "/"}
ALLOWED_CHARACTERS = frozenset("0123456789.+-*/()")
NUMBER_CHARACTERS = frozenset("0123456789.")


class OutcomeKind(str, Enum):
    value = "value"
    empty = "empty"
    invalid = "invalid"
    error = "error"


@dataclass(frozen=True)
class EvaluationOutcome:
    kind: OutcomeKind
    value: str | None = None
    message: str | None = None

    @classmethod
    def of(cls, value: str) -> "EvaluationOutcome":
        return cls(OutcomeKind.value, value=value)

    @classmethod
    def empty(cls) -> "EvaluationOutcome":
        return cls(OutcomeKind.empty, message="Expression is empty.")

    @classmethod
    def invalid(cls, message: str) -> "EvaluationOutcome":
        return cls(OutcomeKind.invalid, message=message)

    @classmethod
    def error(cls, message: str) -> "EvaluationOutcome":
        return cls(OutcomeKind.error, message=message)

    @property
    def is_value(self) -> bool:
        return self.kind is OutcomeKind.value

    def unwrap(self) -> str:
        """Return the canonical value or raise the matching calculator error."""
        if self.kind is OutcomeKind.value:
            return self.value
        if self.kind is OutcomeKind.empty:
            raise EmptyExpressionError("Expression cannot be empty.")
        if self.kind is OutcomeKind.invalid:
            raise InvalidExpressionError(self.message or "Invalid arithmetic expression.")
        raise UndefinedResultError(self.message or "Expression result is undefined.")


class _SyntaxFailure(Exception):
    pass


class _UndefinedValue(Exception):
    pass


# Unary minus is stored in postfix form under its own symbol so it never
# collides with binary subtraction.
NEGATE = "neg"

_PRECEDENCE = {"+": 1, "-": 1, "*": 2, "/": 2, NEGATE: 3}


def format_canonical(value: float) -> str:
    """
    Render a finite float as a plain decimal string.

    The value is rounded to ten decimal places before trailing zeros are
    stripped, so ``0.1 + 0.2`` renders as ``0.3``. Scientific notation is never
    produced.
    """
    rendered = f"{round(value, DECIMAL_PLACES):.{DECIMAL_PLACES}f}"
    if "." in rendered:
        rendered = rendered.rstrip("0").rstrip(".")
    if rendered in ("-0", ""):
        return "0"
    return rendered


def normalize_expression(raw: str) -> str:
    for glyph, symbol in DISPLAY_OPERATORS.items():
        raw = raw.replace(glyph, symbol)
    return "".join(raw.split())


def tokenize(expression: str) -> List[str]:
    tokens: List[str] = []
    index = 0
    while index < len(expression):
        char = expression[index]
        if char in NUMBER_CHARACTERS:
            end = index
            while end < len(expression) and expression[end] in NUMBER_CHARACTERS:
                end += 1
            literal = expression[index:end]
            if literal.count(".") > 1 or literal == ".":
                raise _SyntaxFailure(f"Malformed number {literal!r}.")
            tokens.append(literal)
            index = end
            continue
        if char not in ALLOWED_CHARACTERS:
            raise _SyntaxFailure(f"Unsupported character {char!r}.")
        tokens.append(char)
        index += 1
    return tokens


def to_postfix(tokens: List[str]) -> List[str]:
    """
    Convert infix tokens to postfix with an explicit operator stack.

    The whole grammar (four left-associative binary operators, prefix minus and
    parentheses) is checked here, so a successful conversion is always a
    well-formed program for :class:`NumericEvaluator`. Nesting depth only grows
    the operator stack, never the call stack.
    """
    output: List[str] = []
    pending: List[str] = []
    expect_operand = True

    for token in tokens:
        if expect_operand:
            if token[0] in NUMBER_CHARACTERS:
                output.append(token)
                expect_operand = False
            elif token == "(":
                pending.append(token)
            elif token == "-":
                pending.append(NEGATE)
            else:
                raise _SyntaxFailure(f"Expected a number, found {token!r}.")
            continue

        if token in ("+", "-", "*", "/"):
            precedence = _PRECEDENCE[token]
            while pending and pending[-1] != "(" and _PRECEDENCE[pending[-1]] >= precedence:
                output.append(pending.pop())
            pending.append(token)
            expect_operand = True
        elif token == ")":
            while pending and pending[-1] != "(":
                output.append(pending.pop())
            if not pending:
                raise _SyntaxFailure("Unbalanced parentheses.")
            pending.pop()
        else:
            raise _SyntaxFailure(f"Unexpected token {token!r}.")

    if expect_operand:
        raise _SyntaxFailure("Expression ended unexpectedly.")
    while pending:
        symbol = pending.pop()
        if symbol == "(":
            raise _SyntaxFailure("Unbalanced parentheses.")
        output.append(symbol)
    return output


class NumericEvaluator:
    _BINARY_OPERATORS: dict[str, Callable[[float, float], float]] = {
        "+": operator.add,
        "-": operator.sub,
        "*": operator.mul,
        "/": operator.truediv,
    }

    def evaluate(self, raw: str) -> EvaluationOutcome:
        expression = normalize_expression(raw or "")
        if not expression:
            return EvaluationOutcome.empty()

        try:
            program = to_postfix(tokenize(expression))
        except _SyntaxFailure as exc:
            return EvaluationOutcome.invalid(str(exc))

        try:
            value = self._run(program)
        except ZeroDivisionError:
            return EvaluationOutcome.error("Division by zero is not allowed.")
        except _UndefinedValue as exc:
            return EvaluationOutcome.error(str(exc))

        return EvaluationOutcome.of(format_canonical(value))

    def _run(self, program: List[str]) -> float:
        stack: List[float] = []
        for symbol in program:
            if symbol == NEGATE:
                stack.append(-stack.pop())
            elif symbol in self._BINARY_OPERATORS:
                right = stack.pop()
                left = stack.pop()
                stack.append(self._finite(self._BINARY_OPERATORS[symbol](left, right)))
            else:
                stack.append(self._finite(float(symbol)))
        return stack.pop()

    @staticmethod
    def _finite(value: float) -> float:
        if not math.isfinite(value):
            raise _UndefinedValue("Result is not a finite number.")
        return value
