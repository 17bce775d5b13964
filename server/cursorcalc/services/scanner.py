from __future__ import annotations

from typing import NamedTuple

_NUMBER_CHARACTERS = frozenset("0123456789.")
_SIGN_CONTEXT = frozenset("(+-*/×÷")


class NumberSpan(NamedTuple):
    start: int
    end: int

    def slice(self, text: str) -> str:
        return text[self.start:self.end]


def is_number_character(char: str) -> bool:
    return char in _NUMBER_CHARACTERS


def find_number_at(text: str, index: int) -> NumberSpan | None:
    """
    Locate the run of digits and decimal points touching ``index``.

    The run is not validated as a number, so ``"1.2.3"`` is returned whole.
    Returns ``None`` when the index sits between operators, spaces or
    parentheses.
    """
    index = max(0, min(index, len(text)))

    start = index
    while start > 0 and is_number_character(text[start - 1]):
        start -= 1

    end = index
    while end < len(text) and is_number_character(text[end]):
        end += 1

    if start < end:
        return NumberSpan(start, end)
    return None


def sign_prefix_at(text: str, start: int) -> int | None:
    """
    Return the index of a unary minus directly in front of ``start``.

    A ``-`` counts as a sign only when nothing but spaces separates it from
    the beginning of the text, an opening parenthesis or another operator.
    ``7-3`` therefore has no sign prefix on ``3`` while ``7 - -3`` does.
    """
    minus = start - 1
    if minus < 0 or text[minus] != "-":
        return None

    before = minus - 1
    while before >= 0 and text[before] == " ":
        before -= 1
    if before < 0 or text[before] in _SIGN_CONTEXT:
        return minus
    return None
