"""Slice-based scanning over an immutable source string."""

from __future__ import annotations

from typing import Callable

_WHITESPACE = frozenset(" \t\n\r")


class Cursor:
    """A movable ``[start, end)`` window over a fixed string.

    Python strings index by code point, so every view is a pair of offsets
    into the same backing buffer and slicing never copies until ``text`` is
    read.
    """

    __slots__ = ("source", "start", "end")

    def __init__(self, source: str, start: int = 0, end: int | None = None) -> None:
        self.source = source
        self.start = start
        self.end = len(source) if end is None else end

    def __repr__(self) -> str:
        return f"Cursor({self.text!r}, start={self.start}, end={self.end})"

    def __len__(self) -> int:
        return max(0, self.end - self.start)

    @property
    def text(self) -> str:
        return self.source[self.start : self.end]

    def first(self) -> str | None:
        if self.is_empty():
            return None
        return self.source[self.start]

    def is_empty(self) -> bool:
        return self.start >= self.end

    def pop_first(self) -> str | None:
        if self.is_empty():
            return None
        ch = self.source[self.start]
        self.start += 1
        return ch

    def prefix_up_to(self, index: int) -> "Cursor":
        return Cursor(self.source, self.start, index)

    def suffix_from(self, index: int) -> "Cursor":
        return Cursor(self.source, index, self.end)

    def copy(self) -> "Cursor":
        return Cursor(self.source, self.start, self.end)

    def scan_characters(self, matching: Callable[[str], bool]) -> str | None:
        i = self.start
        while i < self.end and matching(self.source[i]):
            i += 1
        if i == self.start:
            return None
        text = self.source[self.start : i]
        self.start = i
        return text

    def scan_character(self, matching: Callable[[str], bool] | str | None = None) -> str | None:
        ch = self.first()
        if ch is None:
            return None
        if matching is not None:
            if isinstance(matching, str):
                if ch != matching:
                    return None
            elif not matching(ch):
                return None
        self.start += 1
        return ch

    def scan_to_end_of_token(self) -> str | None:
        return self.scan_characters(lambda ch: ch not in _WHITESPACE)

    def skip_whitespace(self) -> bool:
        return self.scan_characters(lambda ch: ch in _WHITESPACE) is not None

    def match_delimiter(self, delimiters) -> bool:
        """Report whether the input continues with one of ``delimiters`` without consuming it."""
        for delimiter in delimiters:
            if delimiter and self.source.startswith(delimiter, self.start, self.end):
                return True
        return False
