"""Scanner primitives: each consumes one token from a cursor or leaves it untouched."""

from __future__ import annotations

import math

from .ast import ErrorNode, Literal, Node, SymbolNode
from .chars import QUOTE_DELIMITERS, is_decimal_digit, is_hex_digit, is_identifier_char, is_identifier_head, is_operator_char
from .cursor import Cursor
from .errors import MissingDelimiterError, UnexpectedTokenError
from .symbols import Symbol

_STRUCTURAL = frozenset("([,")
_SIMPLE_ESCAPES = {"0": "\0", "t": "\t", "n": "\n", "r": "\r"}


def _scan_exponent(cursor: Cursor) -> str | None:
    start = cursor.start
    e = cursor.scan_character(lambda ch: ch in "eE")
    if e is not None:
        sign = cursor.scan_character(lambda ch: ch in "+-") or ""
        digits = cursor.scan_characters(is_decimal_digit)
        if digits is not None:
            return e + sign + digits
    cursor.start = start
    return None


def _scan_number_text(cursor: Cursor) -> str | None:
    end_of_int = cursor.start
    integer = cursor.scan_characters(is_decimal_digit)
    if integer is not None:
        if integer == "0" and cursor.scan_character("x"):
            return "0x" + (cursor.scan_characters(is_hex_digit) or "")
        end_of_int = cursor.start
        if cursor.scan_character("."):
            fraction = cursor.scan_characters(is_decimal_digit)
            if fraction is None:
                cursor.start = end_of_int
                return integer
            number = f"{integer}.{fraction}"
        else:
            number = integer
    elif cursor.scan_character("."):
        fraction = cursor.scan_characters(is_decimal_digit)
        if fraction is None:
            cursor.start = end_of_int
            return None
        number = f".{fraction}"
    else:
        return None
    exponent = _scan_exponent(cursor)
    if exponent is not None:
        number += exponent
    return number


def _number_value(text: str) -> float | None:
    try:
        value = float(int(text[2:], 16)) if text.startswith("0x") else float(text)
    except (ValueError, OverflowError):
        return None
    return value if math.isfinite(value) else None


def scan_numeric_literal(cursor: Cursor) -> Node | None:
    """Decimal integers/fractions with optional exponent, or ``0x`` hex integers.

    An integer followed by a dot without digits stops before the dot so that
    ``1.foo`` can still scan as a member-style identifier.
    """
    text = _scan_number_text(cursor)
    if text is None:
        return None
    value = _number_value(text)
    if value is None:
        return ErrorNode(UnexpectedTokenError(text), text)
    return Literal(value)


def scan_identifier(cursor: Cursor) -> Node | None:
    """Names may hold internal dots, may start with a dot, and may end in one prime."""
    start = cursor.start
    if cursor.scan_character("."):
        identifier = "."
    else:
        head = cursor.scan_character(is_identifier_head)
        if head is None:
            return None
        identifier = head
        start = cursor.start
        if cursor.scan_character("."):
            identifier += "."
    while True:
        tail = cursor.scan_characters(is_identifier_char)
        if tail is None:
            break
        identifier += tail
        start = cursor.start
        if cursor.scan_character("."):
            identifier += "."
    if identifier.endswith("."):
        cursor.start = start
        if identifier == ".":
            return None
        identifier = identifier[:-1]
    elif cursor.scan_character("'"):
        identifier += "'"
    return SymbolNode(Symbol.variable(identifier))


def scan_operator(cursor: Cursor) -> Node | None:
    """Operator runs, or one of the structural characters ``( [ ,``.

    A run of dots or of minus signs may be followed by further operator
    characters in the same token.
    """
    op = cursor.scan_characters(lambda ch: ch == ".") or cursor.scan_characters(lambda ch: ch == "-")
    if op is not None:
        tail = cursor.scan_characters(is_operator_char)
        if tail is not None:
            op += tail
        return SymbolNode(Symbol.infix(op))
    op = cursor.scan_characters(is_operator_char) or cursor.scan_character(lambda ch: ch in _STRUCTURAL)
    if op is not None:
        return SymbolNode(Symbol.infix(op))
    return None


def scan_escaped_identifier(cursor: Cursor) -> Node | None:
    """Quoted names with ``\\0 \\t \\n \\r \\u{HEX}`` escapes; the name keeps its quotes."""
    delimiter = cursor.first()
    if delimiter is None or delimiter not in QUOTE_DELIMITERS:
        return None
    cursor.pop_first()
    string = delimiter
    while True:
        part = cursor.scan_characters(lambda ch: ch != delimiter and ch != "\\")
        if part is not None:
            string += part
        if not cursor.scan_character("\\"):
            break
        ch = cursor.pop_first()
        if ch is None:
            break
        if ch in _SIMPLE_ESCAPES:
            string += _SIMPLE_ESCAPES[ch]
        elif ch == "u" and cursor.scan_character("{"):
            hex_digits = cursor.scan_characters(is_hex_digit) or ""
            if not cursor.scan_character("}"):
                junk = cursor.scan_to_end_of_token()
                if junk is None:
                    return ErrorNode(MissingDelimiterError("}"), string)
                return ErrorNode(UnexpectedTokenError(junk), string)
            if not hex_digits:
                return ErrorNode(UnexpectedTokenError("}"), string)
            codepoint = int(hex_digits, 16)
            if codepoint > 0x10FFFF or 0xD800 <= codepoint <= 0xDFFF:
                return ErrorNode(UnexpectedTokenError(hex_digits), string)
            string += chr(codepoint)
        else:
            string += ch
    if not cursor.scan_character(delimiter):
        if string == delimiter:
            return ErrorNode(UnexpectedTokenError(string), string)
        return ErrorNode(MissingDelimiterError(delimiter), string)
    string += delimiter
    return SymbolNode(Symbol.variable(string))
