"""Character classes shared by the scanner and the pretty printer."""

from __future__ import annotations

from bisect import bisect_right
from typing import Final

QUOTE_DELIMITERS: Final[frozenset[str]] = frozenset("`'\"")
HEX_DIGITS: Final[frozenset[str]] = frozenset("0123456789abcdefABCDEF")

_OPERATOR_ASCII: Final[frozenset[str]] = frozenset("/=+!*%<>&|^~?:")

_OPERATOR_RANGES: Final[tuple[tuple[int, int], ...]] = (
    (0x00A1, 0x00A7),
    (0x00A9, 0x00A9),
    (0x00AB, 0x00AC),
    (0x00AE, 0x00AE),
    (0x00B0, 0x00B1),
    (0x00B6, 0x00B6),
    (0x00BB, 0x00BB),
    (0x00BF, 0x00BF),
    (0x00D7, 0x00D7),
    (0x00F7, 0x00F7),
    (0x2016, 0x2017),
    (0x2020, 0x2027),
    (0x2030, 0x203E),
    (0x2041, 0x2053),
    (0x2055, 0x205E),
    (0x2190, 0x23FF),
    (0x2500, 0x2775),
    (0x2794, 0x2BFF),
    (0x2E00, 0x2E7F),
    (0x3001, 0x3003),
    (0x3008, 0x3030),
)

_IDENTIFIER_HEAD_RANGES: Final[tuple[tuple[int, int], ...]] = (
    (0x0023, 0x0024),  # # $
    (0x0040, 0x005A),  # @ A-Z
    (0x005F, 0x005F),  # _
    (0x0061, 0x007A),  # a-z
    (0x00A8, 0x00A8),
    (0x00AA, 0x00AA),
    (0x00AD, 0x00AD),
    (0x00AF, 0x00AF),
    (0x00B2, 0x00B5),
    (0x00B7, 0x00BA),
    (0x00BC, 0x00BE),
    (0x00C0, 0x00D6),
    (0x00D8, 0x00F6),
    (0x00F8, 0x02FF),
    (0x0370, 0x167F),
    (0x1681, 0x180D),
    (0x180F, 0x1DBF),
    (0x1E00, 0x1FFF),
    (0x200B, 0x200D),
    (0x202A, 0x202E),
    (0x203F, 0x2040),
    (0x2054, 0x2054),
    (0x2060, 0x20CF),
    (0x2100, 0x218F),
    (0x2460, 0x24FF),
    (0x2776, 0x2793),
    (0x2C00, 0x2DFF),
    (0x2E80, 0x2FFF),
    (0x3004, 0x3007),
    (0x3021, 0x302F),
    (0x3031, 0xD7FF),
    (0xF900, 0xFD3D),
    (0xFD40, 0xFDCF),
    (0xFDF0, 0xFE1F),
    (0xFE30, 0xFE44),
    (0xFE47, 0xFFFD),
) + tuple((plane, plane + 0xFFFD) for plane in range(0x10000, 0xF0000, 0x10000))

_IDENTIFIER_EXTRA_RANGES: Final[tuple[tuple[int, int], ...]] = (
    (0x0030, 0x0039),  # 0-9
    (0x0300, 0x036F),
    (0x1DC0, 0x1DFF),
    (0x20D0, 0x20FF),
    (0xFE20, 0xFE2F),
)


def _range_table(ranges: tuple[tuple[int, int], ...]) -> tuple[tuple[int, ...], tuple[int, ...]]:
    ordered = sorted(ranges)
    return tuple(lo for lo, _ in ordered), tuple(hi for _, hi in ordered)


def _in_table(table: tuple[tuple[int, ...], tuple[int, ...]], codepoint: int) -> bool:
    starts, ends = table
    idx = bisect_right(starts, codepoint) - 1
    return idx >= 0 and codepoint <= ends[idx]


_OPERATOR_TABLE = _range_table(_OPERATOR_RANGES)
_IDENTIFIER_HEAD_TABLE = _range_table(_IDENTIFIER_HEAD_RANGES)
_IDENTIFIER_TABLE = _range_table(_IDENTIFIER_HEAD_RANGES + _IDENTIFIER_EXTRA_RANGES)


def is_operator_char(ch: str) -> bool:
    if ch in _OPERATOR_ASCII:
        return True
    return _in_table(_OPERATOR_TABLE, ord(ch))


def is_identifier_head(ch: str) -> bool:
    return _in_table(_IDENTIFIER_HEAD_TABLE, ord(ch))


def is_identifier_char(ch: str) -> bool:
    return _in_table(_IDENTIFIER_TABLE, ord(ch))


def is_hex_digit(ch: str) -> bool:
    return ch in HEX_DIGITS


def is_decimal_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


_ESCAPES: Final[dict[str, str]] = {
    "\0": "\\0",
    "\t": "\\t",
    "\n": "\\n",
    "\r": "\\r",
    "\\": "\\\\",
}


def escape_identifier(name: str) -> str:
    """Render a symbol name so that scanning the result yields the same name.

    Names that do not start with a quote delimiter are returned unchanged.
    Quoted names keep their delimiters; control characters, backslashes and
    interior delimiters are escaped, and anything that is neither printable
    ASCII nor an operator/identifier character becomes ``\\u{HEX}``.
    """
    if not name or name[0] not in QUOTE_DELIMITERS:
        return name
    delimiter = name[0]
    closed = len(name) > 1 and name[-1] == delimiter
    body = name[1:-1] if closed else name[1:]
    out = [delimiter]
    for ch in body:
        escaped = _ESCAPES.get(ch)
        if escaped is not None:
            out.append(escaped)
        elif ch == delimiter:
            out.append("\\" + ch)
        elif 0x20 <= ord(ch) < 0x7F or is_operator_char(ch) or is_identifier_char(ch):
            out.append(ch)
        else:
            out.append(f"\\u{{{ord(ch):X}}}")
    if closed:
        out.append(delimiter)
    return "".join(out)
