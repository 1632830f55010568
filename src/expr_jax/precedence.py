"""Operator precedence and associativity shared by the parser and printer."""

from __future__ import annotations

from typing import Final

_COMPARISON_OPERATORS: Final = (
    "<", "<=", ">=", ">",
    "==", "!=", "<>", "===", "!==",
    "lt", "le", "lte", "gt", "ge", "gte", "eq", "ne",
)
_ASSIGNMENT_OPERATORS: Final = (
    "=", "*=", "/=", "%=", "+=", "-=",
    "<<=", ">>=", "&=", "^=", "|=", ":=",
)

# name -> (precedence, right associative); unlisted operators (+, -, |, ^, ...) are (0, False)
OPERATOR_PRECEDENCE: Final[dict[str, tuple[int, bool]]] = {
    **{
        op: (precedence, False)
        for precedence, ops in (
            (100, ("[]", "()")),
            (2, ("<<", ">>", ">>>")),
            (1, ("*", "/", "%", "&")),
            (-1, ("..", "...", "..<")),
            (-2, ("is", "as", "isa")),
            (-3, ("??", "?:")),
            (-5, ("&&", "and")),
            (-6, ("||", "or")),
            (-7, ("?", ":")),
            (-100, (",",)),
        )
        for op in ops
    },
    **{op: (-4, True) for op in _COMPARISON_OPERATORS},
    **{op: (-8, True) for op in _ASSIGNMENT_OPERATORS},
}


def takes_precedence(lhs: str, rhs: str) -> bool:
    """Whether operator ``lhs`` binds before a following operator ``rhs``."""
    p1, right_associative = OPERATOR_PRECEDENCE.get(lhs, (0, False))
    p2, _ = OPERATOR_PRECEDENCE.get(rhs, (0, False))
    if p1 == p2:
        return not right_associative
    return p1 > p2
