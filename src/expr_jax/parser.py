"""Stack-collapse parser for infix/prefix/postfix/ternary/call/subscript expressions."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import Final, Iterable

from .ast import ErrorNode, Node, SymbolNode, bare, collect_symbols, depth, first_error, is_applied, is_bare_operator, is_operand
from .cursor import Cursor
from .errors import ArityMismatchError, ExpressionError, MessageError, MissingDelimiterError, UnexpectedTokenError, reraisable
from .lexer import scan_escaped_identifier, scan_identifier, scan_numeric_literal, scan_operator
from .precedence import takes_precedence
from .printer import describe
from .symbols import Arity, Symbol, SymbolKind

logger = logging.getLogger(__name__)

MAX_DEPTH: Final[int] = max(1, int(os.environ.get("EXPR_JAX_MAX_DEPTH", "200")))
# Depth limit for the finished tree; flat operator chains count against this, not MAX_DEPTH.
MAX_TREE_DEPTH: Final[int] = max(
    MAX_DEPTH, int(os.environ.get("EXPR_JAX_MAX_TREE_DEPTH", str(sys.getrecursionlimit() // 2)))
)

# After an infix operator from this set, a following bare operator is read as prefix.
_PREFIX_AFTER: Final = frozenset({"+", "/", "*"})


@dataclass(frozen=True)
class ParsedExpression:
    """Parse result prior to symbol binding; cannot be evaluated directly."""

    root: Node

    @property
    def error(self) -> ExpressionError | None:
        return first_error(self.root)

    @property
    def symbols(self) -> frozenset[Symbol]:
        return collect_symbols(self.root)

    @property
    def description(self) -> str:
        return describe(self.root)

    def __str__(self) -> str:
        return self.description


def _scan_token(cursor: Cursor) -> Node | None:
    for scanner in (scan_numeric_literal, scan_identifier, scan_operator, scan_escaped_identifier):
        token = scanner(cursor)
        if token is not None:
            return token
    return None


def _raise_for(node: Node) -> None:
    if isinstance(node, ErrorNode):
        raise node.error
    raise UnexpectedTokenError(describe(node))


def _collapse_stack(stack: list[Node], i: int = 0) -> None:
    """Reduce adjacent operands and operators in place until nothing more combines."""
    while len(stack) > i + 1:
        lhs = stack[i]
        rhs = stack[i + 1]
        if not is_operand(lhs):
            assert isinstance(lhs, SymbolNode)
            if is_operand(rhs):
                stack[i : i + 2] = [SymbolNode(Symbol.prefix(lhs.symbol.name), (rhs,))]
                i = 0
            else:
                # nested prefix operator
                i += 1
            continue

        if is_operand(rhs):
            if not is_applied(lhs, SymbolKind.POSTFIX):
                _raise_for(rhs)
            # a postfix operator followed by an operand was really infix
            assert isinstance(lhs, SymbolNode)
            stack[i] = lhs.args[0]
            stack.insert(i + 1, bare(Symbol.infix(lhs.symbol.name)))
            continue

        assert isinstance(rhs, SymbolNode)
        symbol = rhs.symbol
        if len(stack) <= i + 2 or symbol.kind is SymbolKind.POSTFIX:
            stack[i : i + 2] = [SymbolNode(Symbol.postfix(symbol.name), (lhs,))]
            i = 0
            continue

        right = stack[i + 2]
        if is_operand(right):
            if len(stack) > i + 3:
                following = stack[i + 3]
                if not (
                    is_bare_operator(following)
                    and following.symbol.kind is SymbolKind.INFIX
                    and takes_precedence(symbol.name, following.symbol.name)
                ):
                    i += 2
                    continue
            if symbol.name == ":" and is_applied(lhs, SymbolKind.INFIX, "?"):
                assert isinstance(lhs, SymbolNode)
                stack[i : i + 3] = [SymbolNode(Symbol.infix("?:"), (lhs.args[0], lhs.args[1], right))]
            else:
                stack[i : i + 3] = [SymbolNode(Symbol.infix(symbol.name), (lhs, right))]
            i = 0
            continue

        assert isinstance(right, SymbolNode)
        if right.symbol.kind is SymbolKind.PREFIX:
            i += 2
        elif symbol.name in _PREFIX_AFTER:
            stack[i + 2] = bare(Symbol.prefix(right.symbol.name))
            i += 2
        else:
            stack[i + 1] = bare(Symbol.postfix(symbol.name))


class _Parser:
    def __init__(self, cursor: Cursor) -> None:
        self.cursor = cursor
        self.depth = 0

    def parse_sub_expression(self, delimiters: tuple[str, ...]) -> Node:
        self.depth += 1
        try:
            if self.depth > MAX_DEPTH:
                raise MessageError("Expression is nested too deeply")
            return self._parse_sub_expression(delimiters)
        finally:
            self.depth -= 1

    def _scan_arguments(self, delimiter: str) -> list[Node]:
        cursor = self.cursor
        args: list[Node] = []
        if cursor.first() != delimiter:
            delimiters = (",", delimiter)
            while True:
                try:
                    args.append(self.parse_sub_expression(delimiters))
                except UnexpectedTokenError as err:
                    if err.token:
                        raise
                    token = cursor.scan_character()
                    if token is not None:
                        raise UnexpectedTokenError(token) from None
                if not cursor.scan_character(","):
                    break
        if not cursor.scan_character(delimiter):
            raise MissingDelimiterError(delimiter)
        return args

    def _parse_sub_expression(self, delimiters: tuple[str, ...]) -> Node:
        cursor = self.cursor
        stack: list[Node] = []

        cursor.skip_whitespace()
        operand_position = True
        preceded_by_whitespace = True
        while not cursor.match_delimiter(delimiters):
            token = _scan_token(cursor)
            if token is None:
                break
            followed_by_whitespace = cursor.skip_whitespace() or cursor.is_empty()

            if isinstance(token, SymbolNode) and token.symbol.kind is SymbolKind.INFIX:
                name = token.symbol.name
                if name == "(":
                    last = stack[-1] if stack else None
                    if isinstance(last, SymbolNode) and last.symbol.kind is SymbolKind.VARIABLE:
                        args = self._scan_arguments(")")
                        stack[-1] = SymbolNode(Symbol.function(last.symbol.name, Arity(len(args))), tuple(args))
                    elif last is not None and is_operand(last):
                        args = self._scan_arguments(")")
                        stack[-1] = SymbolNode(Symbol.infix("()"), (last, *args))
                    else:
                        stack.append(self.parse_sub_expression((")",)))
                        if not cursor.scan_character(")"):
                            raise MissingDelimiterError(")")
                    operand_position = False
                    followed_by_whitespace = cursor.skip_whitespace()
                elif name == ",":
                    if stack and is_bare_operator(stack[-1]) and stack[-1].symbol.kind is SymbolKind.INFIX:
                        # an infix operator directly before a comma has no right operand
                        stack[-1] = bare(Symbol.postfix(stack[-1].symbol.name))
                    stack.append(token)
                    operand_position = True
                    followed_by_whitespace = cursor.skip_whitespace()
                elif name == "[":
                    args = self._scan_arguments("]")
                    last = stack[-1] if stack else None
                    if isinstance(last, SymbolNode) and last.symbol.kind is SymbolKind.VARIABLE:
                        if len(args) != 1:
                            raise ArityMismatchError(Symbol.array(last.symbol.name))
                        stack[-1] = SymbolNode(Symbol.array(last.symbol.name), (args[0],))
                    elif last is not None and is_operand(last):
                        if len(args) != 1:
                            raise ArityMismatchError(Symbol.infix("[]"))
                        stack[-1] = SymbolNode(Symbol.infix("[]"), (last, args[0]))
                    else:
                        stack.append(SymbolNode(Symbol.function("[]", Arity(len(args))), tuple(args)))
                    operand_position = False
                    followed_by_whitespace = cursor.skip_whitespace()
                else:
                    # classification by whitespace adjacency: both or neither => infix
                    if preceded_by_whitespace == followed_by_whitespace:
                        stack.append(token)
                    elif preceded_by_whitespace:
                        stack.append(bare(Symbol.prefix(name)))
                    else:
                        stack.append(bare(Symbol.postfix(name)))
                    operand_position = True
            elif (
                isinstance(token, SymbolNode)
                and token.symbol.kind is SymbolKind.VARIABLE
                and not operand_position
            ):
                # a word in operator position, e.g. `a and b`
                operand_position = True
                stack.append(bare(Symbol.infix(token.symbol.name)))
            else:
                operand_position = False
                stack.append(token)

            preceded_by_whitespace = followed_by_whitespace

        start = cursor.start
        if not cursor.match_delimiter(delimiters):
            junk = cursor.scan_to_end_of_token()
            if junk is not None:
                cursor.start = start
                raise UnexpectedTokenError(junk)

        _collapse_stack(stack)
        if not stack:
            raise UnexpectedTokenError("")
        result = stack[0]
        if isinstance(result, ErrorNode):
            raise result.error
        if is_operand(result):
            return result
        raise UnexpectedTokenError(describe(result))


def _guard_depth(node: Node, source: str) -> Node:
    if depth(node) > MAX_TREE_DEPTH:
        return ErrorNode(MessageError("Expression is nested too deeply"), source)
    return node


def parse_sub_expression(cursor: Cursor, delimiters: Iterable[str] = ()) -> ParsedExpression:
    """Parse from ``cursor`` up to (not including) the first of ``delimiters``.

    The cursor is advanced past the consumed text. Failures become an error
    leaf holding the consumed text instead of raising.
    """
    start = cursor.start
    parser = _Parser(cursor)
    try:
        node = parser.parse_sub_expression(tuple(delimiters))
    except ExpressionError as err:
        consumed = cursor.source[start : cursor.start]
        logger.debug("Captured parse failure %r in %r", err, consumed)
        return ParsedExpression(ErrorNode(err, consumed))
    return ParsedExpression(_guard_depth(node, cursor.source[start : cursor.start]))


def parse_source(source: str) -> ParsedExpression:
    """Parse a complete expression without consulting any cache."""
    try:
        node = _Parser(Cursor(source)).parse_sub_expression(())
    except ExpressionError as err:
        logger.debug("Captured parse failure %r in %r", err, source)
        return ParsedExpression(ErrorNode(err, source))
    return ParsedExpression(_guard_depth(node, source))


def parse(source: str, use_cache: bool = True, *, cache=None) -> ParsedExpression:
    """Parse ``source``, never raising; failures are reachable via ``.error``."""
    if not use_cache:
        return parse_source(source)
    from .cache import default_cache

    return (cache if cache is not None else default_cache()).parse(source)


def parse_strict(source: str, use_cache: bool = True, *, cache=None) -> ParsedExpression:
    """Like ``parse`` but raises the first captured error."""
    parsed = parse(source, use_cache, cache=cache)
    error = parsed.error
    if error is not None:
        raise reraisable(error)
    return parsed


def is_valid_identifier(string: str) -> bool:
    cursor = Cursor(string)
    token = scan_identifier(cursor)
    if token is None:
        token = scan_escaped_identifier(cursor)
    return (
        isinstance(token, SymbolNode)
        and token.symbol.kind is SymbolKind.VARIABLE
        and cursor.is_empty()
    )


def is_valid_operator(string: str) -> bool:
    cursor = Cursor(string)
    token = scan_operator(cursor)
    if not isinstance(token, SymbolNode) or token.symbol.name in ("(", "["):
        return False
    return cursor.is_empty()


__all__ = [
    "ParsedExpression",
    "is_valid_identifier",
    "is_valid_operator",
    "parse",
    "parse_source",
    "parse_strict",
    "parse_sub_expression",
]
