"""AST nodes for parsed and bound expressions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterator, Sequence, Union

from .errors import ExpressionError
from .symbols import Symbol, SymbolKind

SymbolEvaluator = Callable[[Sequence[float]], float]


@dataclass(frozen=True)
class Literal:
    value: float


@dataclass(frozen=True)
class SymbolNode:
    symbol: Symbol
    args: tuple["Node", ...] = ()
    evaluator: SymbolEvaluator | None = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class ErrorNode:
    """A failure captured as a leaf; ``source`` is the offending text, printed verbatim."""

    error: ExpressionError
    source: str


Node = Union[Literal, SymbolNode, ErrorNode]


def bare(symbol: Symbol) -> SymbolNode:
    return SymbolNode(symbol)


def is_operand(node: Node) -> bool:
    """Whether ``node`` can stand where a value is expected.

    Only un-applied infix/prefix/postfix operators are not operands.
    """
    if isinstance(node, SymbolNode):
        return bool(node.args) or not node.symbol.is_operator
    return True


def is_bare_operator(node: Node) -> bool:
    return isinstance(node, SymbolNode) and not node.args and node.symbol.is_operator


def is_applied(node: Node, kind: SymbolKind, name: str | None = None) -> bool:
    if not isinstance(node, SymbolNode) or not node.args:
        return False
    if node.symbol.kind is not kind:
        return False
    return name is None or node.symbol.name == name


def walk(node: Node) -> Iterator[Node]:
    """Depth-first, left-to-right traversal without recursion."""
    pending: list[Node] = [node]
    while pending:
        current = pending.pop()
        yield current
        if isinstance(current, SymbolNode):
            pending.extend(reversed(current.args))


def collect_symbols(node: Node) -> frozenset[Symbol]:
    return frozenset(item.symbol for item in walk(node) if isinstance(item, SymbolNode))


def first_error(node: Node) -> ExpressionError | None:
    for item in walk(node):
        if isinstance(item, ErrorNode):
            return item.error
    return None


def depth(node: Node) -> int:
    best = 0
    pending: list[tuple[Node, int]] = [(node, 1)]
    while pending:
        current, level = pending.pop()
        if level > best:
            best = level
        if isinstance(current, SymbolNode):
            pending.extend((arg, level + 1) for arg in current.args)
    return best
