"""Pretty printer producing minimally parenthesized source text."""

from __future__ import annotations

from .ast import ErrorNode, Literal, Node, SymbolNode, is_applied, is_operand
from .chars import is_operator_char
from .errors import stringify
from .precedence import takes_precedence
from .symbols import SymbolKind


def _operatorish(ch: str) -> bool:
    return is_operator_char(ch) or ch == "-"


def _needs_separation(lhs: str, rhs: str) -> bool:
    last, first = lhs[-1], rhs[0]
    return last == "." or _operatorish(last) == _operatorish(first)


def _arguments(args, texts: dict[int, str]) -> str:
    parts = []
    for arg in args:
        text = texts[id(arg)]
        if is_applied(arg, SymbolKind.INFIX, ","):
            text = f"({text})"
        parts.append(text)
    return ", ".join(parts)


def _tight_operand(node: Node, texts: dict[int, str]) -> str:
    """Text for the callee of ``()`` or the base of ``[]``."""
    text = texts[id(node)]
    if isinstance(node, SymbolNode) and node.args and node.symbol.is_operator:
        if not (node.symbol.kind is SymbolKind.INFIX and node.symbol.name in ("[]", "()")):
            return f"({text})"
    return text


def _ternary_branch(node: Node, texts: dict[int, str]) -> str:
    text = texts[id(node)]
    if is_applied(node, SymbolKind.INFIX):
        assert isinstance(node, SymbolNode)
        if len(node.args) == 3 or not takes_precedence(node.symbol.name, "?"):
            return f"({text})"
    return text


def _describe_unary(node: SymbolNode, texts: dict[int, str]) -> str:
    name = node.symbol.escaped_name
    arg = node.args[0]
    text = texts[id(arg)]
    is_prefix = node.symbol.kind is SymbolKind.PREFIX
    needs_parens = False
    if isinstance(arg, ErrorNode):
        needs_parens = True
    elif isinstance(arg, SymbolNode):
        if arg.symbol.kind in (SymbolKind.INFIX, SymbolKind.POSTFIX):
            needs_parens = True
        elif is_prefix:
            needs_parens = _needs_separation(name, text)
        else:
            needs_parens = _needs_separation(text, name)
    if is_prefix:
        return f"{name}({text})" if needs_parens else f"{name}{text}"
    return f"({text}){name}" if needs_parens else f"{text}{name}"


def _describe_infix(node: SymbolNode, texts: dict[int, str]) -> str:
    symbol = node.symbol
    args = node.args
    if symbol.name == ",":
        return f"{texts[id(args[0])]}, {texts[id(args[1])]}"
    if symbol.name == "?:" and len(args) == 3:
        branches = [_ternary_branch(arg, texts) for arg in args]
        return f"{branches[0]} ? {branches[1]} : {branches[2]}"
    if symbol.name == "[]":
        return f"{_tight_operand(args[0], texts)}[{texts[id(args[1])]}]"
    if symbol.name == "()":
        return f"{_tight_operand(args[0], texts)}({_arguments(args[1:], texts)})"
    if len(args) != 2:
        return f"{symbol.escaped_name}({_arguments(args, texts)})"

    lhs, rhs = args
    lhs_text = texts[id(lhs)]
    if is_applied(lhs, SymbolKind.INFIX) and not takes_precedence(lhs.symbol.name, symbol.name):
        lhs_text = f"({lhs_text})"
    rhs_text = texts[id(rhs)]
    if is_applied(rhs, SymbolKind.INFIX) and takes_precedence(symbol.name, rhs.symbol.name):
        rhs_text = f"({rhs_text})"
    return f"{lhs_text} {symbol.escaped_name} {rhs_text}"


def _describe_one(node: Node, texts: dict[int, str]) -> str:
    if isinstance(node, Literal):
        return stringify(node.value)
    if isinstance(node, ErrorNode):
        return node.source

    symbol = node.symbol
    if not is_operand(node):
        return symbol.escaped_name
    kind = symbol.kind
    if kind in (SymbolKind.PREFIX, SymbolKind.POSTFIX):
        return _describe_unary(node, texts)
    if kind is SymbolKind.INFIX:
        return _describe_infix(node, texts)
    if kind is SymbolKind.VARIABLE:
        return symbol.escaped_name
    if kind is SymbolKind.FUNCTION:
        if symbol.name == "[]":
            return f"[{_arguments(node.args, texts)}]"
        return f"{symbol.escaped_name}({_arguments(node.args, texts)})"
    return f"{symbol.escaped_name}[{_arguments(node.args, texts)}]"


def describe(node: Node) -> str:
    """Source text that re-parses to the same tree; error leaves print their captured text."""
    # Children are rendered before their parent, keyed by node identity.
    texts: dict[int, str] = {}
    pending: list[tuple[Node, bool]] = [(node, False)]
    while pending:
        current, ready = pending.pop()
        if isinstance(current, SymbolNode) and current.args and not ready:
            pending.append((current, True))
            pending.extend((arg, False) for arg in current.args)
            continue
        texts[id(current)] = _describe_one(current, texts)
    return texts[id(node)]
