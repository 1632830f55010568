"""Bound, evaluation-ready expressions."""

from __future__ import annotations

import logging
import math
from enum import Flag, auto
from typing import Callable, Mapping, Optional, Sequence

from .ast import ErrorNode, Literal, Node, SymbolEvaluator, collect_symbols
from .errors import ArityMismatchError, ArrayBoundsError, ExpressionError, MessageError, UndefinedSymbolError, reraisable
from .optimizer import bind
from .parser import ParsedExpression, parse
from .printer import describe
from .stdlib import BOOL_SYMBOLS, MATH_SYMBOLS, error_evaluator, raising
from .symbols import Symbol, SymbolKind

logger = logging.getLogger(__name__)

_ARITY_PROBE_LIMIT = 10


class Options(Flag):
    NONE = 0
    NO_OPTIMIZE = auto()
    """Skip constant folding."""
    BOOL_SYMBOLS = auto()
    """Enable comparison/logical operators, ``true``/``false`` and ``?:``."""
    PURE_SYMBOLS = auto()
    """Treat every caller-supplied symbol as pure, so it may be folded."""


def _apply(fn: SymbolEvaluator, values: list[float]) -> float:
    try:
        return float(fn(values))
    except ExpressionError:
        raise
    except Exception as exc:
        raise MessageError(str(exc) or type(exc).__name__) from exc


def evaluate_node(node: Node) -> float:
    """Evaluate arguments left to right, then the node's own evaluator."""
    values: list[float] = []
    pending: list[tuple[Node, bool]] = [(node, False)]
    while pending:
        current, ready = pending.pop()
        if isinstance(current, Literal):
            values.append(current.value)
            continue
        if isinstance(current, ErrorNode):
            raise reraisable(current.error)
        fn = current.evaluator
        if fn is None:
            raise UndefinedSymbolError(current.symbol)
        if not ready and current.args:
            pending.append((current, True))
            pending.extend((arg, False) for arg in reversed(current.args))
            continue
        split = len(values) - len(current.args)
        args = values[split:]
        del values[split:]
        values.append(_apply(fn, args))
    return values[0]


def _array_evaluator(symbol: Symbol, values: Sequence[float]) -> SymbolEvaluator:
    items = tuple(float(value) for value in values)

    def evaluate(args: Sequence[float]) -> float:
        index = args[0]
        if not math.isfinite(index):
            raise ArrayBoundsError(symbol, index)
        position = math.floor(index)
        if not 0 <= position < len(items):
            raise ArrayBoundsError(symbol, index)
        return items[position]

    return evaluate


def _constant(value: float) -> SymbolEvaluator:
    value = float(value)
    return lambda _args: value


class Expression:
    """Immutable expression whose symbols are bound to evaluators.

    Binding never raises: undefined symbols, arity mismatches and parse
    errors are deferred until ``evaluate()`` reaches them. Instances may be
    evaluated concurrently as long as caller-supplied evaluators allow it.
    """

    __slots__ = ("_root",)

    def __init__(
        self,
        expression: str | ParsedExpression,
        options: Options = Options.NONE,
        constants: Mapping[str, float] | None = None,
        arrays: Mapping[str, Sequence[float]] | None = None,
        symbols: Mapping[Symbol, SymbolEvaluator] | None = None,
        *,
        cache=None,
    ) -> None:
        parsed = parse(expression, cache=cache) if isinstance(expression, str) else expression
        constants = dict(constants or {})
        arrays = dict(arrays or {})
        symbols = dict(symbols or {})
        bool_symbols = BOOL_SYMBOLS if Options.BOOL_SYMBOLS in options else {}
        should_optimize = Options.NO_OPTIMIZE not in options
        pure_symbols = Options.PURE_SYMBOLS in options

        def symbol_evaluator(symbol: Symbol) -> SymbolEvaluator | None:
            fn = symbols.get(symbol)
            if fn is not None:
                return fn
            if not bool_symbols and symbol == Symbol.infix("?:"):
                lhs = symbols.get(Symbol.infix("?"))
                rhs = symbols.get(Symbol.infix(":"))
                if lhs is not None and rhs is not None:
                    return lambda args: rhs([lhs([args[0], args[1]]), args[2]])
            return None

        def shadowed_by_value(symbol: Symbol) -> bool:
            if symbol.kind is SymbolKind.VARIABLE:
                return symbol.name in constants
            if symbol.kind is SymbolKind.ARRAY:
                return symbol.name in arrays
            return False

        def pure_evaluator(symbol: Symbol) -> SymbolEvaluator:
            if symbol.kind is SymbolKind.VARIABLE and symbol.name in constants:
                return _constant(constants[symbol.name])
            if symbol.kind is SymbolKind.ARRAY and symbol.name in arrays:
                return _array_evaluator(symbol, arrays[symbol.name])
            fn = symbol_evaluator(symbol)
            if fn is None:
                fn = MATH_SYMBOLS.get(symbol) or bool_symbols.get(symbol)
            if fn is not None:
                return fn
            if symbol.kind is SymbolKind.FUNCTION:
                for declared in symbols:
                    if declared.kind is SymbolKind.FUNCTION and declared.name == symbol.name:
                        return raising(ArityMismatchError(declared))
            return error_evaluator(symbol)

        def impure_evaluator(symbol: Symbol) -> SymbolEvaluator | None:
            if not pure_symbols and not shadowed_by_value(symbol):
                fn = symbol_evaluator(symbol)
                if fn is not None:
                    return fn
            return None if should_optimize else pure_evaluator(symbol)

        self._root = _bind_root(parsed, impure_evaluator, pure_evaluator)

    @classmethod
    def bind(
        cls,
        parsed: ParsedExpression,
        impure: Callable[[Symbol], Optional[SymbolEvaluator]],
        pure: Callable[[Symbol], Optional[SymbolEvaluator]] | None = None,
    ) -> "Expression":
        """Bind with custom resolvers.

        ``impure`` is consulted first and its evaluators are never folded.
        Symbols neither resolver knows fall back to the math and boolean
        tables, then to an evaluator that raises on use.
        """
        expression = cls.__new__(cls)
        expression._root = _bind_root(parsed, impure, pure or (lambda _symbol: None))
        return expression

    @classmethod
    def pure(
        cls,
        parsed: ParsedExpression,
        pure: Callable[[Symbol], Optional[SymbolEvaluator]],
    ) -> "Expression":
        return cls.bind(parsed, lambda _symbol: None, pure)

    @property
    def root(self) -> Node:
        return self._root

    @property
    def description(self) -> str:
        """Pretty-printed source, or the source text when the expression is invalid."""
        return describe(self._root)

    @property
    def symbols(self) -> frozenset[Symbol]:
        return collect_symbols(self._root)

    def evaluate(self) -> float:
        return evaluate_node(self._root)

    def __str__(self) -> str:
        return self.description

    def __repr__(self) -> str:
        return f"Expression({self.description!r})"


def _bind_root(
    parsed: ParsedExpression,
    impure: Callable[[Symbol], Optional[SymbolEvaluator]],
    pure: Callable[[Symbol], Optional[SymbolEvaluator]],
) -> Node:
    def resolve_pure(symbol: Symbol) -> SymbolEvaluator:
        fn = pure(symbol)
        if fn is None:
            fn = MATH_SYMBOLS.get(symbol) or BOOL_SYMBOLS.get(symbol)
        if fn is not None:
            return fn
        if symbol.kind is SymbolKind.FUNCTION:
            for count in range(_ARITY_PROBE_LIMIT + 1):
                probe = Symbol.function(symbol.name, count)
                if probe == symbol:
                    continue
                if impure(probe) is not None or pure(probe) is not None:
                    return raising(ArityMismatchError(probe))
        logger.debug("No evaluator for %s", symbol)
        return error_evaluator(symbol)

    return bind(parsed.root, impure, resolve_pure)


def evaluate(
    source: str,
    *,
    options: Options = Options.NONE,
    constants: Mapping[str, float] | None = None,
    arrays: Mapping[str, Sequence[float]] | None = None,
    symbols: Mapping[Symbol, SymbolEvaluator] | None = None,
) -> float:
    """Parse, bind and evaluate ``source`` in one call."""
    return Expression(source, options, constants, arrays, symbols).evaluate()
