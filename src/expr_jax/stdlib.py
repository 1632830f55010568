"""Built-in math and boolean symbol tables."""

from __future__ import annotations

import math
from typing import Callable, Final

from .ast import SymbolEvaluator
from .errors import ArityMismatchError, ExpressionError, UndefinedSymbolError, UnexpectedTokenError, reraisable
from .symbols import Arity, Symbol, SymbolKind


def _ieee(fn: Callable[..., float]) -> Callable[..., float]:
    """Wrap a ``math`` function so domain errors give nan instead of raising."""

    def wrapped(*values: float) -> float:
        try:
            return fn(*values)
        except ValueError:
            return math.nan

    wrapped.__name__ = getattr(fn, "__name__", "wrapped")
    return wrapped


def divide(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def remainder(a: float, b: float) -> float:
    """C ``fmod``: the result takes the sign of ``a``."""
    if b == 0 or math.isinf(a) or math.isnan(a) or math.isnan(b):
        return math.nan
    if math.isinf(b):
        return a
    return math.fmod(a, b)


def power(a: float, b: float) -> float:
    try:
        return math.pow(a, b)
    except OverflowError:
        negative = a < 0 and float(b).is_integer() and int(b) % 2 == 1
        return -math.inf if negative else math.inf
    except ValueError:
        return math.nan


def round_half_away(x: float) -> float:
    if not math.isfinite(x):
        return x
    whole = math.floor(abs(x))
    if abs(x) - whole >= 0.5:
        whole += 1
    return math.copysign(whole, x)


def _floor(x: float) -> float:
    return float(math.floor(x)) if math.isfinite(x) else x


def _ceil(x: float) -> float:
    return float(math.ceil(x)) if math.isfinite(x) else x


def _truth(value: float) -> bool:
    return value != 0


def _flag(value: bool) -> float:
    return 1.0 if value else 0.0


def _unary(fn: Callable[[float], float]) -> SymbolEvaluator:
    return lambda args: fn(args[0])


def _binary(fn: Callable[[float, float], float]) -> SymbolEvaluator:
    return lambda args: fn(args[0], args[1])


def _reduce(fn: Callable[[float, float], float]) -> SymbolEvaluator:
    def evaluate(args) -> float:
        result = args[0]
        for value in args:
            result = fn(result, value)
        return result

    return evaluate


def _ternary(args) -> float:
    if len(args) == 3:
        return args[1] if _truth(args[0]) else args[2]
    return args[0] if _truth(args[0]) else args[1]


MATH_SYMBOLS: Final[dict[Symbol, SymbolEvaluator]] = {
    Symbol.variable("pi"): lambda _args: math.pi,
    Symbol.infix("+"): _binary(lambda a, b: a + b),
    Symbol.infix("-"): _binary(lambda a, b: a - b),
    Symbol.infix("*"): _binary(lambda a, b: a * b),
    Symbol.infix("/"): _binary(divide),
    Symbol.infix("%"): _binary(remainder),
    Symbol.prefix("-"): _unary(lambda a: -a),
    Symbol.function("sqrt", 1): _unary(_ieee(math.sqrt)),
    Symbol.function("floor", 1): _unary(_floor),
    Symbol.function("ceil", 1): _unary(_ceil),
    Symbol.function("round", 1): _unary(round_half_away),
    Symbol.function("cos", 1): _unary(_ieee(math.cos)),
    Symbol.function("acos", 1): _unary(_ieee(math.acos)),
    Symbol.function("sin", 1): _unary(_ieee(math.sin)),
    Symbol.function("asin", 1): _unary(_ieee(math.asin)),
    Symbol.function("tan", 1): _unary(_ieee(math.tan)),
    Symbol.function("atan", 1): _unary(_ieee(math.atan)),
    Symbol.function("abs", 1): _unary(abs),
    Symbol.function("pow", 2): _binary(power),
    Symbol.function("atan2", 2): _binary(_ieee(math.atan2)),
    Symbol.function("mod", 2): _binary(remainder),
    Symbol.function("max", Arity.minimum(2)): _reduce(max),
    Symbol.function("min", Arity.minimum(2)): _reduce(min),
}

BOOL_SYMBOLS: Final[dict[Symbol, SymbolEvaluator]] = {
    Symbol.variable("true"): lambda _args: 1.0,
    Symbol.variable("false"): lambda _args: 0.0,
    Symbol.infix("=="): _binary(lambda a, b: _flag(a == b)),
    Symbol.infix("!="): _binary(lambda a, b: _flag(a != b)),
    Symbol.infix(">"): _binary(lambda a, b: _flag(a > b)),
    Symbol.infix(">="): _binary(lambda a, b: _flag(a >= b)),
    Symbol.infix("<"): _binary(lambda a, b: _flag(a < b)),
    Symbol.infix("<="): _binary(lambda a, b: _flag(a <= b)),
    Symbol.infix("&&"): _binary(lambda a, b: _flag(_truth(a) and _truth(b))),
    Symbol.infix("||"): _binary(lambda a, b: _flag(_truth(a) or _truth(b))),
    Symbol.prefix("!"): _unary(lambda a: _flag(not _truth(a))),
    Symbol.infix("?:"): _ternary,
}

_STRUCTURAL_NAMES: Final = frozenset({",", "[]", "()"})


def raising(error: ExpressionError) -> SymbolEvaluator:
    """Evaluator that always raises ``error``."""

    def evaluate(_args) -> float:
        raise reraisable(error)

    evaluate.error = error
    return evaluate


def error_evaluator(symbol: Symbol) -> SymbolEvaluator:
    """Fallback for a symbol nothing resolved."""
    if symbol.kind is SymbolKind.INFIX and symbol.name in _STRUCTURAL_NAMES:
        return raising(UnexpectedTokenError(symbol.name[:1]))
    if symbol.kind is SymbolKind.FUNCTION and symbol.name == "[]":
        return raising(UnexpectedTokenError("["))
    if symbol.kind is SymbolKind.FUNCTION:
        for candidate in (*MATH_SYMBOLS, *BOOL_SYMBOLS):
            if (
                candidate.kind is SymbolKind.FUNCTION
                and candidate.name == symbol.name
                and candidate.arity != symbol.arity
            ):
                return raising(ArityMismatchError(candidate))
    return raising(UndefinedSymbolError(symbol))
