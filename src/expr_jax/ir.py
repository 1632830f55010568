"""JAX lowering of bound expressions, with jit/vmap/grad helpers."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from functools import reduce
from typing import Callable

import jax
import jax.numpy as jnp

from .ast import ErrorNode, Literal, Node, SymbolNode
from .errors import MessageError, UndefinedSymbolError, UnsupportedError, reraisable
from .evaluator import Expression, Options
from .parser import parse
from .stdlib import BOOL_SYMBOLS, MATH_SYMBOLS, raising
from .symbols import Symbol, SymbolKind

logger = logging.getLogger(__name__)

_LOWERING_CACHE_MAX = max(1, int(os.environ.get("EXPR_JAX_LOWERING_CACHE_MAX", "256")))
_LOWERING_CACHE: dict[tuple[object, ...], "JaxIR"] = {}
_LOWERING_CACHE_STATS: dict[str, int] = {"hits": 0, "misses": 0}
_LOWERING_CACHE_LOCK = threading.Lock()

# Built-in math is double precision, so lowered programs run with x64 enabled.
_ENABLE_X64 = os.environ.get("EXPR_JAX_DISABLE_X64", "0") != "1"
if _ENABLE_X64:
    jax.config.update("jax_enable_x64", True)
_FLOAT = jnp.float64 if _ENABLE_X64 else jnp.float32


def _flag(condition):
    return jnp.where(condition, 1.0, 0.0)


def _round_half_away(x):
    magnitude = jnp.abs(x)
    whole = jnp.floor(magnitude)
    whole = jnp.where(magnitude - whole >= 0.5, whole + 1.0, whole)
    return jnp.where(jnp.isfinite(x), jnp.copysign(whole, x), x)


def _select(*args):
    if len(args) == 3:
        return jnp.where(args[0] != 0, args[1], args[2])
    return jnp.where(args[0] != 0, args[0], args[1])


_JAX_OPS: dict[tuple[str, str], Callable[..., object]] = {
    ("variable", "pi"): lambda: jnp.pi,
    ("variable", "true"): lambda: 1.0,
    ("variable", "false"): lambda: 0.0,
    ("infix", "+"): jnp.add,
    ("infix", "-"): jnp.subtract,
    ("infix", "*"): jnp.multiply,
    ("infix", "/"): jnp.divide,
    ("infix", "%"): jnp.fmod,
    ("prefix", "-"): jnp.negative,
    ("function", "sqrt"): jnp.sqrt,
    ("function", "floor"): jnp.floor,
    ("function", "ceil"): jnp.ceil,
    ("function", "round"): _round_half_away,
    ("function", "cos"): jnp.cos,
    ("function", "acos"): jnp.arccos,
    ("function", "sin"): jnp.sin,
    ("function", "asin"): jnp.arcsin,
    ("function", "tan"): jnp.tan,
    ("function", "atan"): jnp.arctan,
    ("function", "abs"): jnp.abs,
    ("function", "pow"): jnp.power,
    ("function", "atan2"): jnp.arctan2,
    ("function", "mod"): jnp.fmod,
    ("function", "max"): lambda *args: reduce(jnp.maximum, args),
    ("function", "min"): lambda *args: reduce(jnp.minimum, args),
    ("infix", "=="): lambda a, b: _flag(a == b),
    ("infix", "!="): lambda a, b: _flag(a != b),
    ("infix", ">"): lambda a, b: _flag(a > b),
    ("infix", ">="): lambda a, b: _flag(a >= b),
    ("infix", "<"): lambda a, b: _flag(a < b),
    ("infix", "<="): lambda a, b: _flag(a <= b),
    ("infix", "&&"): lambda a, b: _flag((a != 0) & (b != 0)),
    ("infix", "||"): lambda a, b: _flag((a != 0) | (b != 0)),
    ("prefix", "!"): lambda a: _flag(a == 0),
    ("infix", "?:"): _select,
}


def _unsupported(feature: str) -> UnsupportedError:
    return UnsupportedError(f"Unsupported in JAX lowering: {feature}")


@dataclass(frozen=True)
class IRNode:
    """Single SSA-like node of a lowered expression."""

    id: int
    op: str
    inputs: tuple[int, ...] = ()
    value: object | None = None
    name: str | None = None


@dataclass(frozen=True)
class JaxIR:
    nodes: tuple[IRNode, ...]
    output: int
    arg_names: tuple[str, ...]


def _value_key(value: object) -> object:
    # Exact bit patterns, so 0.0 and -0.0 (or distinct NaNs) never share a node.
    if isinstance(value, float):
        return value.hex()
    if isinstance(value, tuple):
        return tuple(_value_key(item) for item in value)
    return value


class _Lowerer:
    def __init__(
        self,
        *,
        arg_names: tuple[str, ...],
        constants: Mapping[str, float],
        arrays: Mapping[str, Sequence[float]],
    ) -> None:
        self.arg_names = arg_names
        self.arg_set = set(arg_names)
        self.constants = constants
        self.arrays = arrays
        self.nodes: list[IRNode] = []
        self._node_cache: dict[tuple[object, ...], int] = {}

    def _add(self, op: str, *, inputs: tuple[int, ...] = (), value: object | None = None, name: str | None = None) -> int:
        key = (op, inputs, _value_key(value), name)
        node_id = self._node_cache.get(key)
        if node_id is not None:
            return node_id
        node_id = len(self.nodes)
        self.nodes.append(IRNode(id=node_id, op=op, inputs=inputs, value=value, name=name))
        self._node_cache[key] = node_id
        return node_id

    def _leaf(self, node: SymbolNode) -> int | None:
        symbol = node.symbol
        if symbol.kind is not SymbolKind.VARIABLE:
            return None
        if symbol.name in self.arg_set:
            return self._add("arg", name=symbol.name)
        if symbol.name in self.constants:
            return self._add("const", value=float(self.constants[symbol.name]))
        return None

    def _op(self, node: SymbolNode) -> str:
        symbol = node.symbol
        if symbol.kind is SymbolKind.ARRAY and symbol.name in self.arrays:
            if not self.arrays[symbol.name]:
                raise _unsupported(f"indexing empty {symbol}")
            return "take"

        fn = node.evaluator
        if fn is None:
            raise UndefinedSymbolError(symbol)
        error = getattr(fn, "error", None)
        if error is not None:
            raise reraisable(error)
        builtin = MATH_SYMBOLS.get(symbol)
        if builtin is None:
            builtin = BOOL_SYMBOLS.get(symbol)
        if builtin is None or fn is not builtin:
            raise _unsupported(f"caller-supplied {symbol}")
        return f"{symbol.kind.value}:{symbol.name}"

    def lower(self, root: Node) -> int:
        """Lower ``root`` bottom-up and return the id of its output node."""
        ids: list[int] = []
        pending: list[tuple[Node, str | None]] = [(root, None)]
        while pending:
            node, op = pending.pop()
            if isinstance(node, ErrorNode):
                raise reraisable(node.error)
            if isinstance(node, Literal):
                ids.append(self._add("const", value=node.value))
                continue
            if op is None:
                leaf = self._leaf(node)
                if leaf is not None:
                    ids.append(leaf)
                    continue
                pending.append((node, self._op(node)))
                pending.extend((arg, None) for arg in reversed(node.args))
                continue

            split = len(ids) - len(node.args)
            inputs = tuple(ids[split:])
            del ids[split:]
            if op == "take":
                items = tuple(float(item) for item in self.arrays[node.symbol.name])
                ids.append(self._add("take", inputs=inputs, value=items, name=node.symbol.name))
            else:
                ids.append(self._add(op, inputs=inputs))
        return ids[0]


def evaluate_ir(ir: JaxIR, args: tuple[object, ...]) -> object:
    """Execute lowered IR with ``jax.numpy`` operations."""
    if len(args) != len(ir.arg_names):
        raise MessageError(f"Expected {len(ir.arg_names)} arguments, got {len(args)}")

    arg_values = dict(zip(ir.arg_names, args))
    values: list[object] = [None] * len(ir.nodes)
    for node in ir.nodes:
        op = node.op
        if op == "arg":
            values[node.id] = jnp.asarray(arg_values[node.name], dtype=_FLOAT)
            continue
        if op == "const":
            values[node.id] = jnp.asarray(node.value, dtype=_FLOAT)
            continue
        if op == "take":
            index = jnp.floor(values[node.inputs[0]]).astype(jnp.int32)
            values[node.id] = jnp.take(jnp.asarray(node.value, dtype=_FLOAT), index, mode="clip")
            continue
        kind, _, name = op.partition(":")
        fn = _JAX_OPS.get((kind, name))
        if fn is None:
            raise MessageError(f"Unknown IR op {op!r}")
        values[node.id] = fn(*(values[idx] for idx in node.inputs))
    return values[ir.output]


def _argument(name: str):
    return raising(UndefinedSymbolError(Symbol.variable(name)))


def _cache_key(
    source: str,
    arg_names: tuple[str, ...],
    constants: Mapping[str, float],
    arrays: Mapping[str, Sequence[float]],
    options: Options,
) -> tuple[object, ...]:
    return (
        source,
        arg_names,
        tuple(sorted((name, float(value)) for name, value in constants.items())),
        tuple(sorted((name, tuple(float(item) for item in items)) for name, items in arrays.items())),
        options.value,
    )


def lower_expression(
    expression: Expression,
    *,
    arg_names: Sequence[str] = (),
    constants: Mapping[str, float] | None = None,
    arrays: Mapping[str, Sequence[float]] | None = None,
) -> JaxIR:
    """Lower an already-bound expression.

    ``constants`` and ``arrays`` should be the values the expression was
    bound with; only symbols backed by the built-in tables, these values or
    ``arg_names`` can be lowered.
    """
    arg_names = tuple(arg_names)
    lowerer = _Lowerer(arg_names=arg_names, constants=constants or {}, arrays=arrays or {})
    out = lowerer.lower(expression.root)
    return JaxIR(nodes=tuple(lowerer.nodes), output=out, arg_names=arg_names)


def lower_to_ir(
    source: str,
    *,
    arg_names: Sequence[str] = (),
    constants: Mapping[str, float] | None = None,
    arrays: Mapping[str, Sequence[float]] | None = None,
    options: Options = Options.NONE,
    use_cache: bool = True,
) -> JaxIR:
    """Parse, bind and lower ``source``; names in ``arg_names`` become call parameters."""
    arg_names = tuple(arg_names)
    constants = {name: value for name, value in (constants or {}).items() if name not in arg_names}
    arrays = dict(arrays or {})
    key = _cache_key(source, arg_names, constants, arrays, options)
    if use_cache:
        with _LOWERING_CACHE_LOCK:
            cached = _LOWERING_CACHE.get(key)
            if cached is not None:
                _LOWERING_CACHE_STATS["hits"] += 1
                return cached
            _LOWERING_CACHE_STATS["misses"] += 1
        logger.debug("Lowering cache miss for %r", source)

    expression = Expression(
        parse(source),
        options,
        constants,
        arrays,
        {Symbol.variable(name): _argument(name) for name in arg_names},
    )
    ir = lower_expression(expression, arg_names=arg_names, constants=constants, arrays=arrays)
    if use_cache:
        with _LOWERING_CACHE_LOCK:
            if key not in _LOWERING_CACHE and len(_LOWERING_CACHE) >= _LOWERING_CACHE_MAX:
                _LOWERING_CACHE.pop(next(iter(_LOWERING_CACHE)))
            _LOWERING_CACHE[key] = ir
    return ir


@dataclass
class CompiledExpression:
    """Callable wrapper around lowered IR with cached JAX transforms."""

    ir: JaxIR
    source: str | None = None
    _call_ir: object = field(default=None, init=False, repr=False)
    _jit_fn: object | None = field(default=None, init=False, repr=False)
    _grad_cache: dict[int, object] = field(default_factory=dict, init=False, repr=False)
    _vmap_cache: dict[tuple[str, str], object] = field(default_factory=dict, init=False, repr=False)
    _transform_stats: dict[str, int] = field(
        default_factory=lambda: {"jit_hits": 0, "jit_misses": 0, "grad_hits": 0, "grad_misses": 0, "vmap_hits": 0, "vmap_misses": 0},
        init=False,
        repr=False,
    )

    def __post_init__(self) -> None:
        ir = self.ir

        def _call_ir(*args):
            return evaluate_ir(ir, args)

        self._call_ir = _call_ir

    def _resolve_call_args(self, *args, **kwargs) -> tuple[object, ...]:
        if args and kwargs:
            raise MessageError("Use either positional or keyword arguments, not both")
        if kwargs:
            missing = [name for name in self.ir.arg_names if name not in kwargs]
            extra = [name for name in kwargs if name not in self.ir.arg_names]
            if missing or extra:
                details = []
                if missing:
                    details.append(f"missing={missing}")
                if extra:
                    details.append(f"extra={extra}")
                raise MessageError(f"Keyword arguments do not match signature ({', '.join(details)})")
            return tuple(kwargs[name] for name in self.ir.arg_names)
        if len(args) != len(self.ir.arg_names):
            raise MessageError(f"Expected {len(self.ir.arg_names)} arguments, got {len(args)}")
        return args

    def _call_entry(self, fn, args: tuple[object, ...], kwargs: dict[str, object]):
        return fn(*self._resolve_call_args(*args, **kwargs))

    def __call__(self, *args, **kwargs):
        return self._call_entry(self._call_ir, args, kwargs)

    def trace(self, *args, **kwargs):
        """Emit the jaxpr of this expression for sample inputs."""
        values = self._resolve_call_args(*args, **kwargs)
        return jax.make_jaxpr(self._call_ir)(*values)

    def transform_cache_stats(self) -> dict[str, float | int]:
        stats = dict(self._transform_stats)
        hits = stats["jit_hits"] + stats["grad_hits"] + stats["vmap_hits"]
        misses = stats["jit_misses"] + stats["grad_misses"] + stats["vmap_misses"]
        total = hits + misses
        stats["total_hits"] = hits
        stats["total_misses"] = misses
        stats["hit_rate"] = float(hits / total) if total else 0.0
        return stats

    def jit(self):
        if self._jit_fn is not None:
            self._transform_stats["jit_hits"] += 1
            return self._jit_fn

        self._transform_stats["jit_misses"] += 1
        jitted = jax.jit(self._call_ir)

        def wrapped(*args, **kwargs):
            return self._call_entry(jitted, args, kwargs)

        self._jit_fn = wrapped
        return wrapped

    def grad(self, *, argnums: int = 0):
        """Gradient with respect to parameter ``argnums``; the output must be scalar."""
        cached = self._grad_cache.get(argnums)
        if cached is not None:
            self._transform_stats["grad_hits"] += 1
            return cached

        self._transform_stats["grad_misses"] += 1
        grad_fn = jax.jit(jax.grad(self._call_ir, argnums=argnums))

        def wrapped(*args, **kwargs):
            return self._call_entry(grad_fn, args, kwargs)

        self._grad_cache[argnums] = wrapped
        return wrapped

    def vmap(self, *, in_axes=0, out_axes=0):
        key = (repr(in_axes), repr(out_axes))
        cached = self._vmap_cache.get(key)
        if cached is not None:
            self._transform_stats["vmap_hits"] += 1
            return cached

        self._transform_stats["vmap_misses"] += 1
        vmapped = jax.vmap(self._call_ir, in_axes=in_axes, out_axes=out_axes)

        def wrapped(*args, **kwargs):
            return self._call_entry(vmapped, args, kwargs)

        self._vmap_cache[key] = wrapped
        return wrapped


def compile_expression(
    source: str,
    *,
    arg_names: Sequence[str] = (),
    constants: Mapping[str, float] | None = None,
    arrays: Mapping[str, Sequence[float]] | None = None,
    options: Options = Options.NONE,
    use_cache: bool = True,
) -> CompiledExpression:
    ir = lower_to_ir(
        source,
        arg_names=arg_names,
        constants=constants,
        arrays=arrays,
        options=options,
        use_cache=use_cache,
    )
    return CompiledExpression(ir=ir, source=source)


def lowering_cache_stats(*, reset: bool = False) -> dict[str, float | int]:
    with _LOWERING_CACHE_LOCK:
        hits = _LOWERING_CACHE_STATS["hits"]
        misses = _LOWERING_CACHE_STATS["misses"]
        total = hits + misses
        stats: dict[str, float | int] = {
            "hits": hits,
            "misses": misses,
            "size": len(_LOWERING_CACHE),
            "max_size": _LOWERING_CACHE_MAX,
            "hit_rate": float(hits / total) if total else 0.0,
        }
        if reset:
            _LOWERING_CACHE.clear()
            _LOWERING_CACHE_STATS["hits"] = 0
            _LOWERING_CACHE_STATS["misses"] = 0
    return stats
