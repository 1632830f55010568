"""expr-jax public API."""

from .ast import ErrorNode, Literal, SymbolNode
from .cache import ParseCache, clear_cache, default_cache, parse_cache_stats
from .cursor import Cursor
from .errors import (
    ArityMismatchError,
    ArrayBoundsError,
    ExpressionError,
    MessageError,
    MissingDelimiterError,
    UndefinedSymbolError,
    UnexpectedTokenError,
    UnsupportedError,
)
from .evaluator import Expression, Options, evaluate
from .parser import (
    ParsedExpression,
    is_valid_identifier,
    is_valid_operator,
    parse,
    parse_source,
    parse_strict,
    parse_sub_expression,
)
from .stdlib import BOOL_SYMBOLS, MATH_SYMBOLS
from .symbols import Arity, Symbol, SymbolKind

try:
    from .ir import (
        CompiledExpression,
        compile_expression,
        lower_expression,
        lower_to_ir,
        lowering_cache_stats,
    )
except ModuleNotFoundError as exc:
    if exc.name and exc.name.startswith("jax"):
        _jax_ir_import_error = exc

        def lower_expression(*_args, **_kwargs):
            raise ModuleNotFoundError(
                "jax is required for lower_expression(). Install runtime deps first."
            ) from _jax_ir_import_error

        def lower_to_ir(*_args, **_kwargs):
            raise ModuleNotFoundError(
                "jax is required for lower_to_ir(). Install runtime deps first."
            ) from _jax_ir_import_error

        def compile_expression(*_args, **_kwargs):
            raise ModuleNotFoundError(
                "jax is required for compile_expression(). Install runtime deps first."
            ) from _jax_ir_import_error

        def lowering_cache_stats(*_args, **_kwargs):
            raise ModuleNotFoundError(
                "jax is required for lowering_cache_stats(). Install runtime deps first."
            ) from _jax_ir_import_error

        class CompiledExpression:  # pragma: no cover - import-time fallback
            def __init__(self, *_args, **_kwargs) -> None:
                raise ModuleNotFoundError(
                    "jax is required for CompiledExpression(). Install runtime deps first."
                ) from _jax_ir_import_error

    else:
        raise

__all__ = [
    "parse",
    "parse_source",
    "parse_strict",
    "parse_sub_expression",
    "ParsedExpression",
    "Expression",
    "Options",
    "evaluate",
    "is_valid_identifier",
    "is_valid_operator",
    "ParseCache",
    "default_cache",
    "clear_cache",
    "parse_cache_stats",
    "Cursor",
    "Symbol",
    "SymbolKind",
    "Arity",
    "Literal",
    "SymbolNode",
    "ErrorNode",
    "MATH_SYMBOLS",
    "BOOL_SYMBOLS",
    "lower_expression",
    "lower_to_ir",
    "compile_expression",
    "lowering_cache_stats",
    "CompiledExpression",
    "ExpressionError",
    "MessageError",
    "UnexpectedTokenError",
    "MissingDelimiterError",
    "UndefinedSymbolError",
    "ArityMismatchError",
    "ArrayBoundsError",
    "UnsupportedError",
]
