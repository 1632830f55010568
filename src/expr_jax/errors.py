"""Structured error types raised by parsing, binding and evaluation."""

from __future__ import annotations

from dataclasses import dataclass, is_dataclass, replace

from .symbols import Symbol


class ExpressionError(Exception):
    """Base class for structured expr-jax errors."""


def stringify(number: float) -> str:
    """Render a number the way literals are printed: integral values without a fraction."""
    if number == number and abs(number) < 2.0**63 and float(number).is_integer():
        return str(int(number))
    return repr(float(number))


@dataclass(frozen=True)
class MessageError(ExpressionError):
    """Application-specific failure with an opaque message."""

    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class UnexpectedTokenError(ExpressionError):
    """The parser met characters it could not place; an empty token means an empty expression."""

    token: str

    def __str__(self) -> str:
        if not self.token:
            return "Empty expression"
        return f"Unexpected token `{self.token}`"


@dataclass(frozen=True)
class MissingDelimiterError(ExpressionError):
    delimiter: str

    def __str__(self) -> str:
        return f"Missing `{self.delimiter}`"


@dataclass(frozen=True)
class UndefinedSymbolError(ExpressionError):
    symbol: Symbol

    def __str__(self) -> str:
        return f"Undefined {self.symbol}"


@dataclass(frozen=True)
class ArityMismatchError(ExpressionError):
    """A symbol was used with the wrong number of arguments.

    ``symbol`` carries the expected arity for functions; for other kinds the
    expectation follows from the symbol kind.
    """

    symbol: Symbol

    def __str__(self) -> str:
        description = str(self.symbol)
        return f"{description[:1].upper()}{description[1:]} expects {self.symbol.expected_arity()}"


@dataclass(frozen=True)
class ArrayBoundsError(ExpressionError):
    symbol: Symbol
    index: float

    def __str__(self) -> str:
        return f"Index {stringify(self.index)} out of bounds for {self.symbol}"


@dataclass(frozen=True)
class UnsupportedError(MessageError):
    """Construct cannot be lowered to the JAX backend."""


def reraisable(error: ExpressionError) -> ExpressionError:
    """Copy of a stored error, so raising it never grows a shared traceback."""
    if is_dataclass(error):
        return replace(error)
    return error.with_traceback(None)
