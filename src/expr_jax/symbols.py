"""Symbol and arity model."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .chars import escape_identifier


@dataclass(frozen=True, eq=False)
class Arity:
    """Exact argument count, or a minimum when ``at_least`` is set.

    Equality is containment-like: ``Arity.at_least(2) == Arity.exactly(5)``
    holds so that a variadic declaration matches any call site it accepts.
    """

    count: int
    at_least: bool = False

    @classmethod
    def exactly(cls, count: int) -> "Arity":
        return cls(count)

    @classmethod
    def minimum(cls, count: int) -> "Arity":
        return cls(count, at_least=True)

    @classmethod
    def coerce(cls, value: "Arity | int") -> "Arity":
        if isinstance(value, Arity):
            return value
        return cls(int(value))

    def accepts(self, count: int) -> bool:
        return count >= self.count if self.at_least else count == self.count

    def __eq__(self, other: object) -> bool:
        if isinstance(other, int) and not isinstance(other, bool):
            other = Arity(other)
        if not isinstance(other, Arity):
            return NotImplemented
        if self.at_least == other.at_least:
            return self.count == other.count
        if self.at_least:
            return other.count >= self.count
        return self.count >= other.count

    def __hash__(self) -> int:
        # Exact and minimum arities can compare equal, so hash nothing of them.
        return 0

    def __str__(self) -> str:
        plural = "" if self.count == 1 else "s"
        if self.at_least:
            return f"at least {self.count} argument{plural}"
        return f"{self.count} argument{plural}"


Arity.ANY = Arity.minimum(0)


class SymbolKind(str, Enum):
    VARIABLE = "variable"
    INFIX = "infix"
    PREFIX = "prefix"
    POSTFIX = "postfix"
    FUNCTION = "function"
    ARRAY = "array"


_OPERATOR_KINDS = frozenset({SymbolKind.INFIX, SymbolKind.PREFIX, SymbolKind.POSTFIX})


@dataclass(frozen=True, eq=False)
class Symbol:
    kind: SymbolKind
    name: str
    arity: Arity | None = None

    @classmethod
    def variable(cls, name: str) -> "Symbol":
        return cls(SymbolKind.VARIABLE, name)

    @classmethod
    def infix(cls, name: str) -> "Symbol":
        return cls(SymbolKind.INFIX, name)

    @classmethod
    def prefix(cls, name: str) -> "Symbol":
        return cls(SymbolKind.PREFIX, name)

    @classmethod
    def postfix(cls, name: str) -> "Symbol":
        return cls(SymbolKind.POSTFIX, name)

    @classmethod
    def function(cls, name: str, arity: Arity | int = Arity.ANY) -> "Symbol":
        return cls(SymbolKind.FUNCTION, name, Arity.coerce(arity))

    @classmethod
    def array(cls, name: str) -> "Symbol":
        return cls(SymbolKind.ARRAY, name)

    @property
    def is_operator(self) -> bool:
        return self.kind in _OPERATOR_KINDS

    @property
    def escaped_name(self) -> str:
        return escape_identifier(self.name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Symbol):
            return NotImplemented
        if self.kind != other.kind or self.name != other.name:
            return False
        if self.kind is SymbolKind.FUNCTION:
            return self.arity == other.arity
        return True

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        if self.kind is SymbolKind.FUNCTION:
            return f"Symbol.function({self.name!r}, {self.arity!s})"
        return f"Symbol.{self.kind.value}({self.name!r})"

    def __str__(self) -> str:
        name = self.escaped_name
        if self.kind is SymbolKind.INFIX:
            if self.name == "?:":
                return f"ternary operator {name}"
            if self.name == "[]":
                return f"subscript operator {name}"
            if self.name == "()":
                return f"function call operator {name}"
            return f"infix operator {name}"
        if self.kind is SymbolKind.FUNCTION:
            return f"function {name}()"
        if self.kind is SymbolKind.ARRAY:
            return f"array {name}[]"
        return f"{self.kind.value} {name}"

    def expected_arity(self) -> Arity:
        """Arity a symbol of this kind is declared to take."""
        if self.kind is SymbolKind.FUNCTION:
            assert self.arity is not None
            return self.arity
        if self.kind is SymbolKind.INFIX:
            if self.name == "()":
                return Arity.minimum(1)
            if self.name == "[]":
                return Arity(1)
            if self.name == "?:":
                return Arity(3)
            return Arity(2)
        if self.kind is SymbolKind.ARRAY:
            return Arity(1)
        if self.kind is SymbolKind.VARIABLE:
            return Arity(0)
        return Arity(1)
