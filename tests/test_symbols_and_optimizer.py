from __future__ import annotations

import unittest

from expr_jax.ast import Literal, SymbolNode
from expr_jax.errors import (
    ArityMismatchError,
    ArrayBoundsError,
    MessageError,
    UndefinedSymbolError,
    UnexpectedTokenError,
    reraisable,
)
from expr_jax.optimizer import bind
from expr_jax.parser import parse_source
from expr_jax.stdlib import MATH_SYMBOLS
from expr_jax.symbols import Arity, Symbol


class ArityTests(unittest.TestCase):
    def test_exact_and_minimum(self) -> None:
        self.assertEqual(Arity.exactly(2), 2)
        self.assertNotEqual(Arity.exactly(2), 3)
        self.assertEqual(Arity.minimum(2), Arity.exactly(5))
        self.assertEqual(Arity.exactly(5), Arity.minimum(2))
        self.assertNotEqual(Arity.minimum(2), Arity.exactly(1))
        self.assertTrue(Arity.ANY.accepts(0))
        self.assertFalse(Arity.exactly(1).accepts(2))

    def test_rendering(self) -> None:
        self.assertEqual(str(Arity(1)), "1 argument")
        self.assertEqual(str(Arity(0)), "0 arguments")
        self.assertEqual(str(Arity.minimum(2)), "at least 2 arguments")


class SymbolTests(unittest.TestCase):
    def test_descriptions(self) -> None:
        cases = {
            Symbol.variable("x"): "variable x",
            Symbol.infix("+"): "infix operator +",
            Symbol.prefix("-"): "prefix operator -",
            Symbol.postfix("%"): "postfix operator %",
            Symbol.function("pow", 2): "function pow()",
            Symbol.array("a"): "array a[]",
            Symbol.infix("?:"): "ternary operator ?:",
            Symbol.infix("[]"): "subscript operator []",
            Symbol.infix("()"): "function call operator ()",
        }
        for symbol, expected in cases.items():
            with self.subTest(symbol=symbol):
                self.assertEqual(str(symbol), expected)

    def test_function_identity_includes_arity(self) -> None:
        self.assertNotEqual(Symbol.function("f", 1), Symbol.function("f", 2))
        self.assertEqual(Symbol.function("max", Arity.minimum(2)), Symbol.function("max", 4))
        self.assertIn(Symbol.function("max", 7), MATH_SYMBOLS)
        self.assertNotIn(Symbol.function("sqrt", 2), MATH_SYMBOLS)

    def test_kinds_are_distinct(self) -> None:
        self.assertNotEqual(Symbol.prefix("-"), Symbol.infix("-"))
        self.assertNotEqual(Symbol.variable("a"), Symbol.array("a"))
        self.assertEqual(len({Symbol.variable("a"), Symbol.variable("a"), Symbol.array("a")}), 2)


class ErrorTextTests(unittest.TestCase):
    def test_messages(self) -> None:
        self.assertEqual(str(MessageError("custom")), "custom")
        self.assertEqual(str(UnexpectedTokenError("@")), "Unexpected token `@`")
        self.assertEqual(str(UndefinedSymbolError(Symbol.variable("y"))), "Undefined variable y")
        self.assertEqual(str(ArrayBoundsError(Symbol.array("v"), 2.5)), "Index 2.5 out of bounds for array v[]")

    def test_arity_mismatch_by_kind(self) -> None:
        cases = {
            Symbol.infix("+"): "Infix operator + expects 2 arguments",
            Symbol.prefix("!"): "Prefix operator ! expects 1 argument",
            Symbol.infix("?:"): "Ternary operator ?: expects 3 arguments",
            Symbol.infix("()"): "Function call operator () expects at least 1 argument",
            Symbol.infix("[]"): "Subscript operator [] expects 1 argument",
            Symbol.variable("x"): "Variable x expects 0 arguments",
        }
        for symbol, expected in cases.items():
            with self.subTest(symbol=symbol):
                self.assertEqual(str(ArityMismatchError(symbol)), expected)

    def test_reraisable_is_a_fresh_equal_copy(self) -> None:
        error = UnexpectedTokenError("x")
        copy = reraisable(error)
        self.assertEqual(copy, error)
        self.assertIsNot(copy, error)


class BindTests(unittest.TestCase):
    def _bind(self, source: str, impure=lambda _symbol: None):
        def pure(symbol):
            return MATH_SYMBOLS[symbol]

        return bind(parse_source(source).root, impure, pure)

    def test_folds_constant_subtrees(self) -> None:
        self.assertEqual(self._bind("1 + 2 * 3"), Literal(7.0))
        self.assertEqual(self._bind("max(1, 4, 2) - sqrt(9)"), Literal(1.0))

    def test_impure_subtree_blocks_folding_above_it(self) -> None:
        def now(_args):
            return 5.0

        def impure(symbol):
            return now if symbol == Symbol.variable("now") else None

        node = self._bind("now + 2 * 3", impure)
        self.assertIsInstance(node, SymbolNode)
        self.assertEqual(node.symbol, Symbol.infix("+"))
        self.assertIs(node.args[0].evaluator, now)
        self.assertEqual(node.args[1], Literal(6.0))

    def test_failing_pure_evaluator_stays_attached(self) -> None:
        def fail(_args):
            raise UndefinedSymbolError(Symbol.variable("q"))

        node = bind(parse_source("q * 2").root, lambda _symbol: None, lambda symbol: MATH_SYMBOLS.get(symbol, fail))
        self.assertIsInstance(node, SymbolNode)
        self.assertIs(node.args[0].evaluator, fail)
        self.assertIsNotNone(node.evaluator)

    def test_binding_leaves_input_untouched(self) -> None:
        parsed = parse_source("1 + 2")
        folded = bind(parsed.root, lambda _symbol: None, MATH_SYMBOLS.__getitem__)
        self.assertEqual(folded, Literal(3.0))
        self.assertIsNone(parsed.root.evaluator)
        self.assertIsInstance(parsed.root, SymbolNode)


if __name__ == "__main__":
    unittest.main()
