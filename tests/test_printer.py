from __future__ import annotations

import unittest

from expr_jax.ast import Literal, SymbolNode
from expr_jax.parser import parse_source
from expr_jax.printer import describe
from expr_jax.symbols import Symbol


class DescriptionTests(unittest.TestCase):
    def test_normalized_spacing(self) -> None:
        cases = {
            "1+2*3": "1 + 2 * 3",
            "(1+2)*3": "(1 + 2) * 3",
            "2-(3-1)": "2 - (3 - 1)",
            "2-3-1": "2 - 3 - 1",
            "pow( 2 ,3 )": "pow(2, 3)",
            "a[ i+1 ]": "a[i + 1]",
            "-x": "-x",
            "x!": "x!",
            "a&&b||c": "a && b || c",
            "a||(b&&c)": "a || b && c",
            "(a||b)&&c": "(a || b) && c",
            "a?b:c": "a ? b : c",
            "[1,2]": "[1, 2]",
            "f(x)(1,2)": "f(x)(1, 2)",
            "(a+b)[0]": "(a + b)[0]",
            "f((a,b))": "f((a, b))",
            "`my var`+1": "`my var` + 1",
            "1.5e3": "1500",
            "0.25": "0.25",
        }
        for source, expected in cases.items():
            with self.subTest(source=source):
                self.assertEqual(parse_source(source).description, expected)

    def test_prefix_operators_keep_their_grouping(self) -> None:
        self.assertEqual(parse_source("-(a+b)").description, "-(a + b)")
        self.assertEqual(parse_source("- -x").description, "-(-x)")

    def test_nested_ternary_branches_are_parenthesized(self) -> None:
        node = SymbolNode(
            Symbol.infix("?:"),
            (
                SymbolNode(Symbol.variable("a")),
                SymbolNode(Symbol.infix("?:"), tuple(SymbolNode(Symbol.variable(n)) for n in "bcd")),
                SymbolNode(Symbol.variable("e")),
            ),
        )
        self.assertEqual(describe(node), "a ? (b ? c : d) : e")

    def test_literals(self) -> None:
        self.assertEqual(describe(Literal(3.0)), "3")
        self.assertEqual(describe(Literal(-0.5)), "-0.5")
        self.assertEqual(describe(Literal(float("inf"))), "inf")

    def test_irregular_names_are_escaped(self) -> None:
        node = SymbolNode(Symbol.variable("'a\nb'"))
        self.assertEqual(describe(node), "'a\\nb'")

    def test_error_leaf_prints_source(self) -> None:
        self.assertEqual(parse_source("1 +  (2").description, "1 +  (2")


class RoundTripTests(unittest.TestCase):
    SOURCES = (
        "1 + 2 * 3",
        "(1 + 2) * 3",
        "2 - (3 - 1)",
        "-x * y",
        "a[1] + b",
        "pow(2, 3) / max(1, 5, 3)",
        "f(x)(1, 2)",
        "a > b ? c : d",
        "x! + 1",
        "[1, 2, 3]",
        "`my var` + 1",
        "'tab\\there' * 2",
        "a && b || !c",
        "a = b = c",
        "1 +-2",
        "x and y or z",
        "(a, b)",
        "sqrt(-(a + b))",
    )

    def test_description_is_a_fixed_point(self) -> None:
        for source in self.SOURCES:
            with self.subTest(source=source):
                first = parse_source(source)
                self.assertIsNone(first.error)
                second = parse_source(first.description)
                self.assertIsNone(second.error, first.description)
                self.assertEqual(second.description, first.description)
                self.assertEqual(second.root, first.root)


if __name__ == "__main__":
    unittest.main()
