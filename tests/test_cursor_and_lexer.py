from __future__ import annotations

import unittest

from expr_jax.ast import ErrorNode, Literal, SymbolNode
from expr_jax.chars import escape_identifier, is_identifier_head, is_operator_char
from expr_jax.cursor import Cursor
from expr_jax.errors import MissingDelimiterError, UnexpectedTokenError
from expr_jax.lexer import scan_escaped_identifier, scan_identifier, scan_numeric_literal, scan_operator
from expr_jax.symbols import SymbolKind


class CursorTests(unittest.TestCase):
    def test_views_share_backing_string(self) -> None:
        cursor = Cursor("hello world")
        head = cursor.prefix_up_to(5)
        tail = cursor.suffix_from(6)
        self.assertEqual(head.text, "hello")
        self.assertEqual(tail.text, "world")
        self.assertIs(head.source, cursor.source)
        self.assertEqual(len(tail), 5)

    def test_pop_and_scan_characters(self) -> None:
        cursor = Cursor("ab12")
        self.assertEqual(cursor.pop_first(), "a")
        self.assertEqual(cursor.scan_characters(str.isalpha), "b")
        self.assertIsNone(cursor.scan_characters(str.isalpha))
        self.assertEqual(cursor.scan_character("1"), "1")
        self.assertIsNone(cursor.scan_character("x"))
        self.assertEqual(cursor.scan_character(), "2")
        self.assertTrue(cursor.is_empty())
        self.assertIsNone(cursor.pop_first())
        self.assertIsNone(cursor.first())

    def test_skip_whitespace_reports_consumption(self) -> None:
        cursor = Cursor(" \t\nx")
        self.assertTrue(cursor.skip_whitespace())
        self.assertFalse(cursor.skip_whitespace())
        self.assertEqual(cursor.text, "x")

    def test_scan_to_end_of_token_and_delimiters(self) -> None:
        cursor = Cursor("junk} rest")
        self.assertTrue(Cursor("}}").match_delimiter(("]", "}")))
        self.assertFalse(cursor.match_delimiter(("}",)))
        self.assertEqual(cursor.scan_to_end_of_token(), "junk}")
        self.assertEqual(cursor.text, " rest")

    def test_match_delimiter_does_not_consume(self) -> None:
        cursor = Cursor(", b")
        self.assertTrue(cursor.match_delimiter((",",)))
        self.assertEqual(cursor.start, 0)


class CharacterClassTests(unittest.TestCase):
    def test_operator_and_identifier_classes(self) -> None:
        for ch in "/=+!*%<>&|^~?:×÷→":
            with self.subTest(ch=ch):
                self.assertTrue(is_operator_char(ch))
        for ch in "-.,([ a0":
            with self.subTest(ch=ch):
                self.assertFalse(is_operator_char(ch))
        for ch in "a_Z$@é":
            with self.subTest(ch=ch):
                self.assertTrue(is_identifier_head(ch))
        self.assertFalse(is_identifier_head("1"))

    def test_escape_identifier(self) -> None:
        self.assertEqual(escape_identifier("plain"), "plain")
        self.assertEqual(escape_identifier("'a b'"), "'a b'")
        self.assertEqual(escape_identifier("'a\nb'"), "'a\\nb'")
        self.assertEqual(escape_identifier("'a\\b'"), "'a\\\\b'")
        self.assertEqual(escape_identifier("'it's'"), "'it\\'s'")
        self.assertEqual(escape_identifier("'\x07'"), "'\\u{7}'")


class NumericLiteralTests(unittest.TestCase):
    def _scan(self, source: str):
        cursor = Cursor(source)
        return scan_numeric_literal(cursor), cursor.text

    def test_decimal_forms(self) -> None:
        cases = {
            "42": 42.0,
            "3.25": 3.25,
            ".5": 0.5,
            "1e3": 1000.0,
            "2.5E-1": 0.25,
            "1e+2": 100.0,
        }
        for source, expected in cases.items():
            with self.subTest(source=source):
                token, rest = self._scan(source)
                self.assertEqual(token, Literal(expected))
                self.assertEqual(rest, "")

    def test_hex_literal(self) -> None:
        token, rest = self._scan("0x1F+")
        self.assertEqual(token, Literal(31.0))
        self.assertEqual(rest, "+")

    def test_trailing_dot_is_left_for_identifier(self) -> None:
        token, rest = self._scan("1.foo")
        self.assertEqual(token, Literal(1.0))
        self.assertEqual(rest, ".foo")

    def test_incomplete_exponent_backtracks(self) -> None:
        token, rest = self._scan("1e")
        self.assertEqual(token, Literal(1.0))
        self.assertEqual(rest, "e")

    def test_non_numbers(self) -> None:
        for source in ("abc", ".", "+1", ""):
            with self.subTest(source=source):
                token, rest = self._scan(source)
                self.assertIsNone(token)
                self.assertEqual(rest, source)

    def test_bad_hex_is_error_leaf(self) -> None:
        token, _ = self._scan("0x")
        self.assertIsInstance(token, ErrorNode)
        self.assertEqual(token.error, UnexpectedTokenError("0x"))
        self.assertEqual(token.source, "0x")

    def test_overflow_is_error_leaf(self) -> None:
        token, _ = self._scan("1e999")
        self.assertIsInstance(token, ErrorNode)
        self.assertEqual(str(token.error), "Unexpected token `1e999`")


class IdentifierAndOperatorTests(unittest.TestCase):
    def test_identifiers(self) -> None:
        cases = {
            "foo": ("foo", ""),
            "a.b.c": ("a.b.c", ""),
            "x' + 1": ("x'", " + 1"),
            "a. b": ("a", ". b"),
            ".member": (".member", ""),
            "_tmp2": ("_tmp2", ""),
        }
        for source, (name, rest) in cases.items():
            with self.subTest(source=source):
                cursor = Cursor(source)
                token = scan_identifier(cursor)
                self.assertIsInstance(token, SymbolNode)
                self.assertIs(token.symbol.kind, SymbolKind.VARIABLE)
                self.assertEqual(token.symbol.name, name)
                self.assertEqual(cursor.text, rest)

    def test_lone_dot_is_not_an_identifier(self) -> None:
        cursor = Cursor(". x")
        self.assertIsNone(scan_identifier(cursor))
        self.assertEqual(cursor.start, 0)

    def test_operators(self) -> None:
        cases = {
            "+= 1": ("+=", " 1"),
            "..<5": ("..<", "5"),
            "->x": ("->", "x"),
            "--": ("--", ""),
            "(a": ("(", "a"),
            "[0]": ("[", "0]"),
            ",b": (",", "b"),
            "*-1": ("*", "-1"),
        }
        for source, (name, rest) in cases.items():
            with self.subTest(source=source):
                cursor = Cursor(source)
                token = scan_operator(cursor)
                self.assertEqual(token.symbol.name, name)
                self.assertEqual(cursor.text, rest)

    def test_words_are_not_operators(self) -> None:
        self.assertIsNone(scan_operator(Cursor("and")))


class EscapedIdentifierTests(unittest.TestCase):
    def _scan(self, source: str):
        return scan_escaped_identifier(Cursor(source))

    def test_quoted_names_keep_their_delimiters(self) -> None:
        self.assertEqual(self._scan("`my var`").symbol.name, "`my var`")
        self.assertEqual(self._scan('"q"').symbol.name, '"q"')

    def test_escapes(self) -> None:
        self.assertEqual(self._scan("'a\\nb'").symbol.name, "'a\nb'")
        self.assertEqual(self._scan("'\\u{41}\\u{1F600}'").symbol.name, "'A\U0001F600'")
        self.assertEqual(self._scan("'\\'x'").symbol.name, "''x'")

    def test_unterminated_name(self) -> None:
        token = self._scan("'abc")
        self.assertIsInstance(token, ErrorNode)
        self.assertEqual(token.error, MissingDelimiterError("'"))

    def test_lone_delimiter(self) -> None:
        token = self._scan("'")
        self.assertEqual(token.error, UnexpectedTokenError("'"))

    def test_bad_unicode_escapes(self) -> None:
        self.assertEqual(self._scan("'\\u{}'").error, UnexpectedTokenError("}"))
        self.assertEqual(self._scan("'\\u{110000}'").error, UnexpectedTokenError("110000"))
        self.assertEqual(self._scan("'\\u{41").error, MissingDelimiterError("}"))
        self.assertEqual(self._scan("'\\u{4g}'").error, UnexpectedTokenError("g}'"))

    def test_not_quoted(self) -> None:
        self.assertIsNone(self._scan("abc"))


if __name__ == "__main__":
    unittest.main()
