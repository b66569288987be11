# Copyright © 2022 CISPA Helmholtz Center for Information Security.
# Author: Dominic Steinhöfel.
#
# This file is part of sentgen.
#
# sentgen is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# sentgen is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with sentgen.  If not, see <http://www.gnu.org/licenses/>.

import logging
import os
import random
import tempfile
import unittest

from frozendict import frozendict

from sentgen.evaluator import evaluate
from sentgen.loader import (
    GrammarError,
    MalformedGrammarError,
    grammar_file_exists,
    load,
    load_grammar_file,
    parse_count,
    resolve_grammar_path,
)
from test_data import ANIMAL_GRAMMAR, STORY_GRAMMAR, lines


class TestLoader(unittest.TestCase):
    def test_load_animal_grammar(self):
        table = load(lines(ANIMAL_GRAMMAR))
        self.assertEqual(
            frozendict({"<start>": ("The <animal> sat.",), "<animal>": ("cat", "dog")}),
            table,
        )

    def test_table_is_immutable(self):
        table = load(lines(ANIMAL_GRAMMAR))
        with self.assertRaises(TypeError):
            table["<animal>"] = ("bird",)  # type: ignore

        self.assertIsInstance(table["<animal>"], tuple)

    def test_load_ignores_prose_and_blank_lines(self):
        table = load(lines(STORY_GRAMMAR))
        self.assertEqual(
            {
                "<start>",
                "<person>",
                "<name>",
                "<adjective>",
                "<action>",
                "<place>",
                "<exclamation>",
                "<adverb>",
            },
            set(table.keys()),
        )
        self.assertEqual(("the forest", "a castle near <place>"), table["<place>"])

    def test_expansions_kept_verbatim(self):
        table = load(["<start>", "2", "  indented <x>  ", "", "<x>", "1", "y"])
        self.assertEqual(("  indented <x>  ", ""), table["<start>"])
        self.assertEqual(("y",), table["<x>"])

    def test_line_terminators_removed(self):
        table = load(["<start>\r\n", "1\r\n", "hello world\r\n"])
        self.assertEqual(frozendict({"<start>": ("hello world",)}), table)

    def test_expansions_starting_with_bracket_are_not_declarations(self):
        table = load(["<start>", "2", "<x>", "3", "<x>", "1", "y"])
        self.assertEqual(("<x>", "3"), table["<start>"])
        self.assertEqual(("y",), table["<x>"])

    def test_redeclaration_overrides(self):
        table = load(["<a>", "1", "first", "<a>", "1", "second"])
        self.assertEqual(("second",), table["<a>"])

    def test_declared_count_not_cross_checked(self):
        table = load(["<a>", "1", "first", "stray line", "<b>", "1", "b"])
        self.assertEqual(("first",), table["<a>"])
        self.assertEqual(("b",), table["<b>"])

    def test_invalid_count_skipped(self):
        table = load(["<a>", "two", "x", "y", "<b>", "1", "b"])
        self.assertEqual(frozendict({"<b>": ("b",)}), table)

    def test_negative_count_skipped(self):
        table = load(["<a>", "-1", "<b>", "1", "b"])
        self.assertEqual(frozendict({"<b>": ("b",)}), table)

    def test_declaration_at_end_of_input_skipped(self):
        self.assertEqual(frozendict({"<b>": ("b",)}), load(["<b>", "1", "b", "<a>"]))

    def test_invalid_count_rejected_in_strict_mode(self):
        with self.assertRaises(MalformedGrammarError) as context:
            load(["<a>", "two", "x", "y"], strict=True)

        self.assertEqual(2, context.exception.line_number)
        self.assertIn("<a>", str(context.exception))

    def test_missing_count_rejected_in_strict_mode(self):
        with self.assertRaises(MalformedGrammarError):
            load(["<b>", "1", "b", "<a>"], strict=True)

    def test_count_exceeding_input(self):
        with self.assertRaises(MalformedGrammarError) as context:
            load(["<start>", "5", "one", "two"])

        self.assertEqual(2, context.exception.line_number)
        self.assertIn("5", str(context.exception))

    def test_zero_count(self):
        table = load(["<unused>", "0", "<start>", "1", "hi"])
        self.assertEqual(frozendict({"<unused>": (), "<start>": ("hi",)}), table)
        self.assertEqual("hi", evaluate(table, table["<start>"], random.Random()))

    def test_zero_count_referenced(self):
        table = load(["<start>", "1", "a <empty>", "<empty>", "0"])
        self.assertEqual((), table["<empty>"])
        with self.assertRaises(GrammarError):
            evaluate(table, table["<start>"], random.Random())

    def test_empty_input(self):
        self.assertEqual(frozendict(), load([]))

    def test_parse_count(self):
        self.assertEqual(3, parse_count("3").unwrap())
        self.assertEqual(7, parse_count(" 7\t").unwrap())
        self.assertEqual(0, parse_count("0").unwrap())
        for invalid in ("", "3.0", "+3", "-3", "x", "3 4", "²"):
            self.assertFalse(
                parse_count(invalid).map(lambda _: True).value_or(False), invalid
            )


class TestGrammarFiles(unittest.TestCase):
    def test_resolve_grammar_path(self):
        self.assertEqual(
            os.path.join("grammars", "poem.g"), str(resolve_grammar_path("poem"))
        )
        self.assertEqual(
            os.path.join("grammars", "poem.g"), str(resolve_grammar_path("poem.g"))
        )
        self.assertEqual(
            os.path.join("dir", "poem.txt.g"),
            str(resolve_grammar_path("poem.txt", "dir")),
        )
        self.assertEqual(
            os.path.join("dir", "poem.cfg"),
            str(resolve_grammar_path("poem", "dir", ".cfg")),
        )

    def test_load_grammar_file(self):
        with tempfile.TemporaryDirectory() as grammars_dir:
            with open(os.path.join(grammars_dir, "animals.g"), "w") as file:
                file.write(ANIMAL_GRAMMAR)

            self.assertTrue(grammar_file_exists("animals", grammars_dir))
            self.assertTrue(grammar_file_exists("animals.g", grammars_dir))
            self.assertFalse(grammar_file_exists("plants", grammars_dir))

            table = load_grammar_file(resolve_grammar_path("animals", grammars_dir))
            self.assertEqual(("cat", "dog"), table["<animal>"])

    def test_directories_are_no_grammar_files(self):
        with tempfile.TemporaryDirectory() as grammars_dir:
            os.mkdir(os.path.join(grammars_dir, "sub.g"))
            self.assertFalse(grammar_file_exists("sub", grammars_dir))

    def test_bundled_grammars_load(self):
        grammars_dir = os.path.join(os.path.dirname(__file__), "..", "grammars")
        for name in ("poem", "excuse"):
            table = load_grammar_file(
                resolve_grammar_path(name, grammars_dir), strict=True
            )
            self.assertIn("<start>", table)
            logging.getLogger("TestGrammarFiles").info("%s: %s", name, table)


if __name__ == "__main__":
    unittest.main()
