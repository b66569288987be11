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

"""
Reading grammar files into symbol tables.

A grammar file consists of declaration blocks of the form ::

    <nonterminal>
    <number of expansions>
    first expansion
    ...
    last expansion

Lines outside of such blocks are ignored.
"""

import logging
import os
import pathlib
import re
from typing import Dict, Iterable, Tuple

from frozendict import frozendict
from returns.maybe import Maybe, Nothing, Some

from sentgen.helpers import lazyjoin, strip_line_ending
from sentgen.type_defs import SymbolTable

LOGGER = logging.getLogger(__name__)

GRAMMARS_DIRECTORY = "grammars"
GRAMMAR_FILE_EXTENSION = ".g"
NONTERMINAL_OPEN_BRACKET = "<"

RE_COUNT = re.compile(r"[0-9]+")


class GrammarError(Exception):
    def __init__(self, msg: str, *args):
        super().__init__(msg, *args)
        self.msg = msg

    def __str__(self):
        return self.msg


class MalformedGrammarError(GrammarError):
    def __init__(self, msg: str, line_number: int, *args):
        super().__init__(msg, line_number, *args)
        self.line_number = line_number

    def __str__(self):
        return f"line {self.line_number}: {self.msg}"


def parse_count(line: str) -> Maybe[int]:
    """
    >>> parse_count("3")
    <Some: 3>
    >>> parse_count(" 12 ")
    <Some: 12>
    >>> parse_count("-1")
    <Nothing>
    >>> parse_count("three")
    <Nothing>
    """
    stripped = line.strip()
    if not RE_COUNT.fullmatch(stripped):
        return Nothing

    return Some(int(stripped))


def is_declaration(line: str) -> bool:
    return line.startswith(NONTERMINAL_OPEN_BRACKET)


def load(lines: Iterable[str], strict: bool = False) -> SymbolTable:
    """
    Builds a symbol table from the lines of a grammar file. Each nonterminal is
    mapped to the tuple of its expansions, in the order of the file. Surrounding
    whitespace is removed from declaration lines; expansion lines are kept as they
    are. A count of zero declares a nonterminal without expansions.

    >>> load(["<start>", "1", "The <animal> sat.", "<animal>", "2", "cat", "dog"])
    frozendict({'<start>': ('The <animal> sat.',), '<animal>': ('cat', 'dog')})

    Declarations are only recognized if directly followed by a count. Otherwise,
    the line is skipped, unless `strict` is set.

    >>> load(["<start>", "many", "<start>", "1", "hello"])
    frozendict({'<start>': ('hello',)})
    >>> load(["<start>", "many"], strict=True)
    Traceback (most recent call last):
    ...
    sentgen.loader.MalformedGrammarError: line 2: expected number of expansions for <start>, found 'many'

    >>> load(["<unused>", "0", "<start>", "1", "hi"])
    frozendict({'<unused>': (), '<start>': ('hi',)})

    A count exceeding the remaining lines is always an error.

    >>> load(["<start>", "5", "a", "b"])
    Traceback (most recent call last):
    ...
    sentgen.loader.MalformedGrammarError: line 2: <start> declares 5 expansions, but only 2 lines remain

    :param lines: The lines of the grammar file; line terminators are ignored.
    :param strict: Reject declarations not followed by a valid count.
    :return: The (immutable) symbol table.
    """

    lines = [strip_line_ending(line) for line in lines]
    result: Dict[str, Tuple[str, ...]] = {}

    line_idx = 0
    while line_idx < len(lines):
        line = lines[line_idx]
        if not is_declaration(line):
            line_idx += 1
            continue

        nonterminal = line.strip()
        count_idx = line_idx + 1
        maybe_count = (
            parse_count(lines[count_idx]) if count_idx < len(lines) else Nothing
        )

        if maybe_count == Nothing:
            found = repr(lines[count_idx]) if count_idx < len(lines) else "end of input"
            if strict:
                raise MalformedGrammarError(
                    f"expected number of expansions for {nonterminal}, found {found}",
                    count_idx + 1,
                )

            LOGGER.debug(
                "Skipping line %d (%s): not followed by a number of expansions",
                line_idx + 1,
                nonterminal,
            )
            line_idx += 1
            continue

        count = maybe_count.unwrap()
        first_idx = line_idx + 2
        remaining = len(lines) - first_idx

        if count > remaining:
            raise MalformedGrammarError(
                f"{nonterminal} declares {count} expansions, "
                f"but only {remaining} lines remain",
                count_idx + 1,
            )

        if nonterminal in result:
            LOGGER.debug(
                "Redeclaration of %s in line %d overrides earlier declaration",
                nonterminal,
                line_idx + 1,
            )

        result[nonterminal] = tuple(lines[first_idx : first_idx + count])
        # Expansion lines may start with "<"; they are never declarations.
        line_idx = first_idx + count

    LOGGER.debug("Loaded nonterminals %s", lazyjoin(", ", result))
    return frozendict(result)


def resolve_grammar_path(
    name: str,
    grammars_dir: str | os.PathLike = GRAMMARS_DIRECTORY,
    extension: str = GRAMMAR_FILE_EXTENSION,
) -> pathlib.Path:
    """
    >>> str(resolve_grammar_path("poem"))
    'grammars/poem.g'
    >>> str(resolve_grammar_path("poem.g", "/tmp"))
    '/tmp/poem.g'
    """
    file_name = name if name.endswith(extension) else name + extension
    return pathlib.Path(grammars_dir) / file_name


def grammar_file_exists(
    name: str,
    grammars_dir: str | os.PathLike = GRAMMARS_DIRECTORY,
    extension: str = GRAMMAR_FILE_EXTENSION,
) -> bool:
    return resolve_grammar_path(name, grammars_dir, extension).is_file()


def load_grammar_file(path: str | os.PathLike, strict: bool = False) -> SymbolTable:
    LOGGER.debug("Reading grammar file %s", path)
    with open(path, "r", encoding="utf-8") as file:
        return load(file.read().splitlines(), strict=strict)
