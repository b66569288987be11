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

import importlib.resources
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Tuple

from frozendict import frozendict
from returns.maybe import Maybe, Nothing, Some

from sentgen.type_defs import Grammar, SymbolTable

RE_NONTERMINAL = re.compile(r"(<[^<> ]*>)")


def contains_nonterminal(text: str) -> bool:
    """
    >>> contains_nonterminal("The <animal> sat.")
    True
    >>> contains_nonterminal("1 < 2 and 3 > 2")
    False
    """
    return RE_NONTERMINAL.search(text) is not None


def split_reference(token: str) -> Maybe[Tuple[str, str, str]]:
    """
    Splits a token into the text before its first nonterminal reference, the
    reference itself, and the text after it.

    >>> split_reference("<noun>.")
    <Some: ('', '<noun>', '.')>
    >>> split_reference('"<quote>",')
    <Some: ('"', '<quote>', '",')>
    >>> split_reference("word")
    <Nothing>
    """
    match = RE_NONTERMINAL.search(token)
    if match is None:
        return Nothing

    return Some((token[: match.start()], match.group(1), token[match.end() :]))


def start_symbol() -> str:
    return "<start>"


def freeze_grammar(grammar: Grammar) -> SymbolTable:
    """
    >>> freeze_grammar({"<start>": ["a", "b"]})
    frozendict({'<start>': ('a', 'b')})
    """
    return frozendict(
        {nonterminal: tuple(expansions) for nonterminal, expansions in grammar.items()}
    )


def strip_line_ending(line: str) -> str:
    return line.rstrip("\r\n")


def get_sentgen_resource_file_content(path_to_file: str) -> str:
    traversable = importlib.resources.files("sentgen").joinpath(path_to_file)
    with importlib.resources.as_file(traversable) as path:
        with open(path, "r") as file:
            return file.read()


@dataclass(frozen=True)
class lazyjoin:
    s: str
    items: Iterable[Any]

    def __str__(self):
        return self.s.join(map(str, self.items))


def maybe_positive(value: Optional[int]) -> Maybe[int]:
    """
    Non-positive and missing limits both mean "no limit".

    >>> maybe_positive(10)
    <Some: 10>
    >>> maybe_positive(-1)
    <Nothing>
    >>> maybe_positive(None)
    <Nothing>
    """
    return Maybe.from_optional(value).bind_optional(lambda v: v if v > 0 else None)
