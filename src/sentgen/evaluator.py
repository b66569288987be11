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
import random
from typing import List, Optional, Protocol, Sequence

from returns.maybe import Maybe, Nothing

from sentgen.helpers import contains_nonterminal, split_reference, start_symbol
from sentgen.loader import GrammarError
from sentgen.type_defs import SymbolTable

LOGGER = logging.getLogger(__name__)


class RandomSource(Protocol):
    """Anything drawing uniformly distributed integers from `[low, high]`, such as
    `random.Random`."""

    def randint(self, low: int, high: int) -> int:
        ...


class UndefinedNonterminalError(GrammarError):
    def __init__(self, nonterminal: str, *args):
        super().__init__(f"undefined nonterminal {nonterminal}", *args)
        self.nonterminal = nonterminal


class MissingStartSymbolError(GrammarError):
    def __init__(self, start: str = start_symbol(), *args):
        super().__init__(f"the grammar does not define {start}", *args)
        self.start_symbol = start


class GrammarCycleError(GrammarError):
    def __init__(self, expansion: str, max_depth: int, *args):
        super().__init__(
            f"expansion {expansion!r} not resolved after {max_depth} rounds; "
            "the grammar probably contains an inescapable cycle",
            *args,
        )
        self.expansion = expansion
        self.max_depth = max_depth


def choose(alternatives: Sequence[str], rng: RandomSource) -> str:
    return alternatives[rng.randint(0, len(alternatives) - 1)]


def evaluate_nonterminal(
    table: SymbolTable, nonterminal: str, rng: RandomSource
) -> str:
    """
    Returns one of the expansions of `nonterminal`, chosen uniformly at random.

    >>> evaluate_nonterminal({"<noun>": ("cat",)}, "<noun>", random.Random())
    'cat'
    >>> evaluate_nonterminal({"<noun>": ("cat",)}, "<verb>", random.Random())
    Traceback (most recent call last):
    ...
    sentgen.evaluator.UndefinedNonterminalError: undefined nonterminal <verb>
    """
    try:
        expansions = table[nonterminal]
    except KeyError:
        raise UndefinedNonterminalError(nonterminal)

    if not expansions:
        raise GrammarError(f"{nonterminal} has no expansions")

    return choose(expansions, rng)


def expand_token(table: SymbolTable, token: str, rng: RandomSource) -> str:
    """
    Replaces the first nonterminal in `token` by one of its expansions. Text
    glued to the nonterminal, such as punctuation, is retained.

    >>> expand_token({"<noun>": ("cat",)}, "<noun>.", random.Random())
    'cat.'
    >>> expand_token({"<noun>": ("big cat",)}, "(<noun>),", random.Random())
    '(big cat),'
    >>> expand_token({}, "word", random.Random())
    'word'
    """
    return (
        split_reference(token)
        .map(
            lambda parts: parts[0]
            + evaluate_nonterminal(table, parts[1], rng)
            + parts[2]
        )
        .value_or(token)
    )


def resolve_expansion(
    table: SymbolTable,
    expansion: str,
    rng: RandomSource,
    max_depth: Maybe[int] = Nothing,
) -> str:
    """
    Expands nonterminals in `expansion` until only terminals remain. Each round
    expands every nonterminal token once and joins the nonblank tokens by single
    spaces; since expansions can introduce new nonterminals, this is repeated
    until a fixed point is reached.

    :param table: The symbol table.
    :param expansion: The text to resolve.
    :param rng: The source of random choices.
    :param max_depth: The maximum number of rounds, if any.
    :return: The resolved text.
    """

    text = expansion
    depth = 0
    while contains_nonterminal(text):
        if max_depth.map(lambda limit: depth >= limit).value_or(False):
            raise GrammarCycleError(expansion, depth)

        expanded = (expand_token(table, token, rng) for token in text.split())
        text = " ".join(piece for piece in expanded if piece.strip())
        depth += 1
        LOGGER.debug("Round %d: %s", depth, text)

    return text


def evaluate(
    table: SymbolTable,
    start_expansions: Sequence[str],
    rng: RandomSource,
    max_depth: Maybe[int] = Nothing,
) -> str:
    """
    Generates a sentence. All given start expansions are resolved independently;
    one of the results is chosen at random.

    >>> table = {
    ...     "<start>": ("The <animal> sat.",),
    ...     "<animal>": ("cat", "dog"),
    ... }
    >>> evaluate(table, table["<start>"], random.Random()) in (
    ...     "The cat sat.", "The dog sat.")
    True

    :param table: The symbol table.
    :param start_expansions: The expansions of the start symbol.
    :param rng: The source of random choices.
    :param max_depth: The maximum number of expansion rounds per start expansion.
    :return: A sentence consisting of terminals only.
    """

    if not start_expansions:
        raise GrammarError("no start expansions to choose from")

    resolved = [
        resolve_expansion(table, expansion, rng, max_depth)
        for expansion in start_expansions
    ]

    return choose(resolved, rng)


def start_expansions(
    table: SymbolTable, start: str = start_symbol()
) -> Sequence[str]:
    if start not in table:
        raise MissingStartSymbolError(start)

    return table[start]


def generate_sentences(
    table: SymbolTable,
    count: int,
    rng: RandomSource,
    start: str = start_symbol(),
    max_depth: Maybe[int] = Nothing,
) -> List[str]:
    expansions = start_expansions(table, start)
    return [evaluate(table, expansions, rng, max_depth) for _ in range(count)]


class SentenceGenerator:
    """Produce random sentences from a symbol table."""

    def __init__(
        self,
        table: SymbolTable,
        start: str = start_symbol(),
        rng: Optional[RandomSource] = None,
        max_depth: Maybe[int] = Nothing,
    ) -> None:
        """
        :param table: The symbol table.
        :param start: The start symbol; must be defined in `table`.
        :param rng: The source of random choices. Defaults to a fresh
            `random.Random` instance.
        :param max_depth: The maximum number of expansion rounds.
        """

        self.logger = logging.getLogger(type(self).__name__)
        self.table = table
        self.start = start
        self.rng: RandomSource = rng if rng is not None else random.Random()
        self.max_depth = max_depth
        self.start_expansions = start_expansions(table, start)

    def generate(self) -> str:
        sentence = evaluate(self.table, self.start_expansions, self.rng, self.max_depth)
        self.logger.debug('Generated sentence "%s"', sentence)
        return sentence

    def generate_many(self, count: int) -> List[str]:
        return [self.generate() for _ in range(count)]
