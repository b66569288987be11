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

import argparse
import logging
import os
import pathlib
import random
import sys
from argparse import Namespace, ArgumentParser
from contextlib import redirect_stdout, redirect_stderr
from functools import lru_cache
from functools import partial
from io import TextIOWrapper
from typing import Dict, List, Iterable

import toml
from returns.maybe import Maybe, Nothing

from sentgen import __version__ as sentgen_version
from sentgen.evaluator import generate_sentences
from sentgen.helpers import get_sentgen_resource_file_content, maybe_positive
from sentgen.loader import (
    GrammarError,
    grammar_file_exists,
    load,
    load_grammar_file,
    resolve_grammar_path,
)
from sentgen.type_defs import SymbolTable

# Exit Codes
USAGE_ERROR = 2
DATA_FORMAT_ERROR = 65

PROMPT = "Name of grammar file? [<return> to quit]: "


def main(*args: str, stdout=sys.stdout, stderr=sys.stderr, stdin=sys.stdin):
    read_sentgen_rc_defaults()
    parser = create_parsers(stdout, stderr, stdin)

    with redirect_stdout(stdout):
        with redirect_stderr(stderr):
            args = parser.parse_args(args or sys.argv[1:])

    if not args.command and not args.version:
        parser.print_usage(file=stderr)
        print(
            "sentgen: error: You have to choose a global option or one of the "
            + "commands `interactive`, `generate`, or `dump-config`",
            file=stderr,
        )
        sys.exit(USAGE_ERROR)

    if args.version:
        print(f"sentgen version {sentgen_version}", file=stdout)
        sys.exit(0)

    level_mapping = {
        "ERROR": logging.ERROR,
        "WARNING": logging.WARNING,
        "INFO": logging.INFO,
        "DEBUG": logging.DEBUG,
    }

    if getattr(args, "log_level", None):
        logging.basicConfig(stream=stderr, level=level_mapping[args.log_level])

    args.func(args)


def interactive(stdout, stderr, stdin, parser: ArgumentParser, args: Namespace):
    rng = random.Random(args.seed)
    max_depth = maybe_positive(args.max_depth)

    try:
        while True:
            name = get_grammar_name(stdout, stdin, args)
            if not name:
                break

            try:
                table = load_grammar_file(
                    resolve_grammar_path(name, args.grammars_dir, args.extension),
                    strict=args.strict,
                )
                sentences = generate_sentences(
                    table, args.num_sentences, rng, max_depth=max_depth
                )
            except (OSError, UnicodeDecodeError) as err:
                print(
                    f"sentgen interactive: error: could not read grammar file {name} "
                    + f"({err})",
                    file=stderr,
                )
                continue
            except GrammarError as err:
                print(f"sentgen interactive: error: {err}", file=stderr)
                continue

            for idx, sentence in enumerate(sentences):
                print(f"\n{idx + 1}.) {sentence}", file=stdout)
            print(file=stdout)
    except KeyboardInterrupt:
        pass

    print("Thanks for playing!", file=stdout)


def get_grammar_name(stdout, stdin, args: Namespace) -> str:
    """
    Prompts for the name of a grammar file until the user enters the name of an
    existing file, or nothing. End of input counts as entering nothing.
    """

    while True:
        print(PROMPT, end="", file=stdout, flush=True)
        name = stdin.readline().strip()
        if not name or grammar_file_exists(name, args.grammars_dir, args.extension):
            return name

        print(
            f'Failed to open the grammar file named "{name}". Please try again....',
            file=stdout,
        )


def generate(stdout, stderr, parser: ArgumentParser, args: Namespace):
    try:
        files = read_files(args.files)
    except (OSError, UnicodeDecodeError) as err:
        print(
            f"sentgen generate: error: could not read grammar file ({err})",
            file=stderr,
        )
        sys.exit(DATA_FORMAT_ERROR)

    rng = random.Random(args.seed)
    max_depth = maybe_positive(args.max_depth)

    for file_name, content in files.items():
        table = parse_grammar(file_name, content, args.strict, stderr)
        try:
            sentences = generate_sentences(
                table, args.num_sentences, rng, max_depth=max_depth
            )
        except GrammarError as err:
            print(f"sentgen generate: error: {file_name}: {err}", file=stderr)
            sys.exit(DATA_FORMAT_ERROR)

        for sentence in sentences:
            print(sentence, file=stdout)


def dump_config(stdout, stderr, parser: ArgumentParser, args: Namespace):
    config_file_content = get_sentgen_resource_file_content("resources/.sentgenrc")

    if args.output_file:
        with open(args.output_file, "w") as file:
            file.write(config_file_content)
    else:
        print(config_file_content, file=stdout)


def create_parsers(stdout, stderr, stdin):
    parser = argparse.ArgumentParser(
        prog="sentgen",
        description="""
Generate random sentences from context-free grammar files.""",
    )

    parser.add_argument(
        "-v", "--version", help="Print the sentgen version number", action="store_true"
    )

    subparsers = parser.add_subparsers(title="Commands", dest="command", required=False)

    create_interactive_parser(subparsers, stdout, stderr, stdin)
    create_generate_parser(subparsers, stdout, stderr)
    create_dump_config_parser(subparsers, stdout, stderr)

    return parser


def read_files(files: Iterable[TextIOWrapper]) -> Dict[str, str]:
    try:
        return {io_wrapper.name: io_wrapper.read() for io_wrapper in files}
    finally:
        for io_wrapper in files:
            io_wrapper.close()


def parse_grammar(file_name: str, content: str, strict: bool, stderr) -> SymbolTable:
    try:
        return load(content.splitlines(), strict=strict)
    except GrammarError as err:
        print(
            f"sentgen generate: error: could not parse grammar file {file_name} "
            + f"({err})",
            file=stderr,
        )
        sys.exit(DATA_FORMAT_ERROR)


def create_interactive_parser(subparsers, stdout, stderr, stdin):
    parser = subparsers.add_parser(
        "interactive",
        help="prompt for grammar files and print random sentences",
        description="""
Repeatedly asks for the name of a grammar file in the grammars directory and
prints random sentences generated from it. Enter an empty name to quit.""",
    )
    parser.set_defaults(func=partial(interactive, stdout, stderr, stdin, parser))

    grammars_dir_arg(parser)
    extension_arg(parser)
    num_sentences_arg(parser)
    seed_arg(parser)
    max_depth_arg(parser)
    strict_arg(parser)
    log_level_arg(parser)


def create_generate_parser(subparsers, stdout, stderr):
    parser = subparsers.add_parser(
        "generate",
        help="print random sentences from the given grammar files",
        description="""
Prints random sentences, one per line, for each of the given grammar files.""",
    )
    parser.set_defaults(func=partial(generate, stdout, stderr, parser))

    parser.add_argument(
        "files",
        nargs="+",
        metavar="FILE",
        type=argparse.FileType("r", encoding="utf-8"),
        help="grammar files",
    )

    num_sentences_arg(parser)
    seed_arg(parser)
    max_depth_arg(parser)
    strict_arg(parser)
    log_level_arg(parser)


def create_dump_config_parser(subparsers, stdout, stderr):
    parser = subparsers.add_parser(
        "dump-config",
        help="print the default .sentgenrc configuration",
        description="""
Prints the default configuration file bundled with sentgen. Place a modified
copy in the current working directory or your home directory to change the
defaults of command line options.""",
    )
    parser.set_defaults(func=partial(dump_config, stdout, stderr, parser))

    parser.add_argument(
        "-o",
        "--output-file",
        help="write the configuration to this file instead of the console",
    )


def log_level_arg(parser):
    command = parser.prog.split(" ")[-1]

    parser.add_argument(
        "-l",
        "--log-level",
        choices=["ERROR", "WARNING", "INFO", "DEBUG"],
        default=get_default(sys.stderr, command, "--log-level").value_or(None),
        help="set the logging level",
    )


def num_sentences_arg(parser):
    command = parser.prog.split(" ")[-1]

    parser.add_argument(
        "-n",
        "--num-sentences",
        type=int,
        default=get_default(sys.stderr, command, "--num-sentences").value_or(3),
        help="the number of sentences to generate per grammar",
    )


def seed_arg(parser):
    command = parser.prog.split(" ")[-1]

    parser.add_argument(
        "--seed",
        type=int,
        default=get_default(sys.stderr, command, "--seed").value_or(None),
        help="seed for the random number generator, for reproducible output",
    )


def max_depth_arg(parser):
    command = parser.prog.split(" ")[-1]

    parser.add_argument(
        "--max-depth",
        type=int,
        default=get_default(sys.stderr, command, "--max-depth").value_or(None),
        help="""
the number of expansion rounds after which a sentence is considered to run into
an endless cycle. Non-positive values disable this check""",
    )


def strict_arg(parser):
    command = parser.prog.split(" ")[-1]

    parser.add_argument(
        "--strict",
        action="store_true",
        default=get_default(sys.stderr, command, "--strict").value_or(False),
        help="""
reject nonterminal declarations that are not followed by a number of expansions
instead of skipping them""",
    )


def grammars_dir_arg(parser):
    command = parser.prog.split(" ")[-1]

    parser.add_argument(
        "-d",
        "--grammars-dir",
        default=get_default(sys.stderr, command, "--grammars-dir").value_or(
            "grammars"
        ),
        help="the directory containing the grammar files",
    )


def extension_arg(parser):
    command = parser.prog.split(" ")[-1]

    parser.add_argument(
        "-e",
        "--extension",
        default=get_default(sys.stderr, command, "--extension").value_or(".g"),
        help="the file extension appended to grammar names lacking it",
    )


@lru_cache
def read_sentgen_rc_defaults(
    content: Maybe[str] = Nothing,
) -> Dict[str, Dict[str, str | int | float | bool]]:
    """
    Attempts to read a `.sentgenrc` configuration from the following sources, in
    the given order:

    1. The `content` parameter
    2. The file `./.sentgenrc` (in the current working directory)
    3. The file `~/.sentgenrc` (in the current user's home directory)
    4. The file `resources/.sentgenrc` (bundled with sentgen)

    Returns a configuration dictionary. The keys are sentgen commands or "default"
    for a fallback; the values are dictionaries from command line parameters to
    default values. Defaults specified in configuration sources earlier in the list
    take precedence in case of conflicts.

    :param content: An optional TOML configuration string (not a path!).
    :return: The configuration dictionary.
    """

    sources: List[str] = []
    content.map(sources.append)

    dirs = (os.getcwd(), pathlib.Path.home())
    candidate_locations = [os.path.join(dir, ".sentgenrc") for dir in dirs]
    sources.extend(
        [
            pathlib.Path(location).read_text()
            for location in candidate_locations
            if os.path.exists(location)
        ]
    )

    sources.append(get_sentgen_resource_file_content("resources/.sentgenrc"))

    try:
        all_defaults = [toml.loads(source).get("defaults", {}) for source in sources]
    except toml.TomlDecodeError as err:
        raise RuntimeError(f"invalid TOML: {err}")

    result: Dict[str, Dict[str, str | int | float | bool]] = {}

    for defaults in all_defaults:
        # Expecting something like
        #
        # {
        #     "default": [{"--log-level": "WARNING"}],
        #     "interactive": [{"--grammars-dir": "grammars"}],
        #     ...
        # }

        if (
            not isinstance(defaults, dict)
            or any(not isinstance(key, str) for key in defaults)
            or not all(
                isinstance(value, list)
                and len(value) == 1
                and isinstance(value[0], dict)
                and all(isinstance(inner_key, str) for inner_key in value[0])
                and all(
                    isinstance(inner_value, (str, int, float, bool))
                    for inner_value in value[0].values()
                )
                for value in defaults.values()
            )
        ):
            raise RuntimeError(
                "Unexpected .sentgenrc format: defaults should be a "
                + "non-nested array of tables"
            )

        for key, value in defaults.items():
            for inner_key, inner_value in value[0].items():
                result.setdefault(key, {}).setdefault(inner_key, inner_value)

    return result


def get_default(
    stderr, command: str, argument: str, content: Maybe[str] = Nothing
) -> Maybe[str | int | float | bool]:
    try:
        config = read_sentgen_rc_defaults(content)
    except RuntimeError as err:
        print(
            f"sentgen {command}: error: could not load .sentgenrc ({err})",
            file=stderr,
        )
        sys.exit(1)

    default = config.get("default", {}).get(argument, None)
    return Maybe.from_optional(config.get(command, {}).get(argument, default))


if __name__ == "__main__":
    main()
