#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Paul Tiffany
# Project: cmdbind - Declarative command-line binding

"""
cmdbind - Scatter option and parameter registrations, bind them in one parse.

Each part of a program registers only the options ("--log takes one argument")
and positional parameters ("parameter 1 is FromFile") it cares about. A single
parse call later populates every registered descriptor from the command line.

Syntax accepted:
    mycopy.exe -R --overwrite fileA.txt -pat fileB.txt --log log.txt

Arguments are separated by spaces. Quote an argument with ' or " to embed
spaces, and use \\' or \\" for a literal quote. Combined short flags such as
-pat expand to -p -a -t; only the last of them receives option arguments.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

# Project metadata (also embedded in reports)
__version__ = "1.0.0"
__license__ = "MIT"

# --- Configuration ---
QUOTES = ("'", '"')
DEFAULT_PROGRAM = "program"
UNKNOWN_POLICIES = ("drop", "strict", "keep")

PROFILES = {
    "permissive": {"unknown": "drop", "strict_quotes": False},
    "strict": {"unknown": "strict", "strict_quotes": True},
    "keep": {"unknown": "keep", "strict_quotes": False},
}

SYNTAX_HELP = """
Arguments are separated by spaces. Enclose an argument in single or double
quotes if it contains a space, and use \\' or \\" to put a quote inside it.

An argument is either an option or a parameter. An option is a flag given
with one or two hyphens followed by a fixed number of option arguments. A
parameter is a single string identified by its position.

Example:
mycopy.exe -R --overwrite fileA.txt -pat fileB.txt --log log.txt

Here fileA.txt is parameter 1 and fileB.txt is parameter 2. Options may
appear in any order. Single character flags may be combined: -pat expands to
-p -a -t, and only the last flag receives option arguments. An option may be
repeated, eg. -i filea.txt -i fileb.txt.
"""

# --- Errors ---


class CmdbindError(Exception):
    """Base exception for cmdbind operations."""


class RegistrationError(CmdbindError):
    """An option or parameter was registered with invalid settings."""


class MalformedOptionError(CmdbindError):
    """A matched option needs more arguments than the command line holds."""

    def __init__(self, token: str, arity: int, available: int):
        self.token = token
        self.arity = arity
        self.available = available
        super().__init__(
            f"Option '{token}' expects {arity} argument(s) but only {available} remain"
        )


class UnterminatedQuoteError(CmdbindError):
    """The command line ends inside a quoted region."""


class UnknownOptionError(CmdbindError):
    """A hyphen-prefixed token matches no registered option."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Unknown option '{token}'")


# --- Descriptors ---


class Option:
    """A named switch consuming a fixed number of trailing arguments."""

    def __init__(
        self,
        short_name: Optional[str] = None,
        long_name: Optional[str] = None,
        arity: int = 0,
        description: str = "",
    ):
        self.short_name = short_name or None
        self.long_name = long_name or None
        self._arity = arity
        self.description = description or ""
        self.args: list[str] = []
        self.present = False

    @property
    def arity(self) -> int:
        return self._arity

    @property
    def forms(self) -> list[str]:
        """Token spellings this option answers to."""
        forms = []
        if self.long_name:
            forms.append("--" + self.long_name)
        if self.short_name:
            forms.append("-" + self.short_name)
        return forms

    def arg(self, n: int) -> str:
        """Return the n-th (1-based) collected argument, or "" if missing."""
        if 1 <= n <= len(self.args):
            return self.args[n - 1]
        return ""

    def __repr__(self) -> str:
        return (
            f"Option(short_name={self.short_name!r}, long_name={self.long_name!r}, "
            f"arity={self.arity}, present={self.present}, args={self.args!r})"
        )


class Parameter:
    """A positional argument identified by its 1-based index."""

    def __init__(self, index: int, description: str = ""):
        self.index = index
        self.description = description or ""
        self.value = ""

    def __repr__(self) -> str:
        return f"Parameter(index={self.index}, value={self.value!r})"


class Registry:
    """Ordered option/parameter descriptors plus lookups by form and index.

    Register everything first, then parse once. Parsing does not clear earlier
    results: a second parse appends to each option's args. Call reset() or
    build a fresh Registry for a clean parse.
    """

    def __init__(self, program: str = ""):
        self.program = program
        self.options: list[Option] = []
        self.parameters: list[Parameter] = []
        self._by_form: dict[str, list[Option]] = {}
        self._by_index: dict[int, list[Parameter]] = {}

    def register_option(
        self,
        short_name: Optional[str] = None,
        long_name: Optional[str] = None,
        arity: int = 0,
        description: str = "",
    ) -> Option:
        _check_option_names(short_name, long_name)
        if isinstance(arity, bool) or not isinstance(arity, int) or arity < 0:
            raise RegistrationError(f"Option arity must be a non-negative int, got {arity!r}")

        option = Option(short_name, long_name, arity, description)
        self.options.append(option)
        for form in option.forms:
            self._by_form.setdefault(form, []).append(option)
        return option

    def register_parameter(self, index: int, description: str = "") -> Parameter:
        if isinstance(index, bool) or not isinstance(index, int) or index < 1:
            raise RegistrationError(f"Parameter index must be an int >= 1, got {index!r}")

        param = Parameter(index, description)
        self.parameters.append(param)
        self._by_index.setdefault(index, []).append(param)
        return param

    def options_for(self, token: str) -> list[Option]:
        """Return every option registered under the exact token spelling."""
        return list(self._by_form.get(token, ()))

    def parameters_at(self, index: int) -> list[Parameter]:
        return list(self._by_index.get(index, ()))

    def reset(self) -> None:
        """Clear bound state on every descriptor; registrations are kept."""
        for option in self.options:
            option.present = False
            option.args = []
        for param in self.parameters:
            param.value = ""


def _check_option_names(short_name: Optional[str], long_name: Optional[str]) -> None:
    if not short_name and not long_name:
        raise RegistrationError("Option needs a short name, a long name, or both")
    if short_name:
        if len(short_name) != 1 or short_name == "-" or short_name.isspace():
            raise RegistrationError(f"Invalid short option name {short_name!r}")
    if long_name:
        if long_name.startswith("-") or any(ch.isspace() for ch in long_name):
            raise RegistrationError(f"Invalid long option name {long_name!r}")


# --- Tokenizing ---


def join_argv(args: Sequence[str]) -> str:
    """Join OS arguments into one line, skipping empty ones."""
    return " ".join(arg for arg in args if arg)


def tokenize(line: str, strict_quotes: bool = False) -> list[str]:
    """Split a command line on unquoted spaces.

    Either quote character toggles a single "inside" state and is stripped.
    \\' and \\" yield literal quotes. Runs of unquoted spaces separate tokens
    without producing empty ones, while an explicitly quoted empty string
    ("") is kept as an empty token. An unbalanced quote protects the rest of
    the line unless strict_quotes is set.
    """
    tokens: list[str] = []
    current: list[str] = []
    started = False
    inside = False
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == "\\" and line[i + 1 : i + 2] in QUOTES:
            current.append(line[i + 1])
            started = True
            i += 2
            continue

        if ch in QUOTES:
            inside = not inside
            started = True
        elif ch == " " and not inside:
            if started:
                tokens.append("".join(current))
            current, started = [], False
        else:
            current.append(ch)
            started = True
        i += 1

    if inside and strict_quotes:
        raise UnterminatedQuoteError(f"Unterminated quote in command line: {line!r}")
    if started:
        tokens.append("".join(current))
    return tokens


def _expand(tokens: Sequence[str]) -> tuple[list[str], frozenset[int]]:
    """Expand combined flags, also returning positions that take no arguments.

    Every flag of a combined group except the last is argless: -at x gives
    -a no arguments even when its option has a nonzero arity.
    """
    expanded: list[str] = []
    argless: set[int] = set()
    for token in tokens:
        if len(token) < 2 or not token.startswith("-") or token.startswith("--"):
            expanded.append(token)
            continue
        for flag in token[1:]:
            argless.add(len(expanded))
            expanded.append("-" + flag)
        argless.discard(len(expanded) - 1)
    return expanded, frozenset(argless)


def expand_flags(tokens: Sequence[str]) -> list[str]:
    """Expand combined single-hyphen flags: -pat becomes -p -a -t."""
    return _expand(tokens)[0]


# --- Binding ---


def _scan(registry: Registry, tokens: Sequence[str], argless: frozenset[int] = frozenset()):
    """Yield (position, matching options, consumed args) for every token.

    Non-option tokens come back with an empty option list and no args. When
    several options match one token, the largest arity decides how many
    tokens are consumed; each option takes its own arity from that span.
    """
    i = 0
    while i < len(tokens):
        matches = registry.options_for(tokens[i])
        if not matches:
            yield i, [], []
            i += 1
            continue

        width = 0 if i in argless else max(option.arity for option in matches)
        available = len(tokens) - i - 1
        if width > available:
            raise MalformedOptionError(tokens[i], width, available)
        yield i, matches, list(tokens[i + 1 : i + 1 + width])
        i += 1 + width


def bind_options(
    registry: Registry, tokens: Sequence[str], argless: frozenset[int] = frozenset()
) -> None:
    """Mark matched options present and append their arguments.

    Positions in `argless` mark flags that were expanded from a combined
    group and are bound without arguments.
    """
    plan = [
        (matches, span) for _, matches, span in _scan(registry, tokens, argless) if matches
    ]
    for matches, span in plan:
        for option in matches:
            option.present = True
            option.args.extend(span[: option.arity])


def extract_positionals(
    registry: Registry,
    tokens: Sequence[str],
    unknown: str = "drop",
    argless: frozenset[int] = frozenset(),
) -> list[str]:
    """Return tokens left over once options and their arguments are removed.

    A hyphen-prefixed token that matches no option is dropped, raises
    UnknownOptionError, or is kept as a positional, per `unknown`.
    """
    if unknown not in UNKNOWN_POLICIES:
        raise CmdbindError(f"Unknown option policy '{unknown}'")

    positionals: list[str] = []
    for i, matches, _ in _scan(registry, tokens, argless):
        token = tokens[i]
        if matches:
            continue
        if token.startswith("-"):
            if unknown == "strict":
                raise UnknownOptionError(token)
            if unknown == "drop":
                continue
        positionals.append(token)
    return positionals


def bind_parameters(registry: Registry, positionals: Sequence[str]) -> None:
    for number, value in enumerate(positionals, start=1):
        for param in registry.parameters_at(number):
            param.value = value


def parse_line(
    registry: Registry,
    line: str,
    unknown: str = "drop",
    strict_quotes: bool = False,
) -> list[str]:
    """Parse one command-line string into the registry.

    Returns the positional values in order. Nothing is mutated if any error
    is raised.
    """
    tokens, argless = _expand(tokenize(line, strict_quotes=strict_quotes))
    positionals = extract_positionals(registry, tokens, unknown=unknown, argless=argless)
    bind_options(registry, tokens, argless)
    bind_parameters(registry, positionals)
    return positionals


def parse_argv(
    registry: Registry,
    argv: Optional[Sequence[str]] = None,
    unknown: str = "drop",
    strict_quotes: bool = False,
) -> list[str]:
    """Parse an OS-style argument vector; argv[0] is the program name."""
    argv = sys.argv if argv is None else argv
    if not argv:
        return []
    registry.program = argv[0]
    return parse_line(registry, join_argv(argv[1:]), unknown=unknown, strict_quotes=strict_quotes)


# --- Usage ---


def format_usage(registry: Registry) -> str:
    """Render the usage listing for every registered descriptor."""
    program = Path(registry.program).name if registry.program else DEFAULT_PROGRAM

    seen: set[int] = set()
    names = []
    for param in registry.parameters:
        if param.index in seen:
            continue
        seen.add(param.index)
        names.append(param.description or f"param{param.index}")

    lines = [f"USAGE: {program} [options] {' '.join(names)}".rstrip(), SYNTAX_HELP, "Options:"]
    for option in registry.options:
        placeholders = "".join(f"arg{n} " for n in range(1, option.arity + 1))
        for form in option.forms:
            lines.append(f"{form} {placeholders}: {option.description}")
    return "\n".join(lines) + "\n"


def print_usage(registry: Registry, file=None) -> None:
    print(format_usage(registry), file=file or sys.stdout)


# --- CLI and Main Execution ---


def parse_option_spec(spec: str) -> tuple[Optional[str], Optional[str], int, str]:
    """Split 'short:long:arity[:description]' into registration arguments."""
    parts = spec.split(":", 3)
    if len(parts) < 3:
        raise CmdbindError(f"Option spec '{spec}' must look like short:long:arity[:description]")
    short, long, arity = parts[0], parts[1], parts[2]
    try:
        count = int(arity)
    except ValueError as e:
        raise CmdbindError(f"Option spec '{spec}' has a non-integer arity") from e
    return short or None, long or None, count, parts[3] if len(parts) > 3 else ""


def parse_param_spec(spec: str) -> tuple[int, str]:
    """Split 'index[:description]' into registration arguments."""
    index, _, description = spec.partition(":")
    try:
        return int(index), description
    except ValueError as e:
        raise CmdbindError(f"Parameter spec '{spec}' has a non-integer index") from e


def build_report(
    registry: Registry, tokens: list[str], positionals: list[str], profile: str
) -> dict[str, Any]:
    """Describe the bound registry as JSON-ready data."""
    options = [
        {
            "short": option.short_name,
            "long": option.long_name,
            "arity": option.arity,
            "description": option.description,
            "present": option.present,
            "args": list(option.args),
        }
        for option in registry.options
    ]
    parameters = [
        {"index": p.index, "description": p.description, "value": p.value}
        for p in registry.parameters
    ]
    return {
        "meta": {
            "tool": "cmdbind",
            "version": __version__,
            "program": registry.program,
            "profile": profile,
            "summary": {
                "tokens": len(tokens),
                "options_present": sum(1 for o in registry.options if o.present),
                "parameters_bound": sum(1 for p in registry.parameters if p.value),
            },
        },
        "tokens": tokens,
        "positionals": positionals,
        "options": options,
        "parameters": parameters,
    }


def write_report(path: Path, data: dict[str, Any]) -> None:
    """Write a report as a JSON file."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    except (OSError, PermissionError) as e:
        raise CmdbindError(f"Error writing {path}: {e}") from e


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Show how a command line binds to registered options and parameters"
    )
    parser.add_argument(
        "argv",
        nargs="*",
        default=[],
        help="Command line to bind, program name first (put after --)",
    )
    parser.add_argument(
        "-O",
        "--option",
        action="append",
        help="Register an option as short:long:arity[:description] (repeatable)",
    )
    parser.add_argument(
        "-P", "--param", action="append", help="Register a parameter as index[:description]"
    )
    parser.add_argument("--line", help="Pre-built command line to bind instead of argv")
    parser.add_argument(
        "--profile", choices=list(PROFILES.keys()), default="permissive", help="Parse profile"
    )
    parser.add_argument("--usage", action="store_true", help="Print usage for the registrations")
    parser.add_argument("-o", "--out", help="Write the JSON report to a file")
    parser.add_argument("--version", action="version", version=f"cmdbind {__version__}")
    parser.add_argument("--about", action="store_true", help="Show project info and exit")
    return parser


def main() -> int:  # noqa: PLR0911
    """Run the main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if args.about:
        print(f"cmdbind {__version__} ({__license__})\n{__doc__.strip().splitlines()[0]}")
        return 0

    try:
        # --- Registration ---
        registry = Registry()
        for spec in args.option or []:
            registry.register_option(*parse_option_spec(spec))
        for spec in args.param or []:
            registry.register_parameter(*parse_param_spec(spec))

        if args.usage:
            registry.program = args.argv[0] if args.argv else ""
            print_usage(registry)
            return 0

        # --- Parse ---
        profile = PROFILES[args.profile]
        if args.line is not None:
            line = args.line
            positionals = parse_line(registry, line, **profile)
        else:
            line = join_argv(args.argv[1:])
            positionals = parse_argv(registry, args.argv, **profile)
        tokens = expand_flags(tokenize(line))

        # --- Report ---
        data = build_report(registry, tokens, positionals, args.profile)
        if args.out:
            out_path = Path(args.out)
            write_report(out_path, data)
            s = data["meta"]["summary"]
            print(f"✓ Report saved to {out_path}")
            print(
                f"  Tokens: {s['tokens']}  "
                f"Options present: {s['options_present']}  "
                f"Parameters bound: {s['parameters_bound']}"
            )
        else:
            print(json.dumps(data, indent=2, ensure_ascii=False))
        return 0

    except CmdbindError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nCancelled by user", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        return 1


def cli_entrypoint() -> None:
    """Console entry point (kept tiny so tests can patch sys.exit)."""
    sys.exit(main())


if __name__ == "__main__":
    cli_entrypoint()
