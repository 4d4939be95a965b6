"""Slash-command tokenizing and option parsing.

``/set-page intro --name "Opening \\"hook\\"" -d 2s`` becomes the command name
``set-page``, the positional ``intro`` and the options ``name`` and
``duration``.
"""

import re
from dataclasses import dataclass, field

from vibecut.exceptions import MissingValueError, UnknownOptionError

_NUMBER = re.compile(r"^-\d+(\.\d+)?%?$")


@dataclass(frozen=True)
class OptionSpec:
    name: str  # key in ParsedArgs.options
    long: str  # "--font-size"
    short: str | None = None  # "-fs"
    takes_value: bool = True
    help: str = ""

    @property
    def aliases(self) -> tuple[str, ...]:
        return (self.long, self.short) if self.short else (self.long,)


@dataclass
class ParsedArgs:
    options: dict[str, str | bool] = field(default_factory=dict)
    positionals: list[str] = field(default_factory=list)

    def get(self, name: str, default: str | None = None) -> str | None:
        value = self.options.get(name, default)
        return value if not isinstance(value, bool) else default

    def flag(self, name: str) -> bool:
        return bool(self.options.get(name, False))

    def has(self, name: str) -> bool:
        return name in self.options

    @property
    def first_positional(self) -> str | None:
        return self.positionals[0] if self.positionals else None


@dataclass(frozen=True)
class ParsedCommand:
    name: str
    args: list[str]


def tokenize(text: str) -> list[str]:
    """Split on spaces; ``"..."`` groups words and ``\\"`` is a literal quote."""
    tokens: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    while i < len(text):
        char = text[i]
        if char == "\\" and i + 1 < len(text) and text[i + 1] == '"':
            current.append('"')
            i += 1
        elif char == '"':
            in_quotes = not in_quotes
        elif char.isspace() and not in_quotes:
            token = "".join(current).strip()
            if token:
                tokens.append(token)
            current = []
        else:
            current.append(char)
        i += 1

    token = "".join(current).strip()
    if token:
        tokens.append(token)
    return tokens


def parse_slash_command(message: str) -> ParsedCommand | None:
    """Return the command in ``message``, or None if it is not a slash command."""
    trimmed = message.strip()
    if not trimmed.startswith("/"):
        return None
    body = trimmed[1:]
    parts = body.split(maxsplit=1)
    if not parts:
        return ParsedCommand(name="", args=[])
    name = parts[0].lower()
    args = tokenize(parts[1]) if len(parts) > 1 else []
    return ParsedCommand(name=name, args=args)


def is_flag(token: str) -> bool:
    """``-x`` / ``--name`` are flags; ``-5`` and ``-0.5`` are values."""
    return token.startswith("-") and len(token) > 1 and not _NUMBER.match(token)


def parse_options(tokens: list[str], specs: list[OptionSpec], usage: str | None = None) -> ParsedArgs:
    """Match ``tokens`` against ``specs``.

    Raises:
        MissingValueError: a value option is the last token or is followed
            by another flag.
        UnknownOptionError: a flag that is not in ``specs``.
    """
    by_alias = {alias: spec for spec in specs for alias in spec.aliases}
    parsed = ParsedArgs()
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if not is_flag(token):
            parsed.positionals.append(token)
            i += 1
            continue

        spec = by_alias.get(token)
        if spec is None:
            raise UnknownOptionError(token, usage)
        if not spec.takes_value:
            parsed.options[spec.name] = True
            i += 1
            continue
        if i + 1 >= len(tokens) or is_flag(tokens[i + 1]):
            raise MissingValueError(token)
        parsed.options[spec.name] = tokens[i + 1]
        i += 2
    return parsed
