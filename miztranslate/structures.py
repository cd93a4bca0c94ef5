"""Core data structures for the mission translator."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict


# address -> text, insertion ordered
EntryMap = Dict[str, str]

_TOKEN_ADDRESS_PATTERN = re.compile(r"^(?P<path>.+)#(?P<line>\d+)@(?P<index>\d+)$")


@dataclass(frozen=True)
class ValueIdentifier:
    """A Lua variable whose assigned value carries translatable text."""

    name: str
    call_form: bool = False


@dataclass(frozen=True)
class LiteralToken:
    """A quoted string literal found in a line of Lua source.

    ``start`` and ``end`` delimit the literal including its quotes, relative to
    the text that was scanned. ``content`` keeps escape sequences verbatim.
    """

    start: int
    end: int
    content: str
    quote: str

    @property
    def is_blank(self) -> bool:
        return not self.content.strip()

    @property
    def content_start(self) -> int:
        return self.start + 1

    @property
    def content_end(self) -> int:
        return self.end - 1


@dataclass(frozen=True, order=True)
class TokenAddress:
    """Address of one literal inside a script resource line."""

    path: str
    line: int
    index: int

    def __str__(self) -> str:
        return f"{self.stem(self.path, self.line)}{self.index}"

    @staticmethod
    def stem(path: str, line: int) -> str:
        """Return the address prefix shared by every literal of one line."""

        return f"{path}#{line}@"

    @classmethod
    def parse(cls, value: str) -> "TokenAddress":
        match = _TOKEN_ADDRESS_PATTERN.match(value)
        if not match:
            raise ValueError(f"Not a token address: {value!r}")
        return cls(
            path=match.group("path"),
            line=int(match.group("line")),
            index=int(match.group("index")),
        )


DEFAULT_IDENTIFIERS = (
    ValueIdentifier("subtitle"),
    ValueIdentifier("outText"),
)
