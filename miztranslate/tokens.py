"""Quoted literal scanning, addressing and rewriting for Lua script lines."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, List, Mapping, Optional, Sequence, Tuple

from .structures import DEFAULT_IDENTIFIERS, LiteralToken, ValueIdentifier

QUOTE_CHARS = ("\"", "'")
ESCAPE_CHAR = "\\"
# Escape units a Lua short string accepts after a backslash.
ESCAPE_UNIT_PATTERN = re.compile(
    r"\\(?:[abfnrtvz\\\"']|[0-9]{1,3}|x[0-9A-Fa-f]{2}|u\{[0-9A-Fa-f]+\})"
)


@dataclass(frozen=True)
class Assignment:
    """A recognised ``<identifier> = <expression>`` match within one line."""

    identifier: ValueIdentifier
    expression: str
    expression_start: int


@lru_cache(maxsize=None)
def _assignment_pattern(name: str) -> re.Pattern[str]:
    # Greedy rest-of-line capture; ``==`` is a comparison, not an assignment.
    return re.compile(rf"\b{re.escape(name)}\s*=(?!=)\s*(?P<expr>.+)")


def iter_literals(text: str) -> Iterator[LiteralToken]:
    """Yield every top-level quoted literal of ``text`` from left to right.

    A literal opens on ``"`` or ``'`` and closes on the next unescaped quote of
    the same style. ``\\x`` is consumed as a unit and never closes a literal.
    Scanning stops silently at the first unterminated literal.
    """

    index = 0
    length = len(text)
    while index < length:
        quote = text[index]
        if quote not in QUOTE_CHARS:
            index += 1
            continue

        cursor = index + 1
        while cursor < length:
            char = text[cursor]
            if char == ESCAPE_CHAR:
                cursor += 2
                continue
            if char == quote:
                break
            cursor += 1

        if cursor >= length:
            return

        yield LiteralToken(
            start=index,
            end=cursor + 1,
            content=text[index + 1 : cursor],
            quote=quote,
        )
        index = cursor + 1


def find_assignment(
    line: str,
    identifiers: Sequence[ValueIdentifier] = DEFAULT_IDENTIFIERS,
) -> Optional[Assignment]:
    """Return the leftmost identifier assignment of ``line``.

    Identifier order only breaks ties between matches at the same position.
    """

    if not line or not line.strip():
        return None

    best: Optional[Tuple[ValueIdentifier, re.Match[str]]] = None
    for identifier in identifiers:
        match = _assignment_pattern(identifier.name).search(line)
        if match and (best is None or match.start() < best[1].start()):
            best = (identifier, match)
    if best is None:
        return None

    identifier, match = best
    return Assignment(
        identifier=identifier,
        expression=match.group("expr"),
        expression_start=match.start("expr"),
    )


def addressable_literals(
    line: str,
    identifiers: Sequence[ValueIdentifier] = DEFAULT_IDENTIFIERS,
) -> List[LiteralToken]:
    """Return the non-blank literals of the line's value expression.

    The position of a literal in the returned list is its dense index. Spans
    are relative to the line.
    """

    assignment = find_assignment(line, identifiers)
    if assignment is None or assignment.identifier.call_form:
        # TODO: read string arguments of call-form identifiers such as
        # trigger.action.outText("...", 10).
        return []

    offset = assignment.expression_start
    return [
        LiteralToken(
            start=token.start + offset,
            end=token.end + offset,
            content=token.content,
            quote=token.quote,
        )
        for token in iter_literals(assignment.expression)
        if not token.is_blank
    ]


def extract_line_tokens(
    line: str,
    identifiers: Sequence[ValueIdentifier] = DEFAULT_IDENTIFIERS,
) -> List[str]:
    """Return the literal contents of a line in dense index order."""

    return [token.content for token in addressable_literals(line, identifiers)]


def _is_valid_escape(unit: str) -> bool:
    if unit[1:].isdigit():
        return int(unit[1:]) <= 255
    return True


def escape_literal_content(text: str, quote: str) -> str:
    """Make ``text`` safe to place between two ``quote`` characters.

    Valid Lua escape units already present in ``text`` are kept as they are;
    any other backslash is doubled so the literal still reads back.
    """

    parts: List[str] = []
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if char == ESCAPE_CHAR:
            following = text[index + 1 : index + 2]
            if following == "\n":
                parts.append("\\n")
                index += 2
                continue
            if following == "\r":
                parts.append("\\r")
                index += 2
                continue
            match = ESCAPE_UNIT_PATTERN.match(text, index)
            if match and _is_valid_escape(match.group(0)):
                parts.append(match.group(0))
                index = match.end()
                continue
            parts.append(ESCAPE_CHAR * 2)
            index += 1
            continue
        if char == "\n":
            parts.append("\\n")
        elif char == "\r":
            parts.append("\\r")
        elif char == quote:
            parts.append(ESCAPE_CHAR + quote)
        else:
            parts.append(char)
        index += 1
    return "".join(parts)


def rewrite_line(
    line: str,
    replacements: Mapping[int, str],
    identifiers: Sequence[ValueIdentifier] = DEFAULT_IDENTIFIERS,
) -> Optional[str]:
    """Replace the addressed literals of ``line``.

    ``replacements`` maps dense literal indices to new content. Returns
    ``None`` when nothing applies, otherwise the rewritten line. Text outside
    the replaced literal contents is copied verbatim.
    """

    if not replacements:
        return None

    tokens = addressable_literals(line, identifiers)
    if not tokens:
        return None

    parts: List[str] = []
    cursor = 0
    for index, token in enumerate(tokens):
        replacement = replacements.get(index)
        if replacement is None:
            continue
        parts.append(line[cursor : token.content_start])
        parts.append(escape_literal_content(replacement, token.quote))
        cursor = token.content_end
    parts.append(line[cursor:])
    return "".join(parts)
