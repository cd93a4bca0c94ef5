"""Reading and writing the mission dictionary table literal."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Tuple

from .errors import DictionaryFormatError

DEFAULT_TABLE_NAME = "dictionary"

NAME_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
FIELD_NAME_PATTERN = re.compile(r"(?P<name>[A-Za-z_][A-Za-z0-9_]*)\s*=(?!=)")
NUMBER_PATTERN = re.compile(
    r"-?(?:0[xX][0-9a-fA-F]*(?:\.[0-9a-fA-F]*)?(?:[pP][+-]?\d+)?"
    r"|\d+\.?\d*(?:[eE][+-]?\d+)?"
    r"|\.\d+(?:[eE][+-]?\d+)?)"
)
LONG_BRACKET_PATTERN = re.compile(r"\[(?P<level>=*)\[")
DECIMAL_ESCAPE_PATTERN = re.compile(r"\d{1,3}")
HEX_ESCAPE_PATTERN = re.compile(r"x(?P<hex>[0-9a-fA-F]{2})")
UNICODE_ESCAPE_PATTERN = re.compile(r"u\{(?P<hex>[0-9a-fA-F]+)\}")

SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "\\": "\\",
    "\"": "\"",
    "'": "'",
}

LUA_CONSTANTS = {"true": True, "false": False, "nil": None}


class NestedTable(list):
    """Field pairs of a nested table value; never a translatable string."""


def _table_assignment_pattern(table_name: str) -> re.Pattern[str]:
    return re.compile(rf"(?<![\w.]){re.escape(table_name)}\s*=\s*\{{")


class _TableReader:
    """Minimal reader for Lua table constructors made of literal values."""

    def __init__(self, source: str, position: int) -> None:
        self.source = source
        self.position = position
        self.length = len(source)

    def error(self, message: str) -> DictionaryFormatError:
        line = self.source.count("\n", 0, self.position) + 1
        return DictionaryFormatError(f"{message} (line {line})")

    def peek(self, offset: int = 0) -> str:
        index = self.position + offset
        return self.source[index] if index < self.length else ""

    def expect(self, char: str) -> None:
        self.skip_space()
        if self.peek() != char:
            found = self.peek() or "end of input"
            raise self.error(f"Expected '{char}' but found '{found}'")
        self.position += 1

    def skip_space(self) -> None:
        while self.position < self.length:
            char = self.source[self.position]
            if char.isspace():
                self.position += 1
                continue
            if self.source.startswith("--", self.position):
                self.position += 2
                bracket = LONG_BRACKET_PATTERN.match(self.source, self.position)
                if bracket:
                    self._read_long_bracket(bracket)
                    continue
                newline = self.source.find("\n", self.position)
                self.position = self.length if newline == -1 else newline + 1
                continue
            break

    def read_table(self) -> NestedTable:
        self.expect("{")
        fields = NestedTable()
        array_index = 1
        while True:
            self.skip_space()
            char = self.peek()
            if not char:
                raise self.error("Unterminated table")
            if char == "}":
                self.position += 1
                return fields

            if char == "[" and not LONG_BRACKET_PATTERN.match(self.source, self.position):
                self.position += 1
                key = self.read_value()
                self.expect("]")
                self.expect("=")
                value = self.read_value()
            else:
                named = FIELD_NAME_PATTERN.match(self.source, self.position)
                if named and named.group("name") not in LUA_CONSTANTS:
                    self.position = named.end()
                    key = named.group("name")
                    value = self.read_value()
                else:
                    key = array_index
                    array_index += 1
                    value = self.read_value()
            fields.append((key, value))

            self.skip_space()
            separator = self.peek()
            if separator in (",", ";"):
                self.position += 1
            elif separator != "}":
                found = separator or "end of input"
                raise self.error(f"Expected ',' or '}}' but found '{found}'")

    def read_value(self) -> Any:
        self.skip_space()
        char = self.peek()
        if char in ("\"", "'"):
            return self._read_short_string(char)
        if char == "{":
            return self.read_table()
        if char == "[":
            bracket = LONG_BRACKET_PATTERN.match(self.source, self.position)
            if bracket:
                return self._read_long_bracket(bracket)
        number = NUMBER_PATTERN.match(self.source, self.position)
        if number:
            self.position = number.end()
            return _parse_number(number.group(0))
        name = NAME_PATTERN.match(self.source, self.position)
        if name and name.group(0) in LUA_CONSTANTS:
            self.position = name.end()
            return LUA_CONSTANTS[name.group(0)]
        found = char or "end of input"
        raise self.error(f"Unsupported table value starting with '{found}'")

    def _read_long_bracket(self, bracket: re.Match[str]) -> str:
        closing = "]" + bracket.group("level") + "]"
        start = bracket.end()
        end = self.source.find(closing, start)
        if end == -1:
            raise self.error("Unterminated long bracket")
        self.position = end + len(closing)
        content = self.source[start:end]
        if content.startswith("\r\n"):
            return content[2:]
        if content.startswith("\n"):
            return content[1:]
        return content

    def _read_short_string(self, quote: str) -> str:
        self.position += 1
        parts: List[str] = []
        pending = bytearray()

        def flush() -> None:
            if pending:
                parts.append(pending.decode("utf-8", "surrogateescape"))
                pending.clear()

        while True:
            if self.position >= self.length:
                raise self.error("Unterminated string")
            char = self.source[self.position]
            if char == quote:
                self.position += 1
                flush()
                return "".join(parts)
            if char == "\n":
                raise self.error("Unescaped line break in string")
            if char != "\\":
                flush()
                parts.append(char)
                self.position += 1
                continue

            self.position += 1
            escaped = self.peek()
            if escaped in SIMPLE_ESCAPES:
                flush()
                parts.append(SIMPLE_ESCAPES[escaped])
                self.position += 1
            elif escaped in ("\n", "\r"):
                flush()
                parts.append("\n")
                self.position += 1
                following = self.peek()
                if following in ("\n", "\r") and following != escaped:
                    self.position += 1
            elif escaped == "z":
                self.position += 1
                while self.position < self.length and self.source[self.position].isspace():
                    self.position += 1
            elif escaped.isdigit():
                digits = DECIMAL_ESCAPE_PATTERN.match(self.source, self.position)
                value = int(digits.group(0))
                if value > 255:
                    raise self.error("Decimal escape too large")
                pending.append(value)
                self.position = digits.end()
            elif escaped == "x":
                hex_escape = HEX_ESCAPE_PATTERN.match(self.source, self.position)
                if not hex_escape:
                    raise self.error("Invalid hexadecimal escape")
                pending.append(int(hex_escape.group("hex"), 16))
                self.position = hex_escape.end()
            elif escaped == "u":
                unicode_escape = UNICODE_ESCAPE_PATTERN.match(self.source, self.position)
                if not unicode_escape:
                    raise self.error("Invalid unicode escape")
                flush()
                parts.append(chr(int(unicode_escape.group("hex"), 16)))
                self.position = unicode_escape.end()
            else:
                raise self.error(f"Invalid escape sequence '\\{escaped}'")


def _parse_number(text: str) -> int | float:
    negative = text.startswith("-")
    body = text[1:] if negative else text
    lowered = body.lower()
    if lowered.startswith("0x"):
        if "." in lowered or "p" in lowered:
            value: int | float = float.fromhex(body)
        else:
            value = int(body, 16)
    elif any(marker in lowered for marker in (".", "e")):
        value = float(body)
    else:
        value = int(body)
    return -value if negative else value


def _as_text(blob: bytes | str) -> str:
    if isinstance(blob, bytes):
        return blob.decode("utf-8-sig", "surrogateescape")
    return blob


def decode_table_fields(
    blob: bytes | str,
    table_name: str = DEFAULT_TABLE_NAME,
) -> List[Tuple[Any, Any]]:
    """Return the raw ``(key, value)`` fields of the named table, in order."""

    text = _as_text(blob)
    match = _table_assignment_pattern(table_name).search(text)
    if not match:
        return []
    reader = _TableReader(text, match.end() - 1)
    return list(reader.read_table())


def decode_dictionary(
    blob: bytes | str | None,
    table_name: str = DEFAULT_TABLE_NAME,
) -> Dict[str, str]:
    """Decode a ``<table_name> = {...}`` blob into a string mapping.

    Fields whose key or value is not a string are ignored. When a key occurs
    more than once the first occurrence is kept.
    """

    if blob is None:
        return {}

    result: Dict[str, str] = {}
    for key, value in decode_table_fields(blob, table_name):
        if not isinstance(key, str) or not isinstance(value, str):
            continue
        if key in result:
            continue
        result[key] = value
    return result


def escape_lua_string(text: str, *, escape_newlines: bool = True) -> str:
    """Escape ``text`` for a double-quoted Lua string."""

    escaped = text.replace("\\", "\\\\").replace("\"", "\\\"")
    if escape_newlines:
        escaped = escaped.replace("\r", "\\r").replace("\n", "\\n")
    return escaped


def encode_dictionary(
    entries: Mapping[str, str],
    table_name: str = DEFAULT_TABLE_NAME,
) -> str:
    """Serialise ``entries`` as a Lua table literal, keeping mapping order."""

    lines = [f"{table_name} = {{\n"]
    for key, value in entries.items():
        lines.append(
            f"    [\"{escape_lua_string(key)}\"] = \"{escape_lua_string(value)}\",\n"
        )
    lines.append("}")
    return "".join(lines)
