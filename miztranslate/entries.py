"""Extraction and reinsertion of translatable entries from mission archives."""

from __future__ import annotations

import re
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple

from .archive import (
    BlobStore,
    DEFAULT_LOCALE,
    check_target_language,
    default_locale_prefix,
    locale_path,
    relocate,
    target_locale_path,
)
from .dictionary import DEFAULT_TABLE_NAME, decode_dictionary, encode_dictionary
from .errors import UnsupportedProviderError, raise_if_cancelled
from .structures import DEFAULT_IDENTIFIERS, EntryMap, TokenAddress, ValueIdentifier
from .tokens import extract_line_tokens, rewrite_line

TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "surrogateescape"

LINE_PATTERN = re.compile(r"([^\r\n]*)(\r\n|\r|\n|$)")


def split_lines(text: str) -> List[Tuple[str, str]]:
    """Split text into ``(content, terminator)`` pairs without losing bytes."""

    lines: List[Tuple[str, str]] = []
    for match in LINE_PATTERN.finditer(text):
        content, terminator = match.group(1), match.group(2)
        if not content and not terminator:
            break
        lines.append((content, terminator))
    return lines


def _decode(data: bytes) -> str:
    return data.decode(TEXT_ENCODING, TEXT_ERRORS)


def _encode(text: str) -> bytes:
    return text.encode(TEXT_ENCODING, TEXT_ERRORS)


class EntriesProvider(ABC):
    """Common base class for entry extraction strategies."""

    name = "Entries Provider"

    @abstractmethod
    def extract_entries(
        self,
        archive: BlobStore,
        cancel_event: Optional[threading.Event] = None,
    ) -> EntryMap:
        """Extract addressed, translatable text from the default locale."""

    @abstractmethod
    def render_entries(
        self,
        archive: BlobStore,
        language_code: str,
        entries: EntryMap,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, bytes]:
        """Build the language-qualified resources for ``entries``.

        Only default-locale resources are read; nothing is written.
        """

    def write_entries(
        self,
        archive: BlobStore,
        language_code: str,
        entries: EntryMap,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[str]:
        """Render and store the translated resources, returning their names."""

        check_target_language(language_code)
        rendered = self.render_entries(
            archive,
            language_code,
            entries,
            cancel_event=cancel_event,
        )
        for name, data in rendered.items():
            archive.write_entry(name, data)
        return list(rendered)


class DictionaryEntriesProvider(EntriesProvider):
    """Entries from the ``l10n/DEFAULT/dictionary`` table, addressed by key."""

    name = "DCS Dictionary Entries Provider"

    def __init__(
        self,
        resource_name: str = "dictionary",
        table_name: str = DEFAULT_TABLE_NAME,
    ) -> None:
        self.resource_name = resource_name
        self.table_name = table_name

    @property
    def source_path(self) -> str:
        return locale_path(DEFAULT_LOCALE, self.resource_name)

    def extract_entries(
        self,
        archive: BlobStore,
        cancel_event: Optional[threading.Event] = None,
    ) -> EntryMap:
        raise_if_cancelled(cancel_event)
        return decode_dictionary(archive.read_entry(self.source_path), self.table_name)

    def render_entries(
        self,
        archive: BlobStore,
        language_code: str,
        entries: EntryMap,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, bytes]:
        raise_if_cancelled(cancel_event)
        blob = archive.read_entry(self.source_path)
        if blob is None:
            return {}

        merged = {
            key: entries.get(key, value)
            for key, value in decode_dictionary(blob, self.table_name).items()
        }
        for key, value in entries.items():
            merged.setdefault(key, value)

        destination = target_locale_path(language_code, self.resource_name)
        return {destination: _encode(encode_dictionary(merged, self.table_name))}


class LuaTokenEntriesProvider(EntriesProvider):
    """Entries from string literals assigned in ``l10n/DEFAULT/*.lua`` scripts."""

    name = "DCS Lua Token Entries Provider"

    def __init__(
        self,
        identifiers: Sequence[ValueIdentifier] = DEFAULT_IDENTIFIERS,
        suffix: str = ".lua",
    ) -> None:
        self.identifiers = tuple(identifiers)
        self.suffix = suffix

    def resource_names(self, archive: BlobStore) -> List[str]:
        return archive.list_entries(default_locale_prefix(), self.suffix)

    def extract_entries(
        self,
        archive: BlobStore,
        cancel_event: Optional[threading.Event] = None,
    ) -> EntryMap:
        result: EntryMap = {}
        for name in self.resource_names(archive):
            data = archive.read_entry(name) or b""
            for line_number, (content, _) in enumerate(split_lines(_decode(data)), start=1):
                raise_if_cancelled(cancel_event)
                tokens = extract_line_tokens(content, self.identifiers)
                for index, token in enumerate(tokens):
                    address = str(TokenAddress(name, line_number, index))
                    result.setdefault(address, token)
        return result

    def render_entries(
        self,
        archive: BlobStore,
        language_code: str,
        entries: EntryMap,
        cancel_event: Optional[threading.Event] = None,
    ) -> Dict[str, bytes]:
        by_line = self._group_by_line(entries)
        rendered: Dict[str, bytes] = {}
        for name in self.resource_names(archive):
            data = archive.read_entry(name) or b""
            output: List[str] = []
            for line_number, (content, terminator) in enumerate(
                split_lines(_decode(data)), start=1
            ):
                raise_if_cancelled(cancel_event)
                replacements = by_line.get((name, line_number))
                rewritten = (
                    rewrite_line(content, replacements, self.identifiers)
                    if replacements
                    else None
                )
                output.append((content if rewritten is None else rewritten) + terminator)
            rendered[relocate(name, language_code)] = _encode("".join(output))
        return rendered

    @staticmethod
    def _group_by_line(entries: EntryMap) -> Dict[Tuple[str, int], Dict[int, str]]:
        grouped: Dict[Tuple[str, int], Dict[int, str]] = {}
        for key, value in entries.items():
            try:
                address = TokenAddress.parse(key)
            except ValueError:
                continue
            grouped.setdefault((address.path, address.line), {})[address.index] = value
        return grouped


ENTRIES_PROVIDERS = {
    "dictionary": DictionaryEntriesProvider,
    "lua": LuaTokenEntriesProvider,
}


def build_entries_providers(names: Sequence[str] | None = None) -> List[EntriesProvider]:
    """Create entries providers by name, keeping the requested order."""

    selected = list(names) if names else list(ENTRIES_PROVIDERS)
    providers: List[EntriesProvider] = []
    for name in selected:
        normalized = name.strip().lower()
        if normalized in {"lua-token", "lua_token", "token", "tokens"}:
            normalized = "lua"
        if normalized in {"dict", "dictionaries"}:
            normalized = "dictionary"
        factory = ENTRIES_PROVIDERS.get(normalized)
        if factory is None:
            raise UnsupportedProviderError(
                f"Unknown entries provider '{name}'. "
                f"Choose from: {', '.join(ENTRIES_PROVIDERS)}."
            )
        providers.append(factory())
    return providers
