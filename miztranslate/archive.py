"""Named-blob access to mission archives."""

from __future__ import annotations

import os
import pathlib
import time
import zipfile
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import (
    ArchiveFormatError,
    ArchiveNotFoundError,
    MizTranslateError,
    TargetLanguageError,
)

DEFAULT_LOCALE = "DEFAULT"
LOCALE_ROOT = "l10n"


def locale_path(language_code: str, relative_name: str = "") -> str:
    """Return the archive path of a resource for one locale folder."""

    return f"{LOCALE_ROOT}/{language_code}/{relative_name}"


def default_locale_prefix() -> str:
    return locale_path(DEFAULT_LOCALE)


def check_target_language(language_code: str) -> str:
    """Return ``language_code`` when it names a folder other than the source locale."""

    if not language_code or language_code.strip().casefold() == DEFAULT_LOCALE.casefold():
        raise TargetLanguageError(
            f"'{language_code}' cannot be a target language: the {DEFAULT_LOCALE} "
            "locale holds the source texts and is never rewritten."
        )
    return language_code


def target_locale_path(language_code: str, relative_name: str) -> str:
    """Like ``locale_path`` but refuses the source locale."""

    return locale_path(check_target_language(language_code), relative_name)


def relocate(name: str, language_code: str) -> str:
    """Map a default-locale resource name onto the ``language_code`` folder."""

    prefix = default_locale_prefix()
    if not name.startswith(prefix):
        raise MizTranslateError(f"'{name}' is not a default-locale resource.")
    return target_locale_path(language_code, name[len(prefix) :])


class BlobStore(ABC):
    """Common base class for archive-like named blob stores."""

    @abstractmethod
    def list_entries(self, prefix: str = "", suffix: str = "") -> List[str]:
        """List entry names that start with ``prefix`` and end with ``suffix``."""

    @abstractmethod
    def read_entry(self, name: str) -> Optional[bytes]:
        """Return the bytes of an entry, or ``None`` when it does not exist."""

    @abstractmethod
    def write_entry(self, name: str, data: bytes) -> None:
        """Create or replace an entry."""

    def close(self, *, commit: bool = True) -> None:
        """Release the store, persisting staged writes when ``commit`` is set."""

    def __enter__(self) -> "BlobStore":
        return self

    def __exit__(self, exc_type, exc, traceback) -> None:
        self.close(commit=exc_type is None)


def _matching(names: Iterable[str], prefix: str, suffix: str) -> List[str]:
    return [
        name
        for name in names
        if name.startswith(prefix) and name.endswith(suffix) and not name.endswith("/")
    ]


class MemoryArchive(BlobStore):
    """Dictionary-backed store, mostly useful for tests."""

    def __init__(self, entries: Mapping[str, bytes] | None = None) -> None:
        self.entries: Dict[str, bytes] = dict(entries or {})

    def list_entries(self, prefix: str = "", suffix: str = "") -> List[str]:
        return _matching(self.entries, prefix, suffix)

    def read_entry(self, name: str) -> Optional[bytes]:
        return self.entries.get(name)

    def write_entry(self, name: str, data: bytes) -> None:
        self.entries[name] = bytes(data)


class MizArchive(BlobStore):
    """Zip-backed ``.miz`` archive.

    The whole archive is loaded on open. Writes are staged in memory and the
    archive is rebuilt next to the original and moved into place on commit.
    Untouched members keep their order, metadata and compression.
    """

    def __init__(self, path: pathlib.Path | str) -> None:
        self.path = pathlib.Path(path)
        if not self.path.is_file():
            raise ArchiveNotFoundError(f"Mission archive not found: {self.path}")

        try:
            with zipfile.ZipFile(self.path, "r") as archive:
                self._members: List[Tuple[zipfile.ZipInfo, bytes]] = [
                    (info, archive.read(info)) for info in archive.infolist()
                ]
        except zipfile.BadZipFile as exc:
            raise ArchiveFormatError(
                f"{self.path} is not a valid mission archive: {exc}"
            ) from exc

        self._contents: Dict[str, bytes] = {
            info.filename: data for info, data in self._members
        }
        self._staged: Dict[str, bytes] = {}
        self.closed = False

    # --- BlobStore API ----------------------------------------------------

    def list_entries(self, prefix: str = "", suffix: str = "") -> List[str]:
        names = [info.filename for info, _ in self._members]
        names.extend(name for name in self._staged if name not in self._contents)
        return _matching(names, prefix, suffix)

    def read_entry(self, name: str) -> Optional[bytes]:
        if name in self._staged:
            return self._staged[name]
        return self._contents.get(name)

    def write_entry(self, name: str, data: bytes) -> None:
        self._ensure_open()
        self._staged[name] = bytes(data)

    def close(self, *, commit: bool = True) -> None:
        if self.closed:
            return
        try:
            if commit:
                self.commit()
        finally:
            self.closed = True

    # --- Internal helpers -------------------------------------------------

    @property
    def has_changes(self) -> bool:
        return bool(self._staged)

    def commit(self) -> None:
        """Write staged entries back into the archive file."""

        self._ensure_open()
        if not self._staged:
            return

        temporary = self.path.with_name(self.path.name + ".tmp")
        try:
            with zipfile.ZipFile(temporary, "w") as output:
                for info, data in self._members:
                    if info.filename in self._staged:
                        replacement = zipfile.ZipInfo(
                            info.filename,
                            date_time=time.localtime(time.time())[:6],
                        )
                        replacement.compress_type = info.compress_type
                        output.writestr(replacement, self._staged[info.filename])
                    else:
                        output.writestr(info, data)
                for name, data in self._staged.items():
                    if name in self._contents:
                        continue
                    addition = zipfile.ZipInfo(
                        name,
                        date_time=time.localtime(time.time())[:6],
                    )
                    addition.compress_type = zipfile.ZIP_DEFLATED
                    output.writestr(addition, data)
            os.replace(temporary, self.path)
        except BaseException:
            temporary.unlink(missing_ok=True)
            raise

        self._members = [
            (info, self._staged.get(info.filename, data)) for info, data in self._members
        ]
        self._members.extend(
            (zipfile.ZipInfo(name), data)
            for name, data in self._staged.items()
            if name not in self._contents
        )
        self._contents.update(self._staged)
        self._staged.clear()

    def _ensure_open(self) -> None:
        if self.closed:
            raise MizTranslateError(f"Archive {self.path} is already closed.")
