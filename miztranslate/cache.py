"""Content-keyed translation cache persisted per target language."""

from __future__ import annotations

import json
import pathlib
from typing import Dict, Iterator, Mapping, Optional

from .errors import CacheFormatError

CACHE_APP_DIR = "DCSMizTranslate"
CACHE_FILE_NAME = "cache.json"


def default_cache_path(
    language_code: str,
    base_dir: pathlib.Path | str | None = None,
) -> pathlib.Path:
    """Return ``<base>/<LANG>/cache.json`` with ``~/Documents/DCSMizTranslate`` as base."""

    base = (
        pathlib.Path(base_dir).expanduser()
        if base_dir
        else pathlib.Path.home() / "Documents" / CACHE_APP_DIR
    )
    return base / language_code / CACHE_FILE_NAME


class TranslationCache:
    """Maps source text to its translation.

    Keys are the source text itself, not an entry address, so identical
    strings are translated once and always receive the same translation.
    """

    def __init__(
        self,
        path: pathlib.Path,
        entries: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.path = path
        self.entries: Dict[str, str] = dict(entries or {})

    @classmethod
    def load(cls, path: pathlib.Path) -> "TranslationCache":
        """Load the cache file, starting empty when it does not exist yet."""

        path.parent.mkdir(parents=True, exist_ok=True)
        if not path.exists():
            return cls(path)

        try:
            with open(path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise CacheFormatError(
                f"Translation cache {path} is not valid JSON: {exc}"
            ) from exc

        if data is None:
            return cls(path)
        if not isinstance(data, dict):
            raise CacheFormatError(
                f"Translation cache {path} must contain a JSON object."
            )
        return cls(
            path,
            {
                key: value
                for key, value in data.items()
                if isinstance(key, str) and isinstance(value, str)
            },
        )

    def save(self) -> pathlib.Path:
        """Overwrite the cache file with the current mapping."""

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as handle:
            json.dump(self.entries, handle, ensure_ascii=False, indent=2)
        return self.path

    def get(self, text: str) -> Optional[str]:
        return self.entries.get(text)

    def __contains__(self, text: object) -> bool:
        return text in self.entries

    def __getitem__(self, text: str) -> str:
        return self.entries[text]

    def __setitem__(self, text: str, translation: str) -> None:
        self.entries[text] = translation

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)
