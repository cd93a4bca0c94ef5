"""High-level orchestration for mission translation."""

from __future__ import annotations

import pathlib
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from .archive import BlobStore, MizArchive, check_target_language
from .cache import TranslationCache
from .entries import EntriesProvider, build_entries_providers
from .errors import (
    ArchiveNotFoundError,
    MizTranslateError,
    TranslationCancelled,
    TranslationFailedError,
    TranslationProviderError,
    raise_if_cancelled,
)
from .providers import TranslationProvider
from .structures import EntryMap

DEFAULT_SKIP_PREFIXES = ("DictKey_ActionRadioText",)
DEFAULT_MIN_TEXT_LENGTH = 16

ProgressCallback = Callable[[int, int, str], None]
ArchiveOpener = Callable[[pathlib.Path], BlobStore]


@dataclass
class ProviderReport:
    """Per entries-provider counters."""

    provider_name: str
    total_entries: int = 0
    distinct_contents: int = 0
    requested: int = 0
    cache_hits: int = 0
    written_entries: List[str] = field(default_factory=list)


@dataclass
class TranslationSummary:
    """Report returned after processing an archive."""

    archive_path: pathlib.Path
    cache_path: pathlib.Path
    target_language: str
    model: str | None
    elapsed_seconds: float
    reports: List[ProviderReport] = field(default_factory=list)

    @property
    def total_requests(self) -> int:
        return sum(report.requested for report in self.reports)


def select_contents(
    entries: EntryMap,
    *,
    skip_prefixes: Sequence[str] = DEFAULT_SKIP_PREFIXES,
    min_text_length: int = DEFAULT_MIN_TEXT_LENGTH,
) -> List[str]:
    """Return the distinct texts worth translating, in first-seen order."""

    prefixes = tuple(prefix for prefix in skip_prefixes if prefix)
    seen = set()
    contents: List[str] = []
    for address, text in entries.items():
        if prefixes and address.startswith(prefixes):
            continue
        if len(text) < min_text_length:
            continue
        if text in seen:
            continue
        seen.add(text)
        contents.append(text)
    return contents


def project_translations(entries: EntryMap, cache: TranslationCache) -> int:
    """Replace every entry text that has a cached translation; return the count."""

    replaced = 0
    for address, text in entries.items():
        translated = cache.get(text)
        if translated is None:
            continue
        entries[address] = translated
        replaced += 1
    return replaced


class TranslationRunner:
    """Coordinates extraction, translation, and reinsertion for one archive."""

    def __init__(
        self,
        *,
        archive_path: pathlib.Path,
        target_language: str,
        cache: TranslationCache,
        translation_provider: TranslationProvider,
        entries_providers: Sequence[EntriesProvider] | None = None,
        model: str | None = None,
        skip_prefixes: Sequence[str] = DEFAULT_SKIP_PREFIXES,
        min_text_length: int = DEFAULT_MIN_TEXT_LENGTH,
        verbose: bool = False,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
        archive_opener: ArchiveOpener = MizArchive,
    ) -> None:
        self.archive_path = archive_path
        self.target_language = check_target_language(target_language)
        self.cache = cache
        self.translation_provider = translation_provider
        self.entries_providers = list(
            entries_providers
            if entries_providers is not None
            else build_entries_providers()
        )
        self.model = model
        self.skip_prefixes = tuple(skip_prefixes)
        self.min_text_length = min_text_length
        self.verbose = verbose
        self.progress = progress
        self.cancel_event = cancel_event
        self.archive_opener = archive_opener

        self.max_retries = 3
        self.retry_backoff = [1, 4, 9]

    def run(self) -> TranslationSummary:
        start_time = time.time()

        reports: List[ProviderReport] = []
        for entries_provider in self.entries_providers:
            reports.append(self._process_provider(entries_provider))

        return TranslationSummary(
            archive_path=self.archive_path,
            cache_path=self.cache.path,
            target_language=self.target_language,
            model=self.model,
            elapsed_seconds=time.time() - start_time,
            reports=reports,
        )

    def _process_provider(self, entries_provider: EntriesProvider) -> ProviderReport:
        report = ProviderReport(provider_name=entries_provider.name)

        # The archive stays open for the whole extract -> rewrite cycle.
        with self.archive_opener(self.archive_path) as archive:
            entries = entries_provider.extract_entries(
                archive, cancel_event=self.cancel_event
            )
            report.total_entries = len(entries)
            if self.verbose:
                print(f"{entries_provider.name}: found {len(entries)} entries.")

            try:
                self._translate_entries(entries_provider.name, entries, report)
            except TranslationCancelled:
                raise
            except Exception as exc:
                raise TranslationFailedError(
                    f"Translation failed: {exc}",
                    provider_name=entries_provider.name,
                ) from exc
            finally:
                self.cache.save()

            report.written_entries = entries_provider.write_entries(
                archive,
                self.target_language,
                entries,
                cancel_event=self.cancel_event,
            )
            if self.verbose:
                for name in report.written_entries:
                    print(f"{entries_provider.name}: wrote {name}.")

        return report

    def _translate_entries(
        self,
        provider_name: str,
        entries: EntryMap,
        report: ProviderReport,
    ) -> None:
        contents = select_contents(
            entries,
            skip_prefixes=self.skip_prefixes,
            min_text_length=self.min_text_length,
        )
        report.distinct_contents = len(contents)

        total = len(contents)
        for position, content in enumerate(contents):
            raise_if_cancelled(self.cancel_event)
            self._report_progress(
                position,
                total,
                f"Translating {provider_name} [{position + 1}/{total}]",
            )
            if content in self.cache:
                report.cache_hits += 1
                continue
            self.cache[content] = self._translate_content(content)
            report.requested += 1

        project_translations(entries, self.cache)

    def _translate_content(self, content: str) -> str:
        attempt = 0
        while True:
            try:
                return self.translation_provider.translate(
                    content,
                    target_language=self.target_language,
                    model=self.model,
                )
            except TranslationProviderError as exc:
                attempt += 1
                if attempt > self.max_retries:
                    raise
                wait_time = self.retry_backoff[min(attempt - 1, len(self.retry_backoff) - 1)]
                if self.verbose:
                    print(
                        "Could not translate one text "
                        f"(attempt {attempt} of {self.max_retries}: {exc}). "
                        "Retrying automatically..."
                    )
                time.sleep(wait_time)
                raise_if_cancelled(self.cancel_event)

    def _report_progress(self, current: int, total: int, message: str) -> None:
        if self.progress is not None:
            self.progress(current, total, message)
        elif self.verbose:
            print(message)


def validate_archive_path(archive_path: pathlib.Path) -> None:
    """Check that the archive exists and is a regular file."""

    if not archive_path.exists():
        raise ArchiveNotFoundError(
            f"Mission archive not found: {archive_path}. Please provide a readable .miz file."
        )
    if not archive_path.is_file():
        raise MizTranslateError("Archive path must be a file.")
