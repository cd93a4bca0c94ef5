"""Command line interface for the mission translator."""

from __future__ import annotations

import argparse
import pathlib
import re
import sys
import threading
from typing import Iterable, Optional, Sequence

from .archive import check_target_language
from .cache import TranslationCache, default_cache_path
from .configuration import (
    export_provider_environment,
    get_settings,
    split_list,
    translation_defaults,
    validate_provider_settings,
)
from .entries import build_entries_providers
from .errors import (
    MizTranslateError,
    TranslationCancelled,
    TranslationFailedError,
    TranslationProviderConfigurationError,
)
from .providers import build_provider
from .translator import TranslationRunner, TranslationSummary, validate_archive_path

OFFLINE_PROVIDERS = {"echo", "noop", "mock"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="miz-translate",
        description=(
            "Translate the dictionary and script text of DCS World mission (.miz) archives."
        ),
    )
    parser.add_argument(
        "archive",
        help="Path to the .miz mission archive to translate.",
    )
    parser.add_argument(
        "-t",
        "--target-language",
        required=True,
        help="Language code of the l10n folder to write, for example CN.",
    )
    parser.add_argument(
        "-p",
        "--provider",
        help="Translation provider identifier (default: openai).",
    )
    parser.add_argument(
        "-m",
        "--model",
        help="Provider-specific model or engine identifier.",
    )
    parser.add_argument(
        "--providers",
        help="Comma-separated entries providers to run, in order (default: dictionary,lua).",
    )
    parser.add_argument(
        "--cache-dir",
        help="Base directory for per-language translation caches.",
    )
    parser.add_argument(
        "--min-length",
        type=int,
        help="Minimum text length worth translating (default: 16).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )
    parser.add_argument(
        "--debug-provider",
        action="store_true",
        help="Log complete provider requests and responses for troubleshooting.",
    )
    return parser


def sanitise_language_code(language: str) -> str:
    """Generate an archive-folder-friendly code from a language descriptor."""

    collapsed = re.sub(r"\s+", "-", language.strip())
    ascii_only = collapsed.encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^A-Za-z0-9\-_]+", "", ascii_only)


def execute_translation(
    *,
    archive_file: str,
    target_language: str,
    provider: str | None,
    model: str | None,
    entries_providers: Sequence[str] | None,
    cache_dir: str | pathlib.Path | None,
    min_text_length: int,
    skip_prefixes: Sequence[str],
    verbose: bool,
    provider_debug: bool,
    cancel_event: Optional[threading.Event] = None,
) -> tuple[int, TranslationSummary | None, str | None]:
    """Execute a translation run and return the exit code, summary, and message."""

    archive_path = pathlib.Path(archive_file).expanduser().resolve()
    language_code = sanitise_language_code(target_language)
    if not language_code:
        return 1, None, f"'{target_language}' is not a usable language code."

    try:
        check_target_language(language_code)
        validate_archive_path(archive_path)
        translation_provider = build_provider(provider, debug=provider_debug)
        runner = TranslationRunner(
            archive_path=archive_path,
            target_language=language_code,
            cache=TranslationCache.load(default_cache_path(language_code, cache_dir)),
            translation_provider=translation_provider,
            entries_providers=build_entries_providers(entries_providers),
            model=model,
            skip_prefixes=skip_prefixes,
            min_text_length=min_text_length,
            verbose=verbose,
            cancel_event=cancel_event,
        )
        summary = runner.run()
    except TranslationCancelled as exc:
        return 2, None, str(exc)
    except TranslationFailedError as exc:
        return 1, None, str(exc)
    except MizTranslateError as exc:
        return 1, None, str(exc)
    except KeyboardInterrupt:
        return 2, None, "Translation interrupted by user."
    except Exception as exc:  # pragma: no cover
        error_message = (
            f"{exc}\n"
            "An unexpected error occurred. Please rerun with --verbose for more details."
        )
        return 1, None, error_message

    return 0, summary, f"Translate completed. The cache file written to: {summary.cache_path}"


def print_summary(summary: TranslationSummary) -> None:
    """Output a friendly report once processing completes."""

    print(f"  Archive:         {summary.archive_path}")
    print(f"  Target language: {summary.target_language}")
    if summary.model:
        print(f"  Model:           {summary.model}")
    for report in summary.reports:
        print(f"  {report.provider_name}:")
        print(
            f"    Entries:       {report.total_entries} "
            f"({report.distinct_contents} distinct texts to translate)"
        )
        print(
            f"    Requests:      {report.requested} "
            f"({report.cache_hits} served from cache)"
        )
        for name in report.written_entries:
            print(f"    Wrote:         {name}")
    print(f"  Elapsed time:    {summary.elapsed_seconds:.2f} seconds")


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        settings = get_settings()
        defaults = translation_defaults(settings)
        if (args.provider or "openai").strip().lower() not in OFFLINE_PROVIDERS:
            validate_provider_settings(settings)
            export_provider_environment(settings)
    except TranslationProviderConfigurationError as exc:
        print(exc)
        return 1

    exit_code, summary, message = execute_translation(
        archive_file=args.archive,
        target_language=args.target_language,
        provider=args.provider,
        model=args.model,
        entries_providers=split_list(args.providers) or defaults.entries_providers,
        cache_dir=args.cache_dir or defaults.cache_dir,
        min_text_length=(
            args.min_length if args.min_length is not None else defaults.min_text_length
        ),
        skip_prefixes=defaults.skip_prefixes,
        verbose=args.verbose,
        provider_debug=args.debug_provider or defaults.provider_debug,
    )

    if message:
        print(message)
    if summary:
        print_summary(summary)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
