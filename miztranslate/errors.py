"""Error definitions for the mission translator."""

from __future__ import annotations

import threading
from typing import Optional


class MizTranslateError(Exception):
    """Base exception for all custom errors."""


class ArchiveNotFoundError(MizTranslateError):
    """Raised when the mission archive does not exist."""


class ArchiveFormatError(MizTranslateError):
    """Raised when the mission archive is not a readable zip container."""


class DictionaryFormatError(MizTranslateError):
    """Raised when a dictionary table literal cannot be parsed."""


class CacheFormatError(MizTranslateError):
    """Raised when the translation cache file cannot be read back."""


class TargetLanguageError(MizTranslateError):
    """Raised when the target language would overwrite the source locale."""


class UnsupportedProviderError(MizTranslateError):
    """Raised when an unknown entries provider is requested."""


class TranslationProviderConfigurationError(MizTranslateError):
    """Raised when the translation provider is misconfigured."""


class TranslationProviderError(MizTranslateError):
    """Raised when the translation provider fails for one request."""


class TranslationCancelled(MizTranslateError):
    """Raised when a run is cancelled between two units of work."""


def raise_if_cancelled(cancel_event: Optional[threading.Event]) -> None:
    """Raise ``TranslationCancelled`` once the cancel event has been set."""

    if cancel_event is not None and cancel_event.is_set():
        raise TranslationCancelled("Translation cancelled.")


class TranslationFailedError(MizTranslateError):
    """Raised when a provider's translation step fails for good.

    The translation cache has already been persisted when this is raised.
    """

    def __init__(self, message: str, *, provider_name: str | None = None) -> None:
        super().__init__(message)
        self.provider_name = provider_name
