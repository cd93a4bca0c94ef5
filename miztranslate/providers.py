"""Translation provider abstractions."""

from __future__ import annotations

import json
import os
import sys
from abc import ABC, abstractmethod
from typing import Any

from .configuration import AZURE_SETTING_NAMES, PROVIDER_NAMES, PROVIDER_SYNONYMS
from .errors import (
    TranslationProviderConfigurationError,
    TranslationProviderError,
)

SYSTEM_PROMPT = (
    "You are a military translation specialist familiar with US combat aviation "
    "and the DCS World flight simulator. Translate the mission text you are given "
    "into the requested language. Rules: "
    "identify personal names, callsigns and code words first and keep them as in "
    "the original, then translate the rest; "
    "output plain text only; "
    "keep the original line breaks and escape sequences such as \\n exactly; "
    "translate only, never continue or extend the text; "
    "keep the length of the translation close to the original; "
    "do not add notes or explanations; "
    "render brevity and radio slang by meaning (e.g. 'angels' is altitude, "
    "'hot' is head-on, 'cold' is tail-aspect, 'Light' is missile); "
    "write bearings and ranges numerically ('three-four-zero at sixty' becomes "
    "340 degrees 60 nautical miles) and callsign numbers with digits "
    "('Anvil one-two' becomes 'Anvil 1-2'); "
    "use nautical miles for distances; keep special code words such as 'rock'. "
    "Respond strictly with a JSON object shaped as {\"translated\": \"...\"}. "
    "Do not wrap the JSON in markdown code fences."
)

SDK_MISSING_MESSAGE = "OpenAI Python SDK not installed. Install with `pip install openai`."
EMPTY_RESPONSE_MESSAGE = "Translation provider response empty or unrecognised."


class TranslationProvider(ABC):
    """Abstract adapter for translation providers."""

    @abstractmethod
    def translate(
        self,
        text: str,
        *,
        target_language: str,
        model: str | None = None,
    ) -> str:
        """Translate ``text`` into ``target_language`` and return the result."""


class EchoTranslationProvider(TranslationProvider):
    """A provider that returns the original text (useful for testing)."""

    def translate(
        self,
        text: str,
        *,
        target_language: str,
        model: str | None = None,
    ) -> str:
        return text


class OpenAITranslationProvider(TranslationProvider):
    """Translates one mission text per request through the OpenAI Responses API.

    The client comes from ``LLM_PROVIDER``: plain OpenAI by default, or Azure
    OpenAI with the deployment name standing in for the model.
    """

    DEFAULT_MODEL = "gpt-5-mini"

    def __init__(self, *, debug: bool = False) -> None:
        self.debug = debug
        self.provider_kind = self._provider_kind(os.getenv("LLM_PROVIDER"))
        if self.provider_kind == "azure_openai":
            self._client, self._default_model = self._build_azure_client()
        else:
            self._client, self._default_model = self._build_openai_client()

    @staticmethod
    def _provider_kind(value: str | None) -> str:
        normalized = (value or "openai").strip().lower().replace("-", "_")
        normalized = PROVIDER_SYNONYMS.get(normalized, normalized)
        return normalized if normalized in PROVIDER_NAMES else "openai"

    def _build_openai_client(self) -> tuple[Any, str]:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise TranslationProviderConfigurationError(
                "OpenAI configuration missing. Set OPENAI_API_KEY or choose a "
                "different provider."
            )
        try:
            from openai import OpenAI  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise TranslationProviderConfigurationError(SDK_MISSING_MESSAGE) from exc

        return OpenAI(api_key=api_key), self.DEFAULT_MODEL

    def _build_azure_client(self) -> tuple[Any, str]:
        settings = {name: os.getenv(name) for name in AZURE_SETTING_NAMES}
        missing = [name for name, value in settings.items() if not value]
        if missing:
            raise TranslationProviderConfigurationError(
                f"Azure OpenAI configuration incomplete. Please set: {', '.join(missing)}."
            )

        try:
            from openai import AzureOpenAI  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise TranslationProviderConfigurationError(SDK_MISSING_MESSAGE) from exc

        client = AzureOpenAI(
            api_key=settings["AZURE_OPENAI_API_KEY"],
            api_version=settings["AZURE_OPENAI_API_VERSION"],
            azure_endpoint=settings["AZURE_OPENAI_ENDPOINT"],
        )
        return client, settings["AZURE_OPENAI_DEPLOYMENT_NAME"]  # type: ignore[return-value]

    def translate(
        self,
        text: str,
        *,
        target_language: str,
        model: str | None = None,
    ) -> str:
        if not text.strip():
            return text

        payload = {"target_language": target_language, "text": text}
        self._log_debug("provider.request.payload", payload)
        translated = self._invoke_model(
            user_message=json.dumps(payload, ensure_ascii=False),
            model=model or self._default_model,
        )
        self._log_debug("provider.response.translated", translated)
        return translated

    def _invoke_model(self, *, user_message: str, model: str) -> str:
        """Call the OpenAI Responses API and return the translated text."""

        try:
            response = self._client.responses.create(
                model=model,
                instructions=SYSTEM_PROMPT,
                input=user_message,
            )
        except Exception as exc:  # pragma: no cover - network call
            raise TranslationProviderError(
                f"Translation service temporarily unavailable: {exc}"
            ) from exc
        self._log_debug("provider.response.raw", self._safe_dump_response(response))

        output_text = getattr(response, "output_text", None)
        if not output_text:
            raise TranslationProviderError(EMPTY_RESPONSE_MESSAGE)
        return self._parse_translation(str(output_text))

    def _log_debug(self, label: str, payload: Any) -> None:
        """Emit structured debug information when enabled."""

        if not getattr(self, "debug", False):
            return
        try:
            if isinstance(payload, (dict, list)):
                message = json.dumps(payload, ensure_ascii=False, indent=2)
            else:
                message = str(payload)
        except (TypeError, ValueError):
            message = repr(payload)
        print(f"[miz-translate][provider-debug] {label}:\n{message}", file=sys.stderr)

    def _safe_dump_response(self, response: Any) -> Any:
        """Best-effort conversion of SDK response objects into JSON-friendly data."""

        dump = getattr(response, "model_dump", None)
        if dump is not None:
            try:
                return dump()
            except (TypeError, ValueError):
                pass
        return str(response)

    @staticmethod
    def _strip_code_fence(text: str) -> str:
        """Remove leading/trailing markdown code fences if present."""

        stripped = text.strip()
        if not stripped.startswith("```"):
            return stripped

        # Drop opening fence and optional language hint.
        first_newline = stripped.find("\n")
        if first_newline == -1:
            return stripped
        body = stripped[first_newline + 1 :]
        closing_index = body.rfind("```")
        if closing_index != -1:
            body = body[:closing_index]
        return body.strip()

    @classmethod
    def _parse_translation(cls, content: str) -> str:
        """Read ``{"translated": ...}`` from the model output."""

        payload = cls._strip_code_fence(content)
        try:
            parsed = json.loads(payload)
        except json.JSONDecodeError:
            # Some models ignore the JSON instruction; plain text is the translation.
            return payload

        if isinstance(parsed, dict):
            translated = parsed.get("translated")
            if isinstance(translated, str):
                return translated
        if isinstance(parsed, str):
            return parsed
        raise TranslationProviderError(
            "Translation provider response malformed: missing 'translated' field."
        )


class LegacyOpenAITranslationProvider(OpenAITranslationProvider):
    """Translation provider that uses the Chat Completions API for compatibility."""

    def _invoke_model(self, *, user_message: str, model: str) -> str:
        """Call the Chat Completions API and return the translated text."""

        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=0,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user_message},
                ],
            )
        except Exception as exc:  # pragma: no cover - network call
            raise TranslationProviderError(
                f"Translation service temporarily unavailable: {exc}"
            ) from exc
        self._log_debug("provider.response.raw", self._safe_dump_response(response))

        for choice in getattr(response, "choices", None) or []:
            message = getattr(choice, "message", None)
            content = getattr(message, "content", None) if message else None
            if content:
                return self._parse_translation(str(content))

        raise TranslationProviderError(EMPTY_RESPONSE_MESSAGE)


def build_provider(name: str | None, *, debug: bool = False) -> TranslationProvider:
    """Factory to create providers by name."""

    normalized = (name or "openai").strip().lower()
    if normalized in {"openai", "gpt", "default"}:
        return OpenAITranslationProvider(debug=debug)
    if normalized in {"legacy-openai", "legacy_openai", "legacy", "openai-legacy"}:
        return LegacyOpenAITranslationProvider(debug=debug)
    if normalized in {"echo", "noop", "mock"}:
        return EchoTranslationProvider()
    raise TranslationProviderConfigurationError(
        f"Unknown translation provider '{name}'."
    )
