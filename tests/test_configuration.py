import os
from pathlib import Path
from types import SimpleNamespace

import pytest

from miztranslate.configuration import (
    AZURE_SETTING_NAMES,
    export_provider_environment,
    translation_defaults,
    validate_provider_settings,
)
from miztranslate.errors import TranslationProviderConfigurationError


def make_settings(**overrides):
    values = dict(
        LLM_PROVIDER="openai",
        OPENAI_API_KEY=None,
        AZURE_OPENAI_API_KEY=None,
        AZURE_OPENAI_ENDPOINT=None,
        AZURE_OPENAI_API_VERSION=None,
        AZURE_OPENAI_DEPLOYMENT_NAME=None,
        MIZ_TRANSLATE_PROVIDER_DEBUG=False,
        MIZ_TRANSLATE_CACHE_DIR=None,
        MIZ_TRANSLATE_MIN_TEXT_LENGTH=16,
        MIZ_TRANSLATE_SKIP_PREFIXES="DictKey_ActionRadioText",
        MIZ_TRANSLATE_ENTRY_PROVIDERS="dictionary,lua",
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_translation_defaults_resolve_lists_and_paths():
    defaults = translation_defaults(
        make_settings(
            MIZ_TRANSLATE_CACHE_DIR="/tmp/miz-cache",
            MIZ_TRANSLATE_SKIP_PREFIXES="DictKey_ActionRadioText, DictKey_sortie",
            MIZ_TRANSLATE_ENTRY_PROVIDERS="lua",
        )
    )

    assert defaults.entries_providers == ["lua"]
    assert defaults.skip_prefixes == ["DictKey_ActionRadioText", "DictKey_sortie"]
    assert defaults.min_text_length == 16
    assert defaults.cache_dir == Path("/tmp/miz-cache")
    assert defaults.provider_debug is False


def test_translation_defaults_reject_negative_length():
    with pytest.raises(TranslationProviderConfigurationError, match="MIN_TEXT_LENGTH"):
        translation_defaults(make_settings(MIZ_TRANSLATE_MIN_TEXT_LENGTH=-1))


def test_translation_defaults_need_an_entries_provider():
    with pytest.raises(TranslationProviderConfigurationError, match="ENTRY_PROVIDERS"):
        translation_defaults(make_settings(MIZ_TRANSLATE_ENTRY_PROVIDERS=" , "))


def test_openai_key_is_required():
    with pytest.raises(TranslationProviderConfigurationError, match="OPENAI_API_KEY"):
        validate_provider_settings(make_settings())

    validate_provider_settings(make_settings(OPENAI_API_KEY="sk-test"))


def test_azure_settings_are_listed_when_missing():
    settings = make_settings(
        LLM_PROVIDER="azure_openai",
        AZURE_OPENAI_API_KEY="key",
        AZURE_OPENAI_ENDPOINT="https://example.openai.azure.com",
    )

    with pytest.raises(TranslationProviderConfigurationError) as excinfo:
        validate_provider_settings(settings)

    message = str(excinfo.value)
    assert "AZURE_OPENAI_API_VERSION" in message
    assert "AZURE_OPENAI_DEPLOYMENT_NAME" in message
    assert "AZURE_OPENAI_ENDPOINT" not in message


def test_export_keeps_existing_environment(monkeypatch):
    for name in ("LLM_PROVIDER", *AZURE_SETTING_NAMES):
        monkeypatch.setenv(name, "")
    monkeypatch.setenv("OPENAI_API_KEY", "from-process")

    export_provider_environment(
        make_settings(
            OPENAI_API_KEY="from-file",
            AZURE_OPENAI_ENDPOINT="https://example.openai.azure.com",
        )
    )

    assert os.environ["OPENAI_API_KEY"] == "from-process"
    assert os.environ["AZURE_OPENAI_ENDPOINT"] == "https://example.openai.azure.com"
    assert os.environ["LLM_PROVIDER"] == "openai"
