import json
from types import SimpleNamespace

import pytest

from miztranslate.errors import TranslationProviderConfigurationError, TranslationProviderError
from miztranslate.providers import (
    EchoTranslationProvider,
    OpenAITranslationProvider,
    build_provider,
)


def test_echo_provider_returns_source_text():
    provider = build_provider("echo")

    assert isinstance(provider, EchoTranslationProvider)
    assert provider.translate("Anvil 1-2, cleared hot", target_language="CN") == (
        "Anvil 1-2, cleared hot"
    )


def test_unknown_provider_is_rejected():
    with pytest.raises(TranslationProviderConfigurationError):
        build_provider("babelfish")


def test_openai_provider_requires_api_key(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "openai")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(TranslationProviderConfigurationError):
        build_provider("openai")


def test_azure_provider_lists_missing_settings(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "azure-openai")
    for name in (
        "AZURE_OPENAI_API_KEY",
        "AZURE_OPENAI_ENDPOINT",
        "AZURE_OPENAI_API_VERSION",
        "AZURE_OPENAI_DEPLOYMENT_NAME",
    ):
        monkeypatch.delenv(name, raising=False)

    with pytest.raises(TranslationProviderConfigurationError, match="AZURE_OPENAI_ENDPOINT"):
        build_provider("openai")


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ('{"translated": "交战敌机"}', "交战敌机"),
        ('```json\n{"translated": "高度20"}\n```', "高度20"),
        ("plain answer", "plain answer"),
        ('"quoted answer"', "quoted answer"),
    ],
)
def test_parse_translation(content, expected):
    assert OpenAITranslationProvider._parse_translation(content) == expected


def test_parse_translation_rejects_unexpected_json():
    with pytest.raises(TranslationProviderError):
        OpenAITranslationProvider._parse_translation('{"text": "missing field"}')


class FakeResponses:
    def __init__(self, output_text):
        self.output_text = output_text
        self.requests = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        return SimpleNamespace(output_text=self.output_text)


def make_openai_provider(output_text):
    provider = object.__new__(OpenAITranslationProvider)
    provider.debug = False
    provider.provider_kind = "openai"
    provider._default_model = OpenAITranslationProvider.DEFAULT_MODEL
    provider._client = SimpleNamespace(responses=FakeResponses(output_text))
    return provider


def test_openai_provider_sends_one_text_per_request():
    provider = make_openai_provider('{"translated": "返回基地"}')

    result = provider.translate("Return to base", target_language="CN", model="gpt-test")

    assert result == "返回基地"
    (request,) = provider._client.responses.requests
    assert request["model"] == "gpt-test"
    assert json.loads(request["input"]) == {"target_language": "CN", "text": "Return to base"}


def test_openai_provider_rejects_empty_output():
    provider = make_openai_provider("")

    with pytest.raises(TranslationProviderError):
        provider.translate("Return to base", target_language="CN")


def test_blank_text_is_not_sent():
    provider = make_openai_provider('{"translated": "unused"}')

    assert provider.translate("   ", target_language="CN") == "   "
    assert provider._client.responses.requests == []
