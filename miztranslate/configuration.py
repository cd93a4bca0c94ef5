"""Prepper-backed configuration loader for the mission translator."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, List, Literal, Mapping, Sequence

from dotenv import dotenv_values
from prepper import (
    Field,
    IoError,
    SchemaError,
    SchemaModel,
    ValidationError,
    model_validator,
)
from prepper.config import ConfigInstance
from prepper.loaders import _parse_file, _path_to_source, discover_file_paths
from prepper.merge import merge_layer
from prepper.provenance import ProvenanceRecorder

from .errors import TranslationProviderConfigurationError

APP_NAME = "MizTranslate"

PROVIDER_NAMES = {"openai", "azure_openai"}
PROVIDER_SYNONYMS = {"azure_open_ai": "azure_openai", "azureopenai": "azure_openai"}


class MizTranslateConfig(SchemaModel):
    """Schema describing all supported configuration options."""

    LLM_PROVIDER: Literal["azure_openai", "openai"] = Field(
        default="openai",
        description="Large language model provider selection.",
    )
    AZURE_OPENAI_API_KEY: str | None = Field(default=None, secret=True)
    AZURE_OPENAI_ENDPOINT: str | None = Field(default=None)
    AZURE_OPENAI_API_VERSION: str | None = Field(default=None)
    AZURE_OPENAI_DEPLOYMENT_NAME: str | None = Field(default=None)
    OPENAI_API_KEY: str | None = Field(default=None, secret=True)
    MIZ_TRANSLATE_PROVIDER_DEBUG: bool = Field(default=False)
    MIZ_TRANSLATE_CACHE_DIR: str | None = Field(
        default=None,
        description="Base directory holding one cache folder per target language.",
    )
    MIZ_TRANSLATE_MIN_TEXT_LENGTH: int = Field(
        default=16,
        description="Texts shorter than this are never sent for translation.",
    )
    MIZ_TRANSLATE_SKIP_PREFIXES: str = Field(
        default="DictKey_ActionRadioText",
        description="Comma-separated entry address prefixes that are never sent.",
    )
    MIZ_TRANSLATE_ENTRY_PROVIDERS: str = Field(
        default="dictionary,lua",
        description="Comma-separated entries providers, in processing order.",
    )

    @model_validator(mode="before")
    def _normalise_provider(data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        raw_value = data.get("LLM_PROVIDER")
        if isinstance(raw_value, str):
            normalized = raw_value.strip().lower().replace("-", "_")
            normalized = PROVIDER_SYNONYMS.get(normalized, normalized)
            data["LLM_PROVIDER"] = normalized if normalized in PROVIDER_NAMES else "openai"
        raw_names = data.get("MIZ_TRANSLATE_ENTRY_PROVIDERS")
        if isinstance(raw_names, str):
            data["MIZ_TRANSLATE_ENTRY_PROVIDERS"] = ",".join(
                name.lower() for name in split_list(raw_names)
            )
        return data


def split_list(value: str | None) -> List[str]:
    """Split a comma-separated setting into its non-empty items."""

    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@lru_cache(maxsize=1)
def _load_config_instance(app_dir: Path | None = None) -> ConfigInstance:
    """Load configuration layers once and cache the immutable instance."""

    base_dir = app_dir or Path.cwd()
    try:
        provenance = ProvenanceRecorder()
        combined = _load_discovered_yaml(app_dir=base_dir, provenance=provenance)
        _merge_env_sources(
            combined,
            provenance=provenance,
            app_dir=base_dir,
            schema=MizTranslateConfig,
        )

        model = MizTranslateConfig.validate(combined, provenance=provenance)

        return ConfigInstance(
            model=model,
            provenance=provenance,
            env_prefix=None,
            schema_cls=MizTranslateConfig,
        )
    except IoError as exc:
        raise TranslationProviderConfigurationError(
            f"Configuration files could not be read: {exc}"
        ) from exc
    except SchemaError as exc:
        raise TranslationProviderConfigurationError(
            f"Configuration schema error: {exc}"
        ) from exc
    except ValidationError as exc:
        issues = _format_validation_errors(exc.to_dict())
        raise TranslationProviderConfigurationError(issues) from exc


def _load_discovered_yaml(
    *,
    app_dir: Path,
    provenance: ProvenanceRecorder,
) -> dict[str, Any]:
    """Load YAML configuration files using Prepper's discovery rules."""

    result: dict[str, Any] = {}
    discovered = discover_file_paths(
        APP_NAME,
        "yaml",
        app_dir=app_dir,
        extra_paths=None,
    )
    for path, label in discovered:
        parsed = _parse_file(path, "yaml")
        if not isinstance(parsed, Mapping):
            raise IoError(
                f"Invalid configuration file {path}: expected a mapping at the root."
            )
        source = _path_to_source(label, "yaml", path)
        merge_layer(result, parsed, provenance=provenance, source=source, layer="file")
    return result


def _merge_env_sources(
    target: dict[str, Any],
    *,
    provenance: ProvenanceRecorder,
    app_dir: Path,
    schema: type[SchemaModel],
) -> None:
    """Merge .env values, then the process environment, into the target mapping.

    Only keys known to ``schema`` are taken; later layers win.
    """

    allowed = set(schema.__field_infos__.keys())
    layers: list[tuple[str, Mapping[str, str | None]]] = []

    dotenv_path = app_dir / ".env"
    if dotenv_path.exists():
        layers.append((".env", dotenv_values(dotenv_path)))
    layers.append(("process", os.environ))

    for source_prefix, values in layers:
        for key in sorted(allowed.intersection(values)):
            value = values[key]
            if not isinstance(value, str):
                continue
            merge_layer(
                target,
                {key: value},
                provenance=provenance,
                source=f"env:{source_prefix}:{key}",
                layer="env",
            )


AZURE_SETTING_NAMES = (
    "AZURE_OPENAI_API_KEY",
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_API_VERSION",
    "AZURE_OPENAI_DEPLOYMENT_NAME",
)


def validate_provider_settings(settings: MizTranslateConfig) -> None:
    """Check the credentials needed by the OpenAI-backed translation providers."""

    errors: list[str] = []
    if settings.LLM_PROVIDER == "openai" and not settings.OPENAI_API_KEY:
        errors.append("OPENAI_API_KEY is required when LLM_PROVIDER is 'openai'.")
    elif settings.LLM_PROVIDER == "azure_openai":
        missing = [name for name in AZURE_SETTING_NAMES if not getattr(settings, name)]
        if missing:
            errors.append(
                "The following Azure OpenAI settings must be provided when "
                f"LLM_PROVIDER is 'azure_openai': {', '.join(missing)}."
            )

    if errors:
        bullet_list = "\n".join(f"- {message}" for message in errors)
        raise TranslationProviderConfigurationError(
            "Configuration validation errors detected:\n" + bullet_list
        )


def export_provider_environment(settings: MizTranslateConfig) -> None:
    """Expose provider credentials from YAML/.env layers to the OpenAI adapters."""

    for name in ("LLM_PROVIDER", "OPENAI_API_KEY", *AZURE_SETTING_NAMES):
        value = getattr(settings, name)
        if value and not os.environ.get(name):
            os.environ[name] = str(value)


def _format_validation_errors(entries: Sequence[dict[str, Any]]) -> str:
    details: list[str] = []
    for entry in entries:
        path = entry.get("path") or []
        if isinstance(path, (list, tuple)):
            location = ".".join(str(part) for part in path if part not in {None, ""})
        else:
            location = str(path)
        message = str(entry.get("message") or entry.get("msg") or "Invalid value")
        source = entry.get("source")
        origin = f" (source: {source})" if source else ""
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}{origin}")
    return "Configuration validation errors detected:\n" + "\n".join(details)


def get_config(app_dir: Path | None = None) -> ConfigInstance:
    """Return the immutable configuration instance."""

    return _load_config_instance(app_dir=app_dir)


def get_settings(app_dir: Path | None = None) -> MizTranslateConfig:
    """Return the validated schema model for typed access."""

    return get_config(app_dir=app_dir).model()


@dataclass(frozen=True)
class TranslationDefaults:
    """Run options resolved from settings, before CLI overrides apply."""

    entries_providers: List[str]
    skip_prefixes: List[str]
    min_text_length: int
    cache_dir: Path | None
    provider_debug: bool


def translation_defaults(settings: MizTranslateConfig) -> TranslationDefaults:
    """Resolve the mission translation options held in ``settings``."""

    if settings.MIZ_TRANSLATE_MIN_TEXT_LENGTH < 0:
        raise TranslationProviderConfigurationError(
            "Configuration validation errors detected:\n"
            "- MIZ_TRANSLATE_MIN_TEXT_LENGTH must not be negative."
        )
    entries_providers = split_list(settings.MIZ_TRANSLATE_ENTRY_PROVIDERS)
    if not entries_providers:
        raise TranslationProviderConfigurationError(
            "Configuration validation errors detected:\n"
            "- MIZ_TRANSLATE_ENTRY_PROVIDERS must name at least one entries provider."
        )
    cache_dir = settings.MIZ_TRANSLATE_CACHE_DIR
    return TranslationDefaults(
        entries_providers=entries_providers,
        skip_prefixes=split_list(settings.MIZ_TRANSLATE_SKIP_PREFIXES),
        min_text_length=settings.MIZ_TRANSLATE_MIN_TEXT_LENGTH,
        cache_dir=Path(cache_dir).expanduser() if cache_dir else None,
        provider_debug=bool(settings.MIZ_TRANSLATE_PROVIDER_DEBUG),
    )
