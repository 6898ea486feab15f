"""
Configuration settings for the Mandarin Anki Generator.

``Config`` holds fixed defaults. ``GeneratorConfig`` is the immutable run
configuration, loaded once from a JSON file plus ``GENANKI_`` environment
overrides and passed by reference to every component.
"""

import json
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import ErrorHandler, FatalConfigurationError


class Config:
    """Configuration class for application defaults."""

    # Project paths
    DEFAULT_CONFIG_FILE = Path("config.json")
    DEFAULT_INPUT_FILE = Path("input.csv")
    DEFAULT_OUTPUT_FILE = Path("output.apkg")
    DEFAULT_LOG_FILE = Path("trace.log")

    ENV_PREFIX = "GENANKI_"
    ENV_SECTION_SEPARATOR = "__"

    # Azure endpoints
    TRANSLATOR_ENDPOINT = "https://api.cognitive.microsofttranslator.com"
    SPEECH_ENDPOINT_TEMPLATE = "https://{region}.tts.speech.microsoft.com/cognitiveservices/v1"
    SPEECH_OUTPUT_FORMAT = "audio-48khz-192kbitrate-mono-mp3"
    DEFAULT_VOICE_NAME = "zh-TW-YunJheNeural"
    DEFAULT_LOCALE = "zh-TW"

    # Generative service
    DEFAULT_CHAT_MODEL = "gpt-3.5-turbo"
    RELATED_WORD_COUNT = 5

    # Network settings
    REQUEST_TIMEOUT = 30.0  # seconds
    RETRY_ATTEMPTS = 4
    RETRY_MIN_WAIT = 1.0  # seconds
    RETRY_MAX_WAIT = 120.0  # seconds

    # Processing settings
    MAX_CONCURRENT_ENTRIES = 4

    # Anki settings
    ANKI_DECK_NAME = "Generated Mandarin Flashcards"
    ANKI_DECK_DESCRIPTION = "A Deck comprised of all the flashcards I have ever generated using my Script"
    WORD_MODEL_NAME = "Mandarin Word"
    SENTENCE_MODEL_NAME = "Mandarin Sentence"


class MandarinScript(Enum):
    """Written script of the input and of generated related words."""
    TRADITIONAL = "Traditional"
    SIMPLIFIED = "Simplified"

    @property
    def language(self) -> str:
        return "zh-Hant" if self is MandarinScript.TRADITIONAL else "zh-Hans"

    @property
    def script_code(self) -> str:
        return "Hant" if self is MandarinScript.TRADITIONAL else "Hans"

    def __str__(self) -> str:
        return f"{self.value} Chinese"


class ReadingStyle(Enum):
    """Phonetic notation used on the cards."""
    ZHUYIN = "Zhuyin"
    PINYIN = "Pinyin"


@dataclass(frozen=True)
class ModelConfig:
    """Identifiers that must stay constant across runs."""
    deck_id: int
    word_model_id: int
    sentence_model_id: int


@dataclass(frozen=True)
class AzureConfig:
    region: str
    translator_key: str
    speech_key: str
    voice_name: str = Config.DEFAULT_VOICE_NAME
    locale: str = Config.DEFAULT_LOCALE


@dataclass(frozen=True)
class OpenAIConfig:
    api_key: str
    organisation: Optional[str] = None
    model: str = Config.DEFAULT_CHAT_MODEL


@dataclass(frozen=True)
class MandarinConfig:
    script: MandarinScript = MandarinScript.TRADITIONAL
    reading: ReadingStyle = ReadingStyle.ZHUYIN


@dataclass(frozen=True)
class NetworkConfig:
    timeout_seconds: float = Config.REQUEST_TIMEOUT
    retry_attempts: int = Config.RETRY_ATTEMPTS
    retry_min_wait: float = Config.RETRY_MIN_WAIT
    retry_max_wait: float = Config.RETRY_MAX_WAIT


@dataclass(frozen=True)
class GeneratorConfig:
    """Complete, immutable configuration for one run."""
    model: ModelConfig
    azure: AzureConfig
    openai: OpenAIConfig
    mandarin: MandarinConfig = field(default_factory=MandarinConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    max_concurrent_entries: int = Config.MAX_CONCURRENT_ENTRIES
    cedict_path: Optional[Path] = None
    prefer_dictionary_definitions: bool = True
    deck_name: str = Config.ANKI_DECK_NAME


def _config_error(problem: str, **context) -> FatalConfigurationError:
    return FatalConfigurationError(ErrorHandler().handle_configuration_error(problem, context))


def _apply_environment(data: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    """Overlay ``GENANKI_SECTION__KEY=value`` variables onto the file data."""
    for name, value in environ.items():
        if not name.startswith(Config.ENV_PREFIX):
            continue
        path = name[len(Config.ENV_PREFIX):].lower().split(Config.ENV_SECTION_SEPARATOR)
        target = data
        for section in path[:-1]:
            existing = target.get(section)
            if not isinstance(existing, dict):
                existing = {}
                target[section] = existing
            target = existing
        target[path[-1]] = value
    return data


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, Mapping):
        raise _config_error(f"Section '{name}' must be an object", section=name)
    return value


def _required_str(section: Mapping[str, Any], section_name: str, key: str) -> str:
    value = section.get(key)
    if value is None or not str(value).strip():
        raise _config_error(f"Missing required setting {section_name}.{key}", key=f"{section_name}.{key}")
    return str(value).strip()


def _required_id(section: Mapping[str, Any], key: str) -> int:
    value = section.get(key)
    if value is None or isinstance(value, bool):
        raise _config_error(f"Missing required identifier model.{key}", key=f"model.{key}")
    try:
        identifier = int(value)
    except (TypeError, ValueError):
        raise _config_error(f"Identifier model.{key} must be an integer, got {value!r}", key=f"model.{key}")
    if identifier <= 0:
        raise _config_error(f"Identifier model.{key} must be positive", key=f"model.{key}")
    return identifier


def _number(section: Mapping[str, Any], key: str, default, cast):
    value = section.get(key)
    if value is None:
        return default
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise _config_error(f"Setting {key} must be a number, got {value!r}", key=key)


def _flag(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _enum(enum_cls, value: Any, default):
    if value is None:
        return default
    for member in enum_cls:
        if str(value).strip().lower() in (member.value.lower(), member.name.lower()):
            return member
    choices = ", ".join(member.value for member in enum_cls)
    raise _config_error(f"Unknown {enum_cls.__name__} {value!r}; expected one of {choices}")


def config_from_mapping(data: Mapping[str, Any]) -> GeneratorConfig:
    """Validate raw configuration data and build a :class:`GeneratorConfig`."""
    model = _section(data, "model")
    azure = _section(data, "azure")
    openai = _section(data, "openai")
    mandarin = _section(data, "mandarin")
    network = _section(data, "network")

    model_config = ModelConfig(
        deck_id=_required_id(model, "deck_id"),
        word_model_id=_required_id(model, "word_model_id"),
        sentence_model_id=_required_id(model, "sentence_model_id"),
    )
    if model_config.word_model_id == model_config.sentence_model_id:
        raise _config_error("word_model_id and sentence_model_id must differ")

    network_config = NetworkConfig(
        timeout_seconds=_number(network, "timeout_seconds", Config.REQUEST_TIMEOUT, float),
        retry_attempts=max(1, _number(network, "retry_attempts", Config.RETRY_ATTEMPTS, int)),
        retry_min_wait=_number(network, "retry_min_wait", Config.RETRY_MIN_WAIT, float),
        retry_max_wait=_number(network, "retry_max_wait", Config.RETRY_MAX_WAIT, float),
    )

    cedict_path = data.get("cedict_path")
    return GeneratorConfig(
        model=model_config,
        azure=AzureConfig(
            region=_required_str(azure, "azure", "region"),
            translator_key=_required_str(azure, "azure", "translator_key"),
            speech_key=_required_str(azure, "azure", "speech_key"),
            voice_name=str(azure.get("voice_name") or Config.DEFAULT_VOICE_NAME),
            locale=str(azure.get("locale") or Config.DEFAULT_LOCALE),
        ),
        openai=OpenAIConfig(
            api_key=_required_str(openai, "openai", "api_key"),
            organisation=openai.get("organisation") or None,
            model=str(openai.get("model") or Config.DEFAULT_CHAT_MODEL),
        ),
        mandarin=MandarinConfig(
            script=_enum(MandarinScript, mandarin.get("script"), MandarinScript.TRADITIONAL),
            reading=_enum(ReadingStyle, mandarin.get("reading"), ReadingStyle.ZHUYIN),
        ),
        network=network_config,
        max_concurrent_entries=max(
            1, _number(data, "max_concurrent_entries", Config.MAX_CONCURRENT_ENTRIES, int)
        ),
        cedict_path=Path(cedict_path) if cedict_path else None,
        prefer_dictionary_definitions=_flag(data.get("prefer_dictionary_definitions"), True),
        deck_name=str(data.get("deck_name") or Config.ANKI_DECK_NAME),
    )


def load_config(path: Optional[Path] = None,
                environ: Optional[Mapping[str, str]] = None) -> GeneratorConfig:
    """
    Load configuration from a JSON file and the environment.

    Args:
        path: JSON configuration file; may be absent when the environment
            supplies every required value
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Immutable configuration

    Raises:
        FatalConfigurationError: If the file is unreadable or a required
            identifier or credential is missing
    """
    path = Path(path) if path is not None else Config.DEFAULT_CONFIG_FILE
    environ = os.environ if environ is None else environ

    data: Dict[str, Any] = {}
    if path.exists():
        try:
            with open(path, encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as e:
            raise _config_error(f"Cannot read configuration file {path}: {e}", path=str(path))
        if not isinstance(data, dict):
            raise _config_error(f"Configuration file {path} must contain a JSON object", path=str(path))

    return config_from_mapping(_apply_environment(data, environ))
