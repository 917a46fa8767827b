"""Loop configuration: paths, defaults, and the layered config snapshot."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from main_config import (
    CONFIG_PATH as _CONFIG_PATH,
    DEFAULT_SYSTEM_PROMPT_PATH as _DEFAULT_SYSTEM_PROMPT_PATH,
)

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Path objects for use in this package (main_config uses os.path strings)
CONFIG_PATH = Path(_CONFIG_PATH)
DEFAULT_SYSTEM_PROMPT_PATH = Path(_DEFAULT_SYSTEM_PROMPT_PATH)

SUPPORTED_PROVIDERS = ("gemini", "openai", "ollama")
PROVIDER_ALIASES = {"google": "gemini"}

DEFAULT_PROVIDER = "gemini"
DEFAULT_MODEL = "gemini-2.0-flash-lite"
DEFAULT_REQUEST_TIMEOUT = 120.0
DEFAULT_SHELL_TIMEOUT = 300.0
DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"

# Environment variable -> config field. Later entries win.
ENV_OVERRIDES: tuple[tuple[str, str], ...] = (
    ("STELLA_PROVIDER", "provider"),
    ("STELLA_MODEL", "model_name"),
    ("STELLA_REQUEST_TIMEOUT", "request_timeout"),
    ("STELLA_SHELL_TIMEOUT", "shell_timeout"),
    ("STELLA_MAX_TURNS", "max_turns"),
    ("OLLAMA_HOST", "ollama_base_url"),
    ("STELLA_JSON_MODE", "json_mode"),
    ("STELLA_LOG_LEVEL", "log_level"),
)

# Model override that only applies while the resolved provider is gemini
GEMINI_MODEL_ENV = "GEMINI_MODEL"
CONFIG_PATH_ENV = "STELLA_CONFIG"

_NONE_STRINGS = {"", "none", "null", "off"}


def normalize_provider(name: str | None) -> str:
    """Lower-case a provider name and resolve aliases (``google`` -> ``gemini``)."""
    value = (name or "").strip().lower()
    return PROVIDER_ALIASES.get(value, value)


class StellaConfig(BaseModel):
    """Immutable configuration snapshot handed to session construction."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    provider: str = Field(default=DEFAULT_PROVIDER, description="Backend provider name.")
    model_name: str = Field(default=DEFAULT_MODEL, description="Model identifier for the provider.")
    request_timeout: float | None = Field(
        default=DEFAULT_REQUEST_TIMEOUT,
        description="Deadline in seconds for one backend call; None disables it.",
    )
    shell_timeout: float | None = Field(
        default=DEFAULT_SHELL_TIMEOUT,
        description="Deadline in seconds for one run_shell command; None disables it.",
    )
    max_turns: int | None = Field(default=None, description="Maximum backend calls per session.")
    ollama_base_url: str = Field(default=DEFAULT_OLLAMA_BASE_URL)
    json_mode: bool = Field(
        default=True,
        description="Ask backends that support it for JSON-only responses.",
    )
    log_level: str = Field(default="WARNING")


def resolve_config_path(environ: Mapping[str, str] | None = None) -> Path:
    """Config file location: ``STELLA_CONFIG`` when set, else the default path."""
    env = os.environ if environ is None else environ
    override = (env.get(CONFIG_PATH_ENV) or "").strip()
    return Path(override) if override else CONFIG_PATH


def _read_file(path: Path) -> dict[str, Any]:
    """Read the persisted config document; a missing file is an empty layer."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as exc:
        raise ConfigurationError(f"Cannot read config file {path}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Config file {path} is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return raw


def _env_layer(environ: Mapping[str, str]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for env_name, field_name in ENV_OVERRIDES:
        value = environ.get(env_name)
        if value is None:
            continue
        value = value.strip()
        if field_name in ("request_timeout", "shell_timeout", "max_turns") and value.lower() in _NONE_STRINGS:
            layer[field_name] = None
        elif value:
            layer[field_name] = value
    return layer


def load_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> StellaConfig:
    """
    Load the configuration once: built-in defaults, then the persisted JSON
    file, then environment overrides.

    Raises:
        ConfigurationError: the file is unreadable/malformed or a value is invalid.
    """
    env = os.environ if environ is None else environ
    config_path = path or resolve_config_path(env)

    data: dict[str, Any] = StellaConfig().model_dump()
    file_layer = _read_file(config_path)
    data.update({k: v for k, v in file_layer.items() if k in StellaConfig.model_fields})
    env_layer = _env_layer(env)
    data.update(env_layer)
    data["provider"] = normalize_provider(data.get("provider"))
    gemini_model = (env.get(GEMINI_MODEL_ENV) or "").strip()
    if gemini_model and data["provider"] == "gemini" and "model_name" not in env_layer:
        data["model_name"] = gemini_model

    try:
        config = StellaConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
    logger.info(
        "Loaded configuration (file=%s, exists=%s): provider=%s model=%s",
        config_path,
        bool(file_layer),
        config.provider,
        config.model_name,
    )
    return config


def save_config(path: Path | None = None, **changes: Any) -> dict[str, Any]:
    """
    Merge ``changes`` into the persisted config document and rewrite it.

    Keys already in the file that are not being changed are kept. Returns the
    document that was written.
    """
    config_path = path or resolve_config_path()
    document = _read_file(config_path)
    document.update(changes)
    if "provider" in document:
        document["provider"] = normalize_provider(document["provider"])
    try:
        StellaConfig.model_validate(
            {k: v for k, v in document.items() if k in StellaConfig.model_fields}
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Refusing to write invalid configuration: {exc}") from exc

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2, ensure_ascii=False)
        f.write("\n")
    logger.info("Wrote configuration to %s", config_path)
    return document
