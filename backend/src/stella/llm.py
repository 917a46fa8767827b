"""Provider factory: build the one session the loop talks to."""

from __future__ import annotations

import logging
import os
from typing import Mapping

from .config import SUPPORTED_PROVIDERS, StellaConfig, normalize_provider
from .errors import ConfigurationError
from .providers import GeminiSession, OllamaSession, OpenAISession, ProviderSession

logger = logging.getLogger(__name__)

# Provider -> environment variables that may hold its credential, in order.
CREDENTIAL_ENV_VARS: dict[str, tuple[str, ...]] = {
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "openai": ("OPENAI_API_KEY",),
}

PLACEHOLDER_KEYS = {"your_api_key_here"}


def resolve_api_key(provider: str, environ: Mapping[str, str] | None = None) -> str | None:
    """Return the credential for ``provider``, or None when unset or a placeholder."""
    env = os.environ if environ is None else environ
    for name in CREDENTIAL_ENV_VARS.get(provider, ()):
        value = (env.get(name) or "").strip()
        if value and value not in PLACEHOLDER_KEYS:
            return value
    return None


def create_session(
    config: StellaConfig,
    system_prompt: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> ProviderSession:
    """
    Construct the provider session declared by ``config``.

    Raises:
        ConfigurationError: unknown provider or missing credential. This is a
            fatal startup error, raised before the loop begins.
    """
    env = os.environ if environ is None else environ
    provider = normalize_provider(config.provider)
    if provider not in SUPPORTED_PROVIDERS:
        raise ConfigurationError(
            f"Unknown provider '{config.provider}'. Supported: {', '.join(SUPPORTED_PROVIDERS)}"
        )

    if provider == "ollama":
        session: ProviderSession = OllamaSession(
            config.model_name,
            base_url=config.ollama_base_url,
            system_prompt=system_prompt,
            json_mode=config.json_mode,
            timeout=config.request_timeout,
        )
    else:
        api_key = resolve_api_key(provider, env)
        if api_key is None:
            names = " or ".join(CREDENTIAL_ENV_VARS[provider])
            raise ConfigurationError(f"{names} is not set (check your environment or .env file)")
        if provider == "openai":
            session = OpenAISession(
                config.model_name,
                api_key,
                base_url=(env.get("OPENAI_BASE_URL") or None),
                system_prompt=system_prompt,
                json_mode=config.json_mode,
                timeout=config.request_timeout,
            )
        else:
            session = GeminiSession(
                config.model_name,
                api_key,
                system_prompt=system_prompt,
                json_mode=config.json_mode,
                timeout=config.request_timeout,
            )

    logger.info("Created %s session for model %s", provider, config.model_name)
    return session
