"""Provider sessions: pluggable chat backends for the turn loop."""

from .base import ProviderSession
from .gemini_provider import GeminiSession
from .ollama import OllamaSession
from .openai_provider import OpenAISession

__all__ = [
    "ProviderSession",
    "GeminiSession",
    "OllamaSession",
    "OpenAISession",
]
