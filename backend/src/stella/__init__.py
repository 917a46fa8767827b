"""STELLA: a turn-based loop driving a chat model as a tool-using controller."""

from .config import StellaConfig, load_config, save_config
from .decision_parser import parse_decision
from .dispatcher import ToolDispatcher
from .errors import (
    ConfigurationError,
    ParseError,
    StellaError,
    ToolExecutionError,
    TransportError,
)
from .llm import create_session
from .loop import LoopOptions, LoopOutcome, StopReason, TurnLoop, TurnState
from .models import Decision, ToolControl, ToolResult
from .providers import GeminiSession, OllamaSession, OpenAISession, ProviderSession

__all__ = [
    "StellaConfig",
    "load_config",
    "save_config",
    "parse_decision",
    "ToolDispatcher",
    "StellaError",
    "ParseError",
    "TransportError",
    "ToolExecutionError",
    "ConfigurationError",
    "create_session",
    "TurnLoop",
    "TurnState",
    "LoopOptions",
    "LoopOutcome",
    "StopReason",
    "Decision",
    "ToolControl",
    "ToolResult",
    "ProviderSession",
    "GeminiSession",
    "OllamaSession",
    "OpenAISession",
]
