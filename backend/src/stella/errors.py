"""Error taxonomy for the turn loop."""

from __future__ import annotations


class StellaError(Exception):
    """Base class for all loop errors."""


class ParseError(StellaError):
    """The model response did not contain a well-formed decision object."""


class TransportError(StellaError):
    """The backend could not be reached, rejected the credential, or timed out."""


class ToolExecutionError(StellaError):
    """A tool failed while running; converted to text by the dispatcher."""


class ConfigurationError(StellaError):
    """Fatal startup problem: unknown provider, missing credential, bad config file."""


__all__ = [
    "StellaError",
    "ParseError",
    "TransportError",
    "ToolExecutionError",
    "ConfigurationError",
]
