"""Utilities for loading the system prompt template and rendering the tool list."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from .config import DEFAULT_SYSTEM_PROMPT_PATH
from .models import ToolDef

TOOLS_PLACEHOLDER = "{tools}"

FALLBACK_TEMPLATE = """You are the CPU of STELLA, a turn-based tool loop.
Reply with a single JSON object only:
{"thought": "...", "message": "...", "tool": "tool name or empty string", "parameters": {}}

Available tools:
{tools}
"""

_cached_template: Optional[str] = None


def _read_file(path: Path) -> str:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""
    except OSError:
        return ""
    return text.strip()


def get_prompt_template(path: Path | None = None) -> str:
    """Return the prompt template, cached after the first read of the default file.

    Falls back to a short built-in template if the file is missing or unreadable.
    """
    global _cached_template
    if path is not None:
        return _read_file(path) or FALLBACK_TEMPLATE
    if _cached_template is None:
        _cached_template = _read_file(DEFAULT_SYSTEM_PROMPT_PATH)
    return _cached_template or FALLBACK_TEMPLATE


def render_tool_catalogue(tool_defs: Iterable[ToolDef]) -> str:
    return "\n".join(d.to_prompt_line(i) for i, d in enumerate(tool_defs, start=1))


def build_system_prompt(tool_defs: Iterable[ToolDef], path: Path | None = None) -> str:
    """Fill the template's ``{tools}`` slot with the registered tools."""
    template = get_prompt_template(path)
    return template.replace(TOOLS_PLACEHOLDER, render_tool_catalogue(tool_defs))
