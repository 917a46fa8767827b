"""Tool registry and dispatcher: decision -> tool -> plain-text result."""

from __future__ import annotations

import logging
from typing import Iterable

from pydantic import ValidationError

from .errors import StellaError
from .models import Decision, ToolDef, ToolResult
from .tools import BaseTool

logger = logging.getLogger(__name__)

NO_TOOL_SENTINELS = frozenset({"", "none"})
NO_TOOL_RESULT = "No tool executed"


def is_no_tool(name: str | None) -> bool:
    """True for the "take no action this turn" sentinels."""
    return (name or "").strip().lower() in NO_TOOL_SENTINELS


class ToolDispatcher:
    """
    Maps a decision's tool name to its handler.

    :meth:`dispatch` never raises: unknown tools, invalid parameters and tool
    failures all come back as a failed ToolResult whose text the model sees
    on the next turn.
    """

    def __init__(self, tools: Iterable[BaseTool] | None = None) -> None:
        self._tools: dict[str, BaseTool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: BaseTool) -> None:
        if is_no_tool(tool.name):
            raise ValueError(f"'{tool.name}' is reserved for 'no tool'")
        self._tools[tool.name] = tool

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def tool_defs(self) -> list[ToolDef]:
        return [t.to_def() for t in self._tools.values()]

    async def dispatch(self, decision: Decision) -> ToolResult:
        name = decision.tool_name
        if is_no_tool(name):
            return ToolResult(success=True, content=NO_TOOL_RESULT)

        tool = self._tools.get(name)
        if tool is None:
            logger.warning("Model called unknown tool %r", name)
            return ToolResult(
                success=False,
                error=f"unknown tool '{name}' was called. Available tools: {', '.join(self.names)}",
            )

        try:
            params = tool.params_model.model_validate(decision.parameters)
        except ValidationError as e:
            logger.warning("Invalid parameters for %s: %s", name, e)
            return ToolResult(success=False, error=f"invalid parameters for tool '{name}': {e}")

        logger.info("Dispatching tool %s", name)
        try:
            return await tool.execute(params)
        except StellaError as e:
            logger.warning("Tool %s failed: %s", name, e)
            return ToolResult(success=False, error=f"tool '{name}' failed during execution: {e}")
        except Exception as e:
            logger.exception("Tool %s raised unexpectedly", name)
            return ToolResult(success=False, error=f"tool '{name}' failed during execution: {e}")
