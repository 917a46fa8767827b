"""Unit tests for the tool registry/dispatcher."""
from __future__ import annotations

import unittest
from typing import Any

from pydantic import BaseModel, ValidationError

from src.stella.dispatcher import NO_TOOL_RESULT, ToolDispatcher, is_no_tool
from src.stella.errors import ToolExecutionError
from src.stella.models import Decision, RunShellParams, ToolResult
from src.stella.tools import BaseTool


class EchoParams(BaseModel):
    text: str


class RecordingTool(BaseTool):
    """Echo tool that records every invocation."""

    def __init__(self, name: str = "echo", error: Exception | None = None):
        self._name = name
        self._error = error
        self.calls: list[Any] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return "Echo the text back."

    @property
    def params_model(self) -> type[BaseModel]:
        return EchoParams

    async def execute(self, params: EchoParams) -> ToolResult:
        self.calls.append(params)
        if self._error is not None:
            raise self._error
        return ToolResult(success=True, content=params.text)


class TestSentinels(unittest.TestCase):
    def test_is_no_tool(self) -> None:
        for name in ("", "none", "None", " NONE ", None):
            with self.subTest(name=name):
                self.assertTrue(is_no_tool(name))
        self.assertFalse(is_no_tool("echo"))

    def test_sentinel_name_cannot_be_registered(self) -> None:
        with self.assertRaises(ValueError):
            ToolDispatcher([RecordingTool(name="none")])


class TestDispatch(unittest.IsolatedAsyncioTestCase):
    async def test_sentinels_invoke_no_handler(self) -> None:
        tool = RecordingTool()
        dispatcher = ToolDispatcher([tool])
        for name in ("", "none", "NONE"):
            result = await dispatcher.dispatch(Decision(tool=name, parameters={"text": "x"}))
            self.assertTrue(result.success)
            self.assertEqual(result.to_text(), NO_TOOL_RESULT)
        self.assertEqual(tool.calls, [])

    async def test_unknown_tool_returns_descriptive_text(self) -> None:
        dispatcher = ToolDispatcher([RecordingTool()])
        result = await dispatcher.dispatch(Decision(tool="teleport"))
        self.assertFalse(result.success)
        text = result.to_text()
        self.assertIn("unknown tool 'teleport'", text)
        self.assertIn("echo", text)

    async def test_known_tool_receives_validated_params(self) -> None:
        tool = RecordingTool()
        dispatcher = ToolDispatcher([tool])
        result = await dispatcher.dispatch(Decision(tool=" echo ", parameters={"text": "hi", "extra": 1}))
        self.assertEqual(result.to_text(), "hi")
        self.assertIsInstance(tool.calls[0], EchoParams)

    async def test_invalid_params_are_reported_not_raised(self) -> None:
        tool = RecordingTool()
        dispatcher = ToolDispatcher([tool])
        result = await dispatcher.dispatch(Decision(tool="echo", parameters={}))
        self.assertFalse(result.success)
        self.assertIn("invalid parameters for tool 'echo'", result.to_text())
        self.assertEqual(tool.calls, [])

    async def test_tool_execution_error_becomes_text(self) -> None:
        dispatcher = ToolDispatcher([RecordingTool(error=ToolExecutionError("disk full"))])
        result = await dispatcher.dispatch(Decision(tool="echo", parameters={"text": "x"}))
        self.assertFalse(result.success)
        self.assertTrue(result.to_text().startswith("Error: "))
        self.assertIn("disk full", result.to_text())

    async def test_unexpected_exception_becomes_text(self) -> None:
        dispatcher = ToolDispatcher([RecordingTool(error=RuntimeError("boom"))])
        with self.assertLogs("src.stella.dispatcher", level="ERROR"):
            result = await dispatcher.dispatch(Decision(tool="echo", parameters={"text": "x"}))
        self.assertIn("boom", result.to_text())

    async def test_tool_defs_render_schema(self) -> None:
        dispatcher = ToolDispatcher([RecordingTool()])
        (tool_def,) = dispatcher.tool_defs()
        self.assertEqual(tool_def.name, "echo")
        self.assertIn("text", tool_def.parameters["properties"])

    async def test_run_shell_params_reject_empty_command(self) -> None:
        with self.assertRaises(ValidationError):
            RunShellParams(command="")


if __name__ == "__main__":
    unittest.main()
