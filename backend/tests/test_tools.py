"""Unit tests for the built-in loop tools."""
from __future__ import annotations

import asyncio
import io
import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from rich.console import Console

from src.stella.config import StellaConfig
from src.stella.console import OperatorConsole
from src.stella.dispatcher import ToolDispatcher
from src.stella.errors import ToolExecutionError, TransportError
from src.stella.models import (
    AskUserParams,
    Decision,
    FinishParams,
    ListModelsParams,
    RunShellParams,
    SwitchModelParams,
    ToolControl,
)
from src.stella.providers import ProviderSession
from src.stella.system_prompt_loader import build_system_prompt
from src.stella.tools import (
    AskUserTool,
    FinishTool,
    ListModelsTool,
    RunShellTool,
    SwitchModelTool,
    get_default_tools,
)


def make_console(answers: list[str] | None = None) -> tuple[OperatorConsole, io.StringIO, list[str]]:
    out = io.StringIO()
    prompts: list[str] = []
    pending = list(answers or [])

    def fake_input(prompt: str) -> str:
        prompts.append(prompt)
        if not pending:
            raise EOFError
        return pending.pop(0)

    console = OperatorConsole(Console(file=out, width=200), input_func=fake_input)
    return console, out, prompts


def _is_running(pid: int) -> bool:
    """True while /proc shows the process alive (zombies count as gone)."""
    try:
        stat = Path(f"/proc/{pid}/stat").read_text()
    except (FileNotFoundError, ProcessLookupError):
        return False
    return stat.rsplit(")", 1)[1].split()[0] != "Z"


class TestRunShellTool(unittest.IsolatedAsyncioTestCase):
    async def test_captures_both_streams(self) -> None:
        tool = RunShellTool()
        result = await tool.execute(RunShellParams(command="echo out; echo err 1>&2"))
        self.assertTrue(result.success)
        text = result.to_text()
        self.assertIn("[stdout]\nout\n", text)
        self.assertIn("[stderr]\nerr\n", text)
        self.assertIn("[exit_code]\n0", text)

    async def test_nonzero_exit_still_returns_both_streams(self) -> None:
        tool = RunShellTool()
        result = await tool.execute(RunShellParams(command="echo partial; echo broken 1>&2; exit 3"))
        self.assertTrue(result.success)
        text = result.to_text()
        self.assertIn("partial", text)
        self.assertIn("broken", text)
        self.assertIn("[exit_code]\n3", text)
        self.assertEqual(result.metadata["returncode"], 3)

    async def test_timeout_raises_tool_execution_error(self) -> None:
        tool = RunShellTool(timeout=0.2)
        with self.assertRaises(ToolExecutionError):
            await tool.execute(RunShellParams(command="sleep 5"))

    @unittest.skipUnless(Path("/proc").is_dir(), "needs /proc")
    async def test_timeout_kills_background_children(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            pid_file = Path(tmp) / "child.pid"
            tool = RunShellTool(timeout=0.5)
            with self.assertRaises(ToolExecutionError):
                await tool.execute(RunShellParams(command=f"sleep 30 & echo $! > {pid_file}; wait; echo done"))
            child = int(pid_file.read_text())
        for _ in range(40):
            if not _is_running(child):
                break
            await asyncio.sleep(0.05)
        self.assertFalse(_is_running(child))

    async def test_timeout_through_dispatcher_is_text(self) -> None:
        dispatcher = ToolDispatcher([RunShellTool(timeout=0.2)])
        result = await dispatcher.dispatch(Decision(tool="run_shell", parameters={"command": "sleep 5"}))
        self.assertFalse(result.success)
        self.assertIn("timed out", result.to_text())

    async def test_preview_shown_to_operator(self) -> None:
        console, out, _ = make_console()
        tool = RunShellTool(console)
        await tool.execute(RunShellParams(command="seq 1 20"))
        shown = out.getvalue()
        self.assertIn("command: seq 1 20", shown)
        self.assertIn("10\n...", shown)
        self.assertNotIn("11\n", shown)


class TestAskUserTool(unittest.IsolatedAsyncioTestCase):
    async def test_returns_tagged_answer(self) -> None:
        console, _, prompts = make_console(["blue"])
        result = await AskUserTool(console).execute(AskUserParams(query="Favourite colour?"))
        self.assertEqual(result.to_text(), "[User Answer]: blue")
        self.assertIn("Favourite colour?", prompts[0])

    async def test_closed_input_aborts(self) -> None:
        console, _, _ = make_console([])
        result = await AskUserTool(console).execute(AskUserParams(query="Anyone there?"))
        self.assertFalse(result.success)
        self.assertEqual(result.control, ToolControl.ABORT)


class TestListModelsTool(unittest.IsolatedAsyncioTestCase):
    def _session(self) -> MagicMock:
        session = MagicMock(spec=ProviderSession)
        session.provider_name = "gemini"
        return session

    async def test_flattens_model_ids(self) -> None:
        session = self._session()
        session.list_models = AsyncMock(return_value=["gemini-2.0-flash", "gemini-2.5-pro"])
        result = await ListModelsTool(session).execute(ListModelsParams())
        self.assertEqual(
            result.to_text(),
            "Available models for gemini:\n- gemini-2.0-flash\n- gemini-2.5-pro",
        )

    async def test_transport_failure_becomes_error_text(self) -> None:
        session = self._session()
        session.list_models = AsyncMock(side_effect=TransportError("401 unauthorized"))
        dispatcher = ToolDispatcher([ListModelsTool(session)])
        result = await dispatcher.dispatch(Decision(tool="list_models"))
        self.assertFalse(result.success)
        self.assertIn("401 unauthorized", result.to_text())


class TestSwitchModelTool(unittest.IsolatedAsyncioTestCase):
    async def test_persists_and_requests_restart(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "stella_config.json"
            path.write_text(json.dumps({"provider": "gemini", "model_name": "old", "max_turns": 7}))
            tool = SwitchModelTool(StellaConfig(), path)
            result = await tool.execute(SwitchModelParams(model_name="gpt-4o-mini", provider="OpenAI"))
            self.assertEqual(result.control, ToolControl.RESTART)
            self.assertIn("Restart", result.to_text())
            written = json.loads(path.read_text())
            self.assertEqual(written["provider"], "openai")
            self.assertEqual(written["model_name"], "gpt-4o-mini")
            self.assertEqual(written["max_turns"], 7)

    async def test_provider_defaults_to_active_one(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "stella_config.json"
            tool = SwitchModelTool(StellaConfig(provider="ollama", model_name="llama3.2"), path)
            await tool.execute(SwitchModelParams(model_name="qwen2.5"))
            self.assertEqual(json.loads(path.read_text())["provider"], "ollama")

    async def test_unknown_provider_is_rejected_without_writing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "stella_config.json"
            tool = SwitchModelTool(StellaConfig(), path)
            result = await tool.execute(SwitchModelParams(model_name="x", provider="acme"))
            self.assertFalse(result.success)
            self.assertEqual(result.control, ToolControl.CONTINUE)
            self.assertFalse(path.exists())


class TestFinishAndRegistry(unittest.IsolatedAsyncioTestCase):
    async def test_finish_signals_controller(self) -> None:
        result = await FinishTool().execute(FinishParams())
        self.assertEqual(result.control, ToolControl.FINISH)

    async def test_default_tools_and_prompt(self) -> None:
        console, _, _ = make_console()
        session = MagicMock(spec=ProviderSession)
        tools = get_default_tools(session, console, StellaConfig())
        names = [t.name for t in tools]
        self.assertEqual(names, ["run_shell", "ask_user", "list_models", "switch_model", "finish"])
        prompt = build_system_prompt(ToolDispatcher(tools).tool_defs())
        self.assertIn("1. run_shell", prompt)
        self.assertIn('"command": "Shell command to execute"', prompt)
        self.assertNotIn("{tools}", prompt)


if __name__ == "__main__":
    unittest.main()
