"""Tool protocol and the built-in loop tools."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from .config import SUPPORTED_PROVIDERS, StellaConfig, normalize_provider, save_config
from .console import OperatorConsole
from .errors import ConfigurationError, ToolExecutionError
from .models import (
    AskUserParams,
    FinishParams,
    ListModelsParams,
    RunShellParams,
    SwitchModelParams,
    ToolControl,
    ToolDef,
    ToolResult,
)
from .providers import ProviderSession

logger = logging.getLogger(__name__)


class BaseTool(ABC):
    """Base class for loop tools."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        ...

    @property
    @abstractmethod
    def params_model(self) -> type[BaseModel]:
        """Pydantic record the raw ``parameters`` mapping is validated against."""
        ...

    @property
    def parameters(self) -> dict[str, Any]:
        """JSON Schema for parameters."""
        return self.params_model.model_json_schema()

    @abstractmethod
    async def execute(self, params: Any) -> ToolResult:
        ...

    def to_def(self) -> ToolDef:
        return ToolDef(name=self.name, description=self.description, parameters=self.parameters)


# ---------------------------------------------------------------------------
# run_shell
# ---------------------------------------------------------------------------


def format_shell_output(stdout: str, stderr: str, returncode: int | None) -> str:
    return f"[stdout]\n{stdout}\n[stderr]\n{stderr}\n[exit_code]\n{returncode}"


def _kill_process_group(proc: asyncio.subprocess.Process) -> None:
    """Kill the shell and everything it started; the shell leads its own session."""
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


class RunShellTool(BaseTool):
    """Runs a command in a subshell and returns both output streams."""

    def __init__(
        self,
        console: OperatorConsole | None = None,
        timeout: float | None = None,
        cwd: Path | None = None,
    ):
        self._console = console
        self._timeout = timeout
        self._cwd = cwd

    @property
    def name(self) -> str:
        return "run_shell"

    @property
    def description(self) -> str:
        return "Run a shell command and get its standard output and standard error."

    @property
    def params_model(self) -> type[BaseModel]:
        return RunShellParams

    async def execute(self, params: RunShellParams) -> ToolResult:
        if self._console is not None:
            self._console.tool(self.name, f"command: {params.command}")
        proc = await asyncio.create_subprocess_shell(
            params.command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self._cwd,
            start_new_session=True,
        )
        try:
            if self._timeout is None:
                out, err = await proc.communicate()
            else:
                out, err = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            _kill_process_group(proc)
            await proc.wait()
            raise ToolExecutionError(
                f"command timed out after {self._timeout:g}s: {params.command}"
            ) from e

        stdout = out.decode("utf-8", errors="replace")
        stderr = err.decode("utf-8", errors="replace")
        if self._console is not None:
            self._console.preview(stdout.strip() or stderr.strip())
        if proc.returncode:
            logger.info("Command exited with status %s: %s", proc.returncode, params.command)
        return ToolResult(
            success=True,
            content=format_shell_output(stdout, stderr, proc.returncode),
            metadata={"returncode": proc.returncode},
        )


# ---------------------------------------------------------------------------
# ask_user
# ---------------------------------------------------------------------------


class AskUserTool(BaseTool):
    """Asks the operator a question and waits for one line of answer."""

    def __init__(self, console: OperatorConsole):
        self._console = console

    @property
    def name(self) -> str:
        return "ask_user"

    @property
    def description(self) -> str:
        return "Ask the user a question or request additional information."

    @property
    def params_model(self) -> type[BaseModel]:
        return AskUserParams

    async def execute(self, params: AskUserParams) -> ToolResult:
        self._console.tool(self.name)
        try:
            answer = await self._console.ask(f"\n[Question for user]: {params.query}\n   Answer: ")
        except EOFError:
            return ToolResult(
                success=False,
                error="operator input closed",
                control=ToolControl.ABORT,
            )
        return ToolResult(success=True, content=f"[User Answer]: {answer}")


# ---------------------------------------------------------------------------
# list_models
# ---------------------------------------------------------------------------


class ListModelsTool(BaseTool):
    """Lists the model identifiers offered by the active provider."""

    def __init__(self, session: ProviderSession, console: OperatorConsole | None = None):
        self._session = session
        self._console = console

    @property
    def name(self) -> str:
        return "list_models"

    @property
    def description(self) -> str:
        return "List the models available from the current provider."

    @property
    def params_model(self) -> type[BaseModel]:
        return ListModelsParams

    async def execute(self, params: ListModelsParams) -> ToolResult:
        if self._console is not None:
            self._console.tool(self.name)
        models = await self._session.list_models()
        provider = self._session.provider_name
        if not models:
            return ToolResult(success=True, content=f"No models reported by {provider}.")
        lines = [f"Available models for {provider}:"]
        lines.extend(f"- {m}" for m in models)
        return ToolResult(success=True, content="\n".join(lines), metadata={"count": len(models)})


# ---------------------------------------------------------------------------
# switch_model
# ---------------------------------------------------------------------------


class SwitchModelTool(BaseTool):
    """Rewrites the persisted configuration and asks for a restart."""

    def __init__(
        self,
        config: StellaConfig,
        config_path: Path | None = None,
        console: OperatorConsole | None = None,
    ):
        self._config = config
        self._config_path = config_path
        self._console = console

    @property
    def name(self) -> str:
        return "switch_model"

    @property
    def description(self) -> str:
        return (
            "Switch to another model (and optionally provider). "
            "The setting is saved and STELLA must be restarted to use it."
        )

    @property
    def params_model(self) -> type[BaseModel]:
        return SwitchModelParams

    async def execute(self, params: SwitchModelParams) -> ToolResult:
        provider = normalize_provider(params.provider) if params.provider else self._config.provider
        if provider not in SUPPORTED_PROVIDERS:
            return ToolResult(
                success=False,
                error=f"unknown provider '{params.provider}'. Supported: {', '.join(SUPPORTED_PROVIDERS)}",
            )
        if self._console is not None:
            self._console.tool(self.name, f"{provider}:{params.model_name}")
        try:
            await asyncio.to_thread(
                save_config,
                self._config_path,
                provider=provider,
                model_name=params.model_name,
            )
        except (ConfigurationError, OSError) as e:
            raise ToolExecutionError(f"could not save configuration: {e}") from e
        return ToolResult(
            success=True,
            content=(
                f"Configuration updated to {provider}:{params.model_name}. "
                "Restart STELLA to apply the change."
            ),
            metadata={"provider": provider, "model_name": params.model_name},
            control=ToolControl.RESTART,
        )


# ---------------------------------------------------------------------------
# finish
# ---------------------------------------------------------------------------


class FinishTool(BaseTool):
    @property
    def name(self) -> str:
        return "finish"

    @property
    def description(self) -> str:
        return "Call this once every task is complete and the final report has been given to the user."

    @property
    def params_model(self) -> type[BaseModel]:
        return FinishParams

    async def execute(self, params: FinishParams) -> ToolResult:
        return ToolResult(success=True, content="Session finished.", control=ToolControl.FINISH)


def get_default_tools(
    session: ProviderSession,
    console: OperatorConsole,
    config: StellaConfig,
    config_path: Path | None = None,
) -> list[BaseTool]:
    """Return the built-in tool list bound to the running session."""
    return [
        RunShellTool(console, timeout=config.shell_timeout),
        AskUserTool(console),
        ListModelsTool(session, console),
        SwitchModelTool(config, config_path, console),
        FinishTool(),
    ]
