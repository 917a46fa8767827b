"""Run the STELLA turn loop in the terminal."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv

from src.stella.config import load_config, resolve_config_path
from src.stella.console import OperatorConsole
from src.stella.dispatcher import ToolDispatcher
from src.stella.errors import ConfigurationError
from src.stella.llm import create_session
from src.stella.loop import LoopOptions, StopReason, TurnLoop
from src.stella.system_prompt_loader import build_system_prompt
from src.stella.tools import get_default_tools

EXIT_CONFIG_ERROR = 1
EXIT_RESTART_REQUIRED = 3
EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="stella",
    help="Stateful Turn-based Execution & LLM Loop Architecture.",
    add_completion=False,
)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def run(
    instruction: Optional[str] = typer.Argument(None, help="First instruction; prompted for when omitted."),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Persisted configuration file (default: $STELLA_CONFIG or backend/stella_config.json)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    """Start a session with the configured provider and model."""
    load_dotenv()
    config_path = config_path or resolve_config_path()
    console = OperatorConsole()
    try:
        config = load_config(config_path)
        _configure_logging("DEBUG" if verbose else config.log_level)
        session = create_session(config)
        dispatcher = ToolDispatcher(get_default_tools(session, console, config, config_path))
        # The prompt lists the tools; it is read by the session on the first send.
        session.system_prompt = build_system_prompt(dispatcher.tool_defs())
    except ConfigurationError as e:
        console.error("Configuration error", str(e))
        raise typer.Exit(EXIT_CONFIG_ERROR)

    console.banner(f"{config.provider}:{config.model_name}")
    loop = TurnLoop(session, dispatcher, console, LoopOptions(max_turns=config.max_turns))
    try:
        outcome = asyncio.run(loop.run(instruction))
    except KeyboardInterrupt:
        console.notice("Interrupted.")
        raise typer.Exit(EXIT_INTERRUPTED)

    if outcome.reason is StopReason.RESTART_REQUIRED:
        raise typer.Exit(EXIT_RESTART_REQUIRED)


if __name__ == "__main__":
    app()
