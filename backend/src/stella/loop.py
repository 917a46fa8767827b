"""Turn loop controller: input -> model -> decision -> tool -> next input."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .console import OperatorConsole
from .decision_parser import parse_decision
from .dispatcher import ToolDispatcher
from .errors import ParseError, TransportError
from .models import ToolControl
from .providers import ProviderSession

logger = logging.getLogger(__name__)

TOOL_RESULT_PREFIX = "Tool execution result:\n"
PARSE_RETRY_INSTRUCTION = (
    "Error: your response was not valid JSON. "
    "Respond again with pure JSON only."
)
TRANSPORT_RETRY_INSTRUCTION = "Communication with the API failed. Please retry:"
INSTRUCTION_PROMPT = "Enter an instruction: "


class TurnState(str, Enum):
    AWAITING_INPUT = "awaiting_input"
    SENDING = "sending"
    PARSING = "parsing"
    DISPATCHING = "dispatching"
    TERMINATED = "terminated"


class StopReason(str, Enum):
    FINISHED = "finished"
    RESTART_REQUIRED = "restart_required"
    OPERATOR_EXIT = "operator_exit"
    MAX_TURNS = "max_turns"


_CONTROL_STOPS = {
    ToolControl.FINISH: StopReason.FINISHED,
    ToolControl.RESTART: StopReason.RESTART_REQUIRED,
    ToolControl.ABORT: StopReason.OPERATOR_EXIT,
}


@dataclass
class LoopOptions:
    """Options for the turn loop."""

    max_turns: int | None = None


@dataclass
class LoopOutcome:
    """How and why a session ended."""

    reason: StopReason
    turns: int
    message: str | None = None


def tool_result_input(text: str) -> str:
    return f"{TOOL_RESULT_PREFIX}{text}"


def parse_retry_input(error: ParseError) -> str:
    return f"{PARSE_RETRY_INSTRUCTION} Details: {error}"


def transport_retry_input(error: TransportError) -> str:
    return f"{TRANSPORT_RETRY_INSTRUCTION} {error}"


class TurnLoop:
    """
    Single-threaded state machine driving one provider session.

    Every recoverable failure is turned into the next turn's input text so
    the model sees it in its own context. The only exits are a tool control
    signal, closed operator input, or the turn limit.
    """

    def __init__(
        self,
        session: ProviderSession,
        dispatcher: ToolDispatcher,
        console: OperatorConsole,
        options: LoopOptions | None = None,
    ) -> None:
        self.session = session
        self.dispatcher = dispatcher
        self.console = console
        self.options = options or LoopOptions()
        self.state = TurnState.AWAITING_INPUT
        self.turns = 0

    async def _read_instruction(self) -> str | None:
        while True:
            try:
                text = await self.console.ask(INSTRUCTION_PROMPT)
            except EOFError:
                return None
            if text.strip():
                return text

    def _stop(self, reason: StopReason, message: str | None = None) -> LoopOutcome:
        self.state = TurnState.TERMINATED
        logger.info("Loop terminated after %d turns: %s", self.turns, reason.value)
        return LoopOutcome(reason=reason, turns=self.turns, message=message)

    async def run(self, initial_input: str | None = None) -> LoopOutcome:
        """
        Run turns until a tool asks to stop.

        Args:
            initial_input: first instruction; read from the operator when None.
        """
        try:
            return await self._run(initial_input)
        finally:
            self.console.close()

    async def _run(self, initial_input: str | None) -> LoopOutcome:
        self.state = TurnState.AWAITING_INPUT
        next_input = initial_input if initial_input and initial_input.strip() else None
        if next_input is None:
            next_input = await self._read_instruction()
            if next_input is None:
                return self._stop(StopReason.OPERATOR_EXIT, "operator input closed")

        while True:
            max_turns = self.options.max_turns
            if max_turns is not None and self.turns >= max_turns:
                self.console.notice(f"[STELLA] Turn limit ({max_turns}) reached. Ending the session.")
                return self._stop(StopReason.MAX_TURNS)

            self.state = TurnState.SENDING
            self.turns += 1
            try:
                raw = await self.session.send_message(next_input)
            except TransportError as e:
                logger.warning("Transport error on turn %d: %s", self.turns, e)
                self.console.error("Communication error", str(e))
                next_input = transport_retry_input(e)
                self.state = TurnState.AWAITING_INPUT
                continue

            self.state = TurnState.PARSING
            try:
                decision = parse_decision(raw)
            except ParseError as e:
                logger.warning("Could not parse decision on turn %d: %s", self.turns, e)
                self.console.error("Parse error", str(e))
                self.console.raw_response(raw)
                next_input = parse_retry_input(e)
                self.state = TurnState.AWAITING_INPUT
                continue

            self.state = TurnState.DISPATCHING
            self.console.decision(decision)
            result = await self.dispatcher.dispatch(decision)
            if not result.success:
                self.console.error("Tool error", result.error or "")

            reason = _CONTROL_STOPS.get(result.control)
            if reason is not None:
                if reason is StopReason.FINISHED:
                    self.console.notice("[STELLA] Task complete. Ending the session.")
                elif reason is StopReason.RESTART_REQUIRED:
                    self.console.notice(f"[STELLA] {result.to_text()}")
                return self._stop(reason, result.to_text())

            next_input = tool_result_input(result.to_text())
            self.state = TurnState.AWAITING_INPUT
