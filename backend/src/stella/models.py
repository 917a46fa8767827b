"""Data models for decisions, messages, and tools."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class Message(BaseModel):
    """A single message in a conversation."""

    role: str  # "system" | "user" | "assistant"
    content: str = ""

    def to_chat_dict(self) -> dict[str, Any]:
        """Format for LLM chat API."""
        return {"role": self.role, "content": self.content or ""}


# ---------------------------------------------------------------------------
# Decision
# ---------------------------------------------------------------------------


class Decision(BaseModel):
    """The structured object the model must emit every turn."""

    thought: str = ""
    message: str | None = None
    tool: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)

    @field_validator("thought", "tool", mode="before")
    @classmethod
    def _text_or_empty(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float, bool)):
            return str(value)
        return value

    @field_validator("message", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float, bool)):
            return str(value)
        return value

    @field_validator("parameters", mode="before")
    @classmethod
    def _parameters_or_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def tool_name(self) -> str:
        """Tool name with surrounding whitespace removed."""
        return self.tool.strip()


# ---------------------------------------------------------------------------
# Tool parameters (one record per tool, validated right before dispatch)
# ---------------------------------------------------------------------------


class RunShellParams(BaseModel):
    command: str = Field(..., min_length=1, description="Shell command to execute")


class AskUserParams(BaseModel):
    query: str = Field(..., description="Question to show the operator")


class ListModelsParams(BaseModel):
    pass


class SwitchModelParams(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_name: str = Field(..., min_length=1, description="Model identifier to switch to")
    provider: str | None = Field(None, description="Provider name; defaults to the active provider")


class FinishParams(BaseModel):
    pass


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


class ToolControl(str, Enum):
    """What the controller should do after a tool ran."""

    CONTINUE = "continue"
    FINISH = "finish"
    RESTART = "restart"
    ABORT = "abort"


@dataclass
class ToolResult:
    """Result of a single tool execution."""

    success: bool
    content: str | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    control: ToolControl = ToolControl.CONTINUE

    def to_text(self) -> str:
        """Plain-text form fed back to the model."""
        if self.success:
            return self.content or ""
        return f"Error: {self.error}"


@dataclass
class ToolDef:
    """Tool definition rendered into the system prompt."""

    name: str
    description: str
    parameters: dict[str, Any]  # JSON Schema

    def to_prompt_line(self, index: int) -> str:
        props = self.parameters.get("properties") or {}
        if props:
            args = ", ".join(f'"{name}": "{spec.get("description", name)}"' for name, spec in props.items())
            shape = "{ " + args + " }"
        else:
            shape = "{}"
        return f"{index}. {self.name}: {self.description}\n   - parameters: {shape}"
