"""Ollama provider session."""

from __future__ import annotations

from typing import Any

from ollama import AsyncClient

from ..models import Message
from .base import ProviderSession


class OllamaSession(ProviderSession):
    """Ollama-backed session for a local server; needs no credential."""

    provider_name = "ollama"

    def __init__(
        self,
        model: str,
        *,
        base_url: str | None = None,
        system_prompt: str | None = None,
        json_mode: bool = True,
        timeout: float | None = None,
        client: Any | None = None,
    ) -> None:
        super().__init__(model, system_prompt=system_prompt, timeout=timeout)
        self.base_url = base_url or "http://localhost:11434"
        self.json_mode = json_mode
        self._client: Any | None = client
        self._history: list[Message] = []

    @property
    def history(self) -> list[Message]:
        return list(self._history)

    def _system_messages(self) -> list[Message]:
        if not self.system_prompt:
            return []
        return [Message(role="system", content=self.system_prompt)]

    def _get_client(self) -> Any:
        if not self._client:
            self._client = AsyncClient(host=self.base_url)
        return self._client

    async def _send(self, text: str) -> str:
        user_msg = Message(role="user", content=text)
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_chat_dict() for m in [*self._system_messages(), *self._history, user_msg]],
        }
        if self.json_mode:
            kwargs["format"] = "json"

        resp = await self._get_client().chat(**kwargs)
        msg = getattr(resp, "message", None)
        content = (getattr(msg, "content", None) or "") if msg is not None else ""
        self._history.append(user_msg)
        self._history.append(Message(role="assistant", content=content))
        return content

    async def _list_models(self) -> list[str]:
        resp = await self._get_client().list()
        names: list[str] = []
        for m in getattr(resp, "models", None) or []:
            name = getattr(m, "model", None) or ""
            if name:
                names.append(name)
        return names
