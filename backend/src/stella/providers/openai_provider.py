"""OpenAI provider session (Chat Completions API)."""

from __future__ import annotations

from typing import Any

from openai import AsyncOpenAI

from ..models import Message
from .base import ProviderSession


class OpenAISession(ProviderSession):
    """OpenAI-backed session keeping an explicit append-only message history."""

    provider_name = "openai"

    def __init__(
        self,
        model: str,
        api_key: str,
        *,
        base_url: str | None = None,
        system_prompt: str | None = None,
        json_mode: bool = True,
        timeout: float | None = None,
        client: Any | None = None,
    ) -> None:
        super().__init__(model, system_prompt=system_prompt, timeout=timeout)
        self.api_key = api_key
        self.base_url = base_url
        self.json_mode = json_mode
        self._client: Any | None = client
        self._history: list[Message] = []

    @property
    def history(self) -> list[Message]:
        """Copy of the accumulated conversation."""
        return list(self._history)

    def _system_messages(self) -> list[Message]:
        if not self.system_prompt:
            return []
        return [Message(role="system", content=self.system_prompt)]

    def _get_client(self) -> Any:
        if not self._client:
            kwargs: dict[str, Any] = {"api_key": self.api_key}
            if self.base_url:
                kwargs["base_url"] = self.base_url
            self._client = AsyncOpenAI(**kwargs)
        return self._client

    async def _send(self, text: str) -> str:
        user_msg = Message(role="user", content=text)
        params: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_chat_dict() for m in [*self._system_messages(), *self._history, user_msg]],
        }
        if self.json_mode:
            params["response_format"] = {"type": "json_object"}

        resp = await self._get_client().chat.completions.create(**params)
        content = ""
        if resp.choices:
            content = resp.choices[0].message.content or ""
        # Commit the turn only once the backend answered
        self._history.append(user_msg)
        self._history.append(Message(role="assistant", content=content))
        return content

    async def _list_models(self) -> list[str]:
        names: list[str] = []
        async for model in self._get_client().models.list():
            model_id = getattr(model, "id", "") or ""
            if model_id:
                names.append(model_id)
        return sorted(names)
