"""Google Gemini provider session."""

from __future__ import annotations

from typing import Any

from google import genai
from google.genai import types as genai_types

from .base import ProviderSession


class GeminiSession(ProviderSession):
    """
    Gemini session using the google-genai SDK.

    History is owned by the SDK's chat object; this class never touches it.
    """

    provider_name = "gemini"

    def __init__(
        self,
        model: str,
        api_key: str,
        *,
        system_prompt: str | None = None,
        json_mode: bool = True,
        timeout: float | None = None,
        client: Any | None = None,
    ) -> None:
        super().__init__(model, system_prompt=system_prompt, timeout=timeout)
        self.api_key = api_key
        self.json_mode = json_mode
        self._client: Any | None = client
        self._chat: Any | None = None

    def _get_client(self) -> Any:
        if not self._client:
            self._client = genai.Client(
                api_key=self.api_key,
                http_options={"api_version": "v1beta"},
            )
        return self._client

    def build_config(self) -> genai_types.GenerateContentConfig:
        config_args: dict[str, Any] = {}
        if self.system_prompt:
            config_args["system_instruction"] = self.system_prompt
        if self.json_mode:
            config_args["response_mime_type"] = "application/json"
        return genai_types.GenerateContentConfig(**config_args)

    def _get_chat(self) -> Any:
        if self._chat is None:
            self._chat = self._get_client().aio.chats.create(
                model=self.model,
                config=self.build_config(),
                history=[],
            )
        return self._chat

    async def _send(self, text: str) -> str:
        resp = await self._get_chat().send_message(text)
        return getattr(resp, "text", "") or ""

    async def _list_models(self) -> list[str]:
        names: list[str] = []
        pager = await self._get_client().aio.models.list()
        async for model in pager:
            name = getattr(model, "name", "") or ""
            if name:
                names.append(name.removeprefix("models/"))
        return names
